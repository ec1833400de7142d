import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import PyMongoError

from database import Store, get_store, object_id, serialize_doc
from schemas import Notification, NotificationCreateBody
from security import Principal, get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def visible_to(user_id: str) -> dict:
    return {"$or": [{"user_id": user_id}, {"user_id": None}]}


def present(doc: dict, user_id: str) -> dict:
    out = serialize_doc(doc)
    read_by = out.pop("read_by", None) or []
    out["is_read"] = user_id in read_by
    return out


def create_notification(store: Store, title: str, message: str, type: str,
                        user_id: Optional[str] = None, metadata: Optional[dict] = None) -> dict:
    notification = Notification(title=title, message=message, type=type, user_id=user_id, metadata=metadata or {})
    nid = store.create_document("notification", notification)
    return store["notification"].find_one({"_id": object_id(nid)})


def notify_product_added(store: Store, product_id: str, product_name: str):
    """Broadcast a new-product notice; failures are logged and never raised."""
    try:
        create_notification(
            store,
            title="New Product Added!",
            message=f"Check out our new product: {product_name}. Click to view details.",
            type="product_added",
            metadata={"product_id": product_id, "product_name": product_name},
        )
        logger.info("Product notification created for %s", product_id)
    except PyMongoError:
        logger.exception("Error creating product notification for %s", product_id)


@router.get("")
def list_notifications(user: Principal = Depends(get_current_user), store: Store = Depends(get_store)):
    docs = store.get_documents("notification", visible_to(user.id), sort=[("created_at", -1)])
    return {"notifications": [present(d, user.id) for d in docs]}


@router.patch("/{notification_id}/read")
def mark_as_read(notification_id: str, user: Principal = Depends(get_current_user),
                 store: Store = Depends(get_store)):
    oid = object_id(notification_id, "Notification not found")
    res = store["notification"].update_one(
        {"_id": oid, **visible_to(user.id)},
        {"$addToSet": {"read_by": user.id}},
    )
    if res.matched_count == 0:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification marked as read"}


@router.post("", status_code=201)
def send_notification(body: NotificationCreateBody, admin: Principal = Depends(require_admin),
                      store: Store = Depends(get_store)):
    if body.user_id:
        recipient = store["user"].find_one({"_id": object_id(body.user_id, "User not found")})
        if not recipient:
            raise HTTPException(status_code=404, detail="User not found")
    doc = create_notification(store, body.title, body.message, body.type, user_id=body.user_id)
    message = "Notification created successfully" if body.user_id else "Notification sent to all users"
    logger.info("Admin %s created notification %s", admin.id, doc["_id"])
    return {"message": message, "notification": present(doc, admin.id)}


@router.delete("/{notification_id}")
def delete_notification(notification_id: str, admin: Principal = Depends(require_admin),
                        store: Store = Depends(get_store)):
    res = store["notification"].delete_one({"_id": object_id(notification_id, "Notification not found")})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification deleted successfully"}
