import logging
from typing import Dict, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends

from catalog import create_product
from database import Store, get_store, serialize_doc
from orders import change_status
from schemas import ORDER_STATUSES, OrderStatusBody, ProductCreateBody, User
from security import Principal, get_settings, hash_password, require_admin
from settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


def totals_by_user(store: Store, revenue_statuses) -> Dict[str, Tuple[int, float]]:
    totals = {}
    pipeline = [{"$group": {"_id": {"user_id": "$user_id", "status": "$status"},
                            "count": {"$sum": 1}, "amount": {"$sum": "$total_amount"}}}]
    for row in store["order"].aggregate(pipeline):
        user_id = row["_id"]["user_id"]
        count, spent = totals.get(user_id, (0, 0.0))
        count += row["count"]
        if row["_id"]["status"] in revenue_statuses:
            spent += row["amount"]
        totals[user_id] = (count, spent)
    return totals


def dashboard_stats(store: Store, settings: Settings) -> dict:
    counts = {status: 0 for status in ORDER_STATUSES}
    revenue = 0.0
    pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}, "amount": {"$sum": "$total_amount"}}}]
    for row in store["order"].aggregate(pipeline):
        counts[row["_id"]] = row["count"]
        if row["_id"] in settings.revenue_statuses:
            revenue += row["amount"]
    stats = {
        "total_products": store["product"].count_documents({}),
        "total_customers": store["user"].count_documents({"role": "user"}),
        "total_orders": sum(counts.values()),
        "total_revenue": revenue,
    }
    for status, count in counts.items():
        stats[f"{status}_orders"] = count
    return stats


def customers(store: Store, settings: Settings) -> list:
    totals = totals_by_user(store, settings.revenue_statuses)
    out = []
    for user in store.get_documents("user", {"role": "user"}, sort=[("created_at", -1)]):
        doc = serialize_doc(user)
        doc.pop("password_hash", None)
        doc["total_orders"], doc["total_spent"] = totals.get(doc["id"], (0, 0.0))
        out.append(doc)
    return out


def all_orders(store: Store) -> list:
    orders = store.get_documents("order", sort=[("created_at", -1)])
    ids = []
    for o in orders:
        try:
            ids.append(ObjectId(o["user_id"]))
        except (InvalidId, TypeError):
            continue
    owners = {str(u["_id"]): u for u in store["user"].find({"_id": {"$in": ids}}, {"name": 1, "email": 1})}
    out = []
    for o in orders:
        doc = serialize_doc(o)
        owner = owners.get(o["user_id"], {})
        doc["customer_name"] = owner.get("name", "Unknown")
        doc["customer_email"] = owner.get("email", "Unknown")
        out.append(doc)
    return out


@router.get("/api/admin/stats")
def admin_stats(admin: Principal = Depends(require_admin), store: Store = Depends(get_store),
                settings: Settings = Depends(get_settings)):
    return {"stats": dashboard_stats(store, settings)}


@router.get("/api/admin/customers")
def admin_customers(admin: Principal = Depends(require_admin), store: Store = Depends(get_store),
                    settings: Settings = Depends(get_settings)):
    return {"customers": customers(store, settings)}


@router.get("/api/admin/orders")
def admin_orders(admin: Principal = Depends(require_admin), store: Store = Depends(get_store)):
    return {"orders": all_orders(store)}


@router.patch("/api/admin/orders/{order_id}/status")
def update_order_status(order_id: str, body: OrderStatusBody, admin: Principal = Depends(require_admin),
                        store: Store = Depends(get_store)):
    order = change_status(store, order_id, body.status)
    return {"message": "Order status updated successfully", "order": serialize_doc(order)}


# ----------------------- Seed Demo Data -----------------------
DEMO_PRODUCTS = [
    {
        "name": "Premium Wireless Headphones",
        "description": "High-quality wireless headphones with noise cancellation and superior sound quality.",
        "images": ["/api/placeholder/400/300"],
        "mrp": 299.99,
        "our_price": 249.99,
        "offers": ["Free shipping", "1 year warranty"],
        "coupons": ["SAVE20", "NEWYEAR"],
        "company": "AudioTech",
        "color": "Black",
        "size": "One Size",
        "weight": "350g",
        "height": "20cm",
        "category": "electronics",
        "stock_quantity": 50,
    },
    {
        "name": "Smart Fitness Watch",
        "description": "Advanced fitness tracking with heart rate monitor, GPS, and smartphone connectivity.",
        "images": ["/api/placeholder/400/300"],
        "mrp": 199.99,
        "our_price": 159.99,
        "offers": ["Free shipping", "30-day trial"],
        "coupons": ["FITNESS15"],
        "company": "WearTech",
        "color": "Silver",
        "size": "42mm",
        "weight": "45g",
        "height": "1.2cm",
        "category": "electronics",
        "stock_quantity": 75,
    },
    {
        "name": "Organic Cotton T-Shirt",
        "description": "Comfortable and sustainable organic cotton t-shirt in various colors.",
        "images": ["/api/placeholder/400/300"],
        "mrp": 29.99,
        "our_price": 24.99,
        "offers": ["Buy 2 get 1 free"],
        "coupons": ["ORGANIC10"],
        "company": "EcoWear",
        "color": "Blue",
        "size": "M",
        "weight": "200g",
        "height": "70cm",
        "category": "clothes",
        "stock_quantity": 100,
    },
]


@router.post("/seed")
def seed(store: Store = Depends(get_store), settings: Settings = Depends(get_settings)):
    seeded = False
    if store["product"].count_documents({}) == 0:
        for p in DEMO_PRODUCTS:
            create_product(store, ProductCreateBody(**p))
        seeded = True
    # create admin user if none
    if settings.admin_email and settings.admin_password and store["user"].count_documents({"role": "admin"}) == 0:
        if store["user"].find_one({"email": settings.admin_email}):
            store["user"].update_one({"email": settings.admin_email}, {"$set": {"role": "admin"}})
        else:
            admin = User(name="Admin", email=settings.admin_email,
                         password_hash=hash_password(settings.admin_password), role="admin")
            store.create_document("user", admin)
        logger.info("Seeded admin account %s", settings.admin_email)
        seeded = True
    return {"seeded": seeded, "products": store["product"].count_documents({})}
