import logging

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException

from catalog import find_product
from database import Store, get_store, serialize_doc
from schemas import Review, ReviewCreateBody
from security import Principal, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reviews"])


def has_purchased(store: Store, user_id: str, product_id: str) -> bool:
    return store["order"].find_one({
        "user_id": user_id,
        "status": "confirmed",
        "items.product_id": product_id,
    }) is not None


def recompute_rating(store: Store, product_id: str) -> float:
    ratings = [r["rating"] for r in store["review"].find({"product_id": product_id}, {"rating": 1})]
    rating = sum(ratings) / len(ratings) if ratings else 0.0
    store["product"].update_one({"_id": ObjectId(product_id)}, {"$set": {"rating": rating}})
    return rating


def create_review(store: Store, user: Principal, body: ReviewCreateBody) -> float:
    product = find_product(store, body.product_id)
    product_id = str(product["_id"])
    if not has_purchased(store, user.id, product_id):
        raise HTTPException(status_code=403, detail="You can only review products you purchased.")
    review = Review(product_id=product_id, user_id=user.id, rating=body.rating, comment=body.comment)
    store.create_document("review", review)
    rating = recompute_rating(store, product_id)
    logger.info("Review by %s on %s, rating now %.2f", user.id, product_id, rating)
    return rating


def reviewer_names(store: Store, reviews: list) -> dict:
    ids = []
    for r in reviews:
        try:
            ids.append(ObjectId(r["user_id"]))
        except (InvalidId, TypeError):
            continue
    return {str(u["_id"]): u["name"] for u in store["user"].find({"_id": {"$in": ids}}, {"name": 1})}


@router.post("/api/reviews", status_code=201)
def submit_review(body: ReviewCreateBody, user: Principal = Depends(get_current_user),
                  store: Store = Depends(get_store)):
    rating = create_review(store, user, body)
    return {"message": "Review submitted successfully.", "rating": rating}


@router.get("/api/products/{product_id}/reviews")
def list_reviews(product_id: str, store: Store = Depends(get_store)):
    reviews = store.get_documents("review", {"product_id": product_id}, sort=[("created_at", -1)])
    names = reviewer_names(store, reviews)
    out = []
    for r in reviews:
        item = serialize_doc(r)
        item["user_name"] = names.get(r["user_id"], "Anonymous")
        out.append(item)
    return {"reviews": out}
