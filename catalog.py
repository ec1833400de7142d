import logging
import math
import re
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument

from database import Store, get_store, object_id, serialize_doc
from notifications import notify_product_added
from schemas import Category, ProductCreateBody, ProductUpdateBody
from security import Principal, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])

EXCHANGE_RATE = 0.95
SUGGESTION_LIMIT = 10
PLACEHOLDER_IMAGE = "/placeholder.svg"


def compute_discount(mrp: float, our_price: float) -> int:
    # half-up rounding, not banker's
    return int(math.floor((mrp - our_price) / mrp * 100 + 0.5))


def price_fields(mrp: float, our_price: float, discount: Optional[int] = None) -> dict:
    if our_price > mrp:
        raise HTTPException(status_code=400, detail="Price cannot exceed MRP")
    return {
        "discount": discount if discount is not None else compute_discount(mrp, our_price),
        "after_exchange_price": round(our_price * EXCHANGE_RATE, 2),
    }


def contains(text: str) -> dict:
    return {"$regex": re.escape(text), "$options": "i"}


def product_filter(category: Optional[str] = None, search: Optional[str] = None,
                   in_stock: Optional[bool] = None) -> dict:
    filt = {}
    if category and category != "all":
        filt["category"] = category
    if search:
        filt["$or"] = [{"name": contains(search)}, {"description": contains(search)}]
    if in_stock:
        filt["in_stock"] = True
    return filt


def find_product(store: Store, product_id: str) -> dict:
    product = store["product"].find_one({"_id": object_id(product_id, "Product not found")})
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def create_product(store: Store, body: ProductCreateBody) -> dict:
    data = body.model_dump()
    data.update(price_fields(body.mrp, body.our_price, body.discount))
    data["rating"] = 0.0
    pid = store.create_document("product", data)
    product = store["product"].find_one({"_id": object_id(pid)})
    logger.info("Product %s created: %s", pid, product["name"])
    notify_product_added(store, pid, product["name"])
    return product


def update_product(store: Store, product_id: str, body: ProductUpdateBody) -> dict:
    current = find_product(store, product_id)
    update = body.model_dump(exclude_none=True)
    if "mrp" in update or "our_price" in update:
        mrp = update.get("mrp", current["mrp"])
        our_price = update.get("our_price", current["our_price"])
        update.update(price_fields(mrp, our_price, update.get("discount")))
    update["updated_at"] = datetime.now(timezone.utc)
    product = store["product"].find_one_and_update(
        {"_id": current["_id"]},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def rank_suggestion(product: dict, term: str):
    name = product.get("name", "").lower()
    if name.startswith(term):
        rank = 1
    elif term in name:
        rank = 2
    else:
        rank = 3
    return rank, name


def search_suggestions(store: Store, q: Optional[str]) -> list:
    if not q or len(q.strip()) < 2:
        return []
    term = q.strip()
    matches = store.get_documents("product", {
        "in_stock": True,
        "$or": [{"name": contains(term)}, {"description": contains(term)}],
    })
    matches.sort(key=lambda p: rank_suggestion(p, term.lower()))
    return [
        {
            "id": str(p["_id"]),
            "name": p["name"],
            "image": (p.get("images") or [PLACEHOLDER_IMAGE])[0],
            "category": p.get("category"),
            "price": float(p.get("our_price") or 0),
        }
        for p in matches[:SUGGESTION_LIMIT]
    ]


@router.get("")
def list_products(category: Optional[str] = None, search: Optional[str] = None,
                  in_stock: Optional[bool] = None, store: Store = Depends(get_store)):
    docs = store.get_documents("product", product_filter(category, search, in_stock), sort=[("created_at", -1)])
    return {"products": [serialize_doc(d) for d in docs]}


@router.get("/search/suggestions")
def get_search_suggestions(q: Optional[str] = None, store: Store = Depends(get_store)):
    return {"suggestions": search_suggestions(store, q)}


@router.get("/category/{category}")
def list_category(category: Category, in_stock: Optional[bool] = None, store: Store = Depends(get_store)):
    docs = store.get_documents("product", product_filter(category, None, in_stock), sort=[("created_at", -1)])
    return {"products": [serialize_doc(d) for d in docs]}


@router.get("/{product_id}")
def get_product(product_id: str, store: Store = Depends(get_store)):
    return {"product": serialize_doc(find_product(store, product_id))}


@router.post("", status_code=201)
def add_product(body: ProductCreateBody, admin: Principal = Depends(require_admin),
                store: Store = Depends(get_store)):
    product = create_product(store, body)
    return {"message": "Product created", "product": serialize_doc(product)}


@router.put("/{product_id}")
def edit_product(product_id: str, body: ProductUpdateBody, admin: Principal = Depends(require_admin),
                 store: Store = Depends(get_store)):
    product = update_product(store, product_id, body)
    return {"message": "Product updated", "product": serialize_doc(product)}


@router.delete("/{product_id}")
def delete_product(product_id: str, admin: Principal = Depends(require_admin),
                   store: Store = Depends(get_store)):
    res = store["product"].delete_one({"_id": object_id(product_id, "Product not found")})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Product not found")
    logger.info("Product %s deleted by %s", product_id, admin.id)
    return {"message": "Product deleted"}
