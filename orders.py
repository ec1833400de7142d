"""
Order and payment workflow.

An order is opened with the payment gateway, persisted as ``pending`` with
its line items embedded, and stock is decremented. The client then pays in
the gateway's hosted checkout and posts the gateway's signature back;
only a valid signature moves the order to ``confirmed``. Later status
changes are admin actions constrained by ``TRANSITIONS``.
"""
import logging
import math
import time
from datetime import datetime, timezone

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument

from database import Store, get_store, object_id, serialize_doc
from gateway import PaymentGateway, get_gateway
from schemas import ORDER_STATUSES, Order, OrderCreateBody, OrderItem, PaymentVerifyBody
from security import Principal, get_current_user, get_settings
from settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])

# pending -> confirmed is reserved to payment verification
TRANSITIONS = {
    "pending": {"cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}


def minor_units(amount: float) -> int:
    # half-up, so 0.125 becomes 13 paise
    return int(math.floor(amount * 100 + 0.5))


def load_products(store: Store, body: OrderCreateBody) -> dict:
    products = {}
    for line in body.items:
        try:
            product = store["product"].find_one({"_id": ObjectId(line.product_id)})
        except InvalidId:
            product = None
        if not product:
            raise HTTPException(status_code=400, detail=f"Product not found: {line.product_id}")
        products[line.product_id] = product
    return products


def create_order(store: Store, gateway: PaymentGateway, settings: Settings,
                 user: Principal, body: OrderCreateBody):
    products = load_products(store, body)
    currency = body.currency or settings.currency
    receipt = f"order_{int(time.time() * 1000)}"
    gateway_order = gateway.create_order(minor_units(body.amount), currency, receipt)

    items = []
    for line in body.items:
        product = products[line.product_id]
        images = product.get("images") or []
        items.append(OrderItem(
            product_id=line.product_id,
            quantity=line.quantity,
            price=line.price,
            selected_size=line.selected_size,
            selected_color=line.selected_color,
            product_name=product.get("name"),
            product_image=images[0] if images else None,
        ))
    order = Order(
        user_id=user.id,
        total_amount=body.amount,
        currency=currency,
        payment_id=gateway_order["id"],
        gateway_order_id=gateway_order["id"],
        shipping_address=body.shipping_address,
        items=items,
    )
    order_id = store.create_document("order", order)

    # No floor check: concurrent checkouts may oversell
    for line in body.items:
        store["product"].update_one({"_id": ObjectId(line.product_id)}, {"$inc": {"stock_quantity": -line.quantity}})

    logger.info("Order %s created for user %s with gateway order %s", order_id, user.id, gateway_order["id"])
    return order_id, gateway_order


def verify_payment(store: Store, gateway: PaymentGateway, user: Principal, body: PaymentVerifyBody) -> dict:
    oid = object_id(body.order_id, "Order not found")
    if not gateway.verify_signature(body.gateway_order_id, body.gateway_payment_id, body.signature):
        logger.warning("Invalid payment signature for order %s", body.order_id)
        raise HTTPException(status_code=400, detail="Invalid payment signature")

    order = store["order"].find_one({"_id": oid, "user_id": user.id})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.get("gateway_order_id") != body.gateway_order_id:
        raise HTTPException(status_code=400, detail="Payment does not match order")

    updated = store["order"].find_one_and_update(
        {"_id": oid, "user_id": user.id, "status": "pending"},
        {"$set": {
            "status": "confirmed",
            "payment_status": "completed",
            "payment_id": body.gateway_payment_id,
            "updated_at": datetime.now(timezone.utc),
        }},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=409, detail="Order is not awaiting payment")
    logger.info("Payment %s verified for order %s", body.gateway_payment_id, body.order_id)
    return updated


def change_status(store: Store, order_id: str, status: str) -> dict:
    if status not in ORDER_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid order status")
    oid = object_id(order_id, "Order not found")
    order = store["order"].find_one({"_id": oid})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    current = order["status"]
    if status not in TRANSITIONS.get(current, set()):
        raise HTTPException(status_code=409, detail=f"Cannot change order status from {current} to {status}")
    updated = store["order"].find_one_and_update(
        {"_id": oid, "status": current},
        {"$set": {"status": status, "updated_at": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=409, detail="Order status changed concurrently")
    logger.info("Order %s status %s -> %s", order_id, current, status)
    return updated


@router.post("/api/orders", status_code=201)
def place_order(body: OrderCreateBody, user: Principal = Depends(get_current_user),
                store: Store = Depends(get_store), gateway: PaymentGateway = Depends(get_gateway),
                settings: Settings = Depends(get_settings)):
    order_id, gateway_order = create_order(store, gateway, settings, user, body)
    return {
        "message": "Order created successfully",
        "orderId": order_id,
        "gatewayOrder": {
            "id": gateway_order["id"],
            "amount": gateway_order["amount"],
            "currency": gateway_order["currency"],
        },
    }


@router.post("/api/payments/verify")
def confirm_payment(body: PaymentVerifyBody, user: Principal = Depends(get_current_user),
                    store: Store = Depends(get_store), gateway: PaymentGateway = Depends(get_gateway)):
    verify_payment(store, gateway, user, body)
    return {"message": "Payment verified successfully", "paymentId": body.gateway_payment_id}


@router.get("/api/orders")
def list_orders(user: Principal = Depends(get_current_user), store: Store = Depends(get_store)):
    docs = store.get_documents("order", {"user_id": user.id}, sort=[("created_at", -1)])
    return {"orders": [serialize_doc(d) for d in docs]}


@router.get("/api/orders/{order_id}")
def get_order(order_id: str, user: Principal = Depends(get_current_user), store: Store = Depends(get_store)):
    order = store["order"].find_one({"_id": object_id(order_id, "Order not found"), "user_id": user.id})
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"order": serialize_doc(order)}
