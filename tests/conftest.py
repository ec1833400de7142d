import mongomock
import pytest
from fastapi.testclient import TestClient

from database import Store
from gateway import sign
from main import create_app
from schemas import User
from security import hash_password, token_for
from settings import Settings

SECRET = "test_key_secret"


@pytest.fixture
def settings():
    return Settings(jwt_secret="test-jwt-secret", razorpay_key_secret=SECRET,
                    admin_email="admin@example.com", admin_password="admin-pass")


@pytest.fixture
def store():
    return Store(mongomock.MongoClient(), "storefront_test")


@pytest.fixture
def client(settings, store):
    with TestClient(create_app(settings=settings, store=store)) as c:
        yield c


def make_user(store, settings, name="Asha", email="asha@example.com", role="user"):
    uid = store.create_document("user", User(name=name, email=email, password_hash=hash_password("secret1"), role=role))
    user = store["user"].find_one({"email": email})
    return uid, {"Authorization": f"Bearer {token_for(user, settings)}"}


@pytest.fixture
def customer(store, settings):
    return make_user(store, settings)


@pytest.fixture
def admin_headers(store, settings):
    return make_user(store, settings, name="Admin", email="admin@example.com", role="admin")[1]


def product_payload(**overrides):
    payload = {
        "name": "Trail Runner",
        "description": "Lightweight running shoe with breathable mesh",
        "images": ["/img/runner-front.png", "/img/runner-side.png"],
        "mrp": 1000,
        "ourPrice": 750,
        "company": "Stride",
        "category": "clothes",
        "stockQuantity": 10,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def product(client, admin_headers):
    res = client.post("/api/products", json=product_payload(), headers=admin_headers)
    assert res.status_code == 201
    return res.json()["product"]


def order_payload(product_id, quantity=2, price=750.0, **overrides):
    payload = {
        "amount": price * quantity,
        "items": [{"productId": product_id, "quantity": quantity, "price": price,
                   "selectedSize": "M", "selectedColor": "Blue"}],
        "shippingAddress": {"street": "12 MG Road", "city": "Pune", "state": "Maharashtra", "pincode": "411001"},
    }
    payload.update(overrides)
    return payload


def place_order(client, headers, product_id, **kwargs):
    res = client.post("/api/orders", json=order_payload(product_id, **kwargs), headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def verification(created, payment_id="pay_29QQoUBi66xm2f", secret=SECRET):
    gateway_order_id = created["gatewayOrder"]["id"]
    return {
        "gatewayOrderId": gateway_order_id,
        "gatewayPaymentId": payment_id,
        "signature": sign(secret, gateway_order_id, payment_id),
        "orderId": created["orderId"],
    }


def confirmed_order(client, headers, product_id, **kwargs):
    created = place_order(client, headers, product_id, **kwargs)
    res = client.post("/api/payments/verify", json=verification(created), headers=headers)
    assert res.status_code == 200, res.text
    return created
