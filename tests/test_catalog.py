from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

import notifications
from catalog import compute_discount, price_fields
from conftest import product_payload


def test_create_product_derives_prices(product):
    assert product["discount"] == 25
    assert product["after_exchange_price"] == 712.5
    assert product["rating"] == 0
    assert product["stock_quantity"] == 10


def test_supplied_discount_is_kept(client, admin_headers):
    res = client.post("/api/products", json=product_payload(discount=10), headers=admin_headers)
    assert res.status_code == 201
    assert res.json()["product"]["discount"] == 10


def test_discount_rounds_half_up():
    assert compute_discount(800, 700) == 13
    assert price_fields(999.99, 499.99)["after_exchange_price"] == round(499.99 * 0.95, 2)


def test_create_product_broadcasts_notification(client, admin_headers, store, product):
    note = store["notification"].find_one({"type": "product_added"})
    assert note["user_id"] is None
    assert note["title"] == "New Product Added!"
    assert product["name"] in note["message"]


def test_create_product_validation(client, admin_headers):
    res = client.post("/api/products", json=product_payload(images=[]), headers=admin_headers)
    assert res.status_code == 400
    assert "images" in res.json()["detail"]

    res = client.post("/api/products", json=product_payload(category="furniture"), headers=admin_headers)
    assert res.status_code == 400

    res = client.post("/api/products", json=product_payload(mrp=-5), headers=admin_headers)
    assert res.status_code == 400

    res = client.post("/api/products", json=product_payload(ourPrice=1200), headers=admin_headers)
    assert res.status_code == 400


def test_create_product_requires_admin(client, customer):
    _, headers = customer
    assert client.post("/api/products", json=product_payload()).status_code == 401
    assert client.post("/api/products", json=product_payload(), headers=headers).status_code == 403


def test_get_product(client, product):
    res = client.get(f"/api/products/{product['id']}")
    assert res.status_code == 200
    assert res.json()["product"]["name"] == "Trail Runner"


def test_get_product_not_found(client):
    assert client.get("/api/products/5f0c9a8e2b1d4c3a9e8f7a6b").status_code == 404
    assert client.get("/api/products/not-an-id").status_code == 404


def test_list_products_filters(client, admin_headers):
    client.post("/api/products", json=product_payload(), headers=admin_headers)
    client.post("/api/products", json=product_payload(name="Lip Balm", description="Shea butter balm",
                                                      category="beauty", inStock=False), headers=admin_headers)

    names = [p["name"] for p in client.get("/api/products").json()["products"]]
    assert sorted(names) == ["Lip Balm", "Trail Runner"]

    res = client.get("/api/products", params={"category": "beauty"})
    assert [p["name"] for p in res.json()["products"]] == ["Lip Balm"]

    res = client.get("/api/products", params={"search": "BREATHABLE"})
    assert [p["name"] for p in res.json()["products"]] == ["Trail Runner"]

    res = client.get("/api/products", params={"in_stock": "true"})
    assert [p["name"] for p in res.json()["products"]] == ["Trail Runner"]


def test_list_category(client, product):
    assert len(client.get("/api/products/category/clothes").json()["products"]) == 1
    assert client.get("/api/products/category/books").json()["products"] == []


def test_update_product_is_partial(client, admin_headers, product):
    res = client.put(f"/api/products/{product['id']}", json={"color": "Red"}, headers=admin_headers)
    assert res.status_code == 200
    updated = res.json()["product"]
    assert updated["color"] == "Red"
    assert updated["name"] == "Trail Runner"
    assert updated["discount"] == 25


def test_update_product_recomputes_prices(client, admin_headers, product):
    res = client.put(f"/api/products/{product['id']}", json={"ourPrice": 500}, headers=admin_headers)
    updated = res.json()["product"]
    assert updated["discount"] == 50
    assert updated["after_exchange_price"] == 475.0


def test_update_missing_product(client, admin_headers):
    res = client.put("/api/products/5f0c9a8e2b1d4c3a9e8f7a6b", json={"color": "Red"}, headers=admin_headers)
    assert res.status_code == 404


def test_delete_product(client, admin_headers, product):
    res = client.delete(f"/api/products/{product['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404
    assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 404


def test_suggestions_need_two_characters(client, product):
    assert client.get("/api/products/search/suggestions", params={"q": "t"}).json() == {"suggestions": []}
    assert client.get("/api/products/search/suggestions").json() == {"suggestions": []}


def test_suggestions_rank_and_project(client, admin_headers):
    client.post("/api/products", json=product_payload(name="Hat Stand", description="Wooden"), headers=admin_headers)
    client.post("/api/products", json=product_payload(name="Sun Hat", description="Straw"), headers=admin_headers)
    client.post("/api/products", json=product_payload(name="Scarf", description="Goes with any hat"),
                headers=admin_headers)
    client.post("/api/products", json=product_payload(name="Hat Rack", description="Metal", inStock=False),
                headers=admin_headers)

    suggestions = client.get("/api/products/search/suggestions", params={"q": " HAT "}).json()["suggestions"]
    assert [s["name"] for s in suggestions] == ["Hat Stand", "Sun Hat", "Scarf"]
    assert set(suggestions[0]) == {"id", "name", "image", "category", "price"}
    assert suggestions[0]["image"] == "/img/runner-front.png"
    assert suggestions[0]["price"] == 750.0


def test_suggestions_are_limited(client, admin_headers):
    for i in range(12):
        client.post("/api/products", json=product_payload(name=f"Sock pack {i:02d}"), headers=admin_headers)
    suggestions = client.get("/api/products/search/suggestions", params={"q": "sock"}).json()["suggestions"]
    assert len(suggestions) == 10


def test_product_created_when_notification_fails(client, admin_headers, store, monkeypatch):
    def failing_notification(*args, **kwargs):
        raise PyMongoError("notification write failed")

    monkeypatch.setattr(notifications, "create_notification", failing_notification)
    res = client.post("/api/products", json=product_payload(), headers=admin_headers)
    assert res.status_code == 201
    assert store["product"].count_documents({}) == 1
    assert store["notification"].count_documents({}) == 0


def test_database_outage_is_503(client, store, monkeypatch, caplog):
    def unreachable(*args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(store, "get_documents", unreachable)
    res = client.get("/api/products")
    assert res.status_code == 503
    assert res.json() == {"detail": "Database not available"}
    records = [r for r in caplog.records if r.name == "main" and r.exc_info]
    assert records
    assert isinstance(records[0].exc_info[1], ServerSelectionTimeoutError)
