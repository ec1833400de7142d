from datetime import datetime, timedelta, timezone

from conftest import confirmed_order, make_user, place_order


def review(product_id, rating=5, comment="Fits perfectly"):
    return {"productId": product_id, "rating": rating, "comment": comment}


def test_review_requires_confirmed_purchase(client, customer, product):
    _, headers = customer
    res = client.post("/api/reviews", json=review(product["id"]), headers=headers)
    assert res.status_code == 403

    # a pending order is not enough
    place_order(client, headers, product["id"])
    res = client.post("/api/reviews", json=review(product["id"]), headers=headers)
    assert res.status_code == 403


def test_review_after_purchase_updates_rating(client, store, settings, customer, product):
    _, headers = customer
    confirmed_order(client, headers, product["id"])
    res = client.post("/api/reviews", json=review(product["id"], rating=5), headers=headers)
    assert res.status_code == 201
    assert client.get(f"/api/products/{product['id']}").json()["product"]["rating"] == 5.0

    _, other = make_user(store, settings, name="Ravi", email="ravi@example.com")
    confirmed_order(client, other, product["id"])
    client.post("/api/reviews", json=review(product["id"], rating=2), headers=other)
    assert client.get(f"/api/products/{product['id']}").json()["product"]["rating"] == 3.5

    saved = store["review"].find_one({"rating": 2})
    assert saved["verified"] is True


def test_review_validation(client, customer, product):
    _, headers = customer
    assert client.post("/api/reviews", json=review(product["id"], rating=6), headers=headers).status_code == 400
    assert client.post("/api/reviews", json=review(product["id"], rating=0), headers=headers).status_code == 400
    assert client.post("/api/reviews", json=review(product["id"], comment=""), headers=headers).status_code == 400
    assert client.post("/api/reviews", json=review(product["id"])).status_code == 401


def test_review_unknown_product(client, customer):
    _, headers = customer
    res = client.post("/api/reviews", json=review("5f0c9a8e2b1d4c3a9e8f7a6b"), headers=headers)
    assert res.status_code == 404


def test_list_reviews_newest_first_with_names(client, store, settings, customer, product):
    _, headers = customer
    confirmed_order(client, headers, product["id"])
    client.post("/api/reviews", json=review(product["id"], rating=4, comment="Good grip"), headers=headers)
    _, other = make_user(store, settings, name="Ravi", email="ravi@example.com")
    confirmed_order(client, other, product["id"])
    client.post("/api/reviews", json=review(product["id"], rating=3, comment="Runs small"), headers=other)
    store["review"].update_one({"comment": "Good grip"},
                               {"$set": {"created_at": datetime.now(timezone.utc) - timedelta(days=1)}})

    reviews = client.get(f"/api/products/{product['id']}/reviews").json()["reviews"]
    assert [r["comment"] for r in reviews] == ["Runs small", "Good grip"]
    assert [r["user_name"] for r in reviews] == ["Ravi", "Asha"]


def test_list_reviews_empty(client, product):
    assert client.get(f"/api/products/{product['id']}/reviews").json() == {"reviews": []}
