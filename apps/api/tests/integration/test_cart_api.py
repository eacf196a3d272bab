import pytest

from storefront.config import settings


@pytest.fixture
def checkout_details(order_payload):
    details = order_payload()
    details.pop("items")
    return details


def test_cart_add_update_remove(client, auth_headers, product):
    headers = auth_headers["customer_a"]

    added = client.post(
        "/api/v1/cart/items", json={"product_id": str(product.id), "quantity": 2}, headers=headers
    )
    updated = client.patch(
        f"/api/v1/cart/items/{product.id}", json={"quantity": 5}, headers=headers
    )
    removed = client.delete(f"/api/v1/cart/items/{product.id}", headers=headers)

    assert added.status_code == 200
    assert added.json() == {
        "items": [
            {
                "product_id": str(product.id),
                "name": "Cold Pressed Coconut Oil",
                "price": 450.0,
                "quantity": 2,
                "total": 900.0,
                "in_stock": True,
            }
        ],
        "item_count": 2,
        "total_amount": 900.0,
    }
    assert updated.json()["total_amount"] == 2250.0
    assert removed.json() == {"items": [], "item_count": 0, "total_amount": 0.0}


def test_cart_is_private_to_each_customer(client, auth_headers, product):
    client.post(
        "/api/v1/cart/items",
        json={"product_id": str(product.id)},
        headers=auth_headers["customer_a"],
    )

    mine = client.get("/api/v1/cart", headers=auth_headers["customer_a"])
    theirs = client.get("/api/v1/cart", headers=auth_headers["customer_b"])

    assert mine.json()["item_count"] == 1
    assert theirs.json()["items"] == []


def test_cart_rejects_unknown_product_and_bad_quantity(client, auth_headers):
    headers = auth_headers["customer_a"]
    missing = "00000000-0000-0000-0000-000000000000"

    unknown = client.post("/api/v1/cart/items", json={"product_id": missing}, headers=headers)
    zero = client.post(
        "/api/v1/cart/items", json={"product_id": missing, "quantity": 0}, headers=headers
    )
    not_in_cart = client.patch(
        f"/api/v1/cart/items/{missing}", json={"quantity": 1}, headers=headers
    )

    assert unknown.status_code == 404
    assert zero.status_code == 422
    assert not_in_cart.json()["detail"] == "Item not found in cart"


def test_cart_requires_a_token(client, product, monkeypatch):
    monkeypatch.setattr(settings, "enable_test_auth_bypass", False)

    assert client.get("/api/v1/cart").status_code == 401


def test_buy_now_creates_trackable_order(client, auth_headers, product, checkout_details):
    response = client.post(
        "/api/v1/cart/buy-now",
        json={"product_id": str(product.id), "quantity": 3, **checkout_details},
        headers=auth_headers["customer_a"],
    )

    assert response.status_code == 201
    body = response.json()
    assert body["order_number"] == "ORD00001"
    assert body["item_count"] == 3
    assert body["total_amount"] == 1400.0

    detail = client.get("/api/v1/orders/ORD00001", headers=auth_headers["customer_a"])
    assert detail.json()["id"] == body["id"]


def test_checkout_turns_cart_into_order(client, auth_headers, product, checkout_details):
    headers = auth_headers["customer_a"]
    client.post(
        "/api/v1/cart/items", json={"product_id": str(product.id), "quantity": 2}, headers=headers
    )

    placed = client.post("/api/v1/cart/checkout", json=checkout_details, headers=headers)
    again = client.post("/api/v1/cart/checkout", json=checkout_details, headers=headers)

    assert placed.status_code == 201
    assert placed.json()["total_amount"] == 950.0
    assert client.get("/api/v1/cart", headers=headers).json()["items"] == []
    assert again.status_code == 400
    assert again.json()["detail"] == "Cart is empty"
    assert client.get(f"/api/v1/products/{product.id}").json()["stock"] == 18


def test_wishlist_flow(client, auth_headers, product):
    headers = auth_headers["customer_a"]
    payload = {"product_id": str(product.id)}

    added = client.post("/api/v1/wishlist/items", json=payload, headers=headers)
    duplicate = client.post("/api/v1/wishlist/items", json=payload, headers=headers)
    moved = client.post(
        "/api/v1/wishlist/move-to-cart", json={**payload, "quantity": 2}, headers=headers
    )
    not_listed = client.post("/api/v1/wishlist/move-to-cart", json=payload, headers=headers)

    assert added.json()["items"][0]["name"] == "Cold Pressed Coconut Oil"
    assert added.json()["items"][0]["in_stock"] is True
    assert duplicate.status_code == 409
    assert moved.json() == {"items": []}
    assert not_listed.status_code == 404
    assert client.get("/api/v1/cart", headers=headers).json()["item_count"] == 2


def test_wishlist_remove_and_clear(client, auth_headers, make_product):
    headers = auth_headers["customer_a"]
    oil = make_product()
    soap = make_product(name="Turmeric Soap", price=80.0)
    for item in (oil, soap):
        client.post("/api/v1/wishlist/items", json={"product_id": str(item.id)}, headers=headers)

    after_remove = client.delete(f"/api/v1/wishlist/items/{oil.id}", headers=headers)
    cleared = client.delete("/api/v1/wishlist", headers=headers)

    assert [entry["name"] for entry in after_remove.json()["items"]] == ["Turmeric Soap"]
    assert cleared.json() == {"items": []}
    assert client.get("/api/v1/wishlist", headers=headers).json() == {"items": []}
