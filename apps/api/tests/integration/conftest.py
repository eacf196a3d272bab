import pytest

from storefront.auth.jwt import issue_access_token
from storefront.config import settings


@pytest.fixture
def auth_headers():
    def _headers(role: str, sub: str) -> dict[str, str]:
        token = issue_access_token(sub, role, settings.jwt_secret)
        return {"Authorization": f"Bearer {token}"}

    return {
        "customer_a": _headers("CUSTOMER", "customer-a"),
        "customer_b": _headers("CUSTOMER", "customer-b"),
        "admin": _headers("ADMIN", "admin-1"),
    }


@pytest.fixture
def auth_tokens(auth_headers):
    return {
        name: header["Authorization"].removeprefix("Bearer ")
        for name, header in auth_headers.items()
    }


@pytest.fixture
def product(make_product):
    return make_product()


@pytest.fixture
def order_payload(product):
    def _payload(quantity: int = 2, **overrides) -> dict:
        payload = {
            "items": [{"product_id": str(product.id), "quantity": quantity}],
            "shipping_address": {
                "label": "Home",
                "street": "12 Temple Street",
                "city": "Madurai",
                "state": "Tamil Nadu",
                "zip_code": "625001",
            },
            "customer_name": "Meena Raman",
            "customer_phone": "+919800000001",
            "payment_method": "cod",
            "shipping_cost": 50,
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def placed_order(client, auth_headers, order_payload):
    response = client.post(
        "/api/v1/orders", json=order_payload(), headers=auth_headers["customer_a"]
    )
    assert response.status_code == 201
    return response.json()
