import pytest
from fastapi import HTTPException

from storefront.auth.dependencies import (
    auth_context_from_token,
    get_auth_context,
    require_admin,
    require_customer,
)
from storefront.auth.jwt import JwtError, decode_jwt, issue_access_token, issue_jwt
from storefront.config import settings


def test_get_auth_context_requires_bearer_when_bypass_disabled(monkeypatch):
    monkeypatch.setattr(settings, "enable_test_auth_bypass", False)

    with pytest.raises(HTTPException) as exc_info:
        get_auth_context(None)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Missing bearer token"
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


def test_get_auth_context_allows_bypass_when_explicitly_enabled():
    auth = get_auth_context(None)

    assert auth.user_id == "test-admin"
    assert auth.role == "ADMIN"
    assert auth.source == "test"
    assert auth.is_admin


def test_get_auth_context_decodes_bearer_token():
    token = issue_access_token("customer-a", "CUSTOMER", settings.jwt_secret)

    auth = get_auth_context(f"Bearer {token}")

    assert auth.user_id == "customer-a"
    assert auth.role == "CUSTOMER"
    assert not auth.is_admin


def test_unknown_role_is_rejected():
    token = issue_access_token("someone", "SUPPLIER", settings.jwt_secret)

    with pytest.raises(HTTPException) as exc_info:
        auth_context_from_token(token)

    assert exc_info.value.detail == "Invalid JWT claims"


def test_token_signed_with_other_secret_is_rejected():
    token = issue_access_token("customer-a", "CUSTOMER", "another-secret")

    with pytest.raises(HTTPException) as exc_info:
        auth_context_from_token(token)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid JWT"


def test_decode_jwt_rejects_expired_and_malformed_tokens():
    expired = issue_jwt({"sub": "customer-a", "role": "CUSTOMER"}, "secret", expires_in_s=-10)

    with pytest.raises(JwtError, match="Expired"):
        decode_jwt(expired, "secret")
    with pytest.raises(JwtError, match="Malformed"):
        decode_jwt("not-a-jwt", "secret")


def test_decode_jwt_round_trips_claims():
    token = issue_jwt({"sub": "admin-1", "role": "ADMIN"}, "secret")

    claims = decode_jwt(token, "secret")

    assert claims["sub"] == "admin-1"
    assert claims["exp"] > claims["iat"]


def test_role_dependencies():
    customer = get_auth_context(
        f"Bearer {issue_access_token('customer-a', 'CUSTOMER', settings.jwt_secret)}"
    )

    assert require_customer(customer) is customer
    with pytest.raises(HTTPException) as exc_info:
        require_admin(customer)
    assert exc_info.value.status_code == 403


def test_sliding_window_limiter_refuses_until_window_passes(monkeypatch):
    from storefront.auth import dependencies

    clock = [100.0]
    monkeypatch.setattr(dependencies.time, "monotonic", lambda: clock[0])
    limiter = dependencies.SlidingWindowRateLimiter()

    assert limiter.hit("1.2.3.4", max_requests=2, window_s=60) is None
    assert limiter.hit("1.2.3.4", max_requests=2, window_s=60) is None
    assert limiter.hit("1.2.3.4", max_requests=2, window_s=60) == 60.0
    assert limiter.hit("5.6.7.8", max_requests=2, window_s=60) is None

    clock[0] = 161.0
    assert limiter.hit("1.2.3.4", max_requests=2, window_s=60) is None
