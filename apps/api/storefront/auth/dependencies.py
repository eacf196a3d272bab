import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Header, HTTPException, Request, status

from storefront.auth.jwt import JwtError, decode_jwt, jwt_http_exception
from storefront.config import allowed_roles_list, settings

ADMIN_ROLE = "ADMIN"
CUSTOMER_ROLE = "CUSTOMER"
BEARER_PREFIX = "Bearer "


@dataclass
class AuthContext:
    user_id: str
    role: str
    source: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def auth_context_from_token(token: str) -> AuthContext:
    """Decode a storefront access token; raises a 401 ``HTTPException`` when unusable."""
    try:
        claims = decode_jwt(token, settings.jwt_secret)
    except (JwtError, ValueError) as err:
        raise jwt_http_exception("Invalid JWT") from err

    user_id = claims.get("sub")
    role = claims.get("role")
    if not isinstance(user_id, str) or not user_id or role not in allowed_roles_list():
        raise jwt_http_exception("Invalid JWT claims")

    return AuthContext(user_id=user_id, role=role, source=claims.get("source"))


def get_auth_context(authorization: str | None = Header(default=None)) -> AuthContext:
    if not authorization:
        if settings.enable_test_auth_bypass:
            return AuthContext(user_id="test-admin", role=ADMIN_ROLE, source="test")
        raise jwt_http_exception("Missing bearer token")

    if not authorization.startswith(BEARER_PREFIX):
        raise jwt_http_exception("Missing bearer token")
    return auth_context_from_token(authorization[len(BEARER_PREFIX) :].strip())


def require_roles(*roles: str) -> Callable[[AuthContext], AuthContext]:
    def dependency(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if auth.role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return auth

    return dependency


require_customer = require_roles(CUSTOMER_ROLE, ADMIN_ROLE)
require_admin = require_roles(ADMIN_ROLE)


class SlidingWindowRateLimiter:
    """Per-client request log; a hit is refused once the window is full."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits: dict[str, deque[float]] = {}

    def hit(self, key: str, max_requests: int, window_s: int) -> float | None:
        """Record a request; returns seconds to wait when over the limit, else None."""
        now = time.monotonic()
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= now - window_s:
                hits.popleft()
            if len(hits) >= max_requests:
                return hits[0] + window_s - now
            hits.append(now)
            return None

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


public_tracking_limiter = SlidingWindowRateLimiter()


def rate_limit_public_tracking(request: Request) -> None:
    key = request.client.host if request.client else "unknown"
    retry_after = public_tracking_limiter.hit(
        key,
        settings.public_tracking_rate_limit_requests,
        settings.public_tracking_rate_limit_window_s,
    )
    if retry_after is not None:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
        )


def reset_rate_limits() -> None:
    public_tracking_limiter.reset()
