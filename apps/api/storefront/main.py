import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from storefront.config import allowed_origins, ensure_secure_runtime_settings, settings
from storefront.db.migration_check import prepare_schema
from storefront.db.session import engine
from storefront.observability import configure_logging, log_event, metrics_store, set_request_id
from storefront.routers.cart import router as cart_router
from storefront.routers.health import router as health_router
from storefront.routers.metrics import router as metrics_router
from storefront.routers.orders import router as orders_router
from storefront.routers.products import router as products_router
from storefront.routers.tracking import router as tracking_router
from storefront.routers.wishlist import router as wishlist_router
from storefront.services.tracking_notifier import TrackingNotifier


@asynccontextmanager
async def lifespan(app_: FastAPI):
    import storefront.models  # noqa: F401 (register all SQLAlchemy models)

    if not settings.testing:
        configure_logging(settings.log_level)
    ensure_secure_runtime_settings()
    prepare_schema(engine)

    notifier = TrackingNotifier()
    app_.state.tracking_notifier = notifier
    if settings.tracking_subscription_policy == "open":
        log_event(
            "tracking_subscription_policy_open: any client knowing an order number "
            "can follow its status; set STOREFRONT_TRACKING_SUBSCRIPTION_POLICY to restrict",
            level=logging.WARNING,
        )
    yield
    notifier.clear()


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Uthraa Naturals storefront API: checkout, orders and live order tracking",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("X-Request-ID") or str(uuid4())
    set_request_id(request_id)

    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Request-ID"] = request_id
    metrics_store.increment("http_requests_total")
    metrics_store.observe("http_request_duration_seconds", elapsed)
    log_event(f"http_request:{request.method}:{response.status_code}")
    return response


app.include_router(health_router)
app.include_router(products_router)
app.include_router(cart_router)
app.include_router(wishlist_router)
app.include_router(orders_router)
app.include_router(tracking_router)
app.include_router(metrics_router)


def run() -> None:
    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    run()
