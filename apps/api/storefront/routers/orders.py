from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from storefront.auth.dependencies import (
    AuthContext,
    rate_limit_public_tracking,
    require_admin,
    require_customer,
)
from storefront.db.session import get_db
from storefront.dependencies import get_tracking_notifier
from storefront.models.order import Order, OrderStatus, PaymentStatus
from storefront.observability import observe_timing
from storefront.schemas.events import OrderEventListResponse, OrderEventResponse
from storefront.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    OrderStatusUpdate,
    PaginationMeta,
    PublicTrackingResponse,
)
from storefront.services import orders_service
from storefront.services.order_ids import (
    InvalidOrderIdentifierError,
    OrderIdentifierError,
    OrderSequenceExhaustedError,
)
from storefront.services.tracking_notifier import TrackingNotifier

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


def _translate_identifier_error(err: OrderIdentifierError) -> HTTPException:
    if isinstance(err, InvalidOrderIdentifierError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=err.message)
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.message)


async def _publish_status(notifier: TrackingNotifier, order: Order) -> None:
    await notifier.publish(order.order_number, orders_service.tracking_update_for(order))


def _order_list(items: list[Order], page: int, page_size: int, total: int) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in items],
        pagination=PaginationMeta.build(page=page, page_size=page_size, total=total),
    )


@router.post("", response_model=OrderResponse, summary="Place order", status_code=201)
def create_order_endpoint(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> OrderResponse:
    try:
        with observe_timing("order_create_seconds"):
            order = orders_service.create_order(db, auth.user_id, payload)
    except OrderSequenceExhaustedError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order numbers exhausted",
        ) from err
    return OrderResponse.model_validate(order)


@router.get("/my-orders", response_model=OrderListResponse, summary="List my orders")
def list_my_orders_endpoint(
    db: Session = Depends(get_db),
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    auth: AuthContext = Depends(require_customer),
) -> OrderListResponse:
    items, total = orders_service.list_user_orders(
        db, auth, status_filter=status_filter, page=page, page_size=page_size
    )
    return _order_list(items, page, page_size, total)


@router.get("/admin/all", response_model=OrderListResponse, summary="List all orders")
def list_all_orders_endpoint(
    db: Session = Depends(get_db),
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    payment_status: PaymentStatus | None = Query(default=None),
    from_date: datetime | None = Query(default=None, alias="from"),
    to_date: datetime | None = Query(default=None, alias="to"),
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    _auth: AuthContext = Depends(require_admin),
) -> OrderListResponse:
    items, total = orders_service.list_orders(
        db,
        status_filter=status_filter,
        payment_status=payment_status,
        from_date=from_date,
        to_date=to_date,
        search=search,
        page=page,
        page_size=page_size,
    )
    return _order_list(items, page, page_size, total)


@router.get("/admin/stats", response_model=OrderStatsResponse, summary="Order statistics")
def order_stats_endpoint(
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_admin),
) -> OrderStatsResponse:
    return OrderStatsResponse(**orders_service.order_stats(db))


@router.patch(
    "/admin/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
)
async def update_order_status_endpoint(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_admin),
    notifier: TrackingNotifier = Depends(get_tracking_notifier),
) -> OrderResponse:
    try:
        order = orders_service.update_order_status(db, auth, order_id, payload)
    except OrderIdentifierError as err:
        raise _translate_identifier_error(err) from err

    await _publish_status(notifier, order)
    return OrderResponse.model_validate(order)


@router.get(
    "/track/{tracking_number}",
    response_model=PublicTrackingResponse,
    summary="Public tracking by carrier tracking number",
    dependencies=[Depends(rate_limit_public_tracking)],
)
def public_tracking_endpoint(
    tracking_number: str,
    db: Session = Depends(get_db),
) -> PublicTrackingResponse:
    order = orders_service.get_order_by_tracking_number(db, tracking_number)
    return PublicTrackingResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse, summary="Get order detail")
def get_order_endpoint(
    order_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> OrderResponse:
    try:
        order = orders_service.get_order_for_user(db, auth, order_id)
    except OrderIdentifierError as err:
        raise _translate_identifier_error(err) from err
    return OrderResponse.model_validate(order)


@router.get(
    "/{order_id}/events",
    response_model=OrderEventListResponse,
    summary="Get order timeline",
)
def get_events_endpoint(
    order_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> OrderEventListResponse:
    try:
        events = orders_service.list_order_events(db, auth, order_id)
    except OrderIdentifierError as err:
        raise _translate_identifier_error(err) from err
    return OrderEventListResponse(items=[OrderEventResponse.model_validate(e) for e in events])


@router.patch("/{order_id}/cancel", response_model=OrderResponse, summary="Cancel order")
async def cancel_order_endpoint(
    order_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
    notifier: TrackingNotifier = Depends(get_tracking_notifier),
) -> OrderResponse:
    try:
        order = orders_service.cancel_order(db, auth, order_id)
    except OrderIdentifierError as err:
        raise _translate_identifier_error(err) from err

    await _publish_status(notifier, order)
    return OrderResponse.model_validate(order)
