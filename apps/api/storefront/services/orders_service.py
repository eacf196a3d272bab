import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.auth.dependencies import AuthContext
from storefront.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    utc_now,
)
from storefront.models.order_event import OrderEvent
from storefront.models.product import Product
from storefront.observability import log_event, metrics_store
from storefront.schemas.order import OrderCreate, OrderStatusUpdate
from storefront.schemas.tracking import TrackingStatusUpdate
from storefront.services.order_ids import (
    OrderNotFoundError,
    format_order_id,
    next_order_sequence,
    parse_order_sequence,
    resolve_order,
)
from storefront.services.products_service import restock
from storefront.services.state_machine import ensure_valid_transition, is_cancellable

ORDER_NUMBER_ALLOCATION_ATTEMPTS = 3

_STATUS_TIMESTAMP_FIELDS: dict[OrderStatus, str] = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def _append_status_event(
    db: Session,
    order_id: uuid.UUID,
    state: OrderStatus,
    message: str,
    actor_id: str | None,
    payload: dict | None = None,
) -> None:
    db.add(
        OrderEvent(
            order_id=order_id,
            type=state,
            message=message,
            actor_id=actor_id,
            payload=payload or {},
        )
    )


def transition_order_status(
    db: Session,
    order: Order,
    next_status: OrderStatus,
    message: str,
    actor_id: str | None = None,
    payload: dict | None = None,
) -> Order:
    previous_status = order.status
    ensure_valid_transition(previous_status, next_status)

    if previous_status == next_status:
        return order

    order.status = next_status
    timestamp_field = _STATUS_TIMESTAMP_FIELDS.get(next_status)
    if timestamp_field:
        setattr(order, timestamp_field, utc_now())

    _append_status_event(
        db,
        order.id,
        next_status,
        message,
        actor_id,
        {
            "from_status": previous_status.value,
            "to_status": next_status.value,
            **(payload or {}),
        },
    )
    return order


def _initial_payment_status(method: PaymentMethod) -> PaymentStatus:
    if method == PaymentMethod.COD:
        return PaymentStatus.PENDING
    return PaymentStatus.PAID


def _build_order(db: Session, user_id: str, payload: OrderCreate) -> Order:
    items: list[OrderItem] = []
    subtotal = 0.0
    item_count = 0

    for position, line in enumerate(payload.items):
        product = db.get(Product, line.product_id)
        if product is None or not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Product {line.product_id} not found",
            )
        if product.stock < line.quantity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Insufficient stock for {product.name}. "
                    f"Available: {product.stock}, Requested: {line.quantity}"
                ),
            )

        line_total = round(product.price * line.quantity, 2)
        subtotal += line_total
        item_count += line.quantity
        product.stock -= line.quantity
        items.append(
            OrderItem(
                product_id=product.id,
                position=position,
                name=product.name,
                price=product.price,
                quantity=line.quantity,
                total=line_total,
            )
        )

    sequence = next_order_sequence(db)
    return Order(
        sequence=sequence,
        order_number=format_order_id(sequence),
        user_id=user_id,
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        customer_phone=payload.customer_phone,
        items=items,
        item_count=item_count,
        total_amount=round(subtotal + payload.shipping_cost, 2),
        shipping_cost=round(payload.shipping_cost, 2),
        shipping_address=payload.shipping_address.model_dump(),
        status=OrderStatus.PENDING,
        payment_method=payload.payment_method,
        payment_status=_initial_payment_status(payload.payment_method),
        shipping_method=payload.shipping_method,
        notes=payload.notes,
    )


def create_order(db: Session, user_id: str, payload: OrderCreate) -> Order:
    attempt = 0
    while True:
        attempt += 1
        order = _build_order(db, user_id, payload)
        db.add(order)
        try:
            db.flush()
        except IntegrityError:
            # another checkout took the same sequence; stock changes roll back too
            db.rollback()
            metrics_store.increment("order_number_conflicts_total")
            if attempt == ORDER_NUMBER_ALLOCATION_ATTEMPTS:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Could not allocate an order number, retry the request",
                ) from None
            continue

        _append_status_event(db, order.id, OrderStatus.PENDING, "Order placed", user_id)
        db.commit()
        db.refresh(order)
        metrics_store.increment("orders_created_total")
        log_event("order_created", order_id=order.order_number)
        return order


def _paginate(db: Session, query, page: int, page_size: int) -> tuple[list[Order], int]:
    total = db.scalar(select(func.count()).select_from(query.subquery())) or 0
    items = db.scalars(
        query.order_by(Order.created_at.desc(), Order.sequence.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(items), total


def list_user_orders(
    db: Session,
    auth: AuthContext,
    status_filter: OrderStatus | None = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[Order], int]:
    query = select(Order).where(Order.user_id == auth.user_id)
    if status_filter:
        query = query.where(Order.status == status_filter)
    return _paginate(db, query, page, page_size)


def get_order_for_user(db: Session, auth: AuthContext, identifier: str) -> Order:
    order = resolve_order(db, identifier)
    if not auth.is_admin and order.user_id != auth.user_id:
        # other customers' orders are reported as missing, not forbidden
        raise OrderNotFoundError(identifier)
    return order


def list_order_events(db: Session, auth: AuthContext, identifier: str) -> list[OrderEvent]:
    order = get_order_for_user(db, auth, identifier)
    events = db.scalars(
        select(OrderEvent)
        .where(OrderEvent.order_id == order.id)
        .order_by(OrderEvent.created_at.asc())
    )
    return list(events)


def cancel_order(db: Session, auth: AuthContext, identifier: str) -> Order:
    order = get_order_for_user(db, auth, identifier)
    if not is_cancellable(order.status):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Cannot cancel this order",
        )

    for item in order.items:
        restock(db, item.product_id, item.quantity)

    transition_order_status(db, order, OrderStatus.CANCELLED, "Order cancelled", auth.user_id)
    db.commit()
    db.refresh(order)
    metrics_store.increment("orders_cancelled_total")
    log_event("order_cancelled", order_id=order.order_number)
    return order


def update_order_status(
    db: Session,
    auth: AuthContext,
    identifier: str,
    payload: OrderStatusUpdate,
) -> Order:
    order = resolve_order(db, identifier)
    if payload.status == OrderStatus.CANCELLED and is_cancellable(order.status):
        for item in order.items:
            restock(db, item.product_id, item.quantity)

    transition_order_status(
        db,
        order,
        payload.status,
        f"Status set to {payload.status.value}",
        auth.user_id,
        {"tracking_number": payload.tracking_number} if payload.tracking_number else None,
    )
    if payload.tracking_number:
        order.tracking_number = payload.tracking_number
    if payload.estimated_delivery:
        order.estimated_delivery = payload.estimated_delivery

    db.commit()
    db.refresh(order)
    log_event(f"order_status_updated:{order.status.value}", order_id=order.order_number)
    return order


def list_orders(
    db: Session,
    status_filter: OrderStatus | None = None,
    payment_status: PaymentStatus | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    query = select(Order)
    if status_filter:
        query = query.where(Order.status == status_filter)
    if payment_status:
        query = query.where(Order.payment_status == payment_status)
    if from_date:
        query = query.where(Order.created_at >= from_date)
    if to_date:
        query = query.where(Order.created_at <= to_date)
    if search and search.strip():
        term = search.strip()
        pattern = f"%{term}%"
        conditions = [
            Order.customer_name.ilike(pattern),
            Order.customer_phone.ilike(pattern),
            Order.order_number.ilike(pattern),
        ]
        # "ORD00018" also finds the imported "#000018" row and vice versa
        sequence = parse_order_sequence(term)
        if sequence is not None:
            conditions.append(Order.sequence == sequence)
        query = query.where(or_(*conditions))
    return _paginate(db, query, page, page_size)


def order_stats(db: Session) -> dict[str, float | int]:
    def count(state: OrderStatus | None = None) -> int:
        query = select(func.count(Order.id))
        if state is not None:
            query = query.where(Order.status == state)
        return db.scalar(query) or 0

    revenue = db.scalar(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.status == OrderStatus.DELIVERED
        )
    )
    return {
        "total_orders": count(),
        "pending_orders": count(OrderStatus.PENDING),
        "delivered_orders": count(OrderStatus.DELIVERED),
        "cancelled_orders": count(OrderStatus.CANCELLED),
        "total_revenue": float(revenue or 0),
    }


def get_order_by_tracking_number(db: Session, tracking_number: str) -> Order:
    order = db.scalar(select(Order).where(Order.tracking_number == tracking_number.strip()))
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found with this tracking number",
        )
    return order


def tracking_update_for(order: Order) -> TrackingStatusUpdate:
    return TrackingStatusUpdate(
        order_id=order.order_number,
        status=order.status,
        tracking_number=order.tracking_number,
        estimated_delivery=order.estimated_delivery,
        updated_at=order.updated_at,
    )
