from fastapi import HTTPException, status

from storefront.models.order import OrderStatus

ORDER_STATE_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset(
    state for state, allowed in ORDER_STATE_TRANSITIONS.items() if not allowed
)


def ensure_valid_transition(current: OrderStatus, next_status: OrderStatus) -> None:
    if next_status == current:
        return

    allowed = ORDER_STATE_TRANSITIONS.get(current, set())
    if next_status not in allowed:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Invalid state transition: {current.value} -> {next_status.value}",
        )


def is_cancellable(current: OrderStatus) -> bool:
    return OrderStatus.CANCELLED in ORDER_STATE_TRANSITIONS.get(current, set())
