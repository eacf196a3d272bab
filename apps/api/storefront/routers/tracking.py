"""WebSocket endpoint for live order tracking.

Clients send ``{"event": "join-order-tracking", "data": "ORD00007"}`` to
start receiving ``order-status-updated`` pushes for that order, and
``leave-order-tracking`` to stop. The legacy ``#`` number or the order UUID
may stand in for the display identifier; the channel is always
``order-<display identifier>``. Admin connections may also push a status
update directly with ``admin-status-update``.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi import status as http_status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from storefront.auth.dependencies import AuthContext, auth_context_from_token
from storefront.config import settings
from storefront.db.session import session_scope
from storefront.dependencies import get_tracking_notifier
from storefront.observability import log_event, metrics_store
from storefront.schemas.tracking import (
    TrackingEventType,
    TrackingInboundMessage,
    TrackingOutboundEvent,
    TrackingStatusUpdate,
    tracking_message,
)
from storefront.services.order_ids import (
    InvalidOrderIdentifierError,
    OrderIdentifierError,
    resolve_order,
)
from storefront.services.tracking_notifier import TrackingNotifier, channel_name

router = APIRouter(tags=["tracking"])


class TrackingRequestError(Exception):
    pass


@dataclass(eq=False)
class WebSocketConnection:
    websocket: WebSocket
    auth: AuthContext | None = None
    id: str = field(default_factory=lambda: uuid4().hex)

    async def send_json(self, data: dict[str, Any]) -> None:
        await self.websocket.send_json(data)


Handler = Callable[[WebSocketConnection, TrackingNotifier, Any], Awaitable[None]]


def _order_identifier_from(data: Any) -> str:
    if isinstance(data, dict):
        data = data.get("orderId", data.get("order_id"))
    if not isinstance(data, str):
        raise InvalidOrderIdentifierError(None, "Order identifier must be a string")
    return data


@dataclass(frozen=True)
class TrackedOrder:
    order_number: str
    user_id: str


def _lookup_order(order_identifier: str) -> TrackedOrder:
    with session_scope() as db:
        order = resolve_order(db, order_identifier)
        return TrackedOrder(order_number=order.order_number, user_id=order.user_id)


async def _resolve_tracked_order(order_identifier: str) -> TrackedOrder:
    """Map any accepted identifier form onto the order's display identifier."""
    return await run_in_threadpool(_lookup_order, order_identifier)


def _require_authentication(connection: WebSocketConnection) -> None:
    if settings.tracking_subscription_policy != "open" and connection.auth is None:
        raise TrackingRequestError("Authentication required to track orders")


def _authorize_subscription(connection: WebSocketConnection, order: TrackedOrder) -> None:
    policy = settings.tracking_subscription_policy
    if policy != "owner" or connection.auth is None or connection.auth.is_admin:
        return
    if order.user_id != connection.auth.user_id:
        raise TrackingRequestError("Not allowed to track this order")


async def _handle_join(
    connection: WebSocketConnection, notifier: TrackingNotifier, data: Any
) -> None:
    order_identifier = _order_identifier_from(data)
    _require_authentication(connection)
    order = await _resolve_tracked_order(order_identifier)
    _authorize_subscription(connection, order)
    # publishes key on the display identifier, so a UUID join lands on the same channel
    channel = notifier.subscribe(connection, order.order_number)
    await connection.send_json(tracking_message(TrackingOutboundEvent.JOINED, {"channel": channel}))


async def _handle_leave(
    connection: WebSocketConnection, notifier: TrackingNotifier, data: Any
) -> None:
    order = await _resolve_tracked_order(_order_identifier_from(data))
    channel = channel_name(order.order_number)
    notifier.unsubscribe(connection, order.order_number)
    await connection.send_json(tracking_message(TrackingOutboundEvent.LEFT, {"channel": channel}))


async def _handle_admin_status_update(
    connection: WebSocketConnection, notifier: TrackingNotifier, data: Any
) -> None:
    if connection.auth is None or not connection.auth.is_admin:
        raise TrackingRequestError("Admin role required")
    update = TrackingStatusUpdate.model_validate(data)
    order = await _resolve_tracked_order(update.order_id)
    await notifier.publish(
        order.order_number, update.model_copy(update={"order_id": order.order_number})
    )


async def _handle_ping(
    connection: WebSocketConnection, notifier: TrackingNotifier, data: Any
) -> None:
    await connection.send_json(tracking_message(TrackingOutboundEvent.PONG, data))


TRACKING_HANDLERS: dict[TrackingEventType, Handler] = {
    TrackingEventType.JOIN: _handle_join,
    TrackingEventType.LEAVE: _handle_leave,
    TrackingEventType.ADMIN_STATUS_UPDATE: _handle_admin_status_update,
    TrackingEventType.PING: _handle_ping,
}

_missing_handlers = set(TrackingEventType) - set(TRACKING_HANDLERS)
if _missing_handlers:
    raise RuntimeError(f"Unhandled tracking event types: {sorted(_missing_handlers)}")


async def _send_error(connection: WebSocketConnection, detail: Any) -> None:
    metrics_store.increment("tracking_request_errors_total")
    await connection.send_json(tracking_message(TrackingOutboundEvent.ERROR, {"detail": detail}))


async def receive_frame(websocket: WebSocket) -> str:
    """Next client frame as text; binary frames are decoded as UTF-8."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    if message.get("text") is not None:
        return message["text"]
    return (message.get("bytes") or b"").decode("utf-8", errors="replace")


async def dispatch_tracking_message(
    connection: WebSocketConnection, notifier: TrackingNotifier, raw: str
) -> None:
    try:
        message = TrackingInboundMessage.model_validate_json(raw)
    except ValidationError as err:
        await _send_error(connection, err.errors(include_url=False, include_context=False))
        return

    handler = TRACKING_HANDLERS[message.event]
    try:
        await handler(connection, notifier, message.data)
    except OrderIdentifierError as err:
        await _send_error(connection, err.message)
    except TrackingRequestError as err:
        await _send_error(connection, str(err))
    except ValidationError as err:
        await _send_error(connection, err.errors(include_url=False, include_context=False))


@router.websocket("/ws/tracking")
async def tracking_socket(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    notifier: TrackingNotifier = Depends(get_tracking_notifier),
) -> None:
    auth = None
    if token:
        try:
            auth = auth_context_from_token(token)
        except HTTPException:
            await websocket.close(code=http_status.WS_1008_POLICY_VIOLATION)
            return

    await websocket.accept()
    connection = WebSocketConnection(websocket=websocket, auth=auth)
    metrics_store.increment("tracking_connections_total")
    log_event("tracking_connected", connection_id=connection.id)

    try:
        while True:
            raw = await receive_frame(websocket)
            await dispatch_tracking_message(connection, notifier, raw)
    except WebSocketDisconnect as exc:
        log_event(f"tracking_disconnected:{exc.code}", connection_id=connection.id)
    finally:
        notifier.disconnect(connection)
