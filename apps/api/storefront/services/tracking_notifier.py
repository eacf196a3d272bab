"""In-process publish/subscribe for live order-status pushes.

One ``TrackingNotifier`` is built at start-up and stored on ``app.state``.
Connections join a per-order channel (``order-ORD00007``) and receive every
status update published for that order while they stay connected. Nothing
is persisted or replayed; a subscriber that is offline misses the update.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Protocol

from storefront.observability import log_event, metrics_store
from storefront.schemas.tracking import (
    TrackingOutboundEvent,
    TrackingStatusUpdate,
    tracking_message,
)
from storefront.services.order_ids import normalize_order_identifier

CHANNEL_PREFIX = "order-"


class TrackingConnection(Protocol):
    id: str

    async def send_json(self, data: dict[str, Any]) -> None: ...


def channel_name(order_identifier: str) -> str:
    return f"{CHANNEL_PREFIX}{normalize_order_identifier(order_identifier)}"


class TrackingNotifier:
    def __init__(self) -> None:
        self._channels: dict[str, dict[str, TrackingConnection]] = {}
        self._memberships: dict[str, set[str]] = defaultdict(set)

    def subscribe(self, connection: TrackingConnection, order_identifier: str) -> str:
        channel = channel_name(order_identifier)
        members = self._channels.setdefault(channel, {})
        if connection.id in members:
            return channel

        members[connection.id] = connection
        self._memberships[connection.id].add(channel)
        metrics_store.increment("tracking_subscriptions_total")
        log_event("tracking_subscribed", channel=channel, connection_id=connection.id)
        return channel

    def unsubscribe(self, connection: TrackingConnection, order_identifier: str) -> bool:
        channel = channel_name(order_identifier)
        return self._remove(connection.id, channel)

    def disconnect(self, connection: TrackingConnection) -> int:
        channels = self._memberships.pop(connection.id, set())
        for channel in channels:
            members = self._channels.get(channel)
            if members is None:
                continue
            members.pop(connection.id, None)
            if not members:
                del self._channels[channel]
        if channels:
            log_event(
                "tracking_connection_dropped",
                connection_id=connection.id,
                channel=",".join(sorted(channels)),
            )
        return len(channels)

    def subscribers(self, order_identifier: str) -> list[TrackingConnection]:
        return list(self._channels.get(channel_name(order_identifier), {}).values())

    def channels_for(self, connection: TrackingConnection) -> set[str]:
        return set(self._memberships.get(connection.id, set()))

    def channel_count(self) -> int:
        return len(self._channels)

    def connection_count(self) -> int:
        return len(self._memberships)

    async def publish(self, order_identifier: str, update: TrackingStatusUpdate) -> int:
        """Push ``update`` to every current subscriber; returns successful sends."""
        channel = channel_name(order_identifier)
        message = tracking_message(TrackingOutboundEvent.STATUS_UPDATED, update.to_wire())
        metrics_store.increment("tracking_publishes_total")

        delivered = 0
        for connection in list(self._channels.get(channel, {}).values()):
            try:
                await connection.send_json(message)
            except Exception as exc:
                metrics_store.increment("tracking_send_failures_total")
                log_event(
                    f"tracking_send_failed:{type(exc).__name__}",
                    order_id=update.order_id,
                    channel=channel,
                    connection_id=connection.id,
                    level=logging.WARNING,
                )
                self.disconnect(connection)
                continue
            delivered += 1

        metrics_store.increment("tracking_deliveries_total", delivered)
        log_event(
            f"tracking_published:{update.status.value}:{delivered}",
            order_id=update.order_id,
            channel=channel,
        )
        return delivered

    def clear(self) -> None:
        self._channels.clear()
        self._memberships.clear()

    def _remove(self, connection_id: str, channel: str) -> bool:
        members = self._channels.get(channel)
        if members is None or connection_id not in members:
            return False

        del members[connection_id]
        if not members:
            del self._channels[channel]
        memberships = self._memberships.get(connection_id)
        if memberships is not None:
            memberships.discard(channel)
            if not memberships:
                del self._memberships[connection_id]
        log_event("tracking_unsubscribed", channel=channel, connection_id=connection_id)
        return True
