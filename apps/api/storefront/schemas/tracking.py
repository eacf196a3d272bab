import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.models.order import OrderStatus, utc_now


class TrackingEventType(str, enum.Enum):
    JOIN = "join-order-tracking"
    LEAVE = "leave-order-tracking"
    ADMIN_STATUS_UPDATE = "admin-status-update"
    PING = "ping"


class TrackingOutboundEvent(str, enum.Enum):
    JOINED = "joined"
    LEFT = "left"
    STATUS_UPDATED = "order-status-updated"
    PONG = "pong"
    ERROR = "error"


class TrackingInboundMessage(BaseModel):
    event: TrackingEventType
    data: Any = None


class TrackingStatusUpdate(BaseModel):
    """Wire payload of an ``order-status-updated`` push, camelCased on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_id: str = Field(min_length=1, max_length=64)
    status: OrderStatus
    tracking_number: str | None = Field(default=None, max_length=64)
    estimated_delivery: datetime | None = None
    updated_at: datetime = Field(default_factory=utc_now)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def tracking_message(event: TrackingOutboundEvent, data: Any = None) -> dict[str, Any]:
    return {"event": event.value, "data": data}
