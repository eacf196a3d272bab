import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from storefront.models.order import OrderStatus


class OrderEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    type: OrderStatus
    message: str
    actor_id: str | None
    payload: dict
    created_at: datetime


class OrderEventListResponse(BaseModel):
    items: list[OrderEventResponse]
