from storefront.schemas.events import OrderEventListResponse, OrderEventResponse
from storefront.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    OrderStatusUpdate,
    PublicTrackingResponse,
)
from storefront.schemas.product import ProductCreate, ProductListResponse, ProductResponse
from storefront.schemas.tracking import (
    TrackingEventType,
    TrackingInboundMessage,
    TrackingOutboundEvent,
    TrackingStatusUpdate,
)

__all__ = [
    "OrderCreate",
    "OrderResponse",
    "OrderListResponse",
    "OrderStatusUpdate",
    "OrderStatsResponse",
    "PublicTrackingResponse",
    "OrderEventResponse",
    "OrderEventListResponse",
    "ProductCreate",
    "ProductResponse",
    "ProductListResponse",
    "TrackingEventType",
    "TrackingInboundMessage",
    "TrackingOutboundEvent",
    "TrackingStatusUpdate",
]
