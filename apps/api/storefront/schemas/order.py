import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.models.order import OrderStatus, PaymentMethod, PaymentStatus, ShippingMethod


class ShippingAddress(BaseModel):
    label: str = Field(min_length=1, max_length=64)
    street: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    zip_code: str = Field(min_length=1, max_length=20)
    country: str = Field(default="India", max_length=100)

    @field_validator("label", "street", "city", "state", "zip_code", "country")
    @classmethod
    def strip_strings(cls, value: str) -> str:
        return value.strip()


class OrderItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(ge=1, le=1000)


class CheckoutDetails(BaseModel):
    """Delivery and payment fields shared by every way of placing an order."""

    shipping_address: ShippingAddress
    customer_name: str = Field(min_length=1, max_length=255)
    customer_phone: str = Field(min_length=1, max_length=50)
    customer_email: str | None = Field(default=None, max_length=255)
    payment_method: PaymentMethod = PaymentMethod.COD
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    shipping_cost: float = Field(default=0, ge=0)
    notes: str | None = Field(default=None, max_length=2000)

    @field_validator("customer_name", "customer_phone", "customer_email", "notes")
    @classmethod
    def strip_strings(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return value.strip()


class OrderCreate(CheckoutDetails):
    items: list[OrderItemCreate] = Field(min_length=1)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: uuid.UUID
    name: str
    price: float
    quantity: int
    total: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: str
    customer_name: str
    customer_email: str | None
    customer_phone: str
    items: list[OrderItemResponse]
    item_count: int
    total_amount: float
    shipping_cost: float
    shipping_address: ShippingAddress
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    shipping_method: ShippingMethod
    tracking_number: str | None
    estimated_delivery: datetime | None
    notes: str | None
    created_at: datetime
    updated_at: datetime
    confirmed_at: datetime | None
    shipped_at: datetime | None
    delivered_at: datetime | None
    cancelled_at: datetime | None


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "PaginationMeta":
        total_pages = (total + page_size - 1) // page_size
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=total_pages,
            has_next_page=page * page_size < total,
            has_prev_page=page > 1,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    pagination: PaginationMeta


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    tracking_number: str | None = Field(default=None, min_length=1, max_length=64)
    estimated_delivery: datetime | None = None


class OrderStatsResponse(BaseModel):
    total_orders: int
    pending_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_revenue: float


class PublicTrackingItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    quantity: int


class PublicTrackingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_number: str
    status: OrderStatus
    tracking_number: str
    estimated_delivery: datetime | None
    created_at: datetime
    shipped_at: datetime | None
    delivered_at: datetime | None
    items: list[PublicTrackingItem]
