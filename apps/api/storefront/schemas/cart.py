import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from storefront.models.cart import CartItem, WishlistItem
from storefront.schemas.order import CheckoutDetails


class CartItemAdd(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1, le=1000)


class CartItemUpdate(BaseModel):
    # zero drops the line
    quantity: int = Field(ge=0, le=1000)


class BuyNowRequest(CheckoutDetails):
    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1, le=1000)


class CartLineResponse(BaseModel):
    product_id: uuid.UUID
    name: str
    price: float
    quantity: int
    total: float
    in_stock: bool


class CartResponse(BaseModel):
    items: list[CartLineResponse]
    item_count: int
    total_amount: float

    @classmethod
    def build(cls, lines: list[CartItem]) -> "CartResponse":
        items = [
            CartLineResponse(
                product_id=line.product_id,
                name=line.product.name,
                price=line.price,
                quantity=line.quantity,
                total=round(line.price * line.quantity, 2),
                in_stock=line.product.is_active and line.product.stock >= line.quantity,
            )
            for line in lines
        ]
        return cls(
            items=items,
            item_count=sum(item.quantity for item in items),
            total_amount=round(sum(item.total for item in items), 2),
        )


class WishlistAdd(BaseModel):
    product_id: uuid.UUID


class WishlistMoveToCart(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1, le=1000)


class WishlistItemResponse(BaseModel):
    product_id: uuid.UUID
    name: str
    price: float
    in_stock: bool
    added_at: datetime


class WishlistResponse(BaseModel):
    items: list[WishlistItemResponse]

    @classmethod
    def build(cls, entries: list[WishlistItem]) -> "WishlistResponse":
        return cls(
            items=[
                WishlistItemResponse(
                    product_id=entry.product_id,
                    name=entry.product.name,
                    price=entry.product.price,
                    in_stock=entry.product.is_active and entry.product.stock > 0,
                    added_at=entry.added_at,
                )
                for entry in entries
            ]
        )
