"""Server-side shopping cart and the two ways out of it into an order.

A cart is the set of ``cart_items`` rows of one user, at most one row per
product. ``buy_now`` places a single-product order without touching the
cart; ``checkout_cart`` places an order for the whole cart and empties it.
"""

import uuid

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from storefront.models.cart import CartItem
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.observability import log_event, metrics_store
from storefront.schemas.cart import BuyNowRequest
from storefront.schemas.order import CheckoutDetails, OrderCreate, OrderItemCreate
from storefront.services.orders_service import create_order


def _cart_line(db: Session, user_id: str, product_id: uuid.UUID) -> CartItem | None:
    return db.scalar(
        select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
    )


def purchasable_product(db: Session, product_id: uuid.UUID) -> Product:
    product = db.get(Product, product_id)
    if product is None or not product.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def _ensure_stock(product: Product, quantity: int) -> None:
    if product.stock < quantity:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Insufficient stock for {product.name}. "
                f"Available: {product.stock}, Requested: {quantity}"
            ),
        )


def get_cart(db: Session, user_id: str) -> list[CartItem]:
    lines = db.scalars(
        select(CartItem)
        .where(CartItem.user_id == user_id)
        .order_by(CartItem.added_at.asc(), CartItem.id.asc())
    )
    return list(lines)


def add_to_cart(db: Session, user_id: str, product_id: uuid.UUID, quantity: int) -> list[CartItem]:
    product = purchasable_product(db, product_id)
    line = _cart_line(db, user_id, product.id)
    wanted = quantity + (line.quantity if line else 0)
    _ensure_stock(product, wanted)

    if line is None:
        db.add(
            CartItem(user_id=user_id, product_id=product.id, quantity=quantity, price=product.price)
        )
    else:
        line.quantity = wanted
        line.price = product.price
    db.commit()
    metrics_store.increment("cart_items_added_total")
    log_event(f"cart_item_added:{product.id}:{wanted}")
    return get_cart(db, user_id)


def update_cart_item(
    db: Session, user_id: str, product_id: uuid.UUID, quantity: int
) -> list[CartItem]:
    line = _cart_line(db, user_id, product_id)
    if line is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found in cart")

    if quantity == 0:
        db.delete(line)
    else:
        product = purchasable_product(db, product_id)
        _ensure_stock(product, quantity)
        line.quantity = quantity
        line.price = product.price
    db.commit()
    return get_cart(db, user_id)


def remove_from_cart(db: Session, user_id: str, product_id: uuid.UUID) -> list[CartItem]:
    line = _cart_line(db, user_id, product_id)
    if line is not None:
        db.delete(line)
        db.commit()
    return get_cart(db, user_id)


def clear_cart(db: Session, user_id: str) -> None:
    db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    db.commit()


def buy_now(db: Session, user_id: str, payload: BuyNowRequest) -> Order:
    details = payload.model_dump(exclude={"product_id", "quantity"})
    order = create_order(
        db,
        user_id,
        OrderCreate(
            items=[OrderItemCreate(product_id=payload.product_id, quantity=payload.quantity)],
            **details,
        ),
    )
    metrics_store.increment("cart_buy_now_total")
    return order


def checkout_cart(db: Session, user_id: str, details: CheckoutDetails) -> Order:
    lines = get_cart(db, user_id)
    if not lines:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cart is empty")

    order = create_order(
        db,
        user_id,
        OrderCreate(
            items=[
                OrderItemCreate(product_id=line.product_id, quantity=line.quantity)
                for line in lines
            ],
            **details.model_dump(),
        ),
    )
    clear_cart(db, user_id)
    db.refresh(order)
    metrics_store.increment("cart_checkouts_total")
    log_event("cart_checked_out", order_id=order.order_number)
    return order
