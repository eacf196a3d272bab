import uuid

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from storefront.models.cart import WishlistItem
from storefront.observability import log_event, metrics_store
from storefront.services.cart_service import add_to_cart, purchasable_product


def _entry(db: Session, user_id: str, product_id: uuid.UUID) -> WishlistItem | None:
    return db.scalar(
        select(WishlistItem).where(
            WishlistItem.user_id == user_id, WishlistItem.product_id == product_id
        )
    )


def get_wishlist(db: Session, user_id: str) -> list[WishlistItem]:
    entries = db.scalars(
        select(WishlistItem)
        .where(WishlistItem.user_id == user_id)
        .order_by(WishlistItem.added_at.asc(), WishlistItem.id.asc())
    )
    return list(entries)


def add_to_wishlist(db: Session, user_id: str, product_id: uuid.UUID) -> list[WishlistItem]:
    product = purchasable_product(db, product_id)
    if _entry(db, user_id, product.id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Product already in wishlist"
        )

    db.add(WishlistItem(user_id=user_id, product_id=product.id))
    db.commit()
    metrics_store.increment("wishlist_items_added_total")
    return get_wishlist(db, user_id)


def remove_from_wishlist(db: Session, user_id: str, product_id: uuid.UUID) -> list[WishlistItem]:
    entry = _entry(db, user_id, product_id)
    if entry is not None:
        db.delete(entry)
        db.commit()
    return get_wishlist(db, user_id)


def move_to_cart(
    db: Session, user_id: str, product_id: uuid.UUID, quantity: int
) -> list[WishlistItem]:
    """Add the product to the cart, then drop it from the wishlist.

    The wishlist entry stays when the cart refuses the product (inactive or
    short on stock).
    """
    entry = _entry(db, user_id, product_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not in wishlist")

    add_to_cart(db, user_id, product_id, quantity)
    db.delete(entry)
    db.commit()
    log_event(f"wishlist_moved_to_cart:{product_id}")
    return get_wishlist(db, user_id)


def clear_wishlist(db: Session, user_id: str) -> None:
    db.execute(delete(WishlistItem).where(WishlistItem.user_id == user_id))
    db.commit()
