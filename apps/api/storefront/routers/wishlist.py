import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.auth.dependencies import AuthContext, require_customer
from storefront.db.session import get_db
from storefront.schemas.cart import WishlistAdd, WishlistMoveToCart, WishlistResponse
from storefront.services import wishlist_service

router = APIRouter(prefix="/api/v1/wishlist", tags=["wishlist"])


@router.get("", response_model=WishlistResponse, summary="Get my wishlist")
def get_wishlist_endpoint(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> WishlistResponse:
    return WishlistResponse.build(wishlist_service.get_wishlist(db, auth.user_id))


@router.post("/items", response_model=WishlistResponse, summary="Add product to wishlist")
def add_wishlist_item_endpoint(
    payload: WishlistAdd,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> WishlistResponse:
    entries = wishlist_service.add_to_wishlist(db, auth.user_id, payload.product_id)
    return WishlistResponse.build(entries)


@router.delete(
    "/items/{product_id}", response_model=WishlistResponse, summary="Remove from wishlist"
)
def remove_wishlist_item_endpoint(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> WishlistResponse:
    entries = wishlist_service.remove_from_wishlist(db, auth.user_id, product_id)
    return WishlistResponse.build(entries)


@router.post("/move-to-cart", response_model=WishlistResponse, summary="Move product to cart")
def move_to_cart_endpoint(
    payload: WishlistMoveToCart,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> WishlistResponse:
    entries = wishlist_service.move_to_cart(
        db, auth.user_id, payload.product_id, payload.quantity
    )
    return WishlistResponse.build(entries)


@router.delete("", response_model=WishlistResponse, summary="Clear wishlist")
def clear_wishlist_endpoint(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> WishlistResponse:
    wishlist_service.clear_wishlist(db, auth.user_id)
    return WishlistResponse.build([])
