import uuid
from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from storefront.auth.dependencies import AuthContext, require_customer
from storefront.db.session import get_db
from storefront.models.order import Order
from storefront.observability import observe_timing
from storefront.schemas.cart import BuyNowRequest, CartItemAdd, CartItemUpdate, CartResponse
from storefront.schemas.order import CheckoutDetails, OrderResponse
from storefront.services import cart_service
from storefront.services.order_ids import OrderSequenceExhaustedError

router = APIRouter(prefix="/api/v1/cart", tags=["cart"])


def _place_order(place: Callable[[], Order]) -> OrderResponse:
    try:
        with observe_timing("order_create_seconds"):
            order = place()
    except OrderSequenceExhaustedError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Order numbers exhausted",
        ) from err
    return OrderResponse.model_validate(order)


@router.get("", response_model=CartResponse, summary="Get my cart")
def get_cart_endpoint(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> CartResponse:
    return CartResponse.build(cart_service.get_cart(db, auth.user_id))


@router.post("/items", response_model=CartResponse, summary="Add product to cart")
def add_cart_item_endpoint(
    payload: CartItemAdd,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> CartResponse:
    lines = cart_service.add_to_cart(db, auth.user_id, payload.product_id, payload.quantity)
    return CartResponse.build(lines)


@router.patch("/items/{product_id}", response_model=CartResponse, summary="Set cart quantity")
def update_cart_item_endpoint(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> CartResponse:
    lines = cart_service.update_cart_item(db, auth.user_id, product_id, payload.quantity)
    return CartResponse.build(lines)


@router.delete("/items/{product_id}", response_model=CartResponse, summary="Remove from cart")
def remove_cart_item_endpoint(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> CartResponse:
    return CartResponse.build(cart_service.remove_from_cart(db, auth.user_id, product_id))


@router.delete("", response_model=CartResponse, summary="Clear cart")
def clear_cart_endpoint(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> CartResponse:
    cart_service.clear_cart(db, auth.user_id)
    return CartResponse.build([])


@router.post("/buy-now", response_model=OrderResponse, summary="Buy one product", status_code=201)
def buy_now_endpoint(
    payload: BuyNowRequest,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> OrderResponse:
    return _place_order(lambda: cart_service.buy_now(db, auth.user_id, payload))


@router.post("/checkout", response_model=OrderResponse, summary="Order my cart", status_code=201)
def checkout_cart_endpoint(
    payload: CheckoutDetails,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_customer),
) -> OrderResponse:
    return _place_order(lambda: cart_service.checkout_cart(db, auth.user_id, payload))
