import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.auth.dependencies import AuthContext, require_admin
from storefront.db.session import get_db
from storefront.schemas.product import ProductCreate, ProductListResponse, ProductResponse
from storefront.services.products_service import create_product, get_product, list_products

router = APIRouter(prefix="/api/v1/products", tags=["products"])


@router.get("", response_model=ProductListResponse, summary="List catalog products")
def list_products_endpoint(
    db: Session = Depends(get_db),
    category: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
) -> ProductListResponse:
    products = list_products(db, category=category, search=search)
    return ProductListResponse(items=[ProductResponse.model_validate(p) for p in products])


@router.get("/{product_id}", response_model=ProductResponse, summary="Get product")
def get_product_endpoint(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
) -> ProductResponse:
    return ProductResponse.model_validate(get_product(db, product_id))


@router.post("", response_model=ProductResponse, summary="Create product", status_code=201)
def create_product_endpoint(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    _auth: AuthContext = Depends(require_admin),
) -> ProductResponse:
    return ProductResponse.model_validate(create_product(db, payload))
