import uuid

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.models.product import Product
from storefront.observability import log_event
from storefront.schemas.product import ProductCreate


def create_product(db: Session, payload: ProductCreate) -> Product:
    product = Product(
        name=payload.name,
        description=payload.description,
        category=payload.category,
        price=round(payload.price, 2),
        stock=payload.stock,
        unit=payload.unit,
        is_active=True,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    log_event(f"product_created:{product.id}")
    return product


def get_product(db: Session, product_id: uuid.UUID) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def list_products(
    db: Session,
    category: str | None = None,
    search: str | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    query = select(Product)
    if not include_inactive:
        query = query.where(Product.is_active.is_(True))
    if category:
        query = query.where(Product.category == category)
    if search:
        query = query.where(Product.name.ilike(f"%{search.strip()}%"))
    return list(db.scalars(query.order_by(Product.name.asc())))


def restock(db: Session, product_id: uuid.UUID, quantity: int) -> None:
    product = db.get(Product, product_id)
    if product is None:
        log_event(f"restock_skipped_missing_product:{product_id}")
        return
    product.stock += quantity
