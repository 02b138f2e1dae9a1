"""Product (menu item) API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.product import Product
from app.repositories.merchant_repository import MerchantRepository
from app.repositories.product_repository import ProductRepository
from app.schemas.product import ProductCreate, ProductResponse, ProductUpdate

router = APIRouter()


@router.post(
    "/merchants/{merchant_id}/products",
    response_model=ProductResponse,
    status_code=201,
    summary="Create product",
    responses={
        404: {"description": "Merchant not found"},
        422: {"description": "Validation error"},
    },
)
async def create_product(
    merchant_id: UUID,
    data: ProductCreate,
    db: Session = Depends(get_db),
) -> Product:
    """Add a product to a merchant's menu."""
    if not MerchantRepository(db).get_by_id(merchant_id):
        raise HTTPException(status_code=404, detail="Merchant not found")
    return ProductRepository(db).create(merchant_id, data)


@router.get(
    "/merchants/{merchant_id}/products",
    response_model=list[ProductResponse],
    summary="List merchant products",
    responses={404: {"description": "Merchant not found"}},
)
async def list_products(
    merchant_id: UUID,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    available_only: bool = Query(default=False),
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Product]:
    if not MerchantRepository(db).get_by_id(merchant_id):
        raise HTTPException(status_code=404, detail="Merchant not found")
    return ProductRepository(db).get_all(
        merchant_id,
        skip=skip,
        limit=limit,
        available_only=available_only,
        order_by=order_by,
    )


@router.get(
    "/products/{product_id}",
    response_model=ProductResponse,
    summary="Get product",
    responses={404: {"description": "Product not found"}},
)
async def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
) -> Product:
    product = ProductRepository(db).get_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.patch(
    "/products/{product_id}",
    response_model=ProductResponse,
    summary="Update product",
    responses={
        404: {"description": "Product not found"},
        422: {"description": "Validation error"},
    },
)
async def update_product(
    product_id: UUID,
    data: ProductUpdate,
    db: Session = Depends(get_db),
) -> Product:
    """Update a product. Existing orders keep the price they were placed at."""
    product = ProductRepository(db).update(product_id, data)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
