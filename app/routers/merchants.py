"""Merchant API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.merchant import Merchant
from app.repositories.merchant_repository import MerchantRepository
from app.schemas.merchant import MerchantCreate, MerchantResponse, MerchantUpdate

router = APIRouter()


@router.post(
    "/",
    response_model=MerchantResponse,
    status_code=201,
    summary="Create merchant",
    responses={
        409: {"description": "Merchant with this slug already exists"},
        422: {"description": "Validation error"},
    },
)
async def create_merchant(
    data: MerchantCreate,
    db: Session = Depends(get_db),
) -> Merchant:
    """Register a merchant on the marketplace."""
    repo = MerchantRepository(db)
    if repo.get_by_slug(data.slug):
        raise HTTPException(status_code=409, detail="Merchant with this slug already exists")
    return repo.create(data)


@router.get(
    "/",
    response_model=list[MerchantResponse],
    summary="List merchants",
)
async def list_merchants(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    order_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Merchant]:
    repo = MerchantRepository(db)
    return repo.get_all(skip=skip, limit=limit, order_by=order_by)


@router.get(
    "/{merchant_id}",
    response_model=MerchantResponse,
    summary="Get merchant",
    responses={404: {"description": "Merchant not found"}},
)
async def get_merchant(
    merchant_id: UUID,
    db: Session = Depends(get_db),
) -> Merchant:
    merchant = MerchantRepository(db).get_by_id(merchant_id)
    if not merchant:
        raise HTTPException(status_code=404, detail="Merchant not found")
    return merchant


@router.patch(
    "/{merchant_id}",
    response_model=MerchantResponse,
    summary="Update merchant",
    responses={
        404: {"description": "Merchant not found"},
        422: {"description": "Validation error"},
    },
)
async def update_merchant(
    merchant_id: UUID,
    data: MerchantUpdate,
    db: Session = Depends(get_db),
) -> Merchant:
    """Update a merchant. A new commission rate applies to orders created afterwards."""
    merchant = MerchantRepository(db).update(merchant_id, data)
    if not merchant:
        raise HTTPException(status_code=404, detail="Merchant not found")
    return merchant
