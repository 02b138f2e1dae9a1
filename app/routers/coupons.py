"""Coupon API endpoints: administration, validation and usage."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import OrderingError, http_error
from app.core.money import ZERO, round_money
from app.models.coupon import Coupon, DiscountType
from app.models.coupon_usage import CouponUsage
from app.models.shared import utc_now
from app.repositories.coupon_repository import CouponRepository
from app.repositories.coupon_usage_repository import CouponUsageRepository
from app.schemas.coupon import (
    CouponCreate,
    CouponDeleteResponse,
    CouponResponse,
    CouponStatsResponse,
    CouponUpdate,
    CouponUsageResponse,
    CouponValidateRequest,
    CouponValidateResponse,
    RecordUsageRequest,
)
from app.services.coupon_service import CouponService

router = APIRouter()


@router.post(
    "/",
    response_model=CouponResponse,
    status_code=201,
    summary="Create coupon",
    responses={
        404: {"description": "Merchant not found"},
        409: {"description": "Coupon with this code already exists"},
        422: {"description": "Validation error"},
    },
)
async def create_coupon(
    data: CouponCreate,
    db: Session = Depends(get_db),
) -> Coupon:
    """Create a new coupon. Codes are stored upper case and unique regardless of case."""
    try:
        return CouponService(db).create_coupon(data)
    except OrderingError as e:
        raise http_error(e) from None


@router.get(
    "/",
    response_model=list[CouponResponse],
    summary="List coupons",
)
async def list_coupons(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    order_by: str | None = Query(default=None),
    merchant_id: UUID | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    discount_type: DiscountType | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    include_expired: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[Coupon]:
    """List coupons with optional filters. Expired coupons are hidden unless requested."""
    repo = CouponRepository(db)
    return repo.get_all(
        skip=skip,
        limit=limit,
        merchant_id=merchant_id,
        is_active=is_active,
        discount_type=discount_type,
        search=search,
        include_expired=include_expired,
        now=utc_now(),
        order_by=order_by,
    )


@router.get(
    "/available",
    response_model=list[CouponResponse],
    summary="List available coupons",
)
async def list_available_coupons(
    merchant_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Coupon]:
    """Coupons usable right now: global ones plus those scoped to ``merchant_id``."""
    return CouponRepository(db).get_available(utc_now(), merchant_id)


@router.post(
    "/validate",
    response_model=CouponValidateResponse,
    summary="Validate coupon",
    responses={422: {"description": "Validation error"}},
)
async def validate_coupon(
    data: CouponValidateRequest,
    db: Session = Depends(get_db),
) -> CouponValidateResponse:
    """Check a code against an order subtotal without recording anything."""
    result = CouponService(db).validate(
        data.code,
        data.order_subtotal,
        merchant_id=data.merchant_id,
        user_id=data.user_id,
    )
    if not result.valid:
        return CouponValidateResponse(valid=False, reason=result.reason, message=result.message)

    discount = result.discount_amount or ZERO
    return CouponValidateResponse(
        valid=True,
        coupon=CouponResponse.model_validate(result.coupon),
        discount_amount=discount,
        new_total=max(ZERO, round_money(data.order_subtotal - discount)),
    )


@router.get(
    "/{coupon_id}",
    response_model=CouponResponse,
    summary="Get coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def get_coupon(
    coupon_id: UUID,
    db: Session = Depends(get_db),
) -> Coupon:
    coupon = CouponRepository(db).get_by_id(coupon_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


@router.patch(
    "/{coupon_id}",
    response_model=CouponResponse,
    summary="Update coupon",
    responses={
        404: {"description": "Coupon not found"},
        422: {"description": "Validation error"},
    },
)
async def update_coupon(
    coupon_id: UUID,
    data: CouponUpdate,
    db: Session = Depends(get_db),
) -> Coupon:
    try:
        return CouponService(db).update_coupon(coupon_id, data)
    except OrderingError as e:
        raise http_error(e) from None


@router.delete(
    "/{coupon_id}",
    response_model=CouponDeleteResponse,
    summary="Delete coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def delete_coupon(
    coupon_id: UUID,
    db: Session = Depends(get_db),
) -> CouponDeleteResponse:
    """Delete a coupon. Coupons with recorded usage are deactivated instead."""
    try:
        result = CouponService(db).delete_coupon(coupon_id)
    except OrderingError as e:
        raise http_error(e) from None

    if result.deactivated:
        message = "Coupon has been used and was deactivated instead of deleted"
    else:
        message = "Coupon deleted"
    return CouponDeleteResponse(
        deleted=result.deleted, deactivated=result.deactivated, message=message
    )


@router.post(
    "/{coupon_id}/toggle",
    response_model=CouponResponse,
    summary="Toggle coupon active flag",
    responses={404: {"description": "Coupon not found"}},
)
async def toggle_coupon(
    coupon_id: UUID,
    db: Session = Depends(get_db),
) -> Coupon:
    try:
        return CouponService(db).toggle_active(coupon_id)
    except OrderingError as e:
        raise http_error(e) from None


@router.get(
    "/{coupon_id}/stats",
    response_model=CouponStatsResponse,
    summary="Get coupon usage statistics",
    responses={404: {"description": "Coupon not found"}},
)
async def get_coupon_stats(
    coupon_id: UUID,
    db: Session = Depends(get_db),
) -> CouponStatsResponse:
    try:
        stats = CouponService(db).get_stats(coupon_id)
    except OrderingError as e:
        raise http_error(e) from None

    coupon = stats.coupon
    return CouponStatsResponse(
        coupon_id=coupon.id,  # type: ignore[arg-type]
        code=str(coupon.code),
        times_used=coupon.times_used,  # type: ignore[arg-type]
        max_uses=coupon.max_uses,  # type: ignore[arg-type]
        usage_percentage=stats.usage_percentage,
        total_discount_given=coupon.total_discount_given,  # type: ignore[arg-type]
        is_active=bool(coupon.is_active),
        is_expired=stats.is_expired,
        is_fully_used=stats.is_fully_used,
        unique_users=stats.unique_users,
        recent_usages=[CouponUsageResponse.model_validate(u) for u in stats.recent_usages],
    )


@router.get(
    "/{coupon_id}/usages",
    response_model=list[CouponUsageResponse],
    summary="List coupon usages",
    responses={404: {"description": "Coupon not found"}},
)
async def list_coupon_usages(
    coupon_id: UUID,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[CouponUsage]:
    if not CouponRepository(db).get_by_id(coupon_id):
        raise HTTPException(status_code=404, detail="Coupon not found")
    return CouponUsageRepository(db).get_by_coupon_id(coupon_id, limit=limit)


@router.post(
    "/{coupon_id}/usages",
    response_model=CouponUsageResponse,
    status_code=201,
    summary="Record coupon usage",
    responses={
        400: {"description": "Coupon has reached its usage limit"},
        404: {"description": "Coupon or order not found"},
        409: {"description": "Usage is being recorded concurrently"},
    },
)
async def record_coupon_usage(
    coupon_id: UUID,
    data: RecordUsageRequest,
    db: Session = Depends(get_db),
) -> CouponUsage:
    """Record that a coupon was used on an order. Repeating the call for the same order is safe."""
    try:
        return CouponService(db).apply_to_order(
            coupon_id,
            data.order_id,
            data.discount_amount,
            user_id=data.user_id,
        )
    except OrderingError as e:
        raise http_error(e) from None
