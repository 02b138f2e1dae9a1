"""Coupon and CouponUsage schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.coupon import DiscountType


def _normalize_code(value: str) -> str:
    return value.strip().upper()


class CouponCreate(BaseModel):
    code: str = Field(min_length=3, max_length=50)
    merchant_id: UUID | None = None
    title: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    discount_type: DiscountType
    discount_value: Decimal = Field(ge=0, decimal_places=2)
    max_discount_amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    max_uses: int | None = Field(default=None, ge=1)
    max_uses_per_user: int | None = Field(default=1, ge=1)
    valid_from: datetime
    valid_until: datetime

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        value = _normalize_code(value)
        if len(value) < 3:
            msg = "code must be at least 3 characters"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def validate_window_and_value(self) -> Self:
        """Validate the validity window and the percentage range."""
        if self.valid_from > self.valid_until:
            msg = "valid_from must not be after valid_until"
            raise ValueError(msg)
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            msg = "percentage discount_value must be between 0 and 100"
            raise ValueError(msg)
        return self


class CouponUpdate(BaseModel):
    title: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    discount_value: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    max_discount_amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    min_order_amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    max_uses: int | None = Field(default=None, ge=1)
    max_uses_per_user: int | None = Field(default=None, ge=1)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool | None = None


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    merchant_id: UUID | None = None
    code: str
    title: str | None = None
    description: str | None = None
    discount_type: str
    discount_value: Decimal
    max_discount_amount: Decimal | None = None
    min_order_amount: Decimal
    max_uses: int | None = None
    max_uses_per_user: int | None = None
    valid_from: datetime
    valid_until: datetime
    is_active: bool
    times_used: int
    total_discount_given: Decimal
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class CouponValidateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    order_subtotal: Decimal = Field(ge=0)
    merchant_id: UUID | None = None
    user_id: str | None = Field(default=None, max_length=255)


class CouponValidateResponse(BaseModel):
    valid: bool
    reason: str | None = None
    message: str | None = None
    coupon: CouponResponse | None = None
    discount_amount: Decimal | None = None
    new_total: Decimal | None = None


class RecordUsageRequest(BaseModel):
    order_id: UUID
    user_id: str | None = Field(default=None, max_length=255)
    discount_amount: Decimal = Field(ge=0, decimal_places=2)


class CouponUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    coupon_id: UUID
    order_id: UUID
    user_id: str | None = None
    discount_amount: Decimal
    created_at: datetime


class CouponDeleteResponse(BaseModel):
    deleted: bool
    deactivated: bool
    message: str


class CouponStatsResponse(BaseModel):
    """Usage statistics for a coupon."""

    coupon_id: UUID
    code: str
    times_used: int
    max_uses: int | None = None
    usage_percentage: int | None = None
    total_discount_given: Decimal
    is_active: bool
    is_expired: bool
    is_fully_used: bool
    unique_users: int
    recent_usages: list[CouponUsageResponse]
