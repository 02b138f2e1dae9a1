"""Coupon model for promotional discounts."""

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_DELIVERY = "free_delivery"


class Coupon(Base):
    """Coupon model for promotional discounts.

    A null ``merchant_id`` makes the coupon global (usable at every merchant).
    ``times_used`` and ``total_discount_given`` are only changed through
    ``CouponRepository.increment_usage``.
    """

    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("valid_from <= valid_until", name="ck_coupons_validity_window"),
        CheckConstraint(
            "max_uses IS NULL OR times_used <= max_uses", name="ck_coupons_times_used_cap"
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    merchant_id = Column(
        UUIDType, ForeignKey("merchants.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    code = Column(String(50), unique=True, index=True, nullable=False)
    title = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)

    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)
    max_discount_amount = Column(Numeric(10, 2), nullable=True)
    min_order_amount = Column(Numeric(10, 2), nullable=False, default=0)

    max_uses = Column(Integer, nullable=True)
    max_uses_per_user = Column(Integer, nullable=True, default=1)

    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    times_used = Column(Integer, nullable=False, default=0)
    total_discount_given = Column(Numeric(12, 2), nullable=False, default=0)

    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
