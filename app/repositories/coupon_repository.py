"""Coupon repository for data access."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from app.core.sorting import apply_order_by
from app.models.coupon import Coupon, DiscountType
from app.schemas.coupon import CouponCreate, CouponUpdate


class CouponRepository:
    """Repository for Coupon model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        merchant_id: UUID | None = None,
        is_active: bool | None = None,
        discount_type: DiscountType | None = None,
        search: str | None = None,
        include_expired: bool = False,
        now: datetime | None = None,
        order_by: str | None = None,
    ) -> list[Coupon]:
        """Get all coupons with optional filters."""
        query = self.db.query(Coupon)

        if merchant_id:
            query = query.filter(Coupon.merchant_id == merchant_id)
        if is_active is not None:
            query = query.filter(Coupon.is_active.is_(is_active))
        if discount_type:
            query = query.filter(Coupon.discount_type == discount_type.value)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Coupon.code.ilike(pattern),
                    Coupon.title.ilike(pattern),
                    Coupon.description.ilike(pattern),
                )
            )
        if not include_expired and now is not None:
            query = query.filter(Coupon.valid_until >= now)

        query = apply_order_by(query, Coupon, order_by)
        return query.offset(skip).limit(limit).all()

    def get_available(self, now: datetime, merchant_id: UUID | None = None) -> list[Coupon]:
        """Currently usable coupons: global ones plus those scoped to ``merchant_id``."""
        scope = (
            or_(Coupon.merchant_id.is_(None), Coupon.merchant_id == merchant_id)
            if merchant_id
            else Coupon.merchant_id.is_(None)
        )
        return (
            self.db.query(Coupon)
            .filter(
                scope,
                Coupon.is_active.is_(True),
                Coupon.valid_from <= now,
                Coupon.valid_until >= now,
                or_(Coupon.max_uses.is_(None), Coupon.times_used < Coupon.max_uses),
            )
            .order_by(Coupon.discount_value.desc())
            .all()
        )

    def get_by_id(self, coupon_id: UUID) -> Coupon | None:
        """Get a coupon by ID."""
        return self.db.query(Coupon).filter(Coupon.id == coupon_id).first()

    def get_by_code(self, code: str) -> Coupon | None:
        """Get a coupon by code, ignoring case."""
        return (
            self.db.query(Coupon)
            .filter(func.upper(Coupon.code) == code.strip().upper())
            .first()
        )

    def create(self, data: CouponCreate, created_by: str | None = None) -> Coupon:
        """Create a new coupon."""
        coupon = Coupon(
            merchant_id=data.merchant_id,
            code=data.code,
            title=data.title,
            description=data.description,
            discount_type=data.discount_type.value,
            discount_value=data.discount_value,
            max_discount_amount=data.max_discount_amount,
            min_order_amount=data.min_order_amount,
            max_uses=data.max_uses,
            max_uses_per_user=data.max_uses_per_user,
            valid_from=data.valid_from,
            valid_until=data.valid_until,
            created_by=created_by,
        )
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def update(self, coupon_id: UUID, data: CouponUpdate) -> Coupon | None:
        """Update a coupon by ID."""
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(coupon, key, value)

        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def set_active(self, coupon_id: UUID, is_active: bool) -> Coupon | None:
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return None

        coupon.is_active = is_active  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def delete(self, coupon_id: UUID) -> bool:
        """Hard-delete a coupon. Callers must check it has no recorded usage."""
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return False

        self.db.delete(coupon)
        self.db.commit()
        return True

    def increment_usage(self, coupon_id: UUID, discount_amount: Decimal) -> bool:
        """Atomically bump the usage counters, respecting ``max_uses``.

        Returns False when the coupon is already at its cap. Does not commit.
        """
        result = self.db.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                or_(Coupon.max_uses.is_(None), Coupon.times_used < Coupon.max_uses),
            )
            .values(
                times_used=Coupon.times_used + 1,
                total_discount_given=Coupon.total_discount_given + discount_amount,
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount == 1)  # type: ignore[attr-defined]
