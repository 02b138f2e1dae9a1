"""CouponUsage repository for data access."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.coupon_usage import CouponUsage
from app.models.shared import utc_now


class CouponUsageRepository:
    """Repository for CouponUsage model. Rows are insert-only."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_coupon_and_order(self, coupon_id: UUID, order_id: UUID) -> CouponUsage | None:
        return (
            self.db.query(CouponUsage)
            .filter(CouponUsage.coupon_id == coupon_id, CouponUsage.order_id == order_id)
            .first()
        )

    def get_by_coupon_id(self, coupon_id: UUID, limit: int | None = None) -> list[CouponUsage]:
        query = (
            self.db.query(CouponUsage)
            .filter(CouponUsage.coupon_id == coupon_id)
            .order_by(CouponUsage.created_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_by_coupon_id(self, coupon_id: UUID) -> int:
        return (
            self.db.query(func.count(CouponUsage.id))
            .filter(CouponUsage.coupon_id == coupon_id)
            .scalar()
            or 0
        )

    def count_by_coupon_and_user(self, coupon_id: UUID, user_id: str) -> int:
        return (
            self.db.query(func.count(CouponUsage.id))
            .filter(CouponUsage.coupon_id == coupon_id, CouponUsage.user_id == user_id)
            .scalar()
            or 0
        )

    def count_unique_users(self, coupon_id: UUID) -> int:
        return (
            self.db.query(func.count(func.distinct(CouponUsage.user_id)))
            .filter(CouponUsage.coupon_id == coupon_id)
            .scalar()
            or 0
        )

    def create(
        self,
        coupon_id: UUID,
        order_id: UUID,
        discount_amount: Decimal,
        user_id: str | None = None,
    ) -> CouponUsage:
        """Insert a usage row. Flushes only; the caller owns the transaction."""
        usage = CouponUsage(
            coupon_id=coupon_id,
            order_id=order_id,
            user_id=user_id,
            discount_amount=discount_amount,
            created_at=utc_now(),
        )
        self.db.add(usage)
        self.db.flush()
        return usage
