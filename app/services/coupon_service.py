"""Coupon service: eligibility checks, discount computation and usage accounting."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    ConcurrencyConflict,
    CouponRejected,
    DuplicateCode,
    NotFound,
    ValidationFailed,
)
from app.core.money import ZERO, round_money, to_decimal
from app.models.coupon import Coupon, DiscountType
from app.models.coupon_usage import CouponUsage
from app.models.shared import as_utc, utc_now
from app.repositories.coupon_repository import CouponRepository
from app.repositories.coupon_usage_repository import CouponUsageRepository
from app.repositories.merchant_repository import MerchantRepository
from app.repositories.order_repository import OrderRepository
from app.schemas.coupon import CouponCreate, CouponUpdate
from app.services.audit_service import AuditService
from app.services.pricing_service import AppliedDiscount

logger = logging.getLogger(__name__)

REJECTION_MESSAGES = {
    "invalid_code": "Invalid coupon code",
    "inactive": "This coupon is not active",
    "not_yet_valid": "This coupon is not yet valid",
    "expired": "This coupon has expired",
    "fully_used": "This coupon has reached its usage limit",
    "wrong_merchant": "This coupon is not valid for this merchant",
    "user_limit_reached": "You have already used this coupon the maximum number of times",
}


@dataclass
class CouponValidation:
    """Outcome of ``CouponService.validate``."""

    valid: bool
    coupon: Coupon | None = None
    discount_amount: Decimal | None = None
    reason: str | None = None
    message: str | None = None
    min_order_amount: Decimal | None = None

    def to_applied_discount(self) -> AppliedDiscount:
        if not self.valid or self.coupon is None or self.discount_amount is None:
            msg = "Only a valid coupon can be applied"
            raise ValueError(msg)
        return AppliedDiscount(
            coupon_id=self.coupon.id,  # type: ignore[arg-type]
            code=str(self.coupon.code),
            discount_type=DiscountType(self.coupon.discount_type),
            amount=self.discount_amount,
        )

    def raise_if_invalid(self) -> None:
        if not self.valid:
            details = {}
            if self.min_order_amount is not None:
                details["min_order_amount"] = str(self.min_order_amount)
            raise CouponRejected(str(self.reason), str(self.message), **details)


@dataclass
class CouponDeletion:
    deleted: bool
    deactivated: bool


@dataclass
class CouponStats:
    coupon: Coupon
    usage_percentage: int | None
    is_expired: bool
    is_fully_used: bool
    unique_users: int
    recent_usages: list[CouponUsage]


def compute_discount(coupon: Coupon, order_subtotal: Decimal) -> Decimal:
    """Discount a coupon grants on ``order_subtotal``, rounded half-up to cents.

    Free delivery yields zero here; the delivery fee waiver is applied by the
    pricing engine on its own line.
    """
    subtotal = to_decimal(order_subtotal)
    value = to_decimal(coupon.discount_value)
    discount_type = DiscountType(coupon.discount_type)

    if discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * value / Decimal("100")
        if coupon.max_discount_amount is not None:
            discount = min(discount, to_decimal(coupon.max_discount_amount))
    elif discount_type == DiscountType.FIXED_AMOUNT:
        discount = min(value, subtotal)
    else:
        discount = ZERO

    return max(ZERO, round_money(discount))


def is_fully_used(coupon: Coupon) -> bool:
    return coupon.max_uses is not None and coupon.times_used >= coupon.max_uses


class CouponService:
    """Service for coupon validation, discount calculation and usage recording."""

    def __init__(self, db: Session):
        self.db = db
        self.coupon_repo = CouponRepository(db)
        self.usage_repo = CouponUsageRepository(db)
        self.merchant_repo = MerchantRepository(db)
        self.audit_service = AuditService(db)

    def validate(
        self,
        code: str,
        order_subtotal: Decimal,
        merchant_id: UUID | None = None,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> CouponValidation:
        """Check whether ``code`` can be applied to an order.

        Checks run in a fixed order and the first failure wins, so every
        rejection carries exactly one reason.
        """
        now = now or utc_now()
        subtotal = to_decimal(order_subtotal)

        coupon = self.coupon_repo.get_by_code(code)
        if not coupon:
            return self._reject("invalid_code")

        if not coupon.is_active:
            return self._reject("inactive", coupon)

        valid_from = as_utc(coupon.valid_from)  # type: ignore[arg-type]
        valid_until = as_utc(coupon.valid_until)  # type: ignore[arg-type]
        if valid_from is not None and now < valid_from:
            return self._reject("not_yet_valid", coupon)
        if valid_until is not None and now > valid_until:
            return self._reject("expired", coupon)

        if is_fully_used(coupon):
            return self._reject("fully_used", coupon)

        min_order = to_decimal(coupon.min_order_amount)
        if subtotal < min_order:
            minimum = round_money(min_order)
            return CouponValidation(
                valid=False,
                coupon=coupon,
                reason="minimum_not_met",
                message=f"Minimum order amount is {minimum}",
                min_order_amount=minimum,
            )

        if coupon.merchant_id is not None and coupon.merchant_id != merchant_id:
            return self._reject("wrong_merchant", coupon)

        if user_id and coupon.max_uses_per_user:
            used = self.usage_repo.count_by_coupon_and_user(
                coupon.id,  # type: ignore[arg-type]
                user_id,
            )
            if used >= coupon.max_uses_per_user:
                return self._reject("user_limit_reached", coupon)

        return CouponValidation(
            valid=True,
            coupon=coupon,
            discount_amount=compute_discount(coupon, subtotal),
        )

    def resolve(
        self,
        code: str,
        order_subtotal: Decimal,
        merchant_id: UUID | None = None,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> AppliedDiscount:
        """Like ``validate`` but raises ``CouponRejected`` instead of returning a failure."""
        result = self.validate(code, order_subtotal, merchant_id, user_id, now)
        result.raise_if_invalid()
        return result.to_applied_discount()

    def record_usage(
        self,
        coupon_id: UUID,
        order_id: UUID,
        discount_amount: Decimal,
        user_id: str | None = None,
    ) -> CouponUsage:
        """Insert a usage row and bump the coupon counters. Does not commit.

        A second call for the same (coupon, order) returns the existing row and
        leaves the counters alone.

        Raises:
            NotFound: the coupon does not exist.
            CouponRejected: the coupon reached ``max_uses`` meanwhile.
            ConcurrencyConflict: another writer recorded the same usage concurrently.
        """
        existing = self.usage_repo.get_by_coupon_and_order(coupon_id, order_id)
        if existing is not None:
            logger.info("Coupon usage for order %s already recorded", order_id)
            return existing

        coupon = self.coupon_repo.get_by_id(coupon_id)
        if not coupon:
            raise NotFound(f"Coupon {coupon_id} not found")

        amount = round_money(discount_amount)
        if amount < 0:
            raise ValidationFailed("discount_amount", "discount_amount must not be negative")

        try:
            usage = self.usage_repo.create(
                coupon_id=coupon_id,
                order_id=order_id,
                discount_amount=amount,
                user_id=user_id,
            )
        except IntegrityError as e:
            logger.warning("Concurrent usage recording for coupon %s order %s", coupon_id, order_id)
            raise ConcurrencyConflict(
                "Coupon usage for this order is being recorded concurrently"
            ) from e

        if not self.coupon_repo.increment_usage(coupon_id, amount):
            logger.warning("Coupon %s reached its usage limit", coupon.code)
            raise CouponRejected("fully_used", REJECTION_MESSAGES["fully_used"])

        # Counters were changed in SQL; drop the stale in-memory values
        self.db.expire(coupon)
        logger.info("Recorded usage of coupon %s on order %s (%s)", coupon.code, order_id, amount)
        return usage

    def apply_to_order(
        self,
        coupon_id: UUID,
        order_id: UUID,
        discount_amount: Decimal,
        user_id: str | None = None,
    ) -> CouponUsage:
        """Record usage for an existing order as its own transaction."""
        if not OrderRepository(self.db).get_by_id(order_id):
            raise NotFound(f"Order {order_id} not found")
        try:
            usage = self.record_usage(coupon_id, order_id, discount_amount, user_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(usage)
        return usage

    def create_coupon(self, data: CouponCreate, created_by: str | None = None) -> Coupon:
        if self.coupon_repo.get_by_code(data.code):
            raise DuplicateCode("A coupon with this code already exists")
        if data.merchant_id and not self.merchant_repo.get_by_id(data.merchant_id):
            raise NotFound(f"Merchant {data.merchant_id} not found")

        coupon = self.coupon_repo.create(data, created_by=created_by)
        self.audit_service.log_create(
            resource_type="coupon",
            resource_id=coupon.id,  # type: ignore[arg-type]
            merchant_id=coupon.merchant_id,  # type: ignore[arg-type]
            actor_type="user" if created_by else "system",
            actor_id=created_by,
            data={"code": coupon.code, "discount_type": coupon.discount_type},
        )
        self.db.commit()
        logger.info("Coupon created: %s", coupon.code)
        return coupon

    def update_coupon(self, coupon_id: UUID, data: CouponUpdate) -> Coupon:
        coupon = self.coupon_repo.get_by_id(coupon_id)
        if not coupon:
            raise NotFound(f"Coupon {coupon_id} not found")

        update_data = data.model_dump(exclude_unset=True)
        valid_from = as_utc(update_data.get("valid_from", coupon.valid_from))
        valid_until = as_utc(update_data.get("valid_until", coupon.valid_until))
        if valid_from and valid_until and valid_from > valid_until:
            raise ValidationFailed("valid_until", "valid_from must not be after valid_until")

        value = update_data.get("discount_value", coupon.discount_value)
        if coupon.discount_type == DiscountType.PERCENTAGE.value and to_decimal(value) > 100:
            raise ValidationFailed(
                "discount_value", "percentage discount_value must be between 0 and 100"
            )

        max_uses = update_data.get("max_uses")
        if max_uses is not None and max_uses < coupon.times_used:
            raise ValidationFailed("max_uses", "max_uses must not be below times_used")

        updated = self.coupon_repo.update(coupon_id, data)
        logger.info("Coupon updated: %s", coupon.code)
        return updated  # type: ignore[return-value]

    def toggle_active(self, coupon_id: UUID) -> Coupon:
        coupon = self.coupon_repo.get_by_id(coupon_id)
        if not coupon:
            raise NotFound(f"Coupon {coupon_id} not found")

        was_active = bool(coupon.is_active)
        coupon = self.coupon_repo.set_active(coupon_id, not was_active)  # type: ignore[assignment]
        self.audit_service.log_status_change(
            resource_type="coupon",
            resource_id=coupon_id,
            merchant_id=coupon.merchant_id,  # type: ignore[union-attr, arg-type]
            old_status="active" if was_active else "inactive",
            new_status="inactive" if was_active else "active",
        )
        self.db.commit()
        logger.info("Coupon %s is now %s", coupon.code, "inactive" if was_active else "active")  # type: ignore[union-attr]
        return coupon  # type: ignore[return-value]

    def delete_coupon(self, coupon_id: UUID) -> CouponDeletion:
        """Delete a coupon, or deactivate it when usage has been recorded."""
        coupon = self.coupon_repo.get_by_id(coupon_id)
        if not coupon:
            raise NotFound(f"Coupon {coupon_id} not found")

        if self.usage_repo.count_by_coupon_id(coupon_id) > 0:
            self.coupon_repo.set_active(coupon_id, False)
            self.audit_service.log_status_change(
                resource_type="coupon",
                resource_id=coupon_id,
                merchant_id=coupon.merchant_id,  # type: ignore[arg-type]
                old_status="active" if coupon.is_active else "inactive",
                new_status="inactive",
            )
            self.db.commit()
            logger.info("Coupon %s has usage; deactivated instead of deleted", coupon.code)
            return CouponDeletion(deleted=False, deactivated=True)

        self.coupon_repo.delete(coupon_id)
        logger.info("Coupon deleted: %s", coupon_id)
        return CouponDeletion(deleted=True, deactivated=False)

    def get_stats(self, coupon_id: UUID, now: datetime | None = None) -> CouponStats:
        now = now or utc_now()
        coupon = self.coupon_repo.get_by_id(coupon_id)
        if not coupon:
            raise NotFound(f"Coupon {coupon_id} not found")

        usage_percentage = None
        if coupon.max_uses:
            usage_percentage = round(coupon.times_used / coupon.max_uses * 100)

        valid_until = as_utc(coupon.valid_until)  # type: ignore[arg-type]
        return CouponStats(
            coupon=coupon,
            usage_percentage=usage_percentage,
            is_expired=valid_until is not None and now > valid_until,
            is_fully_used=is_fully_used(coupon),
            unique_users=self.usage_repo.count_unique_users(coupon_id),
            recent_usages=self.usage_repo.get_by_coupon_id(coupon_id, limit=10),
        )

    def _reject(self, reason: str, coupon: Coupon | None = None) -> CouponValidation:
        logger.info("Coupon %s rejected: %s", coupon.code if coupon else "<unknown>", reason)
        return CouponValidation(
            valid=False,
            coupon=coupon,
            reason=reason,
            message=REJECTION_MESSAGES[reason],
        )
