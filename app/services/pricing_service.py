"""Pricing engine: turns line items and an optional discount into an order's money fields."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.core.config import settings
from app.core.errors import ProductUnavailable, ValidationFailed
from app.core.money import ZERO, round_money, to_decimal
from app.models.coupon import DiscountType
from app.models.order import OrderType

# (minimum points, tier name, discount percentage), highest first
LOYALTY_TIERS: list[tuple[int, str, Decimal]] = [
    (5000, "platinum", Decimal("15")),
    (2000, "gold", Decimal("10")),
    (500, "silver", Decimal("5")),
    (0, "bronze", Decimal("0")),
]


@dataclass
class PricingItem:
    """A line item with the product data resolved at order time."""

    product_id: UUID
    name: str
    unit_price: Decimal
    quantity: int
    is_available: bool = True
    options: dict[str, Any] | None = None
    special_instructions: str | None = None

    @property
    def line_total(self) -> Decimal:
        return round_money(to_decimal(self.unit_price) * self.quantity)

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe copy stored on the order."""
        return {
            "product_id": str(self.product_id),
            "name": self.name,
            "unit_price": str(round_money(self.unit_price)),
            "quantity": self.quantity,
            "line_total": str(self.line_total),
            "options": self.options,
            "special_instructions": self.special_instructions,
        }


@dataclass
class AppliedDiscount:
    """A resolved coupon discount handed to the pricing engine."""

    coupon_id: UUID
    code: str
    discount_type: DiscountType
    amount: Decimal


@dataclass
class PriceBreakdown:
    subtotal: Decimal
    tax_amount: Decimal
    service_fee: Decimal
    delivery_fee: Decimal
    loyalty_discount_amount: Decimal
    discount_amount: Decimal
    total: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    merchant_payout: Decimal
    items: list[dict[str, Any]] = field(default_factory=list)


def loyalty_tier_for(points: int) -> tuple[str, Decimal]:
    """Return the (tier, percentage) a customer with ``points`` qualifies for."""
    for minimum, tier, rate in LOYALTY_TIERS:
        if points >= minimum:
            return tier, rate
    return LOYALTY_TIERS[-1][1], LOYALTY_TIERS[-1][2]


def loyalty_discount(subtotal: Decimal, points: int | None) -> Decimal:
    if not points:
        return ZERO
    _, rate = loyalty_tier_for(points)
    return round_money(to_decimal(subtotal) * rate / Decimal("100"))


def split_commission(total: Decimal, commission_rate: Decimal) -> tuple[Decimal, Decimal]:
    """Split ``total`` into (commission, payout), both in cents, summing exactly to ``total``.

    Each share is rounded half-up on its own; if that leaves a remainder the
    smaller share absorbs it.
    """
    total = round_money(total)
    rate = to_decimal(commission_rate)
    if rate < 0 or rate > 1:
        raise ValidationFailed("commission_rate", "commission_rate must be between 0 and 1")

    raw_commission = total * rate
    commission = round_money(raw_commission)
    payout = round_money(total - raw_commission)

    remainder = total - (commission + payout)
    if remainder:
        if commission <= payout:
            commission += remainder
        else:
            payout += remainder
    return commission, payout


class PricingEngine:
    """Computes every monetary field of an order.

    Stateless: fee amounts and the tax rate come from settings unless given.
    """

    def __init__(
        self,
        tax_rate: Decimal | None = None,
        service_fee: Decimal | None = None,
        delivery_fee: Decimal | None = None,
    ):
        self.tax_rate = to_decimal(settings.TAX_RATE if tax_rate is None else tax_rate)
        self.service_fee = round_money(
            settings.SERVICE_FEE if service_fee is None else service_fee
        )
        self.delivery_fee = round_money(
            settings.DELIVERY_FEE if delivery_fee is None else delivery_fee
        )

    def subtotal(self, items: list[PricingItem]) -> Decimal:
        """Sum of line totals. Fails on the first unavailable product."""
        if not items:
            raise ValidationFailed("items", "At least one item is required")

        total = ZERO
        for item in items:
            if not item.is_available:
                raise ProductUnavailable(item.product_id)
            if item.quantity < 1:
                raise ValidationFailed("quantity", "quantity must be at least 1")
            if to_decimal(item.unit_price) < 0:
                raise ValidationFailed("unit_price", "unit_price must not be negative")
            total += item.line_total
        return round_money(total)

    def price(
        self,
        items: list[PricingItem],
        order_type: OrderType,
        commission_rate: Decimal,
        discount: AppliedDiscount | None = None,
        loyalty_discount_amount: Decimal = ZERO,
    ) -> PriceBreakdown:
        """Compute the full price breakdown for an order.

        ``total = max(0, subtotal + tax + service fee + delivery fee - loyalty - coupon)``
        """
        order_type = OrderType(order_type)
        subtotal = self.subtotal(items)

        tax_amount = round_money(subtotal * self.tax_rate)
        service_fee = ZERO if order_type == OrderType.DINE_IN else self.service_fee

        delivery_fee = ZERO
        if order_type == OrderType.DELIVERY:
            delivery_fee = self.delivery_fee
            if discount is not None and discount.discount_type == DiscountType.FREE_DELIVERY:
                delivery_fee = ZERO

        loyalty_amount = round_money(loyalty_discount_amount)
        discount_amount = round_money(discount.amount) if discount is not None else ZERO
        if loyalty_amount < 0 or discount_amount < 0:
            raise ValidationFailed("discount_amount", "discounts must not be negative")

        gross = subtotal + tax_amount + service_fee + delivery_fee
        total = max(ZERO, round_money(gross - loyalty_amount - discount_amount))

        rate = to_decimal(commission_rate)
        commission_amount, merchant_payout = split_commission(total, rate)

        return PriceBreakdown(
            subtotal=subtotal,
            tax_amount=tax_amount,
            service_fee=service_fee,
            delivery_fee=delivery_fee,
            loyalty_discount_amount=loyalty_amount,
            discount_amount=discount_amount,
            total=total,
            commission_rate=rate,
            commission_amount=commission_amount,
            merchant_payout=merchant_payout,
            items=[item.snapshot() for item in items],
        )
