"""Order model: a priced, immutable cart snapshot plus its lifecycle state."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.types import JSON

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class OrderType(str, Enum):
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


# Timestamp column stamped when an order enters each status
STATUS_TIMESTAMP_FIELDS: dict[str, str] = {
    OrderStatus.CONFIRMED.value: "confirmed_at",
    OrderStatus.PREPARING.value: "preparing_at",
    OrderStatus.READY.value: "ready_at",
    OrderStatus.OUT_FOR_DELIVERY.value: "out_for_delivery_at",
    OrderStatus.DELIVERED.value: "delivered_at",
    OrderStatus.COMPLETED.value: "completed_at",
    OrderStatus.CANCELLED.value: "cancelled_at",
}


class Order(Base):
    __tablename__ = "orders"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    order_number = Column(String(50), unique=True, index=True, nullable=False)
    merchant_id = Column(
        UUIDType, ForeignKey("merchants.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    customer_id = Column(String(255), nullable=True, index=True)
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_notes = Column(Text, nullable=True)

    order_type = Column(String(20), nullable=False, default=OrderType.DINE_IN.value, index=True)

    # Line items snapshot: product name and price copied at order time
    items = Column(JSON, nullable=False, default=list)

    subtotal = Column(Numeric(12, 2), nullable=False)
    loyalty_discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    service_fee = Column(Numeric(12, 2), nullable=False, default=0)
    delivery_fee = Column(Numeric(12, 2), nullable=False, default=0)
    tip_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)

    coupon_id = Column(
        UUIDType, ForeignKey("coupons.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    coupon_code = Column(String(50), nullable=True)

    commission_rate = Column(Numeric(5, 4), nullable=False)
    commission_amount = Column(Numeric(12, 2), nullable=False)
    merchant_payout = Column(Numeric(12, 2), nullable=False)

    payment_status = Column(
        String(30), nullable=False, default=PaymentStatus.PENDING.value, index=True
    )
    payment_reference = Column(String(255), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    # Sum of refunds reported so far
    refunded_amount = Column(Numeric(12, 2), nullable=False, default=0)

    order_status = Column(String(30), nullable=False, default=OrderStatus.PENDING.value, index=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    preparing_at = Column(DateTime(timezone=True), nullable=True)
    ready_at = Column(DateTime(timezone=True), nullable=True)
    out_for_delivery_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Bumped on every status write
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
