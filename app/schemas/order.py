from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.order import OrderStatus, OrderType


class OrderLineItem(BaseModel):
    product_id: UUID
    quantity: int = Field(..., ge=1)
    options: dict[str, Any] | None = None
    special_instructions: str | None = Field(default=None, max_length=500)


class OrderCreate(BaseModel):
    merchant_id: UUID
    items: list[OrderLineItem] = Field(..., min_length=1)
    order_type: OrderType = OrderType.DINE_IN
    coupon_code: str | None = Field(default=None, max_length=50)
    customer_id: str | None = Field(default=None, max_length=255)
    customer_name: str | None = Field(default=None, max_length=255)
    customer_email: EmailStr | None = None
    customer_notes: str | None = None
    # Accumulated points used to pick the loyalty tier
    loyalty_points: int | None = Field(default=None, ge=0)


class OrderItemSnapshot(BaseModel):
    product_id: UUID
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    options: dict[str, Any] | None = None
    special_instructions: str | None = None


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., max_length=30)


class OrderCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    merchant_id: UUID
    customer_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_notes: str | None = None
    order_type: str
    items: list[OrderItemSnapshot]
    subtotal: Decimal
    loyalty_discount_amount: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    service_fee: Decimal
    delivery_fee: Decimal
    tip_amount: Decimal
    total: Decimal
    coupon_id: UUID | None = None
    coupon_code: str | None = None
    commission_rate: Decimal
    commission_amount: Decimal
    merchant_payout: Decimal
    payment_status: str
    payment_reference: str | None = None
    paid_at: datetime | None = None
    refunded_amount: Decimal
    order_status: str
    confirmed_at: datetime | None = None
    preparing_at: datetime | None = None
    ready_at: datetime | None = None
    out_for_delivery_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime


class OrderStatusHistoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action: str
    changes: dict[str, Any]
    actor_type: str
    actor_id: str | None = None
    created_at: datetime


__all__ = [
    "OrderCancelRequest",
    "OrderCreate",
    "OrderItemSnapshot",
    "OrderLineItem",
    "OrderResponse",
    "OrderStatus",
    "OrderStatusHistoryEntry",
    "OrderStatusUpdate",
    "OrderType",
]
