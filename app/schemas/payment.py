from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class PaymentEventRequest(BaseModel):
    """A payment status change reported by the payment processor's webhook handler."""

    order_id: UUID
    status: Literal["paid", "failed", "refunded"]
    payment_reference: str | None = Field(default=None, max_length=255)
    # Refund amount; omitted means a full refund
    amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)
    reason: str | None = Field(default=None, max_length=500)
