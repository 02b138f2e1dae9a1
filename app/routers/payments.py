"""Payment API endpoints.

The payment processor's webhook handler reports status changes here after it
has verified the processor's signature.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import OrderingError, http_error
from app.models.order import Order
from app.schemas.order import OrderResponse
from app.schemas.payment import PaymentEventRequest
from app.services.payment_service import PaymentService

router = APIRouter()


@router.post(
    "/events",
    response_model=OrderResponse,
    summary="Apply payment event",
    responses={
        400: {"description": "Payment status change not allowed"},
        404: {"description": "Order not found"},
        409: {"description": "Order changed concurrently"},
    },
)
async def apply_payment_event(
    data: PaymentEventRequest,
    db: Session = Depends(get_db),
) -> Order:
    """Record a paid, failed or refunded report and apply its effect on the order."""
    try:
        return PaymentService(db).apply_payment_event(
            data.order_id,
            data.status,
            amount=data.amount,
            payment_reference=data.payment_reference,
            reason=data.reason,
        )
    except OrderingError as e:
        raise http_error(e) from None
