"""Domain event emission for order changes.

Events are written to the ``order_events`` outbox in the same transaction as
the change that produced them. Delivering them (push, email) is the job of
external consumers, which read pending events and mark them dispatched.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.order import Order
from app.models.order_event import OrderEvent
from app.repositories.order_event_repository import OrderEventRepository

logger = logging.getLogger(__name__)

# Supported order event types
ORDER_EVENT_TYPES = [
    "order.created",
    "order.status_changed",
    "order.cancelled",
    "order.payment_updated",
]


class NotificationService:
    """Produces order domain events for external delivery."""

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = OrderEventRepository(db)

    def emit(
        self,
        event_type: str,
        order: Order,
        payload: dict[str, Any] | None = None,
    ) -> OrderEvent:
        """Record an event for ``order``. Does not commit.

        The payload always carries the order number and both status fields;
        ``payload`` entries are merged on top.
        """
        if event_type not in ORDER_EVENT_TYPES:
            msg = f"Unknown order event type '{event_type}'"
            raise ValueError(msg)

        body: dict[str, Any] = {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "order_status": order.order_status,
            "payment_status": order.payment_status,
        }
        if payload:
            body.update(payload)

        event = self.event_repo.create(
            event_type=event_type,
            order_id=order.id,  # type: ignore[arg-type]
            merchant_id=order.merchant_id,  # type: ignore[arg-type]
            customer_id=order.customer_id,  # type: ignore[arg-type]
            payload=body,
        )
        logger.debug("Queued %s for order %s", event_type, order.order_number)
        return event

    def mark_dispatched(self, event_id: UUID) -> OrderEvent | None:
        return self.event_repo.mark_dispatched(event_id)
