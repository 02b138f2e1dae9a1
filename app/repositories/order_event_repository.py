"""OrderEvent repository for data access."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.sorting import apply_order_by
from app.models.order_event import OrderEvent, OrderEventStatus
from app.models.shared import utc_now


class OrderEventRepository:
    """Repository for OrderEvent model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        event_type: str,
        order_id: UUID,
        merchant_id: UUID,
        payload: dict[str, Any],
        customer_id: str | None = None,
    ) -> OrderEvent:
        """Add an event to the outbox. Flushes only so it commits with the order change."""
        event = OrderEvent(
            event_type=event_type,
            order_id=order_id,
            merchant_id=merchant_id,
            customer_id=customer_id,
            payload=payload,
            created_at=utc_now(),
        )
        self.db.add(event)
        self.db.flush()
        return event

    def get_by_id(self, event_id: UUID) -> OrderEvent | None:
        return self.db.query(OrderEvent).filter(OrderEvent.id == event_id).first()

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        order_id: UUID | None = None,
        merchant_id: UUID | None = None,
        event_type: str | None = None,
        status: OrderEventStatus | None = None,
        order_by: str | None = None,
    ) -> list[OrderEvent]:
        query = self.db.query(OrderEvent)
        if order_id:
            query = query.filter(OrderEvent.order_id == order_id)
        if merchant_id:
            query = query.filter(OrderEvent.merchant_id == merchant_id)
        if event_type:
            query = query.filter(OrderEvent.event_type == event_type)
        if status:
            query = query.filter(OrderEvent.status == status.value)
        query = apply_order_by(query, OrderEvent, order_by, default_direction="asc")
        return query.offset(skip).limit(limit).all()

    def count_pending(self) -> int:
        return (
            self.db.query(func.count(OrderEvent.id))
            .filter(OrderEvent.status == OrderEventStatus.PENDING.value)
            .scalar()
            or 0
        )

    def mark_dispatched(self, event_id: UUID) -> OrderEvent | None:
        event = self.get_by_id(event_id)
        if not event:
            return None

        event.status = OrderEventStatus.DISPATCHED.value  # type: ignore[assignment]
        event.dispatched_at = utc_now()  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(event)
        return event
