"""OrderEvent model: outbox of domain events for external notification delivery."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, func
from sqlalchemy.types import JSON

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class OrderEventStatus(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"


class OrderEvent(Base):
    __tablename__ = "order_events"
    __table_args__ = (
        Index("ix_order_events_order_id", "order_id"),
        Index("ix_order_events_event_type", "event_type"),
        Index("ix_order_events_status", "status"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    event_type = Column(String(100), nullable=False)
    order_id = Column(UUIDType, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False)
    merchant_id = Column(UUIDType, nullable=False, index=True)
    customer_id = Column(String(255), nullable=True)
    payload = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default=OrderEventStatus.PENDING.value)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
