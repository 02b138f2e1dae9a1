"""Merchant model: a tenant selling on the marketplace."""

from enum import Enum

from sqlalchemy import Column, DateTime, Numeric, String, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class MerchantStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class Merchant(Base):
    __tablename__ = "merchants"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    # Platform cut in [0, 1], copied onto each order at creation time
    commission_rate = Column(Numeric(5, 4), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=MerchantStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
