from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class OrderEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_type: str
    order_id: UUID
    merchant_id: UUID
    customer_id: str | None = None
    payload: dict[str, Any]
    status: str
    dispatched_at: datetime | None = None
    created_at: datetime
