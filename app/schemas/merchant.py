from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.merchant import MerchantStatus


class MerchantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9][a-z0-9-]*$")
    commission_rate: Decimal = Field(default=Decimal("0.10"), ge=0, le=1, decimal_places=4)


class MerchantUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    commission_rate: Decimal | None = Field(default=None, ge=0, le=1, decimal_places=4)
    status: MerchantStatus | None = None


class MerchantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    commission_rate: Decimal
    status: str
    created_at: datetime
    updated_at: datetime
