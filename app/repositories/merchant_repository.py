"""Merchant repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from app.core.sorting import apply_order_by
from app.models.merchant import Merchant
from app.schemas.merchant import MerchantCreate, MerchantUpdate


class MerchantRepository:
    """Repository for Merchant model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100, order_by: str | None = None) -> list[Merchant]:
        query = apply_order_by(self.db.query(Merchant), Merchant, order_by)
        return query.offset(skip).limit(limit).all()

    def get_by_id(self, merchant_id: UUID) -> Merchant | None:
        return self.db.query(Merchant).filter(Merchant.id == merchant_id).first()

    def get_by_slug(self, slug: str) -> Merchant | None:
        return self.db.query(Merchant).filter(Merchant.slug == slug).first()

    def create(self, data: MerchantCreate) -> Merchant:
        merchant = Merchant(
            name=data.name,
            slug=data.slug,
            commission_rate=data.commission_rate,
        )
        self.db.add(merchant)
        self.db.commit()
        self.db.refresh(merchant)
        return merchant

    def update(self, merchant_id: UUID, data: MerchantUpdate) -> Merchant | None:
        merchant = self.get_by_id(merchant_id)
        if not merchant:
            return None

        update_data = data.model_dump(exclude_unset=True)
        if "status" in update_data and update_data["status"]:
            update_data["status"] = update_data["status"].value

        for key, value in update_data.items():
            setattr(merchant, key, value)

        self.db.commit()
        self.db.refresh(merchant)
        return merchant
