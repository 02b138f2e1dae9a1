"""Product repository for data access."""

from uuid import UUID

from sqlalchemy.orm import Session

from app.core.sorting import apply_order_by
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductUpdate


class ProductRepository:
    """Repository for Product model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        merchant_id: UUID,
        skip: int = 0,
        limit: int = 100,
        available_only: bool = False,
        order_by: str | None = None,
    ) -> list[Product]:
        query = self.db.query(Product).filter(Product.merchant_id == merchant_id)
        if available_only:
            query = query.filter(Product.is_available.is_(True))
        query = apply_order_by(query, Product, order_by)
        return query.offset(skip).limit(limit).all()

    def get_by_id(self, product_id: UUID) -> Product | None:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_by_ids(self, product_ids: list[UUID]) -> dict[UUID, Product]:
        """Fetch several products at once, keyed by id."""
        if not product_ids:
            return {}
        products = self.db.query(Product).filter(Product.id.in_(product_ids)).all()
        return {p.id: p for p in products}  # type: ignore[misc]

    def create(self, merchant_id: UUID, data: ProductCreate) -> Product:
        product = Product(
            merchant_id=merchant_id,
            name=data.name,
            description=data.description,
            price=data.price,
            is_available=data.is_available,
        )
        self.db.add(product)
        self.db.commit()
        self.db.refresh(product)
        return product

    def update(self, product_id: UUID, data: ProductUpdate) -> Product | None:
        product = self.get_by_id(product_id)
        if not product:
            return None

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(product, key, value)

        self.db.commit()
        self.db.refresh(product)
        return product
