from typing import Any
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Query, Session

from app.core.config import settings
from app.core.sorting import apply_order_by
from app.models.order import Order, OrderStatus, PaymentStatus
from app.models.shared import utc_now


class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    def _generate_order_number(self) -> str:
        """Next number in the day's ``ORD-YYYYMMDD-NNNN`` sequence (UTC day)."""
        today = utc_now().strftime("%Y%m%d")
        prefix = f"{settings.ORDER_NUMBER_PREFIX}-{today}-"

        # Longer suffixes are larger; past 9999 the suffix grows a digit
        result = (
            self.db.query(Order.order_number)
            .filter(Order.order_number.like(f"{prefix}%"))
            .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
            .first()
        )

        if result:
            # Extract number from ORD-YYYYMMDD-XXXX format
            try:
                last_num = int(result[0].split("-")[-1])
                new_num = last_num + 1
            except (ValueError, IndexError):
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{new_num:04d}"

    def _filtered(
        self,
        query: Query,  # type: ignore[type-arg]
        merchant_id: UUID | None = None,
        customer_id: str | None = None,
        status: OrderStatus | None = None,
        payment_status: PaymentStatus | None = None,
    ) -> Query:  # type: ignore[type-arg]
        if merchant_id:
            query = query.filter(Order.merchant_id == merchant_id)
        if customer_id:
            query = query.filter(Order.customer_id == customer_id)
        if status:
            query = query.filter(Order.order_status == status.value)
        if payment_status:
            query = query.filter(Order.payment_status == payment_status.value)
        return query

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        merchant_id: UUID | None = None,
        customer_id: str | None = None,
        status: OrderStatus | None = None,
        payment_status: PaymentStatus | None = None,
        order_by: str | None = None,
    ) -> list[Order]:
        query = self._filtered(
            self.db.query(Order), merchant_id, customer_id, status, payment_status
        )
        query = apply_order_by(query, Order, order_by)
        return query.offset(skip).limit(limit).all()

    def count(
        self,
        merchant_id: UUID | None = None,
        customer_id: str | None = None,
        status: OrderStatus | None = None,
        payment_status: PaymentStatus | None = None,
    ) -> int:
        query = self._filtered(
            self.db.query(func.count(Order.id)), merchant_id, customer_id, status, payment_status
        )
        return query.scalar() or 0

    def get_by_id(self, order_id: UUID) -> Order | None:
        return self.db.query(Order).filter(Order.id == order_id).first()

    def get_by_order_number(self, order_number: str) -> Order | None:
        return self.db.query(Order).filter(Order.order_number == order_number).first()

    def create(self, **fields: Any) -> Order:
        """Insert a new order in ``pending`` state. Flushes only; the caller commits."""
        order = Order(
            order_number=self._generate_order_number(),
            order_status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            version=1,
            **fields,
        )
        self.db.add(order)
        self.db.flush()
        return order

    def compare_and_set_status(
        self,
        order_id: UUID,
        expected_status: str,
        values: dict[str, Any],
    ) -> bool:
        """Write ``values`` only if the order is still in ``expected_status``.

        Bumps ``version``. Returns False when another writer got there first.
        Does not commit.
        """
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.order_status == expected_status)
            .values(version=Order.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount == 1)  # type: ignore[attr-defined]

    def compare_and_set_payment(
        self,
        order_id: UUID,
        expected_payment_status: str,
        expected_order_status: str,
        values: dict[str, Any],
    ) -> bool:
        """Like ``compare_and_set_status`` but guarded on both status fields."""
        result = self.db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.payment_status == expected_payment_status,
                Order.order_status == expected_order_status,
            )
            .values(version=Order.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount == 1)  # type: ignore[attr-defined]
