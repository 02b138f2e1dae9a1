"""Order lifecycle: the status graph and the writes that move orders along it.

Status writes are compare-and-swap updates guarded on the status the caller
read, so two concurrent transitions from the same state cannot both win.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import (
    BusinessRuleViolation,
    ConcurrencyConflict,
    InvalidTransition,
    NotFound,
)
from app.models.audit_log import AuditLog
from app.models.order import (
    STATUS_TIMESTAMP_FIELDS,
    Order,
    OrderStatus,
    OrderType,
    PaymentStatus,
)
from app.models.shared import utc_now
from app.repositories.audit_log_repository import AuditLogRepository
from app.repositories.order_repository import OrderRepository
from app.services.audit_service import AuditService
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.COMPLETED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
)

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

DEFAULT_CANCELLATION_REASON = "Cancelled by user"


def can_transition(current: OrderStatus, target: OrderStatus, order_type: OrderType) -> bool:
    """Whether ``current -> target`` is an edge of the status graph for ``order_type``.

    Delivery orders leave ``ready`` through ``out_for_delivery``; every other
    order type goes straight to ``completed``.
    """
    if target not in ALLOWED_TRANSITIONS[current]:
        return False
    if current == OrderStatus.READY:
        is_delivery = order_type == OrderType.DELIVERY
        if target == OrderStatus.OUT_FOR_DELIVERY:
            return is_delivery
        if target == OrderStatus.COMPLETED:
            return not is_delivery
    return True


def parse_status(value: str | OrderStatus) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError as e:
        raise BusinessRuleViolation(
            f"Unknown order status '{value}'", code="invalid_status", status=str(value)
        ) from e


class OrderLifecycleService:
    """Moves orders through the status graph, stamping timestamps and emitting events."""

    def __init__(self, db: Session):
        self.db = db
        self.order_repo = OrderRepository(db)
        self.audit_service = AuditService(db)
        self.notifications = NotificationService(db)

    def set_status(
        self,
        order_id: UUID,
        new_status: str | OrderStatus,
        actor_id: str | None = None,
    ) -> Order:
        """Move an order to ``new_status`` along an allowed edge.

        Setting the status the order already has is a no-op.

        Raises:
            BusinessRuleViolation: ``invalid_status`` when ``new_status`` is unknown.
            NotFound: the order does not exist.
            InvalidTransition: the edge is not in the graph.
            ConcurrencyConflict: another writer moved the order first.
        """
        target = parse_status(new_status)
        order = self._get_order(order_id)
        current = OrderStatus(order.order_status)

        if current == target:
            return order

        order_type = OrderType(order.order_type)
        if not can_transition(current, target, order_type):
            logger.warning(
                "Rejected transition %s -> %s for order %s",
                current.value,
                target.value,
                order.order_number,
            )
            raise InvalidTransition(
                f"Cannot move order from {current.value} to {target.value}",
                current_status=current.value,
                requested_status=target.value,
            )

        values: dict[str, Any] = {"order_status": target.value}
        values[STATUS_TIMESTAMP_FIELDS[target.value]] = utc_now()
        if target == OrderStatus.CANCELLED:
            values["cancellation_reason"] = DEFAULT_CANCELLATION_REASON

        return self._apply(order, current, target, values, actor_id=actor_id)

    def cancel(self, order_id: UUID, reason: str | None = None, actor_id: str | None = None) -> Order:
        """Cancel an order that has not started preparation.

        Raises:
            InvalidTransition: ``not_cancellable`` outside pending and confirmed.
        """
        order = self._get_order(order_id)
        current = OrderStatus(order.order_status)

        if current not in CANCELLABLE_STATUSES:
            logger.warning("Order %s cannot be cancelled from %s", order.order_number, current.value)
            raise InvalidTransition(
                f"Order cannot be cancelled once it is {current.value}",
                code="not_cancellable",
                current_status=current.value,
            )

        return self._cancel(order, current, reason or DEFAULT_CANCELLATION_REASON, actor_id)

    def force_cancel(self, order: Order, reason: str, actor_id: str | None = None) -> Order:
        """Cancel from any non-terminal status. Used when a payment is refunded.

        Terminal orders are returned unchanged.
        """
        current = OrderStatus(order.order_status)
        if current in TERMINAL_STATUSES:
            return order
        return self._cancel(order, current, reason, actor_id, commit=False)

    def get_history(self, order_id: UUID) -> list[AuditLog]:
        """Status changes of an order, oldest first."""
        self._get_order(order_id)
        entries = AuditLogRepository(self.db).get_by_resource("order", order_id)
        return [entry for entry in entries if entry.action == "status_changed"]

    def _cancel(
        self,
        order: Order,
        current: OrderStatus,
        reason: str,
        actor_id: str | None,
        commit: bool = True,
    ) -> Order:
        values: dict[str, Any] = {
            "order_status": OrderStatus.CANCELLED.value,
            "cancelled_at": utc_now(),
            "cancellation_reason": reason,
        }
        return self._apply(
            order,
            current,
            OrderStatus.CANCELLED,
            values,
            actor_id=actor_id,
            commit=commit,
        )

    def _apply(
        self,
        order: Order,
        current: OrderStatus,
        target: OrderStatus,
        values: dict[str, Any],
        actor_id: str | None = None,
        commit: bool = True,
    ) -> Order:
        order_id: UUID = order.id  # type: ignore[assignment]
        try:
            swapped = self.order_repo.compare_and_set_status(order_id, current.value, values)
            if not swapped:
                self.db.expire(order)
                latest = self._get_order(order_id)
                if latest.order_status == target.value:
                    return latest
                logger.warning(
                    "Concurrent status change on order %s (expected %s, found %s)",
                    order.order_number,
                    current.value,
                    latest.order_status,
                )
                raise ConcurrencyConflict(
                    "Order status was changed concurrently",
                    current_status=latest.order_status,
                )

            # The UPDATE bypassed the identity map
            self.db.refresh(order)
            self._emit_transition(order, current, target)
            self.audit_service.log_status_change(
                resource_type="order",
                resource_id=order_id,
                merchant_id=order.merchant_id,  # type: ignore[arg-type]
                old_status=current.value,
                new_status=target.value,
                actor_type="user" if actor_id else "system",
                actor_id=actor_id,
                field="order_status",
            )
            if commit:
                self.db.commit()
        except Exception:
            if commit:
                self.db.rollback()
            raise

        if commit:
            self.db.refresh(order)
        logger.info(
            "Order %s moved %s -> %s", order.order_number, current.value, target.value
        )
        return order

    def _emit_transition(self, order: Order, current: OrderStatus, target: OrderStatus) -> None:
        payload: dict[str, Any] = {"from_status": current.value, "to_status": target.value}
        if target == OrderStatus.CANCELLED:
            payload["cancellation_reason"] = order.cancellation_reason
            payload["refund_required"] = order.payment_status == PaymentStatus.PAID.value
            self.notifications.emit("order.cancelled", order, payload)
        else:
            self.notifications.emit("order.status_changed", order, payload)

    def _get_order(self, order_id: UUID) -> Order:
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")
        return order
