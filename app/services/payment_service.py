"""Applies payment status changes reported by the payment processor.

The processor owns the money movement; this service only records the
resulting payment status on the order and applies the order-status side
effect that goes with it.
"""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import BusinessRuleViolation, ConcurrencyConflict, NotFound
from app.core.money import round_money, to_decimal
from app.models.order import Order, OrderStatus, PaymentStatus
from app.models.shared import utc_now
from app.repositories.order_repository import OrderRepository
from app.services.audit_service import AuditService
from app.services.notification_service import NotificationService
from app.services.order_lifecycle import OrderLifecycleService

logger = logging.getLogger(__name__)

# Payment statuses each reported status may be applied from
PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PAID: {PaymentStatus.PENDING, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING},
    PaymentStatus.REFUNDED: {PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.PAID, PaymentStatus.PARTIALLY_REFUNDED},
}


class PaymentService:
    def __init__(self, db: Session):
        self.db = db
        self.order_repo = OrderRepository(db)
        self.audit_service = AuditService(db)
        self.notifications = NotificationService(db)
        self.lifecycle = OrderLifecycleService(db)

    def apply_payment_event(
        self,
        order_id: UUID,
        status: str,
        amount: Decimal | None = None,
        payment_reference: str | None = None,
        reason: str | None = None,
    ) -> Order:
        """Record a ``paid``, ``failed`` or ``refunded`` report for an order.

        ``paid`` confirms a pending order; on an order that was already cancelled
        it is recorded and the event is flagged ``refund_required``. Refunds
        accumulate in ``refunded_amount``: while the sum stays below the order
        total the payment is ``partially_refunded``. Any refund cancels the order
        if it is not already terminal. Repeating a ``paid``, ``failed`` or full
        ``refunded`` report the order already reflects is a no-op.

        Raises:
            NotFound: the order does not exist.
            BusinessRuleViolation: ``invalid_payment_transition`` for reports that
                do not follow from the current payment status.
            ConcurrencyConflict: the order changed while the report was applied.
        """
        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFound(f"Order {order_id} not found")

        target, refunded_total = self._resolve_target(order, status, amount)
        current = PaymentStatus(order.payment_status)
        if current == target and target != PaymentStatus.PARTIALLY_REFUNDED:
            return order

        if current not in PAYMENT_TRANSITIONS[target]:
            logger.warning(
                "Rejected payment report %s for order %s (payment is %s)",
                target.value,
                order.order_number,
                current.value,
            )
            raise BusinessRuleViolation(
                f"Cannot mark a {current.value} payment as {target.value}",
                code="invalid_payment_transition",
                payment_status=current.value,
                requested_status=target.value,
            )

        order_status = OrderStatus(order.order_status)
        now = utc_now()
        values: dict[str, Any] = {"payment_status": target.value}
        if payment_reference:
            values["payment_reference"] = payment_reference
        if refunded_total is not None:
            values["refunded_amount"] = refunded_total
        refund_required = target == PaymentStatus.PAID and order_status == OrderStatus.CANCELLED
        if target == PaymentStatus.PAID:
            values["paid_at"] = now
            if order_status == OrderStatus.PENDING:
                values["order_status"] = OrderStatus.CONFIRMED.value
                values["confirmed_at"] = now

        try:
            swapped = self.order_repo.compare_and_set_payment(
                order.id,  # type: ignore[arg-type]
                current.value,
                order_status.value,
                values,
            )
            if not swapped:
                raise ConcurrencyConflict(
                    "Order was changed while applying the payment report",
                    payment_status=current.value,
                )
            self.db.refresh(order)

            self.notifications.emit(
                "order.payment_updated",
                order,
                {
                    "from_payment_status": current.value,
                    "to_payment_status": target.value,
                    "amount": str(round_money(amount)) if amount is not None else None,
                    "reason": reason,
                    "refunded_amount": str(refunded_total) if refunded_total is not None else None,
                    "refund_required": refund_required,
                },
            )
            self.audit_service.log_status_change(
                resource_type="order",
                resource_id=order.id,  # type: ignore[arg-type]
                merchant_id=order.merchant_id,  # type: ignore[arg-type]
                old_status=current.value,
                new_status=target.value,
                actor_type="payment_processor",
                field="payment_status",
            )

            if "order_status" in values:
                self.notifications.emit(
                    "order.status_changed",
                    order,
                    {"from_status": order_status.value, "to_status": values["order_status"]},
                )
                self.audit_service.log_status_change(
                    resource_type="order",
                    resource_id=order.id,  # type: ignore[arg-type]
                    merchant_id=order.merchant_id,  # type: ignore[arg-type]
                    old_status=order_status.value,
                    new_status=values["order_status"],
                    actor_type="payment_processor",
                    field="order_status",
                )

            if target in (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED):
                self.lifecycle.force_cancel(
                    order, f"Refund: {reason or 'payment refunded'}", actor_id=None
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if refund_required:
            logger.warning(
                "Order %s was paid after cancellation; refund required", order.order_number
            )
        self.db.refresh(order)
        logger.info(
            "Payment for order %s moved %s -> %s", order.order_number, current.value, target.value
        )
        return order

    def _resolve_target(
        self, order: Order, status: str, amount: Decimal | None
    ) -> tuple[PaymentStatus, Decimal | None]:
        """Map a report to the payment status it leads to.

        For refunds also returns the refunded total after this report. Refunds
        accumulate: partial refunds that add up to the order total make the
        payment ``refunded``.
        """
        try:
            reported = PaymentStatus(status)
        except ValueError as e:
            raise BusinessRuleViolation(
                f"Unknown payment status '{status}'", code="invalid_payment_status"
            ) from e
        if reported not in PAYMENT_TRANSITIONS or reported == PaymentStatus.PARTIALLY_REFUNDED:
            raise BusinessRuleViolation(
                "Payment reports are 'paid', 'failed' or 'refunded'",
                code="invalid_payment_status",
            )

        if reported != PaymentStatus.REFUNDED:
            return reported, None
        if order.payment_status == PaymentStatus.REFUNDED.value:
            # Already fully refunded; repeated report
            return reported, to_decimal(order.refunded_amount)

        total = to_decimal(order.total)
        already = to_decimal(order.refunded_amount)
        refund = round_money(amount) if amount is not None else total - already
        refunded_total = already + refund
        if refunded_total > total:
            raise BusinessRuleViolation(
                "Refund amount exceeds the order total",
                code="refund_exceeds_total",
                total=str(total),
                refunded_amount=str(already),
            )
        if refunded_total < total:
            return PaymentStatus.PARTIALLY_REFUNDED, refunded_total
        return PaymentStatus.REFUNDED, refunded_total
