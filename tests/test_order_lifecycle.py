"""Tests for the order status graph, set_status, cancel and status history."""

from unittest.mock import patch
from uuid import uuid4

import pytest

from app.core.errors import BusinessRuleViolation, ConcurrencyConflict, InvalidTransition, NotFound
from app.models.order import OrderStatus, OrderType, PaymentStatus
from app.models.order_event import OrderEvent
from app.repositories.order_repository import OrderRepository
from app.services.order_lifecycle import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    OrderLifecycleService,
    can_transition,
)


@pytest.fixture
def lifecycle(db_session):
    return OrderLifecycleService(db_session)


def walk(lifecycle, order, *statuses):
    for status in statuses:
        order = lifecycle.set_status(order.id, status)
    return order


class TestStatusGraph:
    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_STATUSES:
            assert ALLOWED_TRANSITIONS[status] == set()

    def test_every_status_is_in_the_graph(self):
        assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)

    def test_ready_exit_depends_on_order_type(self):
        ready = OrderStatus.READY
        assert can_transition(ready, OrderStatus.OUT_FOR_DELIVERY, OrderType.DELIVERY)
        assert not can_transition(ready, OrderStatus.COMPLETED, OrderType.DELIVERY)
        assert can_transition(ready, OrderStatus.COMPLETED, OrderType.TAKEAWAY)
        assert not can_transition(ready, OrderStatus.OUT_FOR_DELIVERY, OrderType.DINE_IN)

    def test_skips_are_not_edges(self):
        assert not can_transition(OrderStatus.PENDING, OrderStatus.READY, OrderType.DINE_IN)
        assert not can_transition(OrderStatus.PREPARING, OrderStatus.CANCELLED, OrderType.DINE_IN)


class TestSetStatus:
    def test_dine_in_happy_path_stamps_timestamps(self, lifecycle, make_order, merchant):
        order = make_order(merchant)
        order = walk(lifecycle, order, "confirmed", "preparing", "ready", "completed")

        assert order.order_status == OrderStatus.COMPLETED.value
        assert order.confirmed_at is not None
        assert order.preparing_at is not None
        assert order.ready_at is not None
        assert order.completed_at is not None
        assert order.out_for_delivery_at is None
        assert order.delivered_at is None
        assert order.version == 5

    def test_delivery_happy_path(self, lifecycle, make_order, merchant):
        order = make_order(merchant, order_type="delivery")
        order = walk(
            lifecycle, order, "confirmed", "preparing", "ready", "out_for_delivery", "delivered"
        )
        assert order.order_status == OrderStatus.DELIVERED.value
        assert order.out_for_delivery_at is not None
        assert order.delivered_at is not None

    def test_unknown_status(self, lifecycle, make_order, merchant):
        order = make_order(merchant)
        with pytest.raises(BusinessRuleViolation) as exc_info:
            lifecycle.set_status(order.id, "teleported")
        assert exc_info.value.code == "invalid_status"

    def test_skip_rejected(self, lifecycle, make_order, merchant):
        order = make_order(merchant)
        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle.set_status(order.id, "ready")
        assert exc_info.value.code == "invalid_transition"
        assert exc_info.value.details["current_status"] == "pending"

    def test_delivery_order_cannot_complete_from_ready(self, lifecycle, make_order, merchant):
        order = make_order(merchant, order_type="delivery")
        walk(lifecycle, order, "confirmed", "preparing", "ready")
        with pytest.raises(InvalidTransition):
            lifecycle.set_status(order.id, "completed")

    def test_terminal_status_is_final(self, lifecycle, make_order, merchant):
        order = make_order(merchant)
        walk(lifecycle, order, "confirmed", "preparing", "ready", "completed")
        with pytest.raises(InvalidTransition):
            lifecycle.set_status(order.id, "preparing")

    def test_same_status_is_a_no_op(self, lifecycle, make_order, merchant, db_session):
        order = make_order(merchant)
        order = lifecycle.set_status(order.id, "confirmed")
        again = lifecycle.set_status(order.id, "confirmed")

        assert again.version == 2
        events = db_session.query(OrderEvent).filter(OrderEvent.order_id == order.id).all()
        assert len(events) == 1

    def test_transition_emits_event(self, lifecycle, make_order, merchant, db_session):
        order = make_order(merchant)
        lifecycle.set_status(order.id, "confirmed")

        event = db_session.query(OrderEvent).filter(OrderEvent.order_id == order.id).one()
        assert event.event_type == "order.status_changed"
        assert event.payload["from_status"] == "pending"
        assert event.payload["to_status"] == "confirmed"
        assert event.merchant_id == merchant.id

    def test_missing_order(self, lifecycle):
        with pytest.raises(NotFound):
            lifecycle.set_status(uuid4(), "confirmed")

    def test_lost_race_is_a_conflict(self, lifecycle, make_order, merchant, db_session):
        order = make_order(merchant)
        # Another writer moves the order to cancelled after we read it as pending
        OrderRepository(db_session).compare_and_set_status(
            order.id, "pending", {"order_status": "cancelled"}
        )
        db_session.commit()

        order.order_status = "pending"  # stale in-memory view
        with (
            patch.object(lifecycle.order_repo, "get_by_id", return_value=order),
            pytest.raises(ConcurrencyConflict),
        ):
            lifecycle.set_status(order.id, "confirmed")

    def test_lost_race_to_same_target_succeeds(self, lifecycle, make_order, merchant, db_session):
        order = make_order(merchant)
        OrderRepository(db_session).compare_and_set_status(
            order.id, "pending", {"order_status": "confirmed"}
        )
        db_session.commit()

        order.order_status = "pending"  # stale in-memory view
        with patch.object(lifecycle.order_repo, "get_by_id", return_value=order):
            result = lifecycle.set_status(order.id, "confirmed")
        assert result.order_status == "confirmed"


class TestCancel:
    @pytest.mark.parametrize("path", [[], ["confirmed"]])
    def test_cancel_allowed(self, lifecycle, make_order, merchant, path):
        order = walk(lifecycle, make_order(merchant), *path)
        cancelled = lifecycle.cancel(order.id, "Customer changed their mind")

        assert cancelled.order_status == OrderStatus.CANCELLED.value
        assert cancelled.cancelled_at is not None
        assert cancelled.cancellation_reason == "Customer changed their mind"

    @pytest.mark.parametrize(
        "path",
        [
            ["confirmed", "preparing"],
            ["confirmed", "preparing", "ready"],
            ["confirmed", "preparing", "ready", "completed"],
            ["cancelled"],
        ],
    )
    def test_not_cancellable(self, lifecycle, make_order, merchant, path):
        order = walk(lifecycle, make_order(merchant), *path)
        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle.cancel(order.id, "too late")
        assert exc_info.value.code == "not_cancellable"

    def test_not_cancellable_when_delivered(self, lifecycle, make_order, merchant):
        order = walk(
            lifecycle,
            make_order(merchant, order_type="delivery"),
            "confirmed",
            "preparing",
            "ready",
            "out_for_delivery",
            "delivered",
        )
        with pytest.raises(InvalidTransition) as exc_info:
            lifecycle.cancel(order.id, "too late")
        assert exc_info.value.code == "not_cancellable"

    def test_default_reason(self, lifecycle, make_order, merchant):
        cancelled = lifecycle.cancel(make_order(merchant).id)
        assert cancelled.cancellation_reason == "Cancelled by user"

    def test_cancel_event_flags_refund_for_paid_orders(
        self, lifecycle, make_order, merchant, db_session
    ):
        order = make_order(merchant, payment_status=PaymentStatus.PAID.value)
        lifecycle.cancel(order.id, "Kitchen closed")

        event = (
            db_session.query(OrderEvent)
            .filter(OrderEvent.order_id == order.id, OrderEvent.event_type == "order.cancelled")
            .one()
        )
        assert event.payload["refund_required"] is True
        assert event.payload["cancellation_reason"] == "Kitchen closed"

    def test_cancel_event_without_payment(self, lifecycle, make_order, merchant, db_session):
        order = make_order(merchant)
        lifecycle.cancel(order.id)
        event = db_session.query(OrderEvent).filter(OrderEvent.order_id == order.id).one()
        assert event.payload["refund_required"] is False


class TestHistory:
    def test_history_in_order(self, lifecycle, make_order, merchant):
        order = walk(lifecycle, make_order(merchant), "confirmed", "preparing")
        history = lifecycle.get_history(order.id)

        assert [h.changes["order_status"] for h in history] == [
            {"old": "pending", "new": "confirmed"},
            {"old": "confirmed", "new": "preparing"},
        ]

    def test_history_missing_order(self, lifecycle):
        with pytest.raises(NotFound):
            lifecycle.get_history(uuid4())
