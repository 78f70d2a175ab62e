"""Tests for Order state machine — valid and invalid transitions."""

import json

import pytest
from ordering.context import Role
from ordering.errors import OperationNotPermitted
from ordering.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderReadyForShipping,
    OrderShipped,
    ShoppingStarted,
)
from ordering.order.order import Order
from ordering.order.status import OrderStatus
from protean.exceptions import ValidationError


def _make_order():
    return Order.place(
        order_number="PO-D250101-H1000-C0000-V00V1-0001",
        vendor_id="V1",
        user_email="dana@example.com",
        items_data=[
            {"product_id": "P1", "quantity": 2, "price": 10.0},
            {"product_id": "P2", "quantity": 1, "price": 5.0},
        ],
    )


def _to_shopping(order):
    order.start_processing(Role.PICKER, picker_id="picker-1", picker_name="Yossi")
    return order


def _to_ready(order):
    _to_shopping(order)
    order.mark_ready(Role.VENDOR)
    return order


def _to_delivery(order):
    _to_ready(order)
    order.mark_shipped(Role.VENDOR)
    return order


def _to_delivered(order):
    _to_delivery(order)
    order.mark_delivered(Role.VENDOR)
    return order


class TestHappyPath:
    def test_start_processing_assigns_picker(self):
        order = _to_shopping(_make_order())
        assert order.status == OrderStatus.SHOPPING.value
        assert order.picker_id == "picker-1"
        assert order.picker_name == "Yossi"
        assert isinstance(order._events[-1], ShoppingStarted)

    def test_vendor_can_start_processing(self):
        order = _make_order()
        order.start_processing(Role.VENDOR, picker_id="vendor-1")
        assert order.status == OrderStatus.SHOPPING.value

    def test_follow_up_orders_can_start_processing(self):
        order = _make_order()
        order.status = OrderStatus.FOLLOW_UP.value
        _to_shopping(order)
        assert order.status == OrderStatus.SHOPPING.value

    def test_full_lifecycle(self):
        order = _to_delivered(_make_order())
        assert order.status == OrderStatus.DELIVERED.value
        event_types = [type(e) for e in order._events]
        assert OrderReadyForShipping in event_types
        assert OrderShipped in event_types
        assert OrderDelivered in event_types

    def test_status_changed_at_moves(self):
        order = _make_order()
        placed_at = order.status_changed_at
        _to_shopping(order)
        assert order.status_changed_at >= placed_at

    def test_shipped_event_lists_unfulfilled_items(self):
        order = _to_ready(_make_order())
        first, second = order.ordered_items()
        order.record_item_fulfillment(Role.PICKER, str(first.id), actual_quantity=2)
        order.record_item_fulfillment(Role.PICKER, str(second.id), available=False)
        order.mark_shipped(Role.VENDOR)
        event = order._events[-1]
        assert isinstance(event, OrderShipped)
        assert json.loads(event.unfulfilled_item_ids) == [str(second.id)]


class TestStartProcessingRules:
    def test_requires_picker_identity(self):
        with pytest.raises(ValidationError) as exc:
            _make_order().start_processing(Role.PICKER, picker_id=None)
        assert "picker_id" in exc.value.messages

    def test_admin_cannot_start_processing(self):
        with pytest.raises(OperationNotPermitted):
            _make_order().start_processing(Role.ADMIN, picker_id="admin-1")

    def test_cannot_restart_shopping(self):
        order = _to_shopping(_make_order())
        with pytest.raises(OperationNotPermitted):
            _to_shopping(order)


class TestInvalidTransitions:
    def test_cannot_ship_pending_order(self):
        with pytest.raises(OperationNotPermitted):
            _make_order().mark_shipped(Role.VENDOR)

    def test_cannot_deliver_before_shipping(self):
        order = _to_ready(_make_order())
        with pytest.raises(OperationNotPermitted):
            order.mark_delivered(Role.VENDOR)

    def test_picker_cannot_mark_ready(self):
        order = _to_shopping(_make_order())
        with pytest.raises(OperationNotPermitted):
            order.mark_ready(Role.PICKER)

    def test_failed_transition_leaves_status(self):
        order = _make_order()
        with pytest.raises(OperationNotPermitted):
            order.mark_delivered(Role.VENDOR)
        assert order.status == OrderStatus.PENDING.value


class TestCancellation:
    @pytest.mark.parametrize("advance", [lambda o: o, _to_shopping, _to_ready, _to_delivery])
    def test_cancel_from_active_statuses(self, advance):
        order = advance(_make_order())
        previous = order.status
        order.cancel(Role.VENDOR, cancelled_by="vendor-1", reason="Customer request")
        assert order.status == OrderStatus.CANCELLED.value
        event = order._events[-1]
        assert isinstance(event, OrderCancelled)
        assert event.previous_status == previous
        assert event.reason == "Customer request"

    def test_picker_cannot_cancel(self):
        with pytest.raises(OperationNotPermitted):
            _make_order().cancel(Role.PICKER)


class TestTerminalStatuses:
    @pytest.mark.parametrize("role", [Role.VENDOR, Role.ADMIN, Role.PICKER])
    def test_delivered_is_never_exited(self, role):
        order = _to_delivered(_make_order())
        for attempt in (
            lambda: order.cancel(role),
            lambda: order.start_processing(role, picker_id="x"),
            lambda: order.mark_ready(role),
            lambda: order.mark_shipped(role),
            lambda: order.mark_delivered(role),
        ):
            with pytest.raises(OperationNotPermitted):
                attempt()
        assert order.status == OrderStatus.DELIVERED.value

    @pytest.mark.parametrize("role", [Role.VENDOR, Role.ADMIN, Role.PICKER])
    def test_cancelled_is_never_exited(self, role):
        order = _make_order()
        order.cancel(Role.ADMIN)
        for attempt in (
            lambda: order.cancel(role),
            lambda: order.start_processing(role, picker_id="x"),
            lambda: order.mark_ready(role),
        ):
            with pytest.raises(OperationNotPermitted):
                attempt()
        assert order.status == OrderStatus.CANCELLED.value
