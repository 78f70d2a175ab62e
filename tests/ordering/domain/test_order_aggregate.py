"""Tests for the Order aggregate — placement, totals and item editing."""

import pytest
from ordering.context import Role
from ordering.errors import OperationNotPermitted
from ordering.order.events import DeliveryTimeUpdated, OrderItemFulfilled, OrderPlaced
from ordering.order.order import ADDRESS_PENDING, Order, build_delivery_details
from ordering.order.status import OrderStatus
from protean.exceptions import ValidationError


def _items():
    return [
        {"product_id": "P1", "product_name": "Milk", "quantity": 2, "price": 10.0},
        {"product_id": "P2", "product_name": "Bread", "quantity": 1, "price": 5.0},
        {"product_id": "P3", "product_name": "Eggs", "quantity": 3, "price": 2.0},
    ]


def _place(**overrides):
    kwargs = {
        "order_number": "PO-D250101-H1000-C0000-V00V1-0001",
        "vendor_id": "V1",
        "user_email": "dana@example.com",
        "items_data": _items(),
        "delivery_fee": 15.0,
    }
    kwargs.update(overrides)
    return Order.place(**kwargs)


def _assert_totals_consistent(order):
    expected = round(sum(i.price * i.effective_quantity for i in order.items), 2)
    assert order.totals.items_total == expected
    assert order.totals.total_amount == round(expected + order.totals.delivery_fee, 2)


def _shopping(order):
    order.start_processing(Role.PICKER, picker_id="picker-1", picker_name="Yossi")
    return order


class TestPlaceOrder:
    def test_starts_pending_and_paid(self):
        order = _place()
        assert order.status == OrderStatus.PENDING.value
        assert order.is_paid is True
        assert order.payment_status == "client"

    def test_totals(self):
        order = _place()
        assert order.totals.items_total == 31.0
        assert order.totals.delivery_fee == 15.0
        assert order.totals.total_amount == 46.0

    def test_items_keep_checkout_order(self):
        order = _place()
        assert [i.product_id for i in order.ordered_items()] == ["P1", "P2", "P3"]

    def test_items_start_unshopped(self):
        order = _place()
        for item in order.items:
            assert item.shopped is False
            assert item.available is True
            assert item.actual_quantity is None

    def test_household_snapshot_is_copied(self):
        order = _place(
            household_id="HH-1",
            household={"code": "H1", "name": "Levi Family", "lead_name": "Miriam", "lead_phone": "050"},
        )
        assert order.household_name == "Levi Family"
        assert order.household_lead_phone == "050"

    def test_requires_items(self):
        with pytest.raises(ValidationError):
            _place(items_data=[])

    def test_raises_order_placed(self):
        order = _place(payment_session_id="cs_123")
        event = order._events[-1]
        assert isinstance(event, OrderPlaced)
        assert event.payment_session_id == "cs_123"
        assert event.total_amount == 46.0
        assert event.item_count == 3


class TestDeliveryDetails:
    def test_address_is_composed(self):
        details = build_delivery_details(
            {"neighborhood": "Katamon", "street": "Rachel Imenu", "building_number": "12", "household_number": "4"}
        )
        assert details.address == "Katamon, Rachel Imenu, 12, 4"

    def test_empty_parts_are_skipped(self):
        details = build_delivery_details({"street": "Herzl", "building_number": ""})
        assert details.address == "Herzl"

    def test_no_address_parts(self):
        assert build_delivery_details({"phone": "050"}).address == ADDRESS_PENDING
        assert build_delivery_details(None).address == ADDRESS_PENDING

    def test_explicit_address_wins(self):
        details = build_delivery_details({"address": "Pickup at store", "street": "Herzl"})
        assert details.address == "Pickup at store"

    def test_unknown_keys_are_ignored(self):
        details = build_delivery_details({"street": "Herzl", "color": "blue"})
        assert details.street == "Herzl"

    def test_long_free_text_is_accepted(self):
        details = build_delivery_details({"time": "t" * 150, "street": "s" * 400, "entrance_code": "1234#" * 20})
        assert details.time == "t" * 150
        assert details.entrance_code == "1234#" * 20


class TestRecordItemFulfillment:
    def test_actual_quantity_drives_totals(self):
        order = _shopping(_place())
        item = order.ordered_items()[0]
        order.record_item_fulfillment(Role.PICKER, str(item.id), actual_quantity=1)
        assert item.actual_quantity == 1.0
        assert item.shopped is True
        assert item.modified is True
        assert order.totals.items_total == 21.0
        assert order.totals.total_amount == 36.0
        _assert_totals_consistent(order)

    def test_full_quantity_is_not_a_modification(self):
        order = _shopping(_place())
        item = order.ordered_items()[0]
        order.record_item_fulfillment(Role.PICKER, str(item.id))
        assert item.actual_quantity == 2.0
        assert item.modified is False

    def test_unavailable_item_counts_as_zero(self):
        order = _shopping(_place())
        item = order.ordered_items()[1]
        order.record_item_fulfillment(Role.PICKER, str(item.id), actual_quantity=1, available=False)
        assert item.actual_quantity == 0.0
        assert item.available is False
        assert order.totals.items_total == 26.0
        _assert_totals_consistent(order)

    def test_substitute_marks_item_modified(self):
        order = _shopping(_place())
        item = order.ordered_items()[2]
        order.record_item_fulfillment(
            Role.PICKER,
            str(item.id),
            actual_quantity=3,
            substitute_product_id="P9",
            substitute_product_name="Free-range eggs",
        )
        assert item.modified is True
        assert item.substitute_product_name == "Free-range eggs"

    def test_every_mutation_keeps_totals_consistent(self):
        order = _shopping(_place())
        for quantity, item in zip([0, 0.5, 7], order.ordered_items(), strict=True):
            order.record_item_fulfillment(Role.PICKER, str(item.id), actual_quantity=quantity)
            _assert_totals_consistent(order)

    def test_unknown_item(self):
        order = _shopping(_place())
        with pytest.raises(ValidationError) as exc:
            order.record_item_fulfillment(Role.PICKER, "nope", actual_quantity=1)
        assert "item_id" in exc.value.messages

    def test_negative_quantity(self):
        order = _shopping(_place())
        item = order.ordered_items()[0]
        with pytest.raises(ValidationError):
            order.record_item_fulfillment(Role.PICKER, str(item.id), actual_quantity=-1)

    def test_not_editable_while_pending(self):
        order = _place()
        item = order.ordered_items()[0]
        with pytest.raises(OperationNotPermitted):
            order.record_item_fulfillment(Role.PICKER, str(item.id), actual_quantity=1)

    def test_customer_cannot_edit(self):
        order = _shopping(_place())
        item = order.ordered_items()[0]
        with pytest.raises(OperationNotPermitted):
            order.record_item_fulfillment(Role.CUSTOMER, str(item.id), actual_quantity=1)

    def test_raises_item_fulfilled(self):
        order = _shopping(_place())
        item = order.ordered_items()[0]
        order.record_item_fulfillment(Role.PICKER, str(item.id), actual_quantity=1)
        event = order._events[-1]
        assert isinstance(event, OrderItemFulfilled)
        assert event.actual_quantity == 1.0
        assert event.total_amount == 36.0


class TestUpdateDeliveryTime:
    def test_only_the_time_changes(self):
        order = _place(delivery={"time": "Sunday 10:00-12:00", "phone": "0521234567", "street": "Herzl"})
        order.update_delivery_time(Role.VENDOR, "Monday 16:00-18:00")

        assert order.delivery.time == "Monday 16:00-18:00"
        assert order.delivery.phone == "0521234567"
        assert order.delivery.address == "Herzl"

    def test_order_without_delivery_details(self):
        order = _place()
        order.delivery = None
        order.update_delivery_time(Role.ADMIN, "Tuesday")
        assert order.delivery.time == "Tuesday"
        assert order.delivery.address == ADDRESS_PENDING

    def test_totals_and_status_are_untouched(self):
        order = _place()
        order.update_delivery_time(Role.VENDOR, "Tuesday")
        assert order.status == OrderStatus.PENDING.value
        assert order.totals.total_amount == 46.0

    def test_blank_time_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            _place().update_delivery_time(Role.VENDOR, "   ")
        assert "delivery_time" in exc.value.messages

    def test_picker_cannot_reschedule(self):
        with pytest.raises(OperationNotPermitted):
            _place().update_delivery_time(Role.PICKER, "Tuesday")

    def test_cancelled_order_cannot_be_rescheduled(self):
        order = _place()
        order.cancel(Role.VENDOR)
        with pytest.raises(OperationNotPermitted):
            order.update_delivery_time(Role.VENDOR, "Tuesday")

    def test_raises_delivery_time_updated(self):
        order = _place(delivery={"time": "Sunday"})
        order.update_delivery_time(Role.VENDOR, "Monday", updated_by="vendor-1")
        event = order._events[-1]
        assert isinstance(event, DeliveryTimeUpdated)
        assert event.previous_time == "Sunday"
        assert event.delivery_time == "Monday"
        assert event.updated_by == "vendor-1"
