"""Shared BDD fixtures and step definitions for the ordering pipeline."""

import json

import pytest
from ordering.catalogue.product import Product
from ordering.checkout.ingestion import ingest_payment_event
from ordering.errors import OperationNotPermitted
from ordering.order import lifecycle
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then, when


def _repo():
    return current_domain.repository_for(Order)


def _item_id(order_id, product_id):
    order = _repo().get(order_id)
    return next(str(i.id) for i in order.items if i.product_id == product_id)


@pytest.fixture()
def outcome():
    """Container for the result or error of the last action."""
    return {"result": None, "error": None}


@pytest.fixture()
def deliveries():
    """Signed webhook payloads delivered so far, by session id."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the catalogue has product "{product_id}" priced {price:g}'))
def _(product_id, price):
    current_domain.repository_for(Product).add(Product(id=product_id, name=f"Product {product_id}", price=price))


@given("a pending order for milk, bread and eggs", target_fixture="order_id")
def _(stored_order):
    order = stored_order(
        items=[
            {"product_id": "P1", "product_name": "Milk", "quantity": 2, "price": 10.0},
            {"product_id": "P2", "product_name": "Bread", "quantity": 1, "price": 5.0},
            {"product_id": "P3", "product_name": "Eggs", "quantity": 3, "price": 2.0},
        ],
        delivery_fee=15.0,
    )
    return str(order.id)


@given("a delivered order", target_fixture="order_id")
def _(stored_order, actors, notifier):
    order_id = str(stored_order().id)
    lifecycle.start_processing(actors["picker"], order_id)
    lifecycle.mark_ready(actors["vendor"], order_id)
    lifecycle.mark_shipped(actors["vendor"], order_id)
    lifecycle.mark_delivered(actors["vendor"], order_id)
    return order_id


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(
    parsers.cfparse(
        'checkout session "{session_id}" completes for {quantity:d} of "{product_id}" with delivery fee "{fee}"'
    ),
    target_fixture="ingestion",
)
def _(signed_checkout, deliveries, notifier, session_id, quantity, product_id, fee):
    deliveries[session_id] = signed_checkout(
        session_id,
        items=json.dumps([{"product_id": product_id, "quantity": quantity}]),
        delivery_fee=fee,
    )
    return ingest_payment_event(*deliveries[session_id])


@when(parsers.cfparse('checkout session "{session_id}" is delivered again'), target_fixture="ingestion")
def _(deliveries, session_id):
    return ingest_payment_event(*deliveries[session_id])


@when("the picker starts processing the order")
def _(order_id, actors, notifier):
    lifecycle.start_processing(actors["picker"], order_id)


@when(parsers.cfparse('the picker records {quantity:g} of "{product_id}" shopped'))
def _(order_id, actors, quantity, product_id):
    lifecycle.record_item_fulfillment(
        actors["picker"], order_id, _item_id(order_id, product_id), actual_quantity=quantity
    )


@when(parsers.cfparse('the picker records "{product_id}" as unavailable'))
def _(order_id, actors, product_id):
    lifecycle.record_item_fulfillment(actors["picker"], order_id, _item_id(order_id, product_id), available=False)


@when("the vendor marks the order ready")
def _(order_id, actors):
    lifecycle.mark_ready(actors["vendor"], order_id)


@when("the vendor ships the order")
def _(order_id, actors, outcome, notifier):
    outcome["result"] = lifecycle.mark_shipped(actors["vendor"], order_id)


@when(parsers.cfparse("the {role} tries to cancel the order"))
def _(order_id, actors, outcome, role):
    try:
        outcome["result"] = lifecycle.cancel_order(actors[role], order_id)
    except OperationNotPermitted as exc:
        outcome["error"] = exc


@when(parsers.cfparse("the {role} tries to start processing the order"))
def _(order_id, actors, outcome, role):
    try:
        outcome["result"] = lifecycle.start_processing(actors[role], order_id)
    except OperationNotPermitted as exc:
        outcome["error"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("a paid pending order is created with total {total:g}"))
def _(ingestion, total):
    order = _repo().get(ingestion.order_id)
    assert order.status == "pending"
    assert order.is_paid is True
    assert order.totals.total_amount == total


@then(parsers.cfparse('the ingestion result is "{status}"'))
def _(ingestion, status):
    assert ingestion.status.value == status


@then(parsers.cfparse('exactly {count:d} order exists for session "{session_id}"'))
def _(count, session_id):
    orders = _repo()._dao.query.filter(payment_session_id=session_id).all().items
    assert len(orders) == count


@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert _repo().get(order_id).status == status


@then(parsers.cfparse('the order total is {total:g}'))
def _(order_id, total):
    assert _repo().get(order_id).totals.total_amount == total


@then(parsers.cfparse('a follow-up order holds products "{product_ids}"'))
def _(order_id, outcome, product_ids):
    follow = _repo().get(outcome["result"].follow_up_order_id)
    assert follow.status == "follow_up"
    assert follow.origin_order_id == order_id
    assert [i.product_id for i in follow.ordered_items()] == [p.strip() for p in product_ids.split(",")]
    assert all(i.actual_quantity is None for i in follow.items)


@then(parsers.cfparse("the follow-up order total is {total:g}"))
def _(outcome, total):
    assert _repo().get(outcome["result"].follow_up_order_id).totals.total_amount == total


@then("no follow-up order is created")
def _(outcome):
    assert outcome["result"].follow_up_order_id is None


@then("the action is rejected")
def _(outcome):
    assert isinstance(outcome["error"], OperationNotPermitted)
