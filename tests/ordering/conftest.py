import hashlib
import hmac
import json
import time

import pytest
from protean.integrations.pytest import DomainFixture

WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        for _, broker in current_domain.brokers.items():
            broker._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _adapters(monkeypatch):
    """Fresh adapters and a known webhook secret for every test."""
    from ordering.gateway import reset_gateway
    from ordering.lookups import reset_lookups
    from ordering.notifier import reset_notifier

    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    reset_gateway()
    reset_lookups()
    reset_notifier()
    yield
    reset_gateway()
    reset_lookups()
    reset_notifier()


@pytest.fixture()
def notifier():
    from ordering.notifier import set_notifier
    from ordering.notifier.fake_adapter import FakeNotifier

    fake = FakeNotifier()
    set_notifier(fake)
    return fake


def _sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header for ``payload``."""
    timestamp = timestamp or int(time.time())
    digest = hmac.new(secret.encode("utf-8"), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def _checkout_event(session_id: str, metadata: dict, event_type: str = "checkout.session.completed") -> str:
    """Serialize a checkout session event the way the gateway sends it."""
    return json.dumps(
        {
            "id": f"evt_{session_id}",
            "type": event_type,
            "data": {"object": {"id": session_id, "object": "checkout.session", "metadata": metadata}},
        }
    )


def _checkout_metadata(**overrides) -> dict:
    metadata = {
        "user_email": "dana@example.com",
        "vendor_id": "V1",
        "household_id": "",
        "items": json.dumps([{"product_id": "P1", "quantity": 2}]),
        "delivery_details": json.dumps(
            {
                "time": "Sunday 10:00-12:00",
                "phone": "0521234567",
                "neighborhood": "Katamon",
                "street": "Rachel Imenu",
                "building_number": "12",
            }
        ),
        "delivery_fee": "15",
        "payment_method": "clientCC",
    }
    metadata.update(overrides)
    return metadata


@pytest.fixture()
def products():
    """Catalogue with P1 (10.0) and P2 (4.5, household price 4.0)."""
    from ordering.catalogue.product import Product
    from protean import current_domain

    repo = current_domain.repository_for(Product)
    p1 = Product(id="P1", name="Milk 1L", sku="MLK-1", unit="bottle", subcategory="Dairy", price=10.0)
    p2 = Product(
        id="P2",
        name="Bread",
        sku="BRD-1",
        unit="loaf",
        subcategory="Bakery",
        price=4.5,
        household_price=4.0,
    )
    repo.add(p1)
    repo.add(p2)
    return {"P1": p1, "P2": p2}


@pytest.fixture()
def household():
    from ordering.household.household import Household
    from protean import current_domain

    hh = Household(
        id="HH-7788",
        code="H77",
        name="Levi Family",
        lead_name="Miriam Levi",
        lead_phone="0547654321",
    )
    current_domain.repository_for(Household).add(hh)
    return hh


@pytest.fixture()
def sign():
    """Signature header builder: ``sign(payload, secret=..., timestamp=...)``."""
    return _sign_payload


@pytest.fixture()
def metadata():
    """Checkout metadata builder with sensible defaults."""
    return _checkout_metadata


@pytest.fixture()
def signed_checkout():
    """Build a signed checkout event: returns ``(payload, signature)``."""

    def build(session_id: str, event_type: str = "checkout.session.completed", secret: str = WEBHOOK_SECRET, **overrides):
        payload = _checkout_event(session_id, _checkout_metadata(**overrides), event_type)
        return payload, _sign_payload(payload, secret)

    return build


@pytest.fixture()
def actors():
    from ordering.context import RequestContext, Role

    return {
        "vendor": RequestContext(user_id="vendor-1", role=Role.VENDOR, user_name="Shop Owner"),
        "picker": RequestContext(user_id="picker-1", role=Role.PICKER, user_name="Yossi"),
        "admin": RequestContext(user_id="admin-1", role=Role.ADMIN, user_name="Admin"),
        "customer": RequestContext(user_id="cust-1", role=Role.CUSTOMER, user_name="Dana"),
    }


@pytest.fixture()
def stored_order():
    """Persist a paid PENDING order: ``stored_order(items=..., delivery_fee=...)``."""
    from ordering.order.numbering import generate_order_number
    from ordering.order.order import Order
    from protean import current_domain

    def build(items=None, delivery_fee=0.0, household_id=None, household=None, session_id=None):
        order = Order.place(
            order_number=generate_order_number("V1", household_id),
            vendor_id="V1",
            user_email="dana@example.com",
            items_data=items or [{"product_id": "P1", "product_name": "Milk 1L", "quantity": 2, "price": 10.0}],
            delivery_fee=delivery_fee,
            household_id=household_id,
            household=household,
            payment_session_id=session_id,
            delivery={"time": "Sunday 10:00-12:00", "phone": "0521234567", "street": "Herzl", "building_number": "3"},
        )
        current_domain.repository_for(Order).add(order)
        return order

    return build
