import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.errors import register_error_handlers
from ordering.api.routes import order_router


@pytest.fixture()
def client():
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(order_router)
    return TestClient(app)


def _headers(user_id, role, name=None):
    headers = {"X-User-Id": user_id, "X-User-Role": role}
    if name:
        headers["X-User-Name"] = name
    return headers


@pytest.fixture()
def as_vendor():
    return _headers("vendor-1", "vendor", "Shop Owner")


@pytest.fixture()
def as_picker():
    return _headers("picker-1", "picker", "Yossi")


@pytest.fixture()
def as_admin():
    return _headers("admin-1", "admin")


@pytest.fixture()
def as_customer():
    return _headers("cust-1", "customer")
