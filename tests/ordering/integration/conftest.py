import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.routes import (
    activity_router,
    cart_router,
    checkout_router,
    coupon_router,
    order_router,
    register_error_handlers,
    shipping_router,
)
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (cart_router, checkout_router, order_router, shipping_router, coupon_router, activity_router):
        app.include_router(router)
    register_exception_handlers(app)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def admin_headers():
    return {"X-Actor-Id": "admin-001"}
