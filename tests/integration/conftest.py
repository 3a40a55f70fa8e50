import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from storefront.api import (
    admin_router,
    cart_router,
    checkout_router,
    order_router,
    payment_router,
    register_storefront_exception_handlers,
)


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(checkout_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(admin_router)
    register_storefront_exception_handlers(app)
    return TestClient(app)
