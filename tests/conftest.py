from decimal import Decimal

import pytest

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.core.principal import Principal
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderQueryService, OrderWorkflow
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users / principals
# ---------------------------------------------------------------------------


@pytest.fixture()
def user():
    return User.objects.create_user(username="shopper", password="Shopper#123")


@pytest.fixture()
def other_user():
    return User.objects.create_user(username="someone-else", password="Other#1234")


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="staff", password="Staff#1234", is_staff=True
    )


@pytest.fixture()
def principal(user):
    return Principal.from_user(user)


@pytest.fixture()
def admin_principal(admin_user):
    return Principal.from_user(admin_user)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    def _make(name="Widget", price="10.00", stock=10, is_active=True):
        return Product.objects.create(
            name=name,
            price=Decimal(price),
            stock=stock,
            is_active=is_active,
        )

    return _make


@pytest.fixture()
def product_a(make_product):
    return make_product(name="Product A", price="10.00", stock=5)


@pytest.fixture()
def product_b(make_product):
    return make_product(name="Product B", price="25.50", stock=3)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@pytest.fixture()
def workflow():
    return OrderWorkflow(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


@pytest.fixture()
def queries():
    return OrderQueryService(order_repository=OrderDjangoRepository())


@pytest.fixture()
def order_dto():
    """Build a ``CreateOrderDTO`` from ``(product, quantity)`` pairs."""

    def _build(*lines):
        return CreateOrderDTO(
            items=[
                CreateOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ]
        )

    return _build
