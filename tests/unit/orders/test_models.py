"""Unit tests for Order / OrderItem model behaviour."""

from __future__ import annotations

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem

pytestmark = pytest.mark.unit


@pytest.fixture()
def order(user):
    return Order.objects.create(user=user)


class TestOrder:
    def test_defaults(self, order):
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("0.00")

    @pytest.mark.parametrize(
        "status, terminal, cancellable",
        [
            (OrderStatus.PENDING, False, True),
            (OrderStatus.PROCESSING, False, False),
            (OrderStatus.SHIPPED, False, False),
            (OrderStatus.DELIVERED, True, False),
            (OrderStatus.CANCELLED, True, False),
        ],
    )
    def test_state_helpers(self, order, status, terminal, cancellable):
        order.status = status
        assert order.is_terminal is terminal
        assert order.is_cancellable is cancellable

    def test_can_transition_to(self, order):
        assert order.can_transition_to(OrderStatus.SHIPPED) is True
        order.status = OrderStatus.DELIVERED
        assert order.can_transition_to(OrderStatus.SHIPPED) is False

    def test_negative_total_violates_constraint(self, order):
        with pytest.raises(IntegrityError), transaction.atomic():
            Order.objects.filter(id=order.id).update(total_amount=Decimal("-1.00"))


class TestOrderItem:
    def test_subtotal_is_computed(self, order, product_a):
        item = OrderItem.objects.create(
            order=order, product=product_a, quantity=3, unit_price=Decimal("2.50")
        )
        assert item.subtotal == Decimal("7.50")

    def test_unit_price_defaults_to_product_price(self, order, product_b):
        item = OrderItem.objects.create(order=order, product=product_b, quantity=2)
        assert item.unit_price == Decimal("25.50")
        assert item.subtotal == Decimal("51.00")

    def test_zero_quantity_violates_constraint(self, order, product_a):
        with pytest.raises(IntegrityError), transaction.atomic():
            OrderItem.objects.create(
                order=order, product=product_a, quantity=0, unit_price=Decimal("1.00")
            )
