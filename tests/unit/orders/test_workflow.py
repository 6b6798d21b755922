"""Unit tests for OrderWorkflow.

Covers:
- Order creation: snapshotted prices, derived total, stock decrement,
  initial history record.
- Atomicity: any failure leaves zero order/item rows and untouched stock.
- Repeated product lines are checked on their combined quantity.
- Cancellation: owner-only, pending-only, restores stock exactly once.
- Status updates: admin-only, validated by the state machine, audited.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from django.db import DatabaseError

from modules.core.principal import PermissionDenied, Principal
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidState,
    InvalidTransition,
    OrderNotFound,
    ProductNotFound,
    StorageFailure,
)
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


def _set_status(order, status):
    Order.objects.filter(id=order.id).update(status=status)


# ---------------------------------------------------------------------------
# create_order
# ---------------------------------------------------------------------------


class TestCreateOrder:
    def test_creates_pending_order_with_items(
        self, workflow, principal, product_a, product_b, order_dto
    ):
        order = workflow.create_order(
            principal, order_dto((product_a, 2), (product_b, 1))
        )

        assert order.status == OrderStatus.PENDING
        assert order.user_id == principal.user_id
        assert order.items.count() == 2
        assert order.total_amount == Decimal("45.50")

    def test_total_is_sum_of_snapshotted_subtotals(
        self, workflow, principal, product_a, product_b, order_dto
    ):
        order = workflow.create_order(
            principal, order_dto((product_a, 3), (product_b, 2))
        )
        items = list(order.items.all())
        assert order.total_amount == sum(i.unit_price * i.quantity for i in items)

    def test_later_price_change_does_not_alter_order(
        self, workflow, principal, product_a, order_dto
    ):
        order = workflow.create_order(principal, order_dto((product_a, 2)))

        product_a.price = Decimal("99.99")
        product_a.save()

        order.refresh_from_db()
        item = order.items.get()
        assert item.unit_price == Decimal("10.00")
        assert item.subtotal == Decimal("20.00")
        assert order.total_amount == Decimal("20.00")

    def test_decrements_stock(
        self, workflow, principal, product_a, product_b, order_dto
    ):
        workflow.create_order(principal, order_dto((product_a, 3), (product_b, 3)))
        product_a.refresh_from_db()
        product_b.refresh_from_db()
        assert product_a.stock == 2
        assert product_b.stock == 0

    def test_records_initial_history(self, workflow, principal, product_a, order_dto):
        order = workflow.create_order(principal, order_dto((product_a, 1)))

        (history,) = order.status_history.all()
        assert history.old_status is None
        assert history.new_status == OrderStatus.PENDING
        assert history.changed_by_id == principal.user_id

    def test_items_are_returned_with_products(
        self, workflow, principal, product_a, order_dto
    ):
        order = workflow.create_order(principal, order_dto((product_a, 1)))
        (item,) = order.items.all()
        assert item.product.name == "Product A"

    def test_over_request_writes_nothing_and_lists_every_shortfall(
        self, workflow, principal, product_a, product_b, make_product, order_dto
    ):
        plenty = make_product(name="Plenty", stock=100)

        with pytest.raises(InsufficientStock) as exc_info:
            workflow.create_order(
                principal,
                order_dto((product_a, 6), (plenty, 1), (product_b, 4)),
            )

        assert {s.product_id for s in exc_info.value.shortfalls} == {
            product_a.id,
            product_b.id,
        }
        assert Order.objects.count() == 0
        assert OrderItem.objects.count() == 0
        for product, stock in ((product_a, 5), (product_b, 3), (plenty, 100)):
            product.refresh_from_db()
            assert product.stock == stock

    def test_unknown_product(self, workflow, principal):
        dto = CreateOrderDTO(items=[CreateOrderItemDTO(product_id=uuid4(), quantity=1)])
        with pytest.raises(ProductNotFound):
            workflow.create_order(principal, dto)
        assert Order.objects.count() == 0

    def test_inactive_product_cannot_be_ordered(
        self, workflow, principal, make_product, order_dto
    ):
        retired = make_product(name="Retired", is_active=False)
        with pytest.raises(ProductNotFound):
            workflow.create_order(principal, order_dto((retired, 1)))

    def test_storage_failure_rolls_back_every_write(
        self, workflow, principal, product_a, product_b, order_dto
    ):
        real_add_item = OrderDjangoRepository.add_item
        calls = []

        def flaky_add_item(self, *args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise DatabaseError("connection lost")
            return real_add_item(self, *args, **kwargs)

        with patch.object(OrderDjangoRepository, "add_item", flaky_add_item):
            with pytest.raises(StorageFailure):
                workflow.create_order(
                    principal, order_dto((product_a, 2), (product_b, 1))
                )

        assert len(calls) == 2
        assert Order.objects.count() == 0
        assert OrderItem.objects.count() == 0
        assert OrderStatusHistory.objects.count() == 0
        product_a.refresh_from_db()
        product_b.refresh_from_db()
        assert product_a.stock == 5
        assert product_b.stock == 3

    def test_storage_failure_keeps_cause(
        self, workflow, principal, product_a, order_dto
    ):
        with patch.object(
            OrderDjangoRepository, "create", side_effect=DatabaseError("boom")
        ):
            with pytest.raises(StorageFailure) as exc_info:
                workflow.create_order(principal, order_dto((product_a, 1)))
        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert exc_info.value.code == "storage_failure"

    def test_repeated_product_lines_share_one_stock_check(
        self, workflow, principal, product_a, order_dto
    ):
        order = workflow.create_order(
            principal, order_dto((product_a, 1), (product_a, 2))
        )

        assert order.total_amount == Decimal("30.00")
        assert sorted(item.quantity for item in order.items.all()) == [1, 2]
        product_a.refresh_from_db()
        assert product_a.stock == 2

    def test_repeated_product_lines_fail_together(
        self, workflow, principal, product_a, order_dto
    ):
        with pytest.raises(InsufficientStock) as exc_info:
            workflow.create_order(
                principal, order_dto((product_a, 3), (product_a, 3))
            )

        (shortfall,) = exc_info.value.shortfalls
        assert (shortfall.requested, shortfall.available) == (6, 5)
        assert Order.objects.count() == 0
        product_a.refresh_from_db()
        assert product_a.stock == 5

    def test_storage_failure_during_stock_check(
        self, workflow, principal, product_a, order_dto
    ):
        with patch.object(
            ProductDjangoRepository, "get_active", side_effect=DatabaseError("boom")
        ):
            with pytest.raises(StorageFailure):
                workflow.create_order(principal, order_dto((product_a, 1)))
        assert Order.objects.count() == 0

    def test_storage_failure_reloading_created_order(
        self, workflow, principal, product_a, order_dto
    ):
        with patch.object(
            OrderDjangoRepository, "get_by_id", side_effect=DatabaseError("boom")
        ):
            with pytest.raises(StorageFailure):
                workflow.create_order(principal, order_dto((product_a, 1)))


# ---------------------------------------------------------------------------
# cancel_order
# ---------------------------------------------------------------------------


class TestCancelOrder:
    @pytest.fixture()
    def order(self, workflow, principal, product_a, product_b, order_dto):
        return workflow.create_order(
            principal, order_dto((product_a, 3), (product_b, 2))
        )

    def test_cancels_and_restores_stock(
        self, workflow, principal, order, product_a, product_b
    ):
        cancelled = workflow.cancel_order(principal, order.id)

        assert cancelled.status == OrderStatus.CANCELLED
        product_a.refresh_from_db()
        product_b.refresh_from_db()
        assert product_a.stock == 5
        assert product_b.stock == 3

    def test_records_history(self, workflow, principal, order):
        workflow.cancel_order(principal, order.id, notes="Changed my mind")

        last = OrderStatusHistory.objects.filter(order_id=order.id).latest(
            "created_at"
        )
        assert last.old_status == OrderStatus.PENDING
        assert last.new_status == OrderStatus.CANCELLED
        assert last.notes == "Changed my mind"

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED],
    )
    def test_only_pending_orders_can_be_cancelled(
        self, workflow, principal, order, product_a, status
    ):
        _set_status(order, status)

        with pytest.raises(InvalidState):
            workflow.cancel_order(principal, order.id)

        product_a.refresh_from_db()
        assert product_a.stock == 2

    def test_processing_order_cannot_be_cancelled(self, workflow, principal, order):
        _set_status(order, OrderStatus.PROCESSING)
        with pytest.raises(InvalidState):
            workflow.cancel_order(principal, order.id)

    def test_second_cancel_does_not_restore_twice(
        self, workflow, principal, order, product_a
    ):
        workflow.cancel_order(principal, order.id)
        with pytest.raises(InvalidState):
            workflow.cancel_order(principal, order.id)
        product_a.refresh_from_db()
        assert product_a.stock == 5

    def test_foreign_order_is_not_found(self, workflow, order, other_user):
        with pytest.raises(OrderNotFound):
            workflow.cancel_order(Principal.from_user(other_user), order.id)
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    @pytest.mark.parametrize("order_id", [uuid4(), "not-a-uuid"])
    def test_unknown_order(self, workflow, principal, order_id):
        with pytest.raises(OrderNotFound):
            workflow.cancel_order(principal, order_id)

    def test_storage_failure_leaves_order_pending(
        self, workflow, principal, order, product_a
    ):
        with patch.object(
            OrderDjangoRepository, "add_history", side_effect=DatabaseError("disk full")
        ):
            with pytest.raises(StorageFailure):
                workflow.cancel_order(principal, order.id)

        order.refresh_from_db()
        product_a.refresh_from_db()
        assert order.status == OrderStatus.PENDING
        assert product_a.stock == 2


# ---------------------------------------------------------------------------
# update_status
# ---------------------------------------------------------------------------


class TestUpdateStatus:
    @pytest.fixture()
    def order(self, workflow, principal, product_a, order_dto):
        return workflow.create_order(principal, order_dto((product_a, 2)))

    def test_admin_moves_order_forward(self, workflow, admin_principal, order):
        updated = workflow.update_status(
            admin_principal, order.id, OrderStatus.PROCESSING, notes="Picked"
        )
        assert updated.status == OrderStatus.PROCESSING

        last = OrderStatusHistory.objects.filter(order_id=order.id).latest(
            "created_at"
        )
        assert last.old_status == OrderStatus.PENDING
        assert last.new_status == OrderStatus.PROCESSING
        assert last.changed_by_id == admin_principal.user_id
        assert last.notes == "Picked"

    def test_admin_may_skip_stages(self, workflow, admin_principal, order):
        updated = workflow.update_status(
            admin_principal, order.id, OrderStatus.DELIVERED
        )
        assert updated.status == OrderStatus.DELIVERED

    def test_non_admin_is_denied(self, workflow, principal, order):
        with pytest.raises(PermissionDenied):
            workflow.update_status(principal, order.id, OrderStatus.SHIPPED)
        order.refresh_from_db()
        assert order.status == OrderStatus.PENDING

    def test_invalid_status_is_rejected(self, workflow, admin_principal, order):
        with pytest.raises(InvalidTransition) as exc_info:
            workflow.update_status(admin_principal, order.id, "lost")
        assert exc_info.value.reason.startswith("invalid status")

    @pytest.mark.parametrize("terminal", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
    def test_terminal_orders_are_frozen(
        self, workflow, admin_principal, order, terminal
    ):
        _set_status(order, terminal)
        with pytest.raises(InvalidTransition):
            workflow.update_status(admin_principal, order.id, OrderStatus.PENDING)
        assert OrderStatusHistory.objects.filter(order_id=order.id).count() == 1

    def test_admin_cancel_does_not_restore_stock(
        self, workflow, admin_principal, order, product_a
    ):
        workflow.update_status(admin_principal, order.id, OrderStatus.CANCELLED)
        product_a.refresh_from_db()
        assert product_a.stock == 3

    def test_unknown_order(self, workflow, admin_principal):
        with pytest.raises(OrderNotFound):
            workflow.update_status(admin_principal, uuid4(), OrderStatus.SHIPPED)

    def test_admin_can_update_any_users_order(
        self, workflow, admin_principal, order
    ):
        assert order.user_id != admin_principal.user_id
        updated = workflow.update_status(
            admin_principal, order.id, OrderStatus.SHIPPED
        )
        assert updated.status == OrderStatus.SHIPPED


# ---------------------------------------------------------------------------
# End-to-end scenario
# ---------------------------------------------------------------------------


def test_reserve_reject_cancel_scenario(workflow, principal, product_a, order_dto):
    """stock=5: order 3 -> stock 2; order 3 again fails; cancel -> stock 5."""
    first = workflow.create_order(principal, order_dto((product_a, 3)))
    assert first.total_amount == 3 * product_a.price
    product_a.refresh_from_db()
    assert product_a.stock == 2

    with pytest.raises(InsufficientStock) as exc_info:
        workflow.create_order(principal, order_dto((product_a, 3)))
    (shortfall,) = exc_info.value.shortfalls
    assert (shortfall.requested, shortfall.available) == (3, 2)

    workflow.cancel_order(principal, first.id)
    product_a.refresh_from_db()
    assert product_a.stock == 5
