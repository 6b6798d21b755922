"""Order service layer (Use Cases).

``OrderWorkflow`` orchestrates order creation, cancellation and status
management.  Every write use-case runs inside exactly one database
transaction: the order row, its items, the stock adjustments and the
history record commit together or not at all.

``OrderQueryService`` serves the owner-scoped read paths.

Business rules enforced:
- Stock availability is checked for all items before writing, and every
  shortfall is reported at once.
- Product rows are locked (SELECT FOR UPDATE) and re-checked before stock
  is decremented, so stock never goes negative.
- Unit prices are snapshotted; the order total is their sum.
- Only ``pending`` orders can be cancelled by their owner; cancellation
  restores the ordered quantities.
- Status updates are admin-only and validated by the state machine.
- History is recorded on every status change.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterator, List, Optional

import structlog
from django.db import DatabaseError, transaction

from modules.core.pagination import PageRequest
from modules.orders import state_machine
from modules.orders.constants import OrderStatus
from modules.orders.dtos import OrderPage
from modules.orders.exceptions import (
    InvalidState,
    InvalidTransition,
    OrderNotFound,
    OrderValidationError,
    StorageFailure,
)
from modules.orders.stock import StockLedger

if TYPE_CHECKING:
    from modules.core.principal import Principal
    from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


@contextmanager
def _storage_errors(operation: str, **log_context: Any) -> Iterator[None]:
    """Surface database errors raised by the body as ``StorageFailure``."""
    try:
        yield
    except DatabaseError as exc:
        logger.error(
            "order.storage_failure",
            operation=operation,
            error=str(exc),
            **log_context,
        )
        raise StorageFailure(f"Failed to {operation}.", **log_context) from exc


@contextmanager
def _unit_of_work(operation: str, **log_context: Any) -> Iterator[None]:
    """Run the body in one transaction; surface DB errors as ``StorageFailure``.

    ``transaction.atomic`` rolls back on any exception, domain errors
    included, before they propagate to the caller.
    """
    with _storage_errors(operation, **log_context):
        with transaction.atomic():
            yield


def _validated_items(dto: CreateOrderDTO) -> List[CreateOrderItemDTO]:
    """Re-check the item list shape (the DTO already validates it)."""
    items = list(dto.items)
    if not items:
        raise OrderValidationError("Order must have at least one item.")
    for item in items:
        if item.quantity < 1:
            raise OrderValidationError(
                "Quantity must be at least 1.",
                product_id=str(item.product_id),
            )
    return items


class OrderWorkflow:
    """Application service for Order write use-cases.

    Receives repositories via constructor injection (DIP) and the
    caller's ``Principal`` on every call.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        stock_ledger: Optional[StockLedger] = None,
    ) -> None:
        self._order_repo = order_repository
        self._ledger = stock_ledger or StockLedger(product_repository)

    def _reload(self, order: Order, operation: str) -> Order:
        """Re-read a committed order with items and products loaded."""
        with _storage_errors(operation, order_id=str(order.id)):
            return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_order(self, principal: Principal, dto: CreateOrderDTO) -> Order:
        """Create an order and reserve its stock atomically.

        Steps:
        1. Re-validate the item list.
        2. Check availability of every item (no writes on shortfall).
        3. In one transaction, sorted by product id to avoid deadlocks:
           create the order, lock + decrement each product, snapshot its
           price into an item, persist the total and the initial history.
        4. Return the order with items and products eagerly loaded.

        Raises:
            OrderValidationError: empty item list or bad quantity.
            ProductNotFound: a product does not exist or is inactive.
            InsufficientStock: requested quantities exceed stock.
            StorageFailure: the database failed; nothing was persisted.
        """
        log = logger.bind(user_id=principal.owner_id)
        items = _validated_items(dto)
        log.info("order.creation_started", item_count=len(items))

        with _storage_errors("check stock", user_id=principal.owner_id):
            self._ledger.check_availability(items)

        with _unit_of_work("create order", user_id=principal.owner_id):
            order = self._order_repo.create(principal.owner_id)
            total = Decimal("0.00")

            for item in sorted(items, key=lambda i: str(i.product_id)):
                product = self._ledger.decrement(str(item.product_id), item.quantity)
                order_item = self._order_repo.add_item(
                    order, product, item.quantity, product.price
                )
                total += order_item.subtotal

            order.total_amount = total
            self._order_repo.save(order)
            self._order_repo.add_history(
                order_id=order.id,
                status=OrderStatus.PENDING,
                changed_by_id=principal.owner_id,
                notes="Order created",
            )

        log.info("order.created", order_id=str(order.id), total_amount=str(total))
        return self._reload(order, "load order")

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel_order(
        self, principal: Principal, order_id: Any, notes: str = ""
    ) -> Order:
        """Cancel one of the caller's pending orders and restore its stock.

        The order row is locked and its status re-read inside the
        transaction, so two concurrent cancels cannot restore stock twice.

        Raises:
            OrderNotFound: no order with this id belongs to the caller.
            InvalidState: the order is not ``pending``.
            StorageFailure: the database failed; nothing was persisted.
        """
        log = logger.bind(order_id=str(order_id), user_id=principal.owner_id)

        with _unit_of_work("cancel order", order_id=str(order_id)):
            order = self._order_repo.get_for_update(
                str(order_id), user_id=principal.owner_id
            )
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.")

            if not order.is_cancellable:
                log.warning("order.cancel_not_allowed", current_status=order.status)
                raise InvalidState(
                    f"Only pending orders can be cancelled "
                    f"(current status: {order.status}).",
                    current=order.status,
                )

            old_status = order.status
            order.status = OrderStatus.CANCELLED
            self._order_repo.save(order)

            for item in sorted(order.items.all(), key=lambda i: str(i.product_id)):
                self._ledger.restore(str(item.product_id), item.quantity)

            self._order_repo.add_history(
                order_id=order.id,
                status=OrderStatus.CANCELLED,
                old_status=old_status,
                changed_by_id=principal.owner_id,
                notes=notes or "Order cancelled",
            )

        log.info("order.cancelled")
        return self._reload(order, "load order")

    # ------------------------------------------------------------------
    # Status update (admin)
    # ------------------------------------------------------------------

    def update_status(
        self,
        principal: Principal,
        order_id: Any,
        new_status: Any,
        notes: str = "",
    ) -> Order:
        """Move an order to *new_status* (admin only).

        The state machine only forbids leaving a terminal status.  Setting
        ``cancelled`` here does not restore stock; owners cancel through
        ``cancel_order``.

        Raises:
            PermissionDenied: the principal is not an admin.
            OrderNotFound: order does not exist.
            InvalidTransition: the state machine rejected the change.
            StorageFailure: the database failed; nothing was persisted.
        """
        principal.require_admin()
        log = logger.bind(order_id=str(order_id), new_status=new_status)

        with _unit_of_work("update order status", order_id=str(order_id)):
            order = self._order_repo.get_for_update(str(order_id))
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.")

            try:
                state_machine.validate_transition(order.status, new_status)
            except InvalidTransition as exc:
                log.warning(
                    "order.invalid_transition",
                    current_status=order.status,
                    reason=exc.reason,
                )
                raise

            old_status = order.status
            order.status = new_status
            self._order_repo.save(order)
            self._order_repo.add_history(
                order_id=order.id,
                status=new_status,
                old_status=old_status,
                changed_by_id=principal.owner_id,
                notes=notes,
            )

        log.info("order.status_updated", old_status=old_status)
        return self._reload(order, "load order")


class OrderQueryService:
    """Owner-scoped read paths for orders."""

    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    def get_order(self, principal: Principal, order_id: Any) -> Order:
        """Retrieve one of the caller's orders with items and products.

        Raises:
            OrderNotFound: missing, foreign, or malformed id.
            StorageFailure: the database failed.
        """
        with _storage_errors("load order", order_id=str(order_id)):
            order = self._order_repo.get_by_id(
                str(order_id), user_id=principal.owner_id
            )
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self, principal: Principal, page: Any = None, page_size: Any = None
    ) -> OrderPage:
        """Return one page of the caller's orders, newest first.

        Invalid ``page`` / ``page_size`` values fall back to the defaults;
        ``page_size`` is clamped to the configured maximum.

        Raises:
            StorageFailure: the database failed.
        """
        request = PageRequest.from_params(page, page_size)
        with _storage_errors("list orders", user_id=principal.owner_id):
            orders, total = self._order_repo.page_for_user(
                principal.owner_id, request.offset, request.limit
            )
        return OrderPage(
            items=orders,
            total_count=total,
            total_pages=request.total_pages(total),
            page=request.page,
            page_size=request.page_size,
        )
