"""Order repository interface.

Extends ``IRepository[Order]`` with the methods required by the Order
aggregate: item creation, row locking, owner-scoped reads, pagination and
status history tracking.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional, Tuple

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem, OrderStatusHistory
    from modules.products.models import Product


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Callers own the transaction boundary.
    """

    @abstractmethod
    def create(self, user_id: int) -> Order:
        """Insert a new ``pending`` order with a zero total."""

    @abstractmethod
    def add_item(
        self, order: Order, product: Product, quantity: int, unit_price: Decimal
    ) -> OrderItem:
        """Insert a line item with a snapshotted unit price."""

    @abstractmethod
    def get_by_id(self, id: str, user_id: Optional[int] = None) -> Optional[Order]:
        """Retrieve an order with items and products eagerly loaded.

        When ``user_id`` is given, only an order owned by that user matches.
        """

    @abstractmethod
    def get_for_update(
        self, id: str, user_id: Optional[int] = None
    ) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE)."""

    @abstractmethod
    def page_for_user(
        self, user_id: int, offset: int, limit: int
    ) -> Tuple[List[Order], int]:
        """Return one slice of a user's orders (newest first) and the total count."""

    @abstractmethod
    def add_history(
        self,
        order_id: str,
        status: str,
        old_status: Optional[str] = None,
        changed_by_id: Optional[int] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
