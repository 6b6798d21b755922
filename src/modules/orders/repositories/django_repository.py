"""Order persistence on the Django ORM.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  The
repository never opens transactions of its own: the order services wrap
each use-case in a single ``transaction.atomic()`` block so the order,
its items and the stock adjustments commit or roll back together.

Concurrency control uses ``select_for_update()`` on the order row.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple

import structlog
from django.core.exceptions import ValidationError

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository
from modules.products.models import Product

logger = structlog.get_logger(__name__)

_EAGER_RELATIONS = ("items__product", "status_history")


class OrderDjangoRepository(IOrderRepository):
    """``IOrderRepository`` over ``Order`` / ``OrderItem`` / ``OrderStatusHistory``."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user_id: int) -> Order:
        order = Order(
            user_id=user_id,
            status=OrderStatus.PENDING,
            total_amount=Decimal("0.00"),
        )
        order.save()
        return order

    def add_item(
        self, order: Order, product: Product, quantity: int, unit_price: Decimal
    ) -> OrderItem:
        item = OrderItem(
            order=order,
            product=product,
            quantity=quantity,
            unit_price=unit_price,
        )
        item.save()
        return item

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str, user_id: Optional[int] = None) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        ``prefetch_related`` loads items, items->product and status
        history in batched queries.  Prevents N+1.

        Returns ``None`` for non-existent, foreign or invalid IDs.
        """
        try:
            queryset = Order.objects.prefetch_related(*_EAGER_RELATIONS).filter(id=id)
            if user_id is not None:
                queryset = queryset.filter(user_id=user_id)
            return queryset.first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(
        self, id: str, user_id: Optional[int] = None
    ) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items (with product) so the caller can iterate
        over them while the row is locked.
        """
        try:
            queryset = (
                Order.objects.select_for_update()
                .prefetch_related("items__product")
                .filter(id=id)
            )
            if user_id is not None:
                queryset = queryset.filter(user_id=user_id)
            return queryset.first()
        except (ValueError, ValidationError):
            return None

    def page_for_user(
        self, user_id: int, offset: int, limit: int
    ) -> Tuple[List[Order], int]:
        queryset = Order.objects.filter(user_id=user_id).order_by("-created_at", "-id")
        total = queryset.count()
        page = list(
            queryset.prefetch_related("items__product")[offset : offset + limit]
        )
        return page, total

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order."""
        entity.save()
        logger.info("order.saved", order_id=str(entity.id), status=entity.status)
        return entity

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(
        self,
        order_id: str,
        status: str,
        old_status: Optional[str] = None,
        changed_by_id: Optional[int] = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            changed_by_id=changed_by_id,
            notes=notes,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history
