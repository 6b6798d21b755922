"""Order domain constants.

Defines status choices for the order lifecycle.  Transition rules live in
``modules.orders.state_machine``.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


INITIAL_STATUS: str = OrderStatus.PENDING

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)

# Only orders that have not started processing can be cancelled by their owner.
CANCELLABLE_STATES: frozenset[str] = frozenset({OrderStatus.PENDING})
