"""Order domain exceptions.

Raised by the service layer when business rules are violated.  Every
exception carries a stable ``code`` tag; the API layer maps that tag to
an HTTP response instead of checking exception classes one by one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:
    from modules.orders.dtos import Shortfall


class OrderError(Exception):
    """Base class for every order workflow failure."""

    code = "order_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class OrderValidationError(OrderError):
    """Malformed input, e.g. an empty item list or a non-positive quantity."""

    code = "validation_error"


class ProductNotFound(OrderError):
    """A product referenced by an order item does not exist or is inactive."""

    code = "product_not_found"


class InsufficientStock(OrderError):
    """Requested quantities exceed available stock.

    ``shortfalls`` lists every offending item, not only the first one.
    """

    code = "insufficient_stock"

    def __init__(self, shortfalls: Sequence[Shortfall]) -> None:
        self.shortfalls = list(shortfalls)
        described = "; ".join(
            f"{s.product_name}: requested {s.requested}, available {s.available}"
            for s in self.shortfalls
        )
        super().__init__(f"Insufficient stock for some products ({described}).")


class OrderNotFound(OrderError):
    """The order does not exist or is not owned by the caller."""

    code = "order_not_found"


class InvalidState(OrderError):
    """The order's current status forbids the requested operation."""

    code = "invalid_state"


class InvalidTransition(OrderError):
    """The status state machine rejected a transition."""

    code = "invalid_transition"

    def __init__(self, reason: str, **context: Any) -> None:
        super().__init__(reason, **context)
        self.reason = reason


class StorageFailure(OrderError):
    """The database failed mid-operation; the transaction was rolled back."""

    code = "storage_failure"
