"""Order workflow DTOs (Pydantic v2).

The HTTP layer converts validated request data into these frozen models
before calling ``OrderWorkflow``; the workflow never sees DRF objects.

- ``CreateOrderItemDTO`` / ``CreateOrderDTO``: what the shopper asks for.
- ``Shortfall``: one line that stock cannot cover, reported back verbatim.
- ``OrderPage``: a page of the caller's orders with its counters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.orders.models import Order

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------

class CreateOrderItemDTO(BaseModel):
    """One requested line: a product and how many units of it.

    There is no price field; the workflow snapshots the catalog price.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def check_quantity(cls, quantity: int) -> int:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1.")
        return quantity


class CreateOrderDTO(BaseModel):
    """A whole order request: at least one line.

    The same product may appear on several lines; stock is checked against
    the combined quantity.
    """

    model_config = ConfigDict(frozen=True)

    items: List[CreateOrderItemDTO]

    @field_validator("items")
    @classmethod
    def check_not_empty(cls, items: List[CreateOrderItemDTO]) -> List[CreateOrderItemDTO]:
        if not items:
            raise ValueError("Order must have at least one item.")
        return items


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------

class Shortfall(BaseModel):
    """Requested quantity exceeds available stock for one product."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    product_name: str
    requested: int
    available: int

@dataclass(frozen=True)
class OrderPage:
    """A page of orders with the counters needed to render pagination.

    A plain dataclass rather than a Pydantic model: it carries ORM
    instances, which are handed straight to the DRF serializers.
    """

    items: List[Order]
    total_count: int
    total_pages: int
    page: int
    page_size: int
