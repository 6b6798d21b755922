"""Stock ledger: authoritative read/adjust of product stock.

``check_availability`` runs before the order transaction and reports
every shortfall at once, summing lines that repeat a product.
``decrement`` and ``restore`` run inside the caller's transaction and
lock the product row first, so concurrent orders for the same product
serialize on the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List

import structlog

from modules.orders.dtos import Shortfall
from modules.orders.exceptions import (
    InsufficientStock,
    OrderValidationError,
    ProductNotFound,
)

if TYPE_CHECKING:
    from modules.orders.dtos import CreateOrderItemDTO
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class StockLedger:
    """Reads and adjusts per-product stock through the product repository."""

    def __init__(self, product_repository: IProductRepository) -> None:
        self._product_repo = product_repository

    def check_availability(self, items: Iterable[CreateOrderItemDTO]) -> None:
        """Verify that every requested quantity is in stock.

        Lines naming the same product are summed and checked as one
        request, in the order the products first appear.

        Raises:
            ProductNotFound: a product is missing or inactive (fails fast).
            InsufficientStock: one or more products exceed stock; carries all
                shortfalls.
        """
        requested: Dict[str, int] = {}
        for item in items:
            product_id = str(item.product_id)
            requested[product_id] = requested.get(product_id, 0) + item.quantity

        shortfalls: List[Shortfall] = []
        for product_id, quantity in requested.items():
            product = self._product_repo.get_active(product_id)
            if product is None:
                raise ProductNotFound(
                    f"Product {product_id} not found.",
                    product_id=product_id,
                )
            if quantity > product.stock:
                shortfalls.append(
                    Shortfall(
                        product_id=product.id,
                        product_name=product.name,
                        requested=quantity,
                        available=product.stock,
                    )
                )

        if shortfalls:
            logger.info(
                "stock.shortfall",
                products=[str(s.product_id) for s in shortfalls],
            )
            raise InsufficientStock(shortfalls)

    def decrement(self, product_id: str, quantity: int) -> Product:
        """Lock the product row and reduce its stock by *quantity*.

        Availability is expected to have been checked already; stock is
        re-checked under the lock and never driven negative.

        Returns the locked product, whose ``price`` callers snapshot.
        """
        _require_positive(quantity)
        product = self._product_repo.get_for_update(str(product_id))
        if product is None:
            raise ProductNotFound(
                f"Product {product_id} not found.", product_id=str(product_id)
            )
        if product.stock < quantity:
            raise InsufficientStock(
                [
                    Shortfall(
                        product_id=product.id,
                        product_name=product.name,
                        requested=quantity,
                        available=product.stock,
                    )
                ]
            )

        product.stock -= quantity
        self._product_repo.update_stock(product)
        logger.info(
            "stock.decremented",
            product_id=str(product.id),
            quantity=quantity,
            remaining=product.stock,
        )
        return product

    def restore(self, product_id: str, quantity: int) -> Product:
        """Lock the product row and add *quantity* back to its stock.

        Not idempotent: call exactly once per cancelled order item.  Works
        for products retired from the catalog after the order was placed.
        """
        _require_positive(quantity)
        product = self._product_repo.get_for_update(str(product_id), active_only=False)
        if product is None:
            raise ProductNotFound(
                f"Product {product_id} not found.", product_id=str(product_id)
            )

        product.stock += quantity
        self._product_repo.update_stock(product)
        logger.info(
            "stock.restored",
            product_id=str(product.id),
            quantity=quantity,
            restored_stock=product.stock,
        )
        return product


def _require_positive(quantity: int) -> None:
    if quantity < 1:
        raise OrderValidationError("Quantity must be at least 1.", quantity=quantity)
