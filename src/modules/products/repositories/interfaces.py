"""Product repository interface.

Extends ``IRepository[Product]`` with the row-locking look-up the stock
ledger needs to adjust stock inside a transaction.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_active(self, id: str) -> Optional[Product]:
        """Retrieve an orderable (active) product, or ``None``."""

    @abstractmethod
    def get_for_update(
        self, id: str, active_only: bool = True
    ) -> Optional[Product]:
        """Retrieve a product with a row-level lock (SELECT FOR UPDATE).

        Must be called inside a transaction.  Returns ``None`` if the
        product does not exist, or is inactive and ``active_only`` is set.
        """

    @abstractmethod
    def update_stock(self, product: Product) -> Product:
        """Persist ``product.stock`` only."""
