"""Django ORM implementation of the Product repository.

Error handling follows the Null Object pattern: look-ups return ``None``
instead of raising, and the service layer decides how to translate a
missing product into a domain error.
"""

from __future__ import annotations

from typing import Optional

import structlog
from django.core.exceptions import ValidationError

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key, active or not.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_active(self, id: str) -> Optional[Product]:
        try:
            return Product.objects.filter(id=id, is_active=True).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(
        self, id: str, active_only: bool = True
    ) -> Optional[Product]:
        try:
            queryset = Product.objects.select_for_update().filter(id=id)
            if active_only:
                queryset = queryset.filter(is_active=True)
            return queryset.first()
        except (ValueError, ValidationError):
            return None

    def save(self, entity: Product) -> Product:
        """Persist (create or update) a product."""
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    def update_stock(self, product: Product) -> Product:
        product.save(update_fields=["stock", "updated_at"])
        return product
