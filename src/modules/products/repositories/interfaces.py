"""Product repository interface.

Extends ``IRepository[Product]`` with the catalog look-ups and the atomic
stock / rating writes used by the order and review workflows.
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_by_slug(self, slug: str) -> Optional[Product]:
        """Retrieve a product by slug."""

    @abstractmethod
    def get_many(self, ids: Iterable[str]) -> dict[str, Product]:
        """Fetch several products keyed by ``str(id)``; unknown ids are absent."""

    @abstractmethod
    def list_active(self, category: Optional[str] = None) -> "models.QuerySet[Product]":
        """Active products, optionally restricted to one category."""

    @abstractmethod
    def decrement_stock(self, id: str, quantity: int) -> bool:
        """Atomically take ``quantity`` units if at least that many remain.

        Also increments ``sales_count``.  Returns ``False`` (and changes
        nothing) when stock is insufficient.
        """

    @abstractmethod
    def update_rating(self, id: str, rating: Decimal, review_count: int) -> None:
        """Overwrite the aggregated review rating and count."""

    @abstractmethod
    def delete(self, entity: Product) -> None:
        """Remove the product together with its reviews and wishlist entries."""

    @abstractmethod
    def has_orders(self, id: str) -> bool:
        """Whether any order line references the product."""

    @abstractmethod
    def distinct_active(self, field: str) -> list[str]:
        """Sorted, non-blank distinct values of ``field`` over active products."""
