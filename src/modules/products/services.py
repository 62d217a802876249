"""Product service layer (Use Cases).

Catalog reads for the storefront and admin create / update / delete.  Stock is
only ever decremented by the order workflow.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog
from django.db import models, transaction

from modules.products.dtos import CatalogFacets
from modules.products.exceptions import ProductHasOrders, ProductNotFound
from modules.products.models import Product

if TYPE_CHECKING:
    from modules.products.dtos import CreateProductDTO, UpdateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for Product use-cases."""

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        product = Product(**dto.model_dump(mode="python"))
        product = self._repo.save(product)
        logger.info("product.created", product_id=str(product.id), slug=product.slug)
        return product

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        """Apply the supplied fields.

        Raises:
            ProductNotFound: if the product does not exist.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product not found: {id}")

        changes = dto.model_dump(mode="python", exclude_none=True)
        for field, value in changes.items():
            setattr(product, field, value)

        product = self._repo.save(product)
        logger.info("product.updated", product_id=str(id), fields=sorted(changes))
        return product

    @transaction.atomic
    def delete_product(self, id: str) -> None:
        """Hard delete; products that appear on orders must be archived instead.

        Raises:
            ProductNotFound: if the product does not exist.
            ProductHasOrders: if any order line references it.
        """
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product not found: {id}")
        if self._repo.has_orders(product.id):
            raise ProductHasOrders()
        self._repo.delete(product)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_product(self, id_or_slug: str) -> Product:
        """Look up by primary key first, then by slug.

        Raises:
            ProductNotFound: if neither matches.
        """
        product = self._repo.get_by_id(id_or_slug) or self._repo.get_by_slug(id_or_slug)
        if not product:
            raise ProductNotFound()
        return product

    def list_products(self, category: Optional[str] = None) -> models.QuerySet[Product]:
        return self._repo.list_active(category)

    def catalog_facets(self) -> CatalogFacets:
        return CatalogFacets(
            categories=self._repo.distinct_active("category"),
            brands=self._repo.distinct_active("brand"),
        )
