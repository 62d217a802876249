"""Django ORM implementation of the Product repository.

Methods return ``None`` instead of raising for missing rows; the Service
Layer decides how to translate a missing entity into an error.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from modules.products.models import Product, ProductStatus
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_slug(self, slug: str) -> Optional[Product]:
        return Product.objects.filter(slug=slug).first()

    def get_many(self, ids: Iterable[str]) -> dict[str, Product]:
        try:
            products = Product.objects.filter(id__in=list(ids))
            return {str(product.id): product for product in products}
        except (ValueError, ValidationError):
            return {}

    def list_active(self, category: Optional[str] = None) -> QuerySet[Product]:
        queryset = Product.objects.filter(status=ProductStatus.ACTIVE)
        if category:
            queryset = queryset.filter(category=category)
        return queryset

    @transaction.atomic
    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id), slug=entity.slug)
        return entity

    def decrement_stock(self, id: str, quantity: int) -> bool:
        """Single conditional UPDATE; the WHERE clause is the oversell guard."""
        updated = Product.objects.filter(id=id, stock__gte=quantity).update(
            stock=F("stock") - quantity,
            sales_count=F("sales_count") + quantity,
            updated_at=timezone.now(),
        )
        return updated == 1

    def update_rating(self, id: str, rating: Decimal, review_count: int) -> None:
        Product.objects.filter(id=id).update(
            rating=rating, review_count=review_count, updated_at=timezone.now()
        )

    def delete(self, entity: Product) -> None:
        product_id = str(entity.id)
        entity.delete()
        logger.info("product.deleted", product_id=product_id)

    def has_orders(self, id: str) -> bool:
        return Product.objects.filter(id=id, order_items__isnull=False).exists()

    def distinct_active(self, field: str) -> list[str]:
        return list(
            Product.objects.filter(status=ProductStatus.ACTIVE)
            .exclude(**{field: ""})
            .order_by(field)
            .values_list(field, flat=True)
            .distinct()
        )
