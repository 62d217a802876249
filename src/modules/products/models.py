"""Product catalog model.

Business rules implemented:
- Price must be greater than zero.
- Stock can never go negative (CHECK constraint + conditional decrement in
  the repository).
- ``slug`` is derived from ``title`` and kept unique.
- ``rating`` / ``review_count`` are maintained by review moderation only.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.text import slugify

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)


class ProductStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    DRAFT = "draft", "Draft"
    ARCHIVED = "archived", "Archived"


class Product(BaseModel):
    """Catalog item.

    ``images`` is a list of ``{url, alt, is_primary}`` and ``variants`` a
    list of ``{name, value}``; both are stored as JSON.
    """

    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=280, unique=True)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=100, db_index=True)
    brand = models.CharField(max_length=100, blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    compare_price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    sku = models.CharField(max_length=64, blank=True, default="")
    images = models.JSONField(default=list, blank=True)
    variants = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=20,
        choices=ProductStatus.choices,
        default=ProductStatus.ACTIVE,
    )
    stock = models.PositiveIntegerField(default=0)
    sales_count = models.PositiveIntegerField(default=0)
    rating = models.DecimalField(
        max_digits=2,
        decimal_places=1,
        default=Decimal("0.0"),
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    review_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "products"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "category"], name="products_status_cat_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gt=0),
                name="products_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    @property
    def primary_image(self) -> str | None:
        """URL of the primary image, falling back to the first one."""
        if not self.images:
            return None
        for image in self.images:
            if image.get("is_primary"):
                return image.get("url")
        return self.images[0].get("url")

    def _unique_slug(self) -> str:
        base = slugify(self.title)[:270] or "product"
        candidate, n = base, 1
        while Product.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
            n += 1
            candidate = f"{base}-{n}"
        return candidate

    def save(self, *args, **kwargs) -> None:
        if not self.slug or not self.slug.startswith(slugify(self.title)[:270] or "product"):
            self.slug = self._unique_slug()
            update_fields = kwargs.get("update_fields")
            if update_fields is not None and "slug" not in update_fields:
                kwargs["update_fields"] = list(update_fields) + ["slug"]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.title
