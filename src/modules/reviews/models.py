"""Product review model.

Business rules implemented:
- One review per (user, product), enforced by a unique constraint.
- Rating is an integer between 1 and 5.
- New reviews start ``pending``; only ``approved`` reviews are public and
  count towards the product rating.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.reviews.constants import MAX_RATING, MIN_RATING, ReviewStatus


class Review(BaseModel):
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviews",
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_RATING), MaxValueValidator(MAX_RATING)]
    )
    title = models.CharField(max_length=150, blank=True, default="")
    comment = models.TextField()
    images = models.JSONField(default=list, blank=True)
    status = models.CharField(
        max_length=10,
        choices=ReviewStatus.choices,
        default=ReviewStatus.PENDING,
    )
    is_verified_purchase = models.BooleanField(default=False)
    admin_response = models.TextField(blank=True, default="")
    admin_response_at = models.DateTimeField(null=True, blank=True)
    helpful = models.PositiveIntegerField(default=0)
    not_helpful = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "reviews"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["product", "status"], name="reviews_product_status_idx"),
            models.Index(fields=["status", "-created_at"], name="reviews_status_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "product"],
                name="reviews_unique_user_product",
            ),
            models.CheckConstraint(
                condition=models.Q(rating__gte=MIN_RATING, rating__lte=MAX_RATING),
                name="reviews_rating_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.rating}* on {self.product_id} by {self.user_id} ({self.status})"
