"""Django ORM implementation of the Review repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, F, QuerySet, Sum

from modules.reviews.constants import MAX_RATING, MIN_RATING, ReviewStatus
from modules.reviews.dtos import RatingSummary
from modules.reviews.models import Review
from modules.reviews.repositories.interfaces import IReviewRepository

logger = structlog.get_logger(__name__)


class ReviewDjangoRepository(IReviewRepository):
    def get_by_id(self, id: str) -> Optional[Review]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return Review.objects.select_related("user", "product").filter(pk=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Review]:
        try:
            return Review.objects.select_for_update().filter(pk=id).first()
        except (ValueError, ValidationError):
            return None

    def exists_for(self, user_id: Any, product_id: Any) -> bool:
        return Review.objects.filter(user_id=user_id, product_id=product_id).exists()

    def create(self, **fields: Any) -> Review:
        # Savepoint so a duplicate insert leaves the outer transaction usable
        with transaction.atomic():
            review = Review.objects.create(**fields)
        logger.info(
            "review.created",
            review_id=str(review.id),
            product_id=str(review.product_id),
        )
        return review

    @transaction.atomic
    def save(self, entity: Review) -> Review:
        entity.save()
        return entity

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def approved_summary(self, product_id: Any) -> RatingSummary:
        result = Review.objects.filter(
            product_id=product_id, status=ReviewStatus.APPROVED
        ).aggregate(count=Count("id"), total=Sum("rating"))
        return RatingSummary(count=result["count"] or 0, total=result["total"] or 0)

    def approved_for_product(self, product_id: Any) -> QuerySet[Review]:
        return Review.objects.select_related("user").filter(
            product_id=product_id, status=ReviewStatus.APPROVED
        )

    def rating_distribution(self, product_id: Any) -> Dict[int, int]:
        distribution = {star: 0 for star in range(MIN_RATING, MAX_RATING + 1)}
        rows = (
            Review.objects.filter(product_id=product_id, status=ReviewStatus.APPROVED)
            .values("rating")
            .annotate(count=Count("id"))
            .order_by()
        )
        for row in rows:
            distribution[row["rating"]] = row["count"]
        return distribution

    def pending(self) -> QuerySet[Review]:
        return (
            Review.objects.select_related("user", "product")
            .filter(status=ReviewStatus.PENDING)
            .order_by("created_at")
        )

    def increment_vote(self, id: str, helpful: bool) -> Optional[Review]:
        counter = "helpful" if helpful else "not_helpful"
        try:
            updated = Review.objects.filter(pk=id).update(**{counter: F(counter) + 1})
        except (ValueError, ValidationError):
            return None
        if not updated:
            return None
        return Review.objects.get(pk=id)
