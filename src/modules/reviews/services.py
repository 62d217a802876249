"""Review service layer (Use Cases).

Business rules enforced:
- One review per (user, product), whatever its status.
- ``is_verified_purchase`` only for a delivered order of the reviewer that
  contains the product.
- Moderation accepts ``approved`` / ``rejected`` only.
- Entering or leaving ``approved`` recomputes the product rating from all
  approved reviews (mean rounded half-up to one decimal) and the count.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Dict

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.products.exceptions import ProductNotFound
from modules.reviews.constants import MODERATION_STATUSES, ReviewStatus
from modules.reviews.exceptions import (
    DuplicateReview,
    InvalidModerationStatus,
    ReviewNotFound,
)

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository
    from modules.reviews.dtos import CreateReviewDTO, ModerateReviewDTO, RatingSummary
    from modules.reviews.models import Review
    from modules.reviews.repositories.interfaces import IReviewRepository

logger = structlog.get_logger(__name__)

ONE_DECIMAL = Decimal("0.1")


def average_rating(summary: RatingSummary) -> Decimal:
    """Mean of the approved ratings, half-up to one decimal; 0.0 when none."""
    if not summary.count:
        return Decimal("0.0")
    return (Decimal(summary.total) / Decimal(summary.count)).quantize(
        ONE_DECIMAL, rounding=ROUND_HALF_UP
    )


class ReviewService:
    def __init__(
        self,
        review_repository: IReviewRepository,
        product_repository: IProductRepository,
        order_repository: IOrderRepository,
    ) -> None:
        self._reviews = review_repository
        self._products = product_repository
        self._orders = order_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_review(self, user_id: Any, dto: CreateReviewDTO) -> Review:
        """Store a ``pending`` review.

        Raises:
            ProductNotFound: unknown product.
            DuplicateReview: the user already reviewed the product.
        """
        product = self._products.get_by_id(str(dto.product_id))
        if product is None:
            raise ProductNotFound()
        if self._reviews.exists_for(user_id, product.id):
            raise DuplicateReview()

        verified = dto.order_id is not None and self._orders.has_delivered_item(
            dto.order_id, user_id, product.id
        )
        try:
            return self._reviews.create(
                product=product,
                user_id=user_id,
                order_id=dto.order_id if verified else None,
                rating=dto.rating,
                title=dto.title,
                comment=dto.comment,
                images=list(dto.images),
                is_verified_purchase=verified,
            )
        except IntegrityError:
            # Lost a race against a concurrent submission for the same pair
            raise DuplicateReview() from None

    @transaction.atomic
    def moderate(self, review_id: str, dto: ModerateReviewDTO) -> Review:
        """Set ``approved`` / ``rejected`` and refresh the product rating.

        Raises:
            InvalidModerationStatus: any other status.
            ReviewNotFound: unknown review.
        """
        if dto.status not in MODERATION_STATUSES:
            raise InvalidModerationStatus()
        review = self._reviews.get_for_update(review_id)
        if review is None:
            raise ReviewNotFound()

        was_approved = review.status == ReviewStatus.APPROVED
        review.status = dto.status
        if dto.admin_response:
            review.admin_response = dto.admin_response
            review.admin_response_at = timezone.now()
        self._reviews.save(review)

        if was_approved or review.status == ReviewStatus.APPROVED:
            self.refresh_product_rating(review.product_id)

        logger.info(
            "review.moderated",
            review_id=str(review.id),
            status=review.status,
            was_approved=was_approved,
        )
        return self._reviews.get_by_id(str(review.id))

    def refresh_product_rating(self, product_id: Any) -> Decimal:
        """Full recomputation over every approved review of the product."""
        summary = self._reviews.approved_summary(product_id)
        rating = average_rating(summary)
        self._products.update_rating(str(product_id), rating, summary.count)
        logger.info(
            "product.rating_updated",
            product_id=str(product_id),
            rating=str(rating),
            review_count=summary.count,
        )
        return rating

    def vote(self, review_id: str, helpful: bool) -> Review:
        review = self._reviews.increment_vote(review_id, helpful)
        if review is None:
            raise ReviewNotFound()
        return review

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_for_product(self, product_id: str) -> QuerySet[Review]:
        product = self._products.get_by_id(product_id)
        if product is None:
            raise ProductNotFound()
        return self._reviews.approved_for_product(product.id)

    def rating_distribution(self, product_id: str) -> Dict[int, int]:
        return self._reviews.rating_distribution(product_id)

    def list_pending(self) -> QuerySet[Review]:
        return self._reviews.pending()
