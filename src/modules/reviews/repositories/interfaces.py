"""Review repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.reviews.dtos import RatingSummary
    from modules.reviews.models import Review


class IReviewRepository(IRepository["Review"]):
    @abstractmethod
    def exists_for(self, user_id: Any, product_id: Any) -> bool:
        """Whether ``user_id`` already reviewed ``product_id`` (any status)."""

    @abstractmethod
    def create(self, **fields: Any) -> Review:
        """Insert a review; raises ``IntegrityError`` on a duplicate pair."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Review]:
        """Row-locked review, ``None`` when absent or malformed."""

    @abstractmethod
    def approved_summary(self, product_id: Any) -> RatingSummary:
        """Count and rating sum of the approved reviews of a product."""

    @abstractmethod
    def approved_for_product(self, product_id: Any) -> "models.QuerySet[Review]":
        """Approved reviews of a product, newest first."""

    @abstractmethod
    def rating_distribution(self, product_id: Any) -> Dict[int, int]:
        """Approved review count per star (1..5, zero filled)."""

    @abstractmethod
    def pending(self) -> "models.QuerySet[Review]":
        """Reviews waiting for moderation, oldest first."""

    @abstractmethod
    def increment_vote(self, id: str, helpful: bool) -> Optional[Review]:
        """Atomically bump the helpful / not-helpful counter."""
