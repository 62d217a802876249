"""Review domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import BusinessRuleError, ConflictError, NotFoundError


class ReviewNotFound(NotFoundError):
    default_message = "Review not found"


class DuplicateReview(ConflictError):
    code = "duplicate_review"
    default_message = "You have already reviewed this product"


class InvalidModerationStatus(BusinessRuleError):
    code = "invalid_status"
    default_message = "Invalid status"
