from django.db import models


class ReviewStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


# Statuses an admin may set through moderation
MODERATION_STATUSES = frozenset({ReviewStatus.APPROVED, ReviewStatus.REJECTED})

MIN_RATING = 1
MAX_RATING = 5
