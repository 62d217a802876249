"""Review DRF serializers (camelCase keys)."""

from __future__ import annotations

from rest_framework import serializers

from modules.reviews.constants import MAX_RATING, MIN_RATING
from modules.reviews.models import Review

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateReviewSerializer(serializers.Serializer):
    productId = serializers.UUIDField(source="product_id")  # noqa: N815
    orderId = serializers.UUIDField(  # noqa: N815
        source="order_id", required=False, allow_null=True
    )
    rating = serializers.IntegerField(min_value=MIN_RATING, max_value=MAX_RATING)
    title = serializers.CharField(max_length=150, required=False, allow_blank=True)
    comment = serializers.CharField(max_length=2000)
    images = serializers.ListField(
        child=serializers.URLField(max_length=500), required=False, max_length=5
    )


class ModerateReviewSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    adminResponse = serializers.CharField(  # noqa: N815
        source="admin_response", max_length=1000, required=False, allow_blank=True
    )


class HelpfulVoteSerializer(serializers.Serializer):
    helpful = serializers.BooleanField(default=True)


# ---------------------------------------------------------------------------
# Output Serializers
# ---------------------------------------------------------------------------


class ReviewSerializer(serializers.ModelSerializer):
    productId = serializers.UUIDField(source="product_id", read_only=True)  # noqa: N815
    userName = serializers.CharField(source="user.name", read_only=True)  # noqa: N815
    isVerifiedPurchase = serializers.BooleanField(  # noqa: N815
        source="is_verified_purchase", read_only=True
    )
    adminResponse = serializers.CharField(source="admin_response", read_only=True)  # noqa: N815
    adminResponseDate = serializers.DateTimeField(  # noqa: N815
        source="admin_response_at", read_only=True
    )
    notHelpful = serializers.IntegerField(source="not_helpful", read_only=True)  # noqa: N815
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815

    class Meta:
        model = Review
        fields = [
            "id",
            "productId",
            "userName",
            "rating",
            "title",
            "comment",
            "images",
            "status",
            "isVerifiedPurchase",
            "adminResponse",
            "adminResponseDate",
            "helpful",
            "notHelpful",
            "createdAt",
        ]
        read_only_fields = fields


class PendingReviewSerializer(ReviewSerializer):
    productTitle = serializers.CharField(source="product.title", read_only=True)  # noqa: N815
    userEmail = serializers.CharField(source="user.email", read_only=True)  # noqa: N815

    class Meta(ReviewSerializer.Meta):
        fields = ReviewSerializer.Meta.fields + ["productTitle", "userEmail"]
        read_only_fields = fields
