"""Product DRF serializers (camelCase keys)."""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product, ProductStatus


class ProductImageSerializer(serializers.Serializer):
    url = serializers.CharField(max_length=500)
    alt = serializers.CharField(required=False, allow_blank=True, default="")
    isPrimary = serializers.BooleanField(  # noqa: N815
        source="is_primary", required=False, default=False
    )


class ProductVariantSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=50)
    value = serializers.CharField(max_length=50)


# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class ProductWriteSerializer(serializers.Serializer):
    """Admin create / update payload; ``partial=True`` for PATCH."""

    title = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(max_length=100)
    brand = serializers.CharField(required=False, allow_blank=True, max_length=100)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    comparePrice = serializers.DecimalField(  # noqa: N815
        source="compare_price",
        max_digits=10,
        decimal_places=2,
        required=False,
        allow_null=True,
    )
    sku = serializers.CharField(required=False, allow_blank=True, max_length=64)
    images = ProductImageSerializer(many=True, required=False)
    variants = ProductVariantSerializer(many=True, required=False)
    stock = serializers.IntegerField(required=False, min_value=0)
    status = serializers.ChoiceField(choices=ProductStatus.choices, required=False)


# ---------------------------------------------------------------------------
# Output Serializers
# ---------------------------------------------------------------------------


class ProductSerializer(serializers.ModelSerializer):
    comparePrice = serializers.DecimalField(  # noqa: N815
        source="compare_price", max_digits=10, decimal_places=2, read_only=True
    )
    salesCount = serializers.IntegerField(source="sales_count", read_only=True)  # noqa: N815
    reviewCount = serializers.IntegerField(source="review_count", read_only=True)  # noqa: N815
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815
    images = ProductImageSerializer(many=True, read_only=True)
    variants = ProductVariantSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "title",
            "slug",
            "description",
            "category",
            "brand",
            "price",
            "comparePrice",
            "sku",
            "images",
            "variants",
            "status",
            "stock",
            "salesCount",
            "rating",
            "reviewCount",
            "createdAt",
        ]
        read_only_fields = fields
