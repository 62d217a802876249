"""Account DRF serializers.

Request keys are camelCase (``emailOrPhone``, ``newPassword``) to match the
storefront client.  Serializers validate shape only; business rules live in
the Service Layer, which receives Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.accounts.constants import OtpPurpose
from modules.accounts.models import Address, User
from modules.products.models import Product

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class SendOtpSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20)
    purpose = serializers.ChoiceField(choices=OtpPurpose.choices)


class VerifyOtpSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20)
    otp = serializers.CharField(max_length=10)
    purpose = serializers.ChoiceField(choices=OtpPurpose.choices)


class SignupSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=20)
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    otp = serializers.CharField(max_length=10)


class LoginSerializer(serializers.Serializer):
    emailOrPhone = serializers.CharField(max_length=254)  # noqa: N815
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class LoginOtpSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20)
    otp = serializers.CharField(max_length=10)


class ResetPasswordSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=20)
    otp = serializers.CharField(max_length=10)
    newPassword = serializers.CharField(write_only=True, trim_whitespace=False)  # noqa: N815


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(write_only=True, trim_whitespace=False)  # noqa: N815
    newPassword = serializers.CharField(write_only=True, trim_whitespace=False)  # noqa: N815


class UpdateProfileSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField(required=False)


class AddressWriteSerializer(serializers.Serializer):
    label = serializers.CharField(max_length=50, required=False, allow_blank=True)
    fullName = serializers.CharField(source="full_name", max_length=150)  # noqa: N815
    phone = serializers.CharField(max_length=20)
    region = serializers.CharField(max_length=50)
    city = serializers.CharField(max_length=100)
    area = serializers.CharField(max_length=100, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255)
    isDefault = serializers.BooleanField(source="is_default", required=False)  # noqa: N815


# ---------------------------------------------------------------------------
# Output Serializers
# ---------------------------------------------------------------------------


class UserSerializer(serializers.ModelSerializer):
    phoneVerified = serializers.BooleanField(source="phone_verified", read_only=True)  # noqa: N815
    emailVerified = serializers.BooleanField(source="email_verified", read_only=True)  # noqa: N815
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815

    class Meta:
        model = User
        fields = [
            "id",
            "name",
            "email",
            "phone",
            "role",
            "phoneVerified",
            "emailVerified",
            "createdAt",
        ]
        read_only_fields = fields


class AddressSerializer(serializers.ModelSerializer):
    fullName = serializers.CharField(source="full_name", read_only=True)  # noqa: N815
    isDefault = serializers.BooleanField(source="is_default", read_only=True)  # noqa: N815

    class Meta:
        model = Address
        fields = [
            "id",
            "label",
            "fullName",
            "phone",
            "region",
            "city",
            "area",
            "address",
            "isDefault",
        ]
        read_only_fields = fields


class WishlistItemSerializer(serializers.ModelSerializer):
    image = serializers.CharField(source="primary_image", read_only=True)

    class Meta:
        model = Product
        fields = ["id", "title", "slug", "price", "image"]
        read_only_fields = fields


class ProfileSerializer(UserSerializer):
    """``UserSerializer`` plus the address book and the wishlist."""

    addresses = serializers.SerializerMethodField()
    wishlist = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ["addresses", "wishlist"]
        read_only_fields = fields

    def get_addresses(self, user):
        return AddressSerializer(self.context["addresses"], many=True).data

    def get_wishlist(self, user):
        return WishlistItemSerializer(self.context["wishlist"], many=True).data
