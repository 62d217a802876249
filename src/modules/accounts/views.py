"""Account API views.

Exposes ``AuthService`` via HTTP.  Domain exceptions propagate to
``envelope_exception_handler``; the view never swallows errors.
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.accounts.dtos import (
    AddressDTO,
    ChangePasswordDTO,
    LoginDTO,
    LoginWithOtpDTO,
    ResetPasswordDTO,
    SendOtpDTO,
    SignupDTO,
    UpdateAddressDTO,
    UpdateProfileDTO,
    VerifyOtpDTO,
)
from modules.accounts.repositories.django_repository import (
    AddressDjangoRepository,
    OtpDjangoRepository,
    UserDjangoRepository,
)
from modules.accounts.serializers import (
    AddressSerializer,
    AddressWriteSerializer,
    ChangePasswordSerializer,
    LoginOtpSerializer,
    LoginSerializer,
    ProfileSerializer,
    ResetPasswordSerializer,
    SendOtpSerializer,
    SignupSerializer,
    UpdateProfileSerializer,
    UserSerializer,
    VerifyOtpSerializer,
    WishlistItemSerializer,
)
from modules.accounts.services import (
    AuthService,
    CredentialService,
    OtpService,
    ProfileService,
)
from modules.core.responses import success
from modules.core.throttling import RateLimitedViewMixin
from modules.products.repositories.django_repository import ProductDjangoRepository


def build_auth_service() -> AuthService:
    users = UserDjangoRepository()
    return AuthService(
        user_repository=users,
        otp_service=OtpService(OtpDjangoRepository()),
        credential_service=CredentialService(users),
    )


def build_profile_service() -> ProfileService:
    return ProfileService(
        user_repository=UserDjangoRepository(),
        address_repository=AddressDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


class AuthViewSet(RateLimitedViewMixin, GenericViewSet):
    """Public phone OTP, signup, login and reset endpoints under ``auth/``.

    Tokens sent to these endpoints are ignored.
    """

    authentication_classes: list = []
    permission_classes = [AllowAny]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_auth_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Rate limit scope per action."""
        if self.action == "send_otp":
            self.throttle_scope = "otp"
        elif self.action in {"login", "login_otp"}:
            self.throttle_scope = "login"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    def _validated(self, serializer_class, request: Request) -> dict:
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _session_response(self, session, message: str, status_code=status.HTTP_200_OK):
        return success(
            status=status_code,
            message=message,
            token=session.token,
            user=UserSerializer(session.user).data,
        )

    # ------------------------------------------------------------------
    # OTP
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"], url_path="send-otp")
    def send_otp(self, request: Request) -> Response:
        """POST /api/v1/auth/send-otp"""
        data = self._validated(SendOtpSerializer, request)
        dto = SendOtpDTO(phone=data["phone"], purpose=data["purpose"])
        code = self._service.send_otp(dto)

        payload = {"message": "OTP sent successfully", "phone": dto.phone}
        if settings.OTP_ECHO_IN_RESPONSE:
            payload["otp"] = code
        return success(**payload)

    @action(detail=False, methods=["post"], url_path="verify-otp")
    def verify_otp(self, request: Request) -> Response:
        """POST /api/v1/auth/verify-otp"""
        data = self._validated(VerifyOtpSerializer, request)
        result = self._service.verify_otp(
            VerifyOtpDTO(phone=data["phone"], code=data["otp"], purpose=data["purpose"])
        )
        return success(message=result.message)

    # ------------------------------------------------------------------
    # Signup / login
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"])
    def signup(self, request: Request) -> Response:
        """POST /api/v1/auth/signup"""
        data = self._validated(SignupSerializer, request)
        session = self._service.signup(SignupDTO(**data))
        return self._session_response(
            session, "Account created successfully", status.HTTP_201_CREATED
        )

    @action(detail=False, methods=["post"])
    def login(self, request: Request) -> Response:
        """POST /api/v1/auth/login"""
        data = self._validated(LoginSerializer, request)
        session = self._service.login(
            LoginDTO(email_or_phone=data["emailOrPhone"], password=data["password"])
        )
        return self._session_response(session, "Login successful")

    @action(detail=False, methods=["post"], url_path="login-otp")
    def login_otp(self, request: Request) -> Response:
        """POST /api/v1/auth/login-otp"""
        data = self._validated(LoginOtpSerializer, request)
        session = self._service.login_with_otp(
            LoginWithOtpDTO(phone=data["phone"], otp=data["otp"])
        )
        return self._session_response(session, "Login successful")

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"], url_path="reset-password")
    def reset_password(self, request: Request) -> Response:
        """POST /api/v1/auth/reset-password"""
        data = self._validated(ResetPasswordSerializer, request)
        self._service.reset_password(
            ResetPasswordDTO(
                phone=data["phone"], otp=data["otp"], new_password=data["newPassword"]
            )
        )
        return success(message="Password reset successfully")


class AccountViewSet(GenericViewSet):
    """Endpoints for the authenticated user under ``auth/``."""

    permission_classes = [IsAuthenticated]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_auth_service()
        self._profile = build_profile_service()

    def _addresses_response(self, addresses, message: str, status_code=status.HTTP_200_OK):
        return success(
            status=status_code,
            message=message,
            addresses=AddressSerializer(addresses, many=True).data,
        )

    def _wishlist_response(self, products, message: str | None = None):
        payload = {"wishlist": WishlistItemSerializer(products, many=True).data}
        if message:
            payload["message"] = message
        return success(**payload)

    @action(detail=False, methods=["put"], url_path="change-password")
    def change_password(self, request: Request) -> Response:
        """PUT /api/v1/auth/change-password"""
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        self._service.change_password(
            request.user,
            ChangePasswordDTO(
                current_password=data["currentPassword"],
                new_password=data["newPassword"],
            ),
        )
        return success(message="Password changed successfully")

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"])
    def me(self, request: Request) -> Response:
        """GET /api/v1/auth/me"""
        user = request.user
        serializer = ProfileSerializer(
            user,
            context={
                "addresses": self._profile.list_addresses(user),
                "wishlist": self._profile.wishlist(user),
            },
        )
        return success(user=serializer.data)

    @action(detail=False, methods=["put"])
    def profile(self, request: Request) -> Response:
        """PUT /api/v1/auth/profile"""
        serializer = UpdateProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = self._profile.update_profile(
            request.user, UpdateProfileDTO(**serializer.validated_data)
        )
        return success(message="Profile updated successfully", user=UserSerializer(user).data)

    # ------------------------------------------------------------------
    # Address book
    # ------------------------------------------------------------------

    @action(detail=False, methods=["post"])
    def addresses(self, request: Request) -> Response:
        """POST /api/v1/auth/addresses"""
        serializer = AddressWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        addresses = self._profile.add_address(
            request.user, AddressDTO(**serializer.validated_data)
        )
        return self._addresses_response(
            addresses, "Address added successfully", status.HTTP_201_CREATED
        )

    @addresses.mapping.get
    def list_addresses(self, request: Request) -> Response:
        """GET /api/v1/auth/addresses"""
        addresses = self._profile.list_addresses(request.user)
        return success(addresses=AddressSerializer(addresses, many=True).data)

    @action(detail=False, methods=["put"], url_path=r"addresses/(?P<address_id>[^/.]+)")
    def address(self, request: Request, address_id: str) -> Response:
        """PUT /api/v1/auth/addresses/{id}"""
        serializer = AddressWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        addresses = self._profile.update_address(
            request.user, address_id, UpdateAddressDTO(**serializer.validated_data)
        )
        return self._addresses_response(addresses, "Address updated successfully")

    @address.mapping.delete
    def delete_address(self, request: Request, address_id: str) -> Response:
        """DELETE /api/v1/auth/addresses/{id}"""
        addresses = self._profile.delete_address(request.user, address_id)
        return self._addresses_response(addresses, "Address deleted successfully")

    # ------------------------------------------------------------------
    # Wishlist
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"])
    def wishlist(self, request: Request) -> Response:
        """GET /api/v1/auth/wishlist"""
        return self._wishlist_response(self._profile.wishlist(request.user))

    @action(detail=False, methods=["post"], url_path=r"wishlist/(?P<product_id>[^/.]+)")
    def wishlist_item(self, request: Request, product_id: str) -> Response:
        """POST /api/v1/auth/wishlist/{product_id}"""
        products = self._profile.add_to_wishlist(request.user, product_id)
        return self._wishlist_response(products, "Added to wishlist")

    @wishlist_item.mapping.delete
    def remove_wishlist_item(self, request: Request, product_id: str) -> Response:
        """DELETE /api/v1/auth/wishlist/{product_id}"""
        products = self._profile.remove_from_wishlist(request.user, product_id)
        return self._wishlist_response(products, "Removed from wishlist")
