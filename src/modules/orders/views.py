"""Order API views.

Exposes ``OrderService`` via HTTP.  Domain exceptions propagate to
``envelope_exception_handler``; the view never swallows errors.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.accounts.authentication import OptionalAuthenticationMixin
from modules.core.permissions import IsAdmin
from modules.core.responses import success
from modules.core.throttling import RateLimitedViewMixin
from modules.orders.dtos import (
    CreateOrderDTO,
    ReturnRequestDTO,
    UpdateStatusDTO,
    VerifyPaymentDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderSerializer,
    ReturnRequestSerializer,
    TrackingSerializer,
    UpdateStatusSerializer,
    VerifyPaymentSerializer,
)
from modules.orders.services import OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

GUEST_ACTIONS = frozenset({"create", "retrieve", "track"})


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


class OrderViewSet(OptionalAuthenticationMixin, RateLimitedViewMixin, GenericViewSet):
    """ViewSet for Order operations.

    Orders are addressed by their public ``order_number``.  Does **not**
    extend ``ModelViewSet``: all ORM access goes through the
    service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    optional_auth_actions = GUEST_ACTIONS
    lookup_field = "order_number"
    lookup_value_regex = r"[A-Za-z0-9-]+"
    filterset_class = OrderFilter
    filter_backends = [DjangoFilterBackend]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_permissions(self):
        if self.action in GUEST_ACTIONS:
            return [AllowAny()]
        if self.action in {"my_orders", "request_return"}:
            return [IsAuthenticated()]
        return [IsAdmin()]

    def get_throttles(self):
        self.throttle_scope = "order_creation" if self.action == "create" else None
        return super().get_throttles()

    def _validated(self, serializer_class, request: Request) -> dict:
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def _paginated(self, queryset, request: Request) -> Response:
        queryset = self.filter_queryset(queryset)
        page = self.paginate_queryset(queryset)
        data = OrderSerializer(page, many=True).data
        return self.paginator.get_paginated_response(data, results_key="orders")

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/ (guest or authenticated)"""
        data = self._validated(CreateOrderSerializer, request)
        user = request.user
        dto = CreateOrderDTO(
            **data,
            user_id=user.pk if user.is_authenticated else None,
            ip_address=request.META.get("REMOTE_ADDR"),
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
        )
        order = self._service.create_order(dto)
        return success(
            status=status.HTTP_201_CREATED,
            message="Order placed successfully",
            orderNumber=order.order_number,
            order=OrderSerializer(order).data,
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, order_number: str | None = None) -> Response:
        """GET /api/v1/orders/{order_number}/"""
        order = self._service.get_order(order_number, viewer=request.user)
        return success(order=OrderSerializer(order).data)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"track/(?P<order_number>[A-Za-z0-9-]+)",
    )
    def track(self, request: Request, order_number: str | None = None) -> Response:
        """GET /api/v1/orders/track/{order_number}/ (public, redacted)"""
        order = self._service.track(order_number)
        return success(tracking=TrackingSerializer(order).data)

    @action(detail=False, methods=["get"], url_path="my-orders")
    def my_orders(self, request: Request) -> Response:
        """GET /api/v1/orders/my-orders/?status=&page=&limit="""
        return self._paginated(self._service.list_user_orders(request.user.pk), request)

    @action(detail=False, methods=["get"], url_path="admin/all")
    def admin_all(self, request: Request) -> Response:
        """GET /api/v1/orders/admin/all/?status=&paymentStatus=&search="""
        return self._paginated(self._service.list_all(), request)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @action(detail=True, methods=["patch"], url_path="status")
    def update_status(self, request: Request, order_number: str | None = None) -> Response:
        """PATCH /api/v1/orders/{order_number}/status/ (admin)"""
        data = self._validated(UpdateStatusSerializer, request)
        order = self._service.update_status(
            order_number, UpdateStatusDTO(**data), actor_id=request.user.pk
        )
        return success(
            message="Order status updated successfully",
            order=OrderSerializer(order).data,
        )

    @action(detail=True, methods=["patch"], url_path="verify-payment")
    def verify_payment(self, request: Request, order_number: str | None = None) -> Response:
        """PATCH /api/v1/orders/{order_number}/verify-payment/ (admin)"""
        data = self._validated(VerifyPaymentSerializer, request)
        order = self._service.verify_payment(
            order_number, VerifyPaymentDTO(**data), actor_id=request.user.pk
        )
        return success(
            message="Payment verified successfully",
            order=OrderSerializer(order).data,
        )

    @action(detail=True, methods=["post"], url_path="return")
    def request_return(self, request: Request, order_number: str | None = None) -> Response:
        """POST /api/v1/orders/{order_number}/return/ (owner)"""
        data = self._validated(ReturnRequestSerializer, request)
        order = self._service.request_return(
            order_number, request.user.pk, ReturnRequestDTO(**data)
        )
        return success(
            message="Return request submitted successfully",
            order=OrderSerializer(order).data,
        )
