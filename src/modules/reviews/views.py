"""Review API views.

Exposes ``ReviewService`` via HTTP.  Domain exceptions propagate to
``envelope_exception_handler``.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.accounts.authentication import OptionalAuthenticationMixin
from modules.core.permissions import IsAdmin
from modules.core.responses import success
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.reviews.dtos import CreateReviewDTO, ModerateReviewDTO
from modules.reviews.models import Review
from modules.reviews.repositories.django_repository import ReviewDjangoRepository
from modules.reviews.serializers import (
    CreateReviewSerializer,
    HelpfulVoteSerializer,
    ModerateReviewSerializer,
    PendingReviewSerializer,
    ReviewSerializer,
)
from modules.reviews.services import ReviewService

PUBLIC_ACTIONS = frozenset({"product_reviews", "helpful"})


def build_review_service() -> ReviewService:
    return ReviewService(
        review_repository=ReviewDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        order_repository=OrderDjangoRepository(),
    )


class ReviewViewSet(OptionalAuthenticationMixin, GenericViewSet):
    queryset = Review.objects.none()
    serializer_class = ReviewSerializer
    optional_auth_actions = PUBLIC_ACTIONS

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_review_service()

    def get_permissions(self):
        if self.action in PUBLIC_ACTIONS:
            return [AllowAny()]
        if self.action == "create":
            return [IsAuthenticated()]
        return [IsAdmin()]

    def _validated(self, serializer_class, request: Request) -> dict:
        serializer = serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    def create(self, request: Request) -> Response:
        """POST /api/v1/reviews/"""
        data = self._validated(CreateReviewSerializer, request)
        review = self._service.create_review(request.user.pk, CreateReviewDTO(**data))
        return success(
            status=status.HTTP_201_CREATED,
            message="Review submitted successfully. It will be visible after approval.",
            review=ReviewSerializer(review).data,
        )

    @action(
        detail=False,
        methods=["get"],
        url_path=r"product/(?P<product_id>[^/.]+)",
    )
    def product_reviews(self, request: Request, product_id: str | None = None) -> Response:
        """GET /api/v1/reviews/product/{product_id}/?page=&limit="""
        queryset = self._service.list_for_product(product_id)
        page = self.paginate_queryset(queryset)
        distribution = self._service.rating_distribution(product_id)
        return self.paginator.get_paginated_response(
            ReviewSerializer(page, many=True).data,
            results_key="reviews",
            extra={"distribution": {str(star): n for star, n in distribution.items()}},
        )

    @action(detail=False, methods=["get"], url_path="admin/pending")
    def pending(self, request: Request) -> Response:
        """GET /api/v1/reviews/admin/pending/"""
        page = self.paginate_queryset(self._service.list_pending())
        return self.paginator.get_paginated_response(
            PendingReviewSerializer(page, many=True).data, results_key="reviews"
        )

    @action(detail=True, methods=["patch"])
    def moderate(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/reviews/{id}/moderate/ (admin)"""
        data = self._validated(ModerateReviewSerializer, request)
        review = self._service.moderate(pk, ModerateReviewDTO(**data))
        return success(
            message=f"Review {review.status} successfully",
            review=ReviewSerializer(review).data,
        )

    @action(detail=True, methods=["post"])
    def helpful(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/reviews/{id}/helpful/"""
        data = self._validated(HelpfulVoteSerializer, request)
        review = self._service.vote(pk, helpful=data["helpful"])
        return success(
            message="Thank you for your feedback",
            helpful=review.helpful,
            notHelpful=review.not_helpful,
        )
