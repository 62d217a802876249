"""Product API views.

Storefront reads are public; create / update / delete require the admin role.
Domain exceptions propagate to ``envelope_exception_handler``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.accounts.authentication import OptionalBearerTokenAuthentication
from modules.core.permissions import IsAdmin
from modules.core.responses import success
from modules.products.dtos import CreateProductDTO, UpdateProductDTO
from modules.products.filters import ProductFilter
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.serializers import ProductSerializer, ProductWriteSerializer
from modules.products.services import ProductService


class ProductViewSet(GenericViewSet):
    """Catalog endpoints.

    Does **not** extend ``ModelViewSet``: writes go through
    ``ProductService``.
    """

    authentication_classes = [OptionalBearerTokenAuthentication]
    filterset_class = ProductFilter
    filter_backends = [DjangoFilterBackend]
    queryset = Product.objects.none()
    serializer_class = ProductSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = ProductService(repository=ProductDjangoRepository())

    def get_permissions(self):
        if self.action in {"list", "retrieve", "facets"}:
            return [AllowAny()]
        return [IsAdmin()]

    def get_queryset(self):
        return self._service.list_products()

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/products/?category=&page=&limit="""
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = ProductSerializer(page, many=True)
        return self.paginator.get_paginated_response(serializer.data, results_key="products")

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/products/{id or slug}/"""
        product = self._service.get_product(pk)
        return success(product=ProductSerializer(product).data)

    @action(detail=False, methods=["get"], url_path="meta/categories")
    def facets(self, request: Request) -> Response:
        """GET /api/v1/products/meta/categories/"""
        return success(**self._service.catalog_facets().model_dump())

    # ------------------------------------------------------------------
    # Create / Update / Delete (admin)
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/products/"""
        serializer = ProductWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = self._service.create_product(CreateProductDTO(**serializer.validated_data))
        return success(
            status=status.HTTP_201_CREATED,
            message="Product created successfully",
            product=ProductSerializer(product).data,
        )

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/products/{id}/"""
        serializer = ProductWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        product = self._service.update_product(pk, UpdateProductDTO(**serializer.validated_data))
        return success(
            message="Product updated successfully",
            product=ProductSerializer(product).data,
        )

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/products/{id}/"""
        self._service.delete_product(pk)
        return success(message="Product deleted successfully")
