from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.accounts.constants import UserRole
from modules.accounts.models import User
from modules.accounts.repositories.django_repository import UserDjangoRepository
from modules.accounts.services import CredentialService
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    CustomerDTO,
    ShippingAddressDTO,
)
from modules.orders.views import build_order_service
from modules.core.ratelimit import get_rate_limiter
from modules.notifications.gateways import InMemorySmsGateway
from modules.products.models import Product, ProductStatus


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _reset_process_state():
    """The limiter, the cache and the SMS outbox are process wide."""
    get_rate_limiter().reset()
    cache.clear()
    InMemorySmsGateway.outbox.clear()
    yield
    get_rate_limiter().reset()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users and tokens
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_user():
    return User.objects.create_user(
        email="customer@example.com",
        phone="01711111111",
        name="Rahim Customer",
        password="secret123",
        phone_verified=True,
    )


@pytest.fixture()
def other_user():
    return User.objects.create_user(
        email="other@example.com",
        phone="01822222222",
        name="Karim Other",
        password="secret123",
        phone_verified=True,
    )


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        email="admin@example.com",
        phone="01933333333",
        name="Store Admin",
        password="secret123",
        role=UserRole.ADMIN,
    )


def token_for(user) -> str:
    return CredentialService(UserDjangoRepository()).issue_session(user.id)


def _client_for(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token_for(user)}")
    return client


@pytest.fixture()
def auth_client(customer_user):
    """APIClient sending a valid bearer token for ``customer_user``."""
    return _client_for(customer_user)


@pytest.fixture()
def other_client(other_user):
    return _client_for(other_user)


@pytest.fixture()
def admin_client(admin_user):
    return _client_for(admin_user)


# ---------------------------------------------------------------------------
# Catalog and orders
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    counter = {"n": 0}

    def _make(**overrides) -> Product:
        counter["n"] += 1
        fields = {
            "title": f"Cotton Panjabi {counter['n']}",
            "category": "panjabi",
            "price": Decimal("1000.00"),
            "stock": 10,
            "status": ProductStatus.ACTIVE,
            "images": [{"url": "https://cdn.example.com/p.jpg", "alt": "", "is_primary": True}],
        }
        fields.update(overrides)
        return Product.objects.create(**fields)

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def order_payload():
    """Build a camelCase order request body for the given (product, qty) lines."""

    def _build(*lines, region="Dhaka", payment_method="cod"):
        return {
            "customer": {
                "name": "Rahim Customer",
                "email": "customer@example.com",
                "phone": "01711111111",
            },
            "shippingAddress": {
                "fullName": "Rahim Customer",
                "phone": "01711111111",
                "region": region,
                "city": "Dhaka",
                "area": "Dhanmondi",
                "address": "House 1, Road 2",
            },
            "items": [
                {"productId": str(product.id), "quantity": quantity}
                for product, quantity in lines
            ],
            "paymentMethod": payment_method,
        }

    return _build


@pytest.fixture()
def order_service():
    return build_order_service()


@pytest.fixture()
def create_dto():
    """Build a ``CreateOrderDTO`` for the given (product, qty) lines."""

    def _build(*lines, region="Dhaka", payment_method="cod", user_id=None):
        return CreateOrderDTO(
            customer=CustomerDTO(
                name="Rahim Customer", email="customer@example.com", phone="01711111111"
            ),
            shipping_address=ShippingAddressDTO(
                full_name="Rahim Customer",
                phone="01711111111",
                region=region,
                city="Dhaka",
                address="House 1, Road 2",
            ),
            items=[
                CreateOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
            payment_method=payment_method,
            user_id=user_id,
        )

    return _build


@pytest.fixture()
def place_order(order_service, create_dto):
    def _place(*lines, **kwargs):
        return order_service.create_order(create_dto(*lines, **kwargs))

    return _place
