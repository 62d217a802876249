from decimal import Decimal

import pytest
from pydantic import ValidationError

from modules.products.dtos import CreateProductDTO, UpdateProductDTO
from modules.products.exceptions import ProductHasOrders, ProductNotFound
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.services import ProductService

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return ProductService(repository=ProductDjangoRepository())


def _create(service, **overrides):
    fields = {"title": "Cotton Panjabi", "price": Decimal("1200.00"), "category": "panjabi"}
    fields.update(overrides)
    return service.create_product(CreateProductDTO(**fields))


def test_slugs_are_unique(service):
    first = _create(service)
    second = _create(service)

    assert first.slug == "cotton-panjabi"
    assert second.slug == "cotton-panjabi-2"


def test_update_applies_only_supplied_fields(service):
    product = _create(service, stock=5)

    updated = service.update_product(str(product.id), UpdateProductDTO(stock=9))

    assert updated.stock == 9
    assert updated.price == Decimal("1200.00")


def test_update_unknown_product(service):
    with pytest.raises(ProductNotFound):
        service.update_product("not-a-uuid", UpdateProductDTO(stock=1))


def test_get_product_by_slug(service):
    product = _create(service)

    assert service.get_product("cotton-panjabi") == product


def test_primary_image_prefers_flagged_one(service):
    product = _create(
        service,
        images=[
            {"url": "https://cdn.example.com/back.jpg"},
            {"url": "https://cdn.example.com/front.jpg", "is_primary": True},
        ],
    )

    assert product.primary_image == "https://cdn.example.com/front.jpg"


@pytest.mark.parametrize("price", ["0", "-5"])
def test_price_must_be_positive(price):
    with pytest.raises(ValidationError):
        CreateProductDTO(title="Saree", price=Decimal(price), category="saree")


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


def test_delete_removes_product_and_wishlist_entries(service, customer_user):
    product = _create(service)
    customer_user.wishlist.add(product)

    service.delete_product(str(product.id))

    assert not Product.objects.filter(id=product.id).exists()
    assert customer_user.wishlist.count() == 0


def test_delete_refuses_products_on_orders(service, make_product, place_order):
    product = make_product()
    place_order((product, 1))

    with pytest.raises(ProductHasOrders):
        service.delete_product(str(product.id))

    assert Product.objects.filter(id=product.id).exists()


def test_delete_unknown_product(service):
    with pytest.raises(ProductNotFound):
        service.delete_product("not-a-uuid")


# ---------------------------------------------------------------------------
# Facets
# ---------------------------------------------------------------------------


def test_facets_list_distinct_active_values(service, make_product):
    make_product(category="saree", brand="Aarong")
    make_product(category="panjabi", brand="Aarong")
    make_product(category="panjabi", brand="")
    make_product(category="kurti", brand="Yellow", status="draft")

    facets = service.catalog_facets()

    assert facets.categories == ["panjabi", "saree"]
    assert facets.brands == ["Aarong"]
