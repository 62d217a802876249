"""Unit tests for ProfileService: profile edits, address book, wishlist."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from modules.accounts.dtos import AddressDTO, UpdateAddressDTO, UpdateProfileDTO
from modules.accounts.exceptions import (
    AddressNotFound,
    EmailAlreadyRegistered,
    InvalidPhoneNumber,
)
from modules.accounts.models import Address
from modules.accounts.repositories.django_repository import (
    AddressDjangoRepository,
    UserDjangoRepository,
)
from modules.accounts.services import ProfileService
from modules.products.exceptions import ProductNotFound
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return ProfileService(
        user_repository=UserDjangoRepository(),
        address_repository=AddressDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


def _address(label="Home", **overrides):
    fields = {
        "label": label,
        "full_name": "Rahim Customer",
        "phone": "+8801711111111",
        "region": "Dhaka",
        "city": "Dhaka",
        "area": "Dhanmondi",
        "address": "House 1, Road 2",
    }
    fields.update(overrides)
    return AddressDTO(**fields)


def _defaults(user):
    defaults = Address.objects.filter(user=user, is_default=True)
    return list(defaults.values_list("label", flat=True))


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class TestUpdateProfile:
    def test_changes_only_supplied_fields(self, service, customer_user):
        user = service.update_profile(customer_user, UpdateProfileDTO(name="Rahim Uddin"))

        user.refresh_from_db()
        assert user.name == "Rahim Uddin"
        assert user.email == "customer@example.com"

    def test_email_is_lowercased(self, service, customer_user):
        service.update_profile(customer_user, UpdateProfileDTO(email="New@Example.com"))

        customer_user.refresh_from_db()
        assert customer_user.email == "new@example.com"

    def test_keeping_own_email_is_allowed(self, service, customer_user):
        service.update_profile(customer_user, UpdateProfileDTO(email="customer@example.com"))

    def test_email_of_another_user_is_rejected(self, service, customer_user, other_user):
        with pytest.raises(EmailAlreadyRegistered):
            service.update_profile(customer_user, UpdateProfileDTO(email=other_user.email))

    def test_blank_name_is_rejected(self):
        with pytest.raises(ValidationError):
            UpdateProfileDTO(name="   ")


# ---------------------------------------------------------------------------
# Address book
# ---------------------------------------------------------------------------


class TestAddresses:
    def test_first_address_becomes_default(self, service, customer_user):
        [address] = service.add_address(customer_user, _address())

        assert address.is_default
        assert address.phone == "01711111111"

    def test_flagged_address_takes_over_default(self, service, customer_user):
        service.add_address(customer_user, _address("Home"))
        service.add_address(customer_user, _address("Office"))
        assert _defaults(customer_user) == ["Home"]

        service.add_address(customer_user, _address("Parents", is_default=True))

        assert _defaults(customer_user) == ["Parents"]

    def test_invalid_phone_is_rejected(self, service, customer_user):
        with pytest.raises(InvalidPhoneNumber):
            service.add_address(customer_user, _address(phone="12345"))

    def test_update_moves_default_flag(self, service, customer_user):
        service.add_address(customer_user, _address("Home"))
        office = service.add_address(customer_user, _address("Office"))[1]

        addresses = service.update_address(
            customer_user, str(office.id), UpdateAddressDTO(is_default=True, city="Gazipur")
        )

        assert [(a.label, a.is_default, a.city) for a in addresses] == [
            ("Home", False, "Dhaka"),
            ("Office", True, "Gazipur"),
        ]

    def test_unflagging_the_default_is_ignored(self, service, customer_user):
        [home] = service.add_address(customer_user, _address("Home"))

        service.update_address(customer_user, str(home.id), UpdateAddressDTO(is_default=False))

        assert _defaults(customer_user) == ["Home"]

    def test_update_of_someone_elses_address(self, service, customer_user, other_user):
        [theirs] = service.add_address(other_user, _address())

        with pytest.raises(AddressNotFound):
            service.update_address(customer_user, str(theirs.id), UpdateAddressDTO(city="X"))

    def test_deleting_default_promotes_oldest_remaining(self, service, customer_user):
        home = service.add_address(customer_user, _address("Home"))[0]
        service.add_address(customer_user, _address("Office"))
        service.add_address(customer_user, _address("Parents"))

        remaining = service.delete_address(customer_user, str(home.id))

        assert [a.label for a in remaining] == ["Office", "Parents"]
        assert _defaults(customer_user) == ["Office"]

    def test_delete_unknown_address(self, service, customer_user):
        with pytest.raises(AddressNotFound):
            service.delete_address(customer_user, "not-a-uuid")


# ---------------------------------------------------------------------------
# Wishlist
# ---------------------------------------------------------------------------


class TestWishlist:
    def test_add_is_idempotent_and_ordered(self, service, customer_user, make_product):
        first, second = make_product(), make_product()

        service.add_to_wishlist(customer_user, str(first.id))
        service.add_to_wishlist(customer_user, str(second.id))
        wishlist = service.add_to_wishlist(customer_user, str(first.id))

        assert wishlist == [first, second]

    def test_add_unknown_product(self, service, customer_user):
        with pytest.raises(ProductNotFound):
            service.add_to_wishlist(customer_user, "not-a-uuid")

    def test_remove(self, service, customer_user, product):
        service.add_to_wishlist(customer_user, str(product.id))

        assert service.remove_from_wishlist(customer_user, str(product.id)) == []

    def test_remove_of_absent_or_malformed_id_is_a_no_op(self, service, customer_user, product):
        service.add_to_wishlist(customer_user, str(product.id))

        assert service.remove_from_wishlist(customer_user, "not-a-uuid") == [product]

    def test_wishlists_are_per_user(self, service, customer_user, other_user, product):
        service.add_to_wishlist(customer_user, str(product.id))

        assert service.wishlist(other_user) == []
