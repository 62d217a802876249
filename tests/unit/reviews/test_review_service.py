"""Unit tests for ReviewService: submission, moderation and rating upkeep."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.accounts.models import User
from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    CustomerDTO,
    ShippingAddressDTO,
    UpdateStatusDTO,
)
from modules.orders.views import build_order_service
from modules.products.exceptions import ProductNotFound
from modules.reviews.dtos import CreateReviewDTO, ModerateReviewDTO, RatingSummary
from modules.reviews.exceptions import (
    DuplicateReview,
    InvalidModerationStatus,
    ReviewNotFound,
)
from modules.reviews.models import Review
from modules.reviews.services import average_rating
from modules.reviews.views import build_review_service

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return build_review_service()


@pytest.fixture()
def make_reviewer():
    counter = {"n": 0}

    def _make() -> User:
        counter["n"] += 1
        n = counter["n"]
        return User.objects.create_user(
            email=f"reviewer{n}@example.com",
            phone=f"0155000{n:04d}",
            name=f"Reviewer {n}",
            password="secret123",
        )

    return _make


def _dto(product, rating=5, **overrides) -> CreateReviewDTO:
    fields = {"product_id": product.id, "rating": rating, "comment": "Lovely fabric"}
    fields.update(overrides)
    return CreateReviewDTO(**fields)


def _delivered_order(user, product, status="delivered"):
    orders = build_order_service()
    order = orders.create_order(
        CreateOrderDTO(
            customer=CustomerDTO(name=user.name, email=user.email, phone=user.phone),
            shipping_address=ShippingAddressDTO(
                full_name=user.name,
                phone=user.phone,
                region="Dhaka",
                city="Dhaka",
                address="House 1",
            ),
            items=[CreateOrderItemDTO(product_id=product.id, quantity=1)],
            payment_method="cod",
            user_id=user.id,
        )
    )
    orders.update_status(order.order_number, UpdateStatusDTO(status=status))
    return order


def _approve(service, review):
    return service.moderate(str(review.id), ModerateReviewDTO(status="approved"))


# ---------------------------------------------------------------------------
# average_rating
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "count, total, expected",
    [
        (0, 0, "0.0"),
        (1, 5, "5.0"),
        (3, 13, "4.3"),
        (4, 17, "4.3"),
        (2, 7, "3.5"),
        (8, 35, "4.4"),
    ],
)
def test_average_rating_rounds_half_up(count, total, expected):
    assert average_rating(RatingSummary(count=count, total=total)) == Decimal(expected)


# ---------------------------------------------------------------------------
# create_review
# ---------------------------------------------------------------------------


class TestCreateReview:
    def test_new_review_is_pending_and_unverified(self, service, product, customer_user):
        review = service.create_review(customer_user.id, _dto(product, rating=4))

        assert review.status == "pending"
        assert review.rating == 4
        assert not review.is_verified_purchase
        assert review.order_id is None

    def test_second_review_for_same_product_conflicts(
        self, service, product, customer_user
    ):
        service.create_review(customer_user.id, _dto(product))

        with pytest.raises(DuplicateReview):
            service.create_review(customer_user.id, _dto(product, rating=1))

        assert Review.objects.count() == 1

    def test_rejected_review_still_blocks_a_new_one(self, service, product, customer_user):
        review = service.create_review(customer_user.id, _dto(product))
        service.moderate(str(review.id), ModerateReviewDTO(status="rejected"))

        with pytest.raises(DuplicateReview):
            service.create_review(customer_user.id, _dto(product))

    def test_unknown_product(self, service, customer_user):
        dto = CreateReviewDTO(
            product_id="01890a5d-ac96-774b-bcce-b302099a8057", rating=5, comment="Nice"
        )

        with pytest.raises(ProductNotFound):
            service.create_review(customer_user.id, dto)

    def test_delivered_order_makes_verified_purchase(
        self, service, product, customer_user
    ):
        order = _delivered_order(customer_user, product)

        review = service.create_review(customer_user.id, _dto(product, order_id=order.id))

        assert review.is_verified_purchase
        assert review.order_id == order.id

    def test_undelivered_order_is_not_verified(self, service, product, customer_user):
        order = _delivered_order(customer_user, product, status="shipped")

        review = service.create_review(customer_user.id, _dto(product, order_id=order.id))

        assert not review.is_verified_purchase
        assert review.order_id is None

    def test_someone_elses_order_is_not_verified(
        self, service, product, customer_user, other_user
    ):
        order = _delivered_order(other_user, product)

        review = service.create_review(customer_user.id, _dto(product, order_id=order.id))

        assert not review.is_verified_purchase

    def test_order_without_the_product_is_not_verified(
        self, service, make_product, customer_user
    ):
        bought = make_product()
        reviewed = make_product()
        order = _delivered_order(customer_user, bought)

        review = service.create_review(customer_user.id, _dto(reviewed, order_id=order.id))

        assert not review.is_verified_purchase


# ---------------------------------------------------------------------------
# moderate
# ---------------------------------------------------------------------------


class TestModerate:
    def test_pending_reviews_do_not_count(self, service, product, customer_user):
        service.create_review(customer_user.id, _dto(product, rating=5))

        product.refresh_from_db()
        assert product.review_count == 0
        assert product.rating == Decimal("0.0")

    def test_approval_recomputes_rating(self, service, product, make_reviewer):
        ratings = [5, 4, 4, 4]
        for rating in ratings:
            _approve(service, service.create_review(make_reviewer().id, _dto(product, rating)))

        product.refresh_from_db()
        assert product.review_count == 4
        assert product.rating == Decimal("4.3")

    def test_leaving_approved_recomputes_rating(self, service, product, make_reviewer):
        keep = service.create_review(make_reviewer().id, _dto(product, 5))
        drop = service.create_review(make_reviewer().id, _dto(product, 1))
        _approve(service, keep)
        _approve(service, drop)

        service.moderate(str(drop.id), ModerateReviewDTO(status="rejected"))

        product.refresh_from_db()
        assert product.review_count == 1
        assert product.rating == Decimal("5.0")

    def test_rejecting_last_approved_resets_rating(self, service, product, customer_user):
        review = service.create_review(customer_user.id, _dto(product, 3))
        _approve(service, review)

        service.moderate(str(review.id), ModerateReviewDTO(status="rejected"))

        product.refresh_from_db()
        assert product.review_count == 0
        assert product.rating == Decimal("0.0")

    def test_admin_response_is_stamped(self, service, product, customer_user):
        review = service.create_review(customer_user.id, _dto(product))

        moderated = service.moderate(
            str(review.id),
            ModerateReviewDTO(status="approved", admin_response="Thanks for the feedback"),
        )

        assert moderated.admin_response == "Thanks for the feedback"
        assert moderated.admin_response_at is not None

    @pytest.mark.parametrize("status", ["pending", "published", ""])
    def test_invalid_status(self, service, product, customer_user, status):
        review = service.create_review(customer_user.id, _dto(product))

        with pytest.raises(InvalidModerationStatus):
            service.moderate(str(review.id), ModerateReviewDTO(status=status))

        assert Review.objects.get().status == "pending"

    def test_unknown_review(self, service):
        with pytest.raises(ReviewNotFound):
            service.moderate(
                "01890a5d-ac96-774b-bcce-b302099a8057",
                ModerateReviewDTO(status="approved"),
            )


# ---------------------------------------------------------------------------
# Queries and votes
# ---------------------------------------------------------------------------


def test_only_approved_reviews_are_listed(service, product, make_reviewer):
    approved = service.create_review(make_reviewer().id, _dto(product, 5))
    service.create_review(make_reviewer().id, _dto(product, 1))
    _approve(service, approved)

    listed = list(service.list_for_product(str(product.id)))

    assert [review.id for review in listed] == [approved.id]


def test_distribution_is_zero_filled(service, product, make_reviewer):
    for rating in (5, 5, 3):
        _approve(service, service.create_review(make_reviewer().id, _dto(product, rating)))

    assert service.rating_distribution(product.id) == {1: 0, 2: 0, 3: 1, 4: 0, 5: 2}


def test_pending_queue_is_oldest_first(service, product, make_product, make_reviewer):
    first = service.create_review(make_reviewer().id, _dto(product))
    second = service.create_review(make_reviewer().id, _dto(make_product()))

    assert [review.id for review in service.list_pending()] == [first.id, second.id]


def test_votes_increment_counters(service, product, customer_user):
    review = service.create_review(customer_user.id, _dto(product))

    service.vote(str(review.id), helpful=True)
    service.vote(str(review.id), helpful=True)
    voted = service.vote(str(review.id), helpful=False)

    assert (voted.helpful, voted.not_helpful) == (2, 1)


def test_vote_on_unknown_review(service):
    with pytest.raises(ReviewNotFound):
        service.vote("01890a5d-ac96-774b-bcce-b302099a8057", helpful=True)
