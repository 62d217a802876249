"""Integration tests for /api/v1/reviews/."""

from __future__ import annotations

import pytest

from modules.reviews.models import Review

pytestmark = pytest.mark.integration

REVIEWS_URL = "/api/v1/reviews/"


@pytest.fixture()
def submitted(auth_client, product):
    response = auth_client.post(
        REVIEWS_URL,
        {"productId": str(product.id), "rating": 4, "comment": "Fits well"},
        format="json",
    )
    assert response.status_code == 201
    return response.json()["review"]


def test_submit_review(submitted, product):
    assert submitted["status"] == "pending"
    assert submitted["productId"] == str(product.id)
    assert submitted["userName"] == "Rahim Customer"
    assert submitted["isVerifiedPurchase"] is False


def test_submit_requires_login(api_client, product):
    response = api_client.post(
        REVIEWS_URL, {"productId": str(product.id), "rating": 4, "comment": "x"}, format="json"
    )

    assert response.status_code == 401


def test_duplicate_review(auth_client, submitted, product):
    response = auth_client.post(
        REVIEWS_URL,
        {"productId": str(product.id), "rating": 1, "comment": "Changed my mind"},
        format="json",
    )

    assert response.status_code == 409
    assert response.json()["error"] == "You have already reviewed this product"


@pytest.mark.parametrize("rating", [0, 6])
def test_rating_out_of_range(auth_client, product, rating):
    response = auth_client.post(
        REVIEWS_URL,
        {"productId": str(product.id), "rating": rating, "comment": "x"},
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "rating"


def test_verified_purchase_through_delivered_order(
    auth_client, admin_client, order_payload, product
):
    number = auth_client.post(
        "/api/v1/orders/", order_payload((product, 1)), format="json"
    ).json()["orderNumber"]
    order = admin_client.patch(
        f"/api/v1/orders/{number}/status/", {"status": "delivered"}, format="json"
    ).json()["order"]

    response = auth_client.post(
        REVIEWS_URL,
        {
            "productId": str(product.id),
            "orderId": order["id"],
            "rating": 5,
            "comment": "Exactly as pictured",
        },
        format="json",
    )

    assert response.json()["review"]["isVerifiedPurchase"] is True


def test_pending_reviews_are_not_public(api_client, submitted, product):
    body = api_client.get(f"{REVIEWS_URL}product/{product.id}/").json()

    assert body["reviews"] == []
    assert body["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 0}


def test_moderation_publishes_and_rates(admin_client, api_client, submitted, product):
    response = admin_client.patch(
        f"{REVIEWS_URL}{submitted['id']}/moderate/",
        {"status": "approved", "adminResponse": "Thank you!"},
        format="json",
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Review approved successfully"
    body = api_client.get(f"{REVIEWS_URL}product/{product.id}/").json()
    assert [r["id"] for r in body["reviews"]] == [submitted["id"]]
    assert body["reviews"][0]["adminResponse"] == "Thank you!"
    assert body["distribution"]["4"] == 1
    product_body = api_client.get(f"/api/v1/products/{product.id}/").json()["product"]
    assert product_body["rating"] == "4.0"
    assert product_body["reviewCount"] == 1


def test_invalid_moderation_status(admin_client, submitted):
    response = admin_client.patch(
        f"{REVIEWS_URL}{submitted['id']}/moderate/", {"status": "pending"}, format="json"
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid status"


def test_moderation_requires_admin(auth_client, submitted):
    response = auth_client.patch(
        f"{REVIEWS_URL}{submitted['id']}/moderate/", {"status": "approved"}, format="json"
    )

    assert response.status_code == 403


def test_pending_queue(admin_client, submitted, product):
    body = admin_client.get(f"{REVIEWS_URL}admin/pending/").json()

    [pending] = body["reviews"]
    assert pending["id"] == submitted["id"]
    assert pending["productTitle"] == product.title
    assert pending["userEmail"] == "customer@example.com"


def test_helpful_votes_are_public(api_client, submitted):
    api_client.post(f"{REVIEWS_URL}{submitted['id']}/helpful/", {"helpful": True}, format="json")
    response = api_client.post(
        f"{REVIEWS_URL}{submitted['id']}/helpful/", {"helpful": False}, format="json"
    )

    assert response.status_code == 200
    assert response.json()["helpful"] == 1
    assert response.json()["notHelpful"] == 1
    assert Review.objects.get().helpful == 1


def test_reviews_for_unknown_product(api_client):
    response = api_client.get(f"{REVIEWS_URL}product/01890a5d-ac96-774b-bcce-b302099a8057/")

    assert response.status_code == 404
