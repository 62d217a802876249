"""Customer facing SMS and email texts."""

from __future__ import annotations

from typing import Optional

from django.conf import settings

STATUS_SMS = {
    "confirmed": "Your order #{order_number} has been confirmed and is being prepared.",
    "processing": "Your order #{order_number} is being processed.",
    "shipped": "Great news! Your order #{order_number} has been shipped and is on its way.",
    "delivered": (
        "Your order #{order_number} has been delivered. "
        "Thank you for shopping with {store}!"
    ),
}


def otp_sms(code: str, ttl_minutes: int = 5) -> str:
    return (
        f"Your {settings.STORE_NAME} verification code is: {code}. "
        f"Valid for {ttl_minutes} minutes. Do not share this code."
    )


def order_confirmation_sms(order_number: str) -> str:
    return (
        f"Thank you for your order! Your order #{order_number} has been confirmed. "
        f"Track your order at {settings.FRONTEND_URL}/track"
    )


def status_sms(order_number: str, status: str) -> Optional[str]:
    """``None`` for statuses the customer is not told about."""
    template = STATUS_SMS.get(status)
    if template is None:
        return None
    return template.format(order_number=order_number, store=settings.STORE_NAME)


def order_confirmation_subject(order_number: str) -> str:
    return f"Order Confirmation - {order_number}"


def tracking_url(order_number: str) -> str:
    return f"{settings.FRONTEND_URL}/track/{order_number}"
