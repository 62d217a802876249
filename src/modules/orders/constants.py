"""Order domain constants.

Status, payment and return choices plus the declared status transition
table.  Transitions are permissive: any status may move to any other,
except ``returned`` which is only reachable from ``delivered``.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    RETURNED = "returned", "Returned"


class PaymentMethod(models.TextChoices):
    COD = "cod", "Cash on delivery"
    BKASH = "bkash", "bKash"
    NAGAD = "nagad", "Nagad"
    ROCKET = "rocket", "Rocket"
    CARD = "card", "Card"


class PaymentStatus(models.TextChoices):
    UNPAID = "unpaid", "Unpaid"
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    REFUNDED = "refunded", "Refunded"


class ReturnStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


_ALL_BUT_RETURNED = {s for s in OrderStatus.values if s != OrderStatus.RETURNED}

VALID_TRANSITIONS: dict[str, set[str]] = {
    status: (
        _ALL_BUT_RETURNED | {OrderStatus.RETURNED}
        if status == OrderStatus.DELIVERED
        else set(_ALL_BUT_RETURNED)
    )
    for status in OrderStatus.values
}

# Status changes that trigger a customer SMS
NOTIFIABLE_STATUSES: frozenset[str] = frozenset(
    {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    }
)

INITIAL_TIMELINE_MESSAGE = "Order placed successfully"

ORDER_NUMBER_MAX_RETRIES = 5
ORDER_NUMBER_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
