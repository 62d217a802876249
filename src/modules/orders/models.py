"""Order, OrderItem and OrderTimelineEntry models.

Business rules implemented:
- ``order_number`` is unique and generated once, on first save.
- ``total = subtotal + shipping_cost - discount``; the four money fields
  are frozen after creation (``Order.save`` refuses to change them).
- OrderItem snapshots product title, image, variant and unit price at
  purchase time.
- The timeline is append-only: entries cannot be edited or deleted.
- Deleting a product referenced by an order item is refused (PROTECT).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ReturnStatus,
)
from modules.orders.pricing import generate_order_number
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

MONEY_FIELDS = ("subtotal", "shipping_cost", "discount", "total")


def _money(**kwargs: Any) -> models.DecimalField:
    return models.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` (``TUA-XXXXXXXX-XXXXX``) is the public identifier used
    in URLs, SMS and email; the UUIDv7 ``id`` is internal.  ``user`` is
    ``None`` for guest checkouts.
    """

    order_number = models.CharField(max_length=32, unique=True, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    # Customer contact
    customer_name = models.CharField(max_length=150)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=20)

    # Shipping address
    shipping_full_name = models.CharField(max_length=150)
    shipping_phone = models.CharField(max_length=20)
    shipping_region = models.CharField(max_length=50, db_index=True)
    shipping_city = models.CharField(max_length=100)
    shipping_area = models.CharField(max_length=100, blank=True, default="")
    shipping_address = models.CharField(max_length=500)
    shipping_landmark = models.CharField(max_length=255, blank=True, default="")
    shipping_notes = models.TextField(blank=True, default="")

    # Pricing
    subtotal = _money()
    shipping_cost = _money(default=Decimal("0.00"))
    discount = _money(default=Decimal("0.00"))
    discount_code = models.CharField(max_length=50, blank=True, default="")
    total = _money()

    # Payment
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_transaction_id = models.CharField(max_length=100, blank=True, default="")
    payment_sender_number = models.CharField(max_length=20, blank=True, default="")
    payment_amount = _money(null=True, blank=True)
    payment_verified_at = models.DateTimeField(null=True, blank=True)
    payment_verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    # Fulfilment
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    courier_name = models.CharField(max_length=100, blank=True, default="")
    courier_tracking_number = models.CharField(max_length=100, blank=True, default="")
    courier_tracking_url = models.URLField(blank=True, default="")
    estimated_delivery = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    # Returns
    return_requested = models.BooleanField(default=False)
    return_reason = models.TextField(blank=True, default="")
    return_status = models.CharField(  # noqa: DJ01
        max_length=10,
        choices=ReturnStatus.choices,
        null=True,
        blank=True,
    )
    return_requested_at = models.DateTimeField(null=True, blank=True)
    return_refund_amount = _money(null=True, blank=True)
    return_processed_at = models.DateTimeField(null=True, blank=True)

    # Request metadata
    source = models.CharField(max_length=20, default="website")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
            models.Index(fields=["user", "-created_at"], name="orders_user_created_idx"),
            models.Index(fields=["customer_phone"], name="orders_customer_phone_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(subtotal__gte=0),
                name="orders_subtotal_non_negative",
            ),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_money = {
            name: getattr(instance, name)
            for name in MONEY_FIELDS
            if name in field_names
        }
        return instance

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _check_money_frozen(self) -> None:
        loaded = getattr(self, "_loaded_money", {})
        changed = [name for name, value in loaded.items() if getattr(self, name) != value]
        if changed:
            raise ValidationError(
                {name: "Order totals cannot change after creation." for name in changed}
            )

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self._state.adding:
            if self.total != self.subtotal + self.shipping_cost - self.discount:
                raise ValidationError(
                    {"total": "Total must equal subtotal + shipping - discount."}
                )
        else:
            self._check_money_frozen()

        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
                logger.warning("order.number_collision", candidate=candidate)
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item snapshot; later catalog edits never change it."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    title = models.CharField(max_length=255)
    slug = models.CharField(max_length=280, blank=True, default="")
    image = models.URLField(max_length=500, blank=True, default="")
    variant_name = models.CharField(max_length=50, blank=True, default="")
    variant_value = models.CharField(max_length=100, blank=True, default="")
    unit_price = _money()
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    subtotal = _money(editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.title} x{self.quantity}"


class OrderTimelineEntry(BaseModel):
    """Append-only status history.

    ``actor`` is ``None`` when the entry was written by the system or a
    guest checkout.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="timeline",
    )
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    message = models.CharField(max_length=500)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "order_timeline"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="timeline_order_created_idx"),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ValidationError("Timeline entries are append-only.")
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any):
        raise ValidationError("Timeline entries are append-only.")

    def __str__(self) -> str:
        return f"{self.order_id} -> {self.status}"
