"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """A new order was persisted; the customer gets an SMS and an email."""

    order_number: str = ""
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    total: str = "0.00"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised for status changes the customer is told about."""

    order_number: str = ""
    customer_phone: str = ""
    old_status: str = ""
    new_status: str = ""
