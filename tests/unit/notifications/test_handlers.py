"""Notification handlers, driven through the outbox relay."""

from __future__ import annotations

import pytest
from django.core import mail

from modules.accounts.repositories.django_repository import OtpDjangoRepository
from modules.accounts.services import OtpService
from modules.core.models import EventStatus, OutboxEvent
from modules.core.outbox import relay_pending_events
from modules.notifications import messages
from modules.notifications.gateways import InMemorySmsGateway
from modules.notifications.handlers import register_handlers
from modules.orders.dtos import UpdateStatusDTO
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


@pytest.fixture()
def bus():
    bus = InMemoryEventBus()
    register_handlers(bus)
    return bus


@pytest.fixture()
def placed_order(order_service, create_dto, product):
    return order_service.create_order(create_dto((product, 2)))


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def test_status_sms_only_for_notifiable_statuses():
    assert "has been shipped" in messages.status_sms("TUA-1-ABCDE", "shipped")
    assert messages.status_sms("TUA-1-ABCDE", "cancelled") is None
    assert messages.status_sms("TUA-1-ABCDE", "pending") is None


def test_tracking_url(settings):
    settings.FRONTEND_URL = "https://shop.example.com"

    assert messages.tracking_url("TUA-1-ABCDE") == "https://shop.example.com/track/TUA-1-ABCDE"


# ---------------------------------------------------------------------------
# OTP
# ---------------------------------------------------------------------------


def test_otp_sms_is_sent_on_relay(bus):
    code = OtpService(OtpDjangoRepository()).issue("01711111111", "login")

    result = relay_pending_events(bus)

    assert result == {"published": 1, "failed": 0}
    [(phone, text)] = InMemorySmsGateway.outbox
    assert phone == "01711111111"
    assert code in text


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def test_order_placed_sends_sms_and_email(bus, placed_order):
    relay_pending_events(bus)

    [(phone, text)] = InMemorySmsGateway.outbox
    assert phone == placed_order.customer_phone
    assert placed_order.order_number in text

    [email] = mail.outbox
    assert email.to == ["customer@example.com"]
    assert email.subject == f"Order Confirmation - {placed_order.order_number}"
    assert placed_order.order_number in email.body
    assert str(placed_order.total) in email.body
    assert email.alternatives


def test_status_change_sends_sms(bus, order_service, placed_order):
    relay_pending_events(bus)
    InMemorySmsGateway.outbox.clear()

    order_service.update_status(placed_order.order_number, UpdateStatusDTO(status="shipped"))
    relay_pending_events(bus)

    [(phone, text)] = InMemorySmsGateway.outbox
    assert phone == placed_order.customer_phone
    assert "shipped" in text


def test_cancellation_sends_nothing(bus, order_service, placed_order):
    relay_pending_events(bus)
    InMemorySmsGateway.outbox.clear()

    order_service.update_status(
        placed_order.order_number, UpdateStatusDTO(status="cancelled")
    )
    result = relay_pending_events(bus)

    assert result == {"published": 0, "failed": 0}
    assert InMemorySmsGateway.outbox == []


def test_gateway_failure_leaves_event_for_retry(bus, placed_order, monkeypatch):
    def broken(self, phone, message):
        raise ConnectionError("gateway down")

    monkeypatch.setattr(InMemorySmsGateway, "send", broken)

    result = relay_pending_events(bus)

    assert result == {"published": 0, "failed": 1}
    event = OutboxEvent.objects.get(event_type="OrderPlaced")
    assert event.status == EventStatus.FAILED
    assert "gateway down" in event.error_message
