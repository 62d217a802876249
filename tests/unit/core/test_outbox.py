"""Unit tests for the transactional outbox and its relay."""

from __future__ import annotations

import pytest

from modules.accounts.events import OtpIssued
from modules.accounts.models import OtpCode
from modules.accounts.repositories.django_repository import OtpDjangoRepository
from modules.accounts.services import OtpService
from modules.core.models import EventStatus, OutboxEvent
from modules.core.outbox import relay_pending_events
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit


class RecordingHandler:
    def __init__(self) -> None:
        self.events = []

    def handle(self, event) -> None:
        self.events.append(event)


class ExplodingHandler:
    def handle(self, event) -> None:
        raise ConnectionError("sms provider down")


@pytest.fixture()
def issued_code():
    return OtpService(OtpDjangoRepository()).issue("01711111111", "signup")


class TestRecordEvents:
    def test_issue_writes_outbox_row_in_same_transaction(self, issued_code):
        outbox = OutboxEvent.objects.get()

        assert outbox.event_type == "OtpIssued"
        assert outbox.topic == "accounts"
        assert outbox.status == EventStatus.PENDING
        assert outbox.payload["phone"] == "01711111111"
        assert outbox.payload["code"] == issued_code

    def test_events_are_cleared_after_recording(self, issued_code):
        otp = OtpCode.objects.get()
        assert otp.domain_events == []


class TestRelay:
    def test_publishes_rebuilt_event(self, issued_code):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(OtpIssued, handler)

        result = relay_pending_events(bus=bus)

        assert result == {"published": 1, "failed": 0}
        [event] = handler.events
        assert isinstance(event, OtpIssued)
        assert event.code == issued_code
        outbox = OutboxEvent.objects.get()
        assert outbox.status == EventStatus.PUBLISHED
        assert outbox.processed_at is not None

    def test_handler_failure_marks_event_failed_and_keeps_aggregate(self, issued_code):
        bus = InMemoryEventBus()
        bus.subscribe(OtpIssued, ExplodingHandler())

        result = relay_pending_events(bus=bus)

        assert result == {"published": 0, "failed": 1}
        outbox = OutboxEvent.objects.get()
        assert outbox.status == EventStatus.FAILED
        assert outbox.retry_count == 1
        assert "ConnectionError" in outbox.error_message
        assert OtpCode.objects.filter(code=issued_code).exists()

    def test_failed_events_are_retried_until_max(self, settings, issued_code):
        settings.OUTBOX_MAX_RETRIES = 2
        bus = InMemoryEventBus()
        bus.subscribe(OtpIssued, ExplodingHandler())

        relay_pending_events(bus=bus)
        relay_pending_events(bus=bus)
        third = relay_pending_events(bus=bus)

        assert third == {"published": 0, "failed": 0}
        assert OutboxEvent.objects.get().retry_count == 2

    def test_retry_succeeds_after_transient_failure(self, issued_code):
        failing = InMemoryEventBus()
        failing.subscribe(OtpIssued, ExplodingHandler())
        relay_pending_events(bus=failing)

        healthy = InMemoryEventBus()
        handler = RecordingHandler()
        healthy.subscribe(OtpIssued, handler)
        relay_pending_events(bus=healthy)

        outbox = OutboxEvent.objects.get()
        assert outbox.status == EventStatus.PUBLISHED
        assert outbox.error_message is None
        assert len(handler.events) == 1

    def test_event_without_handler_is_marked_failed(self, issued_code):
        result = relay_pending_events(bus=InMemoryEventBus())

        assert result == {"published": 0, "failed": 1}
        assert "No handler registered" in OutboxEvent.objects.get().error_message
