"""Unit tests for OtpService: issuance, single use, attempt limit, isolation."""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone

from modules.accounts.models import OtpCode
from modules.accounts.repositories.django_repository import OtpDjangoRepository
from modules.accounts.services import INVALID_OR_EXPIRED, TOO_MANY_ATTEMPTS, OtpService
from modules.core.models import EventStatus, OutboxEvent

pytestmark = pytest.mark.unit

PHONE = "01711111111"


@pytest.fixture()
def service():
    return OtpService(OtpDjangoRepository(), ttl_seconds=300, max_attempts=3)


def _wrong(code: str) -> str:
    return "000000" if code != "000000" else "111111"


class TestIssue:
    def test_code_is_six_ascii_digits(self, service):
        code = service.issue(PHONE, "signup")

        assert len(code) == 6
        assert code.isdigit() and code.isascii()

    def test_expires_after_ttl(self, service):
        before = timezone.now()
        service.issue(PHONE, "signup")

        otp = OtpCode.objects.get()
        assert otp.attempts == 0
        assert not otp.verified
        assert before + timedelta(seconds=299) < otp.expires_at
        assert otp.expires_at <= timezone.now() + timedelta(seconds=300)

    def test_reissue_replaces_previous_code(self, service):
        first = service.issue(PHONE, "signup")
        second = service.issue(PHONE, "signup")

        assert OtpCode.objects.filter(phone=PHONE, purpose="signup").count() == 1
        if first != second:
            assert not service.verify(PHONE, first, "signup").success
        assert service.verify(PHONE, second, "signup").success

    def test_reissue_keeps_other_purposes(self, service):
        service.issue(PHONE, "signup")
        service.issue(PHONE, "login")

        assert OtpCode.objects.filter(phone=PHONE).count() == 2


class TestVerify:
    def test_correct_code_succeeds_once(self, service):
        code = service.issue(PHONE, "signup")

        first = service.verify(PHONE, code, "signup")
        second = service.verify(PHONE, code, "signup")

        assert first.success
        assert not second.success
        assert second.reason == INVALID_OR_EXPIRED

    def test_unknown_phone_is_invalid_or_expired(self, service):
        result = service.verify(PHONE, "123456", "signup")

        assert not result.success
        assert result.reason == INVALID_OR_EXPIRED
        assert result.message == "Invalid or expired OTP"

    def test_expired_code_is_rejected(self, service):
        code = service.issue(PHONE, "signup")
        OtpCode.objects.update(expires_at=timezone.now() - timedelta(seconds=1))

        result = service.verify(PHONE, code, "signup")

        assert result.reason == INVALID_OR_EXPIRED

    def test_wrong_code_spends_an_attempt(self, service):
        code = service.issue(PHONE, "signup")

        result = service.verify(PHONE, _wrong(code), "signup")

        assert result.reason == INVALID_OR_EXPIRED
        assert OtpCode.objects.get().attempts == 1

    def test_correct_code_on_third_attempt_succeeds(self, service):
        code = service.issue(PHONE, "signup")
        service.verify(PHONE, _wrong(code), "signup")
        service.verify(PHONE, _wrong(code), "signup")

        assert service.verify(PHONE, code, "signup").success

    def test_fourth_attempt_fails_even_with_correct_code(self, service):
        code = service.issue(PHONE, "signup")
        for _ in range(3):
            service.verify(PHONE, _wrong(code), "signup")

        result = service.verify(PHONE, code, "signup")

        assert not result.success
        assert result.reason == TOO_MANY_ATTEMPTS
        assert not OtpCode.objects.filter(phone=PHONE).exists()

    def test_after_lockout_the_code_is_gone(self, service):
        code = service.issue(PHONE, "signup")
        for _ in range(4):
            service.verify(PHONE, _wrong(code), "signup")

        assert service.verify(PHONE, code, "signup").reason == INVALID_OR_EXPIRED

    def test_purpose_isolation(self, service):
        code = service.issue(PHONE, "signup")

        assert not service.verify(PHONE, code, "login").success
        assert not service.verify(PHONE, code, "reset").success
        assert service.verify(PHONE, code, "signup").success


def test_purge_expired_removes_only_expired(service):
    service.issue(PHONE, "signup")
    service.issue(PHONE, "login")
    OtpCode.objects.filter(purpose="signup").update(
        expires_at=timezone.now() - timedelta(minutes=1)
    )

    assert service.purge_expired() == 1
    assert list(OtpCode.objects.values_list("purpose", flat=True)) == ["login"]


def test_purge_issued_events_drops_delivered_and_stale_codes(service):
    service.issue(PHONE, "signup")
    service.issue(PHONE, "login")
    service.issue(PHONE, "reset")
    events = OutboxEvent.objects.filter(event_type="OtpIssued")
    events.filter(payload__purpose="signup").update(status=EventStatus.PUBLISHED)
    events.filter(payload__purpose="reset").update(
        created_at=timezone.now() - timedelta(minutes=6)
    )
    OutboxEvent.objects.create(
        event_type="OrderStatusChanged",
        aggregate_id="order-1",
        payload={},
        topic="orders",
        status=EventStatus.PUBLISHED,
    )

    assert service.purge_issued_events() == 2
    assert [e.payload["purpose"] for e in events.all()] == ["login"]
    assert OutboxEvent.objects.filter(event_type="OrderStatusChanged").exists()
