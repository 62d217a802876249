from datetime import timedelta

import pytest
from django.utils import timezone

from modules.accounts.models import OtpCode
from modules.accounts.tasks import purge_expired_otps
from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import relay_outbox_events

pytestmark = pytest.mark.unit


def test_purge_expired_otps_task():
    OtpCode.objects.create(
        phone="01711111111",
        code="123456",
        purpose="signup",
        expires_at=timezone.now() - timedelta(minutes=1),
    )

    assert purge_expired_otps.delay().get() == {"purged": 1, "events_purged": 0}
    assert not OtpCode.objects.exists()


def test_relay_task_uses_registered_handlers():
    OutboxEvent.objects.create(
        event_type="OrderStatusChanged",
        aggregate_id="01890a5d-ac96-774b-bcce-b302099a8057",
        payload={
            "aggregate_id": "01890a5d-ac96-774b-bcce-b302099a8057",
            "order_number": "TUA-12345678-ABCDE",
            "customer_phone": "01711111111",
            "old_status": "pending",
            "new_status": "confirmed",
        },
        topic="orders",
    )

    assert relay_outbox_events.delay().get() == {"published": 1, "failed": 0}
    assert OutboxEvent.objects.get().status == EventStatus.PUBLISHED
