"""Transactional outbox: recording domain events and relaying them.

Repositories call ``record_events`` inside the transaction that mutates the
aggregate.  ``relay_pending_events`` runs later (Celery task) and hands each
stored event to the in-process event bus; a handler failure only marks the
stored event as failed.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction
from kombu.exceptions import OperationalError

from modules.core.models import OutboxEvent
from shared.domain.bus import IEventBus
from shared.domain.events import DomainEvent, DomainEventMixin

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


def record_events(entity: DomainEventMixin, topic: str) -> List[OutboxEvent]:
    """Persist and clear the entity's pending domain events.

    Must run inside the caller's ``transaction.atomic()`` block.
    """
    stored = [
        OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=serialize_event_payload(event),
            topic=topic,
        )
        for event in entity.domain_events
    ]
    entity.clear_domain_events()
    if stored:
        schedule_relay()
    return stored


def serialize_event_payload(event: DomainEvent) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value


def schedule_relay() -> None:
    """Ask a worker to relay once the current transaction commits."""
    transaction.on_commit(_enqueue_relay)


def _enqueue_relay() -> None:
    from modules.core.tasks import relay_outbox_events

    try:
        relay_outbox_events.delay()
    except OperationalError:
        # The beat schedule picks the events up on its next run.
        logger.warning("outbox.relay_enqueue_failed", exc_info=True)


# ---------------------------------------------------------------------------
# Relaying
# ---------------------------------------------------------------------------


def relay_pending_events(
    bus: Optional[IEventBus] = None, limit: int = 100
) -> Dict[str, int]:
    """Publish relayable outbox events through ``bus``.

    Returns counts of published and failed events.
    """
    if bus is None:
        from shared.infrastructure.bus import event_bus as bus

    published = failed = 0
    with transaction.atomic():
        batch = list(
            OutboxEvent.objects.relayable(settings.OUTBOX_MAX_RETRIES)
            .select_for_update(skip_locked=True)[:limit]
        )
        for outbox_event in batch:
            log = logger.bind(
                outbox_event_id=str(outbox_event.id),
                event_type=outbox_event.event_type,
                aggregate_id=outbox_event.aggregate_id,
            )
            event_class = bus.event_class_for(outbox_event.event_type)
            if event_class is None:
                log.warning("outbox.no_handler")
                outbox_event.mark_as_failed(
                    f"No handler registered for {outbox_event.event_type}"
                )
                failed += 1
                continue

            try:
                with transaction.atomic():
                    bus.publish(event_class.from_payload(outbox_event.payload))
            except Exception as exc:
                log.exception("outbox.delivery_failed", retry_count=outbox_event.retry_count)
                outbox_event.mark_as_failed(f"{type(exc).__name__}: {exc}")
                failed += 1
                continue

            outbox_event.mark_as_published()
            log.info("outbox.published")
            published += 1

    return {"published": published, "failed": failed}
