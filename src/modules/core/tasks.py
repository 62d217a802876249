"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task

from modules.core.outbox import relay_pending_events

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events():
    """Deliver pending outbox events (notifications) to their handlers."""
    result = relay_pending_events()
    logger.info("outbox.relay_completed", **result)
    return result
