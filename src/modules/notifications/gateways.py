"""SMS delivery gateways.

``settings.SMS_GATEWAY`` holds the dotted path of the class used in this
deployment; a real provider only needs to implement ``SmsGateway.send``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, List, Tuple

import structlog
from django.conf import settings
from django.utils.module_loading import import_string

logger = structlog.get_logger(__name__)


class SmsGateway(ABC):
    @abstractmethod
    def send(self, phone: str, message: str) -> None:
        """Deliver ``message``; raise on failure so the outbox retries."""


class LoggingSmsGateway(SmsGateway):
    """Development gateway: records the send in the structured log."""

    def send(self, phone: str, message: str) -> None:
        logger.info("sms.sent", phone=phone, length=len(message))


class InMemorySmsGateway(SmsGateway):
    """Keeps sent messages in ``InMemorySmsGateway.outbox`` (tests)."""

    outbox: ClassVar[List[Tuple[str, str]]] = []

    def send(self, phone: str, message: str) -> None:
        self.outbox.append((phone, message))


def get_sms_gateway() -> SmsGateway:
    return import_string(settings.SMS_GATEWAY)()
