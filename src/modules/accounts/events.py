"""Domain events for the Accounts bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OtpIssued(DomainEvent):
    """A verification code must be delivered by SMS."""

    phone: str = ""
    code: str = ""
    purpose: str = ""
    ttl_minutes: int = 5
