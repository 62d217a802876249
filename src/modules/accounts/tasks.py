"""Asynchronous tasks of the accounts module."""

from celery import shared_task

from modules.accounts.repositories.django_repository import OtpDjangoRepository
from modules.accounts.services import OtpService


@shared_task(name="accounts.purge_expired_otps")
def purge_expired_otps():
    """Delete expired OTP codes and the outbox rows that carried them."""
    service = OtpService(OtpDjangoRepository())
    return {
        "purged": service.purge_expired(),
        "events_purged": service.purge_issued_events(),
    }
