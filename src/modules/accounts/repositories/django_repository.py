"""Django ORM implementations of the account repositories."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q

from modules.accounts.events import OtpIssued
from modules.accounts.models import Address, OtpCode, User
from modules.accounts.repositories.interfaces import (
    IAddressRepository,
    IOtpRepository,
    IUserRepository,
)
from modules.core.models import EventStatus, OutboxEvent
from modules.core.outbox import record_events
from modules.products.models import Product

logger = structlog.get_logger(__name__)


class UserDjangoRepository(IUserRepository):
    def get_by_id(self, id: str) -> Optional[User]:
        try:
            return User.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_email(self, email: str) -> Optional[User]:
        return User.objects.filter(email=email.strip().lower()).first()

    def get_by_phone(self, phone: str) -> Optional[User]:
        return User.objects.filter(phone=phone).first()

    def exists(self, email: str, phone: str) -> bool:
        return User.objects.filter(Q(email=email.strip().lower()) | Q(phone=phone)).exists()

    def create(self, name: str, email: str, phone: str, password_hash: str, **extra) -> User:
        user = User(name=name, email=email, phone=phone, password=password_hash, **extra)
        user.save()
        logger.info("user.created", user_id=str(user.id))
        return user

    def save(self, entity: User) -> User:
        entity.save()
        return entity

    def email_taken(self, email: str, exclude_id: Any) -> bool:
        return (
            User.objects.filter(email=email.strip().lower()).exclude(id=exclude_id).exists()
        )

    def wishlist(self, user: User) -> list[Product]:
        rows = (
            User.wishlist.through.objects.filter(user_id=user.id)
            .select_related("product")
            .order_by("id")
        )
        return [row.product for row in rows]

    def add_to_wishlist(self, user: User, product: Product) -> None:
        user.wishlist.add(product)

    def remove_from_wishlist(self, user: User, product_id: str) -> None:
        try:
            User.wishlist.through.objects.filter(
                user_id=user.id, product_id=product_id
            ).delete()
        except (ValueError, ValidationError):
            return


class AddressDjangoRepository(IAddressRepository):
    def get_by_id(self, id: str) -> Optional[Address]:
        try:
            return Address.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list_for_user(self, user_id: Any) -> list[Address]:
        return list(Address.objects.filter(user_id=user_id).order_by("created_at", "id"))

    def get_for_user(self, user_id: Any, address_id: str) -> Optional[Address]:
        try:
            return Address.objects.filter(user_id=user_id, id=address_id).first()
        except (ValueError, ValidationError):
            return None

    def clear_default(self, user_id: Any) -> None:
        Address.objects.filter(user_id=user_id, is_default=True).update(is_default=False)

    def save(self, entity: Address) -> Address:
        entity.save()
        return entity

    def delete(self, address: Address) -> None:
        address.delete()


class OtpDjangoRepository(IOtpRepository):
    def get_by_id(self, id: str) -> Optional[OtpCode]:
        try:
            return OtpCode.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def create(self, phone: str, code: str, purpose: str, expires_at: datetime) -> OtpCode:
        return OtpCode.objects.create(
            phone=phone, code=code, purpose=purpose, expires_at=expires_at
        )

    def delete_for(self, phone: str, purpose: str) -> int:
        deleted, _ = OtpCode.objects.filter(phone=phone, purpose=purpose).delete()
        return deleted

    def get_live_for_update(self, phone: str, purpose: str) -> Optional[OtpCode]:
        return (
            OtpCode.objects.select_for_update()
            .live()
            .filter(phone=phone, purpose=purpose)
            .order_by("-created_at")
            .first()
        )

    @transaction.atomic
    def save(self, entity: OtpCode) -> OtpCode:
        """Persist the code and its pending events in one transaction."""
        entity.save()
        record_events(entity, topic="accounts")
        return entity

    def delete(self, otp: OtpCode) -> None:
        otp.delete()

    def purge_expired(self) -> int:
        deleted, _ = OtpCode.objects.expired().delete()
        return deleted

    def purge_issued_events(self, issued_before: datetime) -> int:
        deleted, _ = (
            OutboxEvent.objects.filter(event_type=OtpIssued.__name__)
            .filter(Q(status=EventStatus.PUBLISHED) | Q(created_at__lt=issued_before))
            .delete()
        )
        return deleted
