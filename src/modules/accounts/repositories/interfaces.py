"""Account repository interfaces."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.accounts.models import Address, OtpCode, User
    from modules.products.models import Product


class IUserRepository(IRepository["User"]):
    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive email look-up."""

    @abstractmethod
    def get_by_phone(self, phone: str) -> Optional[User]:
        """Look-up by sanitized phone."""

    @abstractmethod
    def exists(self, email: str, phone: str) -> bool:
        """``True`` when either the email or the phone is taken."""

    @abstractmethod
    def create(self, name: str, email: str, phone: str, password_hash: str, **extra) -> User:
        """Insert a user whose password is already hashed."""

    @abstractmethod
    def email_taken(self, email: str, exclude_id: Any) -> bool:
        """``True`` when another user already owns ``email``."""

    @abstractmethod
    def wishlist(self, user: User) -> list[Product]:
        """Wishlisted products, most recently added last."""

    @abstractmethod
    def add_to_wishlist(self, user: User, product: Product) -> None:
        """Idempotent."""

    @abstractmethod
    def remove_from_wishlist(self, user: User, product_id: str) -> None:
        """Idempotent; unknown ids are ignored."""


class IAddressRepository(IRepository["Address"]):
    @abstractmethod
    def list_for_user(self, user_id: Any) -> list[Address]:
        """Saved addresses, oldest first."""

    @abstractmethod
    def get_for_user(self, user_id: Any, address_id: str) -> Optional[Address]:
        """``None`` when absent, malformed or owned by someone else."""

    @abstractmethod
    def clear_default(self, user_id: Any) -> None:
        """Unset the default flag on every address of the user."""

    @abstractmethod
    def delete(self, address: Address) -> None:
        """Remove a single address."""


class IOtpRepository(IRepository["OtpCode"]):
    @abstractmethod
    def create(self, phone: str, code: str, purpose: str, expires_at: datetime) -> OtpCode:
        """Insert a fresh, unverified code with zero attempts."""

    @abstractmethod
    def delete_for(self, phone: str, purpose: str) -> int:
        """Delete every code for (phone, purpose); returns the count."""

    @abstractmethod
    def get_live_for_update(self, phone: str, purpose: str) -> Optional[OtpCode]:
        """Lock and return the unverified, unexpired code for (phone, purpose)."""

    @abstractmethod
    def delete(self, otp: OtpCode) -> None:
        """Remove a single code."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Delete expired codes; returns the count."""

    @abstractmethod
    def purge_issued_events(self, issued_before: datetime) -> int:
        """Delete ``OtpIssued`` outbox rows that were delivered or predate ``issued_before``."""
