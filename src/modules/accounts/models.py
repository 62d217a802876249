"""User and OTP models.

- ``User``: phone + email identity with a ``customer`` / ``admin`` role.
  Email is stored lowercased; phone is stored sanitized (11 digits).
- ``Address``: saved shipping addresses; at most one default per user.
- ``OtpCode``: a one-time code bound to (phone, purpose).  At most one row
  exists per (phone, purpose) because issuing deletes the previous ones.
"""

from __future__ import annotations

from typing import Any

from django.conf import settings
from django.contrib.auth.base_user import AbstractBaseUser, BaseUserManager
from django.db import models
from django.utils import timezone

from modules.accounts.constants import OtpPurpose, UserRole
from modules.core.models import BaseModel
from shared.domain.events import DomainEventMixin


class UserManager(BaseUserManager):
    use_in_migrations = True

    def create_user(
        self,
        email: str,
        phone: str,
        name: str,
        password: str | None = None,
        **extra: Any,
    ) -> User:
        user = self.model(
            email=self.normalize_email(email).lower(),
            phone=phone,
            name=name,
            **extra,
        )
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(
        self, email: str, phone: str, name: str, password: str | None = None, **extra: Any
    ) -> User:
        extra.setdefault("role", UserRole.ADMIN)
        extra.setdefault("phone_verified", True)
        return self.create_user(email, phone, name, password, **extra)


class User(AbstractBaseUser, BaseModel):
    name = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=11, unique=True)
    phone_verified = models.BooleanField(default=False)
    email_verified = models.BooleanField(default=False)
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
    )
    is_active = models.BooleanField(default=True)
    wishlist = models.ManyToManyField(
        "products.Product",
        related_name="wishlisted_by",
        blank=True,
        db_table="user_wishlist",
    )

    objects = UserManager()

    USERNAME_FIELD = "email"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = ["phone", "name"]

    class Meta:
        db_table = "users"
        ordering = ["-created_at"]

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


class Address(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    label = models.CharField(max_length=50, blank=True, default="")
    full_name = models.CharField(max_length=150)
    phone = models.CharField(max_length=11)
    region = models.CharField(max_length=50)
    city = models.CharField(max_length=100)
    area = models.CharField(max_length=100, blank=True, default="")
    address = models.CharField(max_length=255)
    is_default = models.BooleanField(default=False)

    class Meta:
        db_table = "user_addresses"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(is_default=True),
                name="addresses_one_default_per_user",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.label or 'Address'}: {self.address}, {self.city}"


class OtpCodeQuerySet(models.QuerySet):
    def live(self) -> OtpCodeQuerySet:
        """Unverified codes that have not expired yet."""
        return self.filter(verified=False, expires_at__gt=timezone.now())

    def expired(self) -> OtpCodeQuerySet:
        return self.filter(expires_at__lte=timezone.now())


class OtpCode(DomainEventMixin, BaseModel):
    phone = models.CharField(max_length=11)
    code = models.CharField(max_length=6)
    purpose = models.CharField(max_length=10, choices=OtpPurpose.choices)
    expires_at = models.DateTimeField()
    verified = models.BooleanField(default=False)
    attempts = models.PositiveSmallIntegerField(default=0)

    objects = OtpCodeQuerySet.as_manager()

    class Meta:
        db_table = "otp_codes"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["phone", "purpose"], name="otp_phone_purpose_idx"),
            models.Index(fields=["expires_at"], name="otp_expires_idx"),
        ]

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= timezone.now()

    def __str__(self) -> str:
        return f"OTP {self.purpose} for {self.phone}"
