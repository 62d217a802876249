"""Account service layer (Use Cases).

- ``OtpService``: issue / verify / purge one-time codes.
- ``CredentialService``: password hashing and signed session tokens.
- ``AuthService``: signup, password and OTP logins, password reset and
  change, composed from the two services above.
- ``ProfileService``: profile edits, the saved-address book and the wishlist.

OTP verification commits its own transaction (attempt counter, deletion,
verified flag) before the caller acts on the result, so a failed signup or
login never rolls back the attempt that was just spent.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Optional
from uuid import UUID

import jwt
import structlog
from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.db import transaction
from django.utils import timezone

from modules.accounts.constants import MIN_PASSWORD_LENGTH, OTP_LENGTH, OtpPurpose
from modules.accounts.dtos import AuthSession, VerificationResult
from modules.accounts.events import OtpIssued
from modules.accounts.exceptions import (
    AddressNotFound,
    EmailAlreadyRegistered,
    IncorrectPassword,
    InvalidCredentials,
    InvalidPhoneNumber,
    OtpVerificationFailed,
    PhoneAlreadyRegistered,
    PhoneNotRegistered,
    SessionError,
    UserAlreadyExists,
    WeakPassword,
)
from modules.accounts.models import Address
from modules.accounts.validators import is_valid_phone, sanitize_phone
from modules.products.exceptions import ProductNotFound

if TYPE_CHECKING:
    from modules.accounts.dtos import (
        AddressDTO,
        ChangePasswordDTO,
        LoginDTO,
        LoginWithOtpDTO,
        ResetPasswordDTO,
        SendOtpDTO,
        SignupDTO,
        UpdateAddressDTO,
        UpdateProfileDTO,
        VerifyOtpDTO,
    )
    from modules.accounts.models import User
    from modules.accounts.repositories.interfaces import (
        IAddressRepository,
        IOtpRepository,
        IUserRepository,
    )
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

INVALID_OR_EXPIRED = "invalid_or_expired"
TOO_MANY_ATTEMPTS = "too_many_attempts"


# ---------------------------------------------------------------------------
# OTP
# ---------------------------------------------------------------------------


class OtpService:
    """Issues and verifies 6-digit codes per (phone, purpose)."""

    def __init__(
        self,
        repository: IOtpRepository,
        ttl_seconds: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._repo = repository
        self._ttl = timedelta(
            seconds=ttl_seconds if ttl_seconds is not None else settings.OTP_TTL_SECONDS
        )
        self._max_attempts = (
            max_attempts if max_attempts is not None else settings.OTP_MAX_ATTEMPTS
        )

    @staticmethod
    def generate_code() -> str:
        return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"

    @transaction.atomic
    def issue(self, phone: str, purpose: str) -> str:
        """Replace any previous code for (phone, purpose) and return the new one."""
        replaced = self._repo.delete_for(phone, purpose)
        code = self.generate_code()
        otp = self._repo.create(
            phone=phone,
            code=code,
            purpose=purpose,
            expires_at=timezone.now() + self._ttl,
        )
        otp.add_domain_event(
            OtpIssued(
                aggregate_id=otp.id,
                phone=phone,
                code=code,
                purpose=purpose,
                ttl_minutes=int(self._ttl.total_seconds() // 60),
            )
        )
        self._repo.save(otp)
        logger.info("otp.issued", phone=phone, purpose=purpose, replaced=replaced)
        return code

    @transaction.atomic
    def verify(self, phone: str, code: str, purpose: str) -> VerificationResult:
        """Check ``code`` against the live record for (phone, purpose).

        Every call on a live record spends one attempt; once attempts exceed
        the maximum the record is destroyed.  A verified record is never
        live again.
        """
        log = logger.bind(phone=phone, purpose=purpose)
        otp = self._repo.get_live_for_update(phone, purpose)
        if otp is None:
            log.info("otp.verify_failed", reason=INVALID_OR_EXPIRED)
            return VerificationResult(
                success=False, reason=INVALID_OR_EXPIRED, message="Invalid or expired OTP"
            )

        otp.attempts += 1
        if otp.attempts > self._max_attempts:
            self._repo.delete(otp)
            log.warning("otp.verify_failed", reason=TOO_MANY_ATTEMPTS)
            return VerificationResult(
                success=False,
                reason=TOO_MANY_ATTEMPTS,
                message="Too many attempts. Please request a new OTP.",
            )

        if not secrets.compare_digest(otp.code, str(code)):
            otp.save(update_fields=["attempts"])
            log.info("otp.verify_failed", reason=INVALID_OR_EXPIRED, attempts=otp.attempts)
            return VerificationResult(
                success=False, reason=INVALID_OR_EXPIRED, message="Invalid or expired OTP"
            )

        otp.verified = True
        otp.save(update_fields=["attempts", "verified"])
        log.info("otp.verified")
        return VerificationResult(success=True, message="OTP verified successfully")

    def purge_expired(self) -> int:
        purged = self._repo.purge_expired()
        logger.info("otp.purged", count=purged)
        return purged

    def purge_issued_events(self) -> int:
        """Drop delivered ``OtpIssued`` outbox rows so codes do not outlive their TTL."""
        purged = self._repo.purge_issued_events(issued_before=timezone.now() - self._ttl)
        logger.info("otp.issued_events_purged", count=purged)
        return purged


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class CredentialService:
    """Password hashing (Django hashers) and HS256 session tokens (PyJWT)."""

    def __init__(
        self,
        user_repository: IUserRepository,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._users = user_repository
        self._secret = settings.SESSION_TOKEN_SECRET
        self._algorithm = settings.SESSION_TOKEN_ALGORITHM
        self._ttl = settings.SESSION_TOKEN_TTL
        self._clock = clock

    def hash_password(self, password: str) -> str:
        return make_password(password)

    def verify_password(self, password: str, encoded: str) -> bool:
        return check_password(password, encoded)

    def issue_session(self, user_id: UUID | str) -> str:
        now = self._clock()
        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def validate_session(self, token: str) -> User:
        """Return the active user behind ``token``.

        Raises:
            SessionError: reason ``expired``, ``invalid`` or ``unknown_subject``.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise SessionError("expired", "Token expired. Please login again.") from None
        except jwt.PyJWTError:
            raise SessionError("invalid", "Invalid token. Please login again.") from None

        user = self._users.get_by_id(payload["sub"])
        if user is None or not user.is_active:
            raise SessionError("unknown_subject", "User not found. Please login again.")
        return user


# ---------------------------------------------------------------------------
# Authentication flows
# ---------------------------------------------------------------------------


class AuthService:
    """Signup and login flows on top of ``OtpService`` and ``CredentialService``."""

    def __init__(
        self,
        user_repository: IUserRepository,
        otp_service: OtpService,
        credential_service: CredentialService,
    ) -> None:
        self._users = user_repository
        self._otp = otp_service
        self._credentials = credential_service

    # ------------------------------------------------------------------
    # OTP
    # ------------------------------------------------------------------

    def send_otp(self, dto: SendOtpDTO) -> str:
        """Issue a code after checking the phone against the purpose.

        Raises:
            InvalidPhoneNumber: not a Bangladesh mobile number.
            PhoneAlreadyRegistered: signup for a registered phone.
            PhoneNotRegistered: login / reset for an unknown phone.
        """
        self._require_valid_phone(dto.phone)
        registered = self._users.get_by_phone(dto.phone) is not None
        if dto.purpose == OtpPurpose.SIGNUP and registered:
            raise PhoneAlreadyRegistered()
        if dto.purpose in (OtpPurpose.LOGIN, OtpPurpose.RESET) and not registered:
            raise PhoneNotRegistered()
        return self._otp.issue(dto.phone, dto.purpose)

    def verify_otp(self, dto: VerifyOtpDTO) -> VerificationResult:
        return self._require_otp(dto.phone, dto.code, dto.purpose)

    # ------------------------------------------------------------------
    # Signup / login
    # ------------------------------------------------------------------

    def signup(self, dto: SignupDTO) -> AuthSession:
        """Create a phone-verified customer and open a session.

        Raises:
            WeakPassword, InvalidPhoneNumber, OtpVerificationFailed,
            UserAlreadyExists.
        """
        self._require_strong_password(dto.password)
        self._require_valid_phone(dto.phone)
        self._require_otp(dto.phone, dto.otp, OtpPurpose.SIGNUP)

        with transaction.atomic():
            if self._users.exists(dto.email, dto.phone):
                raise UserAlreadyExists()
            user = self._users.create(
                name=dto.name,
                email=dto.email,
                phone=dto.phone,
                password_hash=self._credentials.hash_password(dto.password),
                phone_verified=True,
            )

        logger.info("auth.signup", user_id=str(user.id))
        return AuthSession(user=user, token=self._credentials.issue_session(user.id))

    def login(self, dto: LoginDTO) -> AuthSession:
        """Password login by email or phone.

        Raises:
            InvalidCredentials: unknown user, inactive user or wrong password.
        """
        identifier = dto.email_or_phone.strip()
        user = self._users.get_by_email(identifier) or self._users.get_by_phone(
            sanitize_phone(identifier)
        )
        if (
            user is None
            or not user.is_active
            or not self._credentials.verify_password(dto.password, user.password)
        ):
            logger.info("auth.login_failed")
            raise InvalidCredentials()

        return self._open_session(user, method="password")

    def login_with_otp(self, dto: LoginWithOtpDTO) -> AuthSession:
        self._require_otp(dto.phone, dto.otp, OtpPurpose.LOGIN)
        user = self._users.get_by_phone(dto.phone)
        if user is None or not user.is_active:
            raise PhoneNotRegistered()
        return self._open_session(user, method="otp")

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    def reset_password(self, dto: ResetPasswordDTO) -> None:
        self._require_strong_password(dto.new_password)
        self._require_otp(dto.phone, dto.otp, OtpPurpose.RESET)
        user = self._users.get_by_phone(dto.phone)
        if user is None:
            raise PhoneNotRegistered()
        user.password = self._credentials.hash_password(dto.new_password)
        self._users.save(user)
        logger.info("auth.password_reset", user_id=str(user.id))

    def change_password(self, user: User, dto: ChangePasswordDTO) -> None:
        if not self._credentials.verify_password(dto.current_password, user.password):
            raise IncorrectPassword()
        self._require_strong_password(dto.new_password)
        user.password = self._credentials.hash_password(dto.new_password)
        self._users.save(user)
        logger.info("auth.password_changed", user_id=str(user.id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _open_session(self, user: User, method: str) -> AuthSession:
        user.last_login = timezone.now()
        user.save(update_fields=["last_login"])
        logger.info("auth.login", user_id=str(user.id), method=method)
        return AuthSession(user=user, token=self._credentials.issue_session(user.id))

    def _require_otp(self, phone: str, code: str, purpose: str) -> VerificationResult:
        result = self._otp.verify(phone, code, purpose)
        if not result.success:
            raise OtpVerificationFailed(result.message, code=result.reason)
        return result

    @staticmethod
    def _require_valid_phone(phone: str) -> None:
        if not is_valid_phone(phone):
            raise InvalidPhoneNumber()

    @staticmethod
    def _require_strong_password(password: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise WeakPassword()


# ---------------------------------------------------------------------------
# Profile, addresses and wishlist
# ---------------------------------------------------------------------------


class ProfileService:
    """Self-service account data for an authenticated user.

    Address book rule: a user with at least one address has exactly one
    default.  The first address becomes the default, flagging another one
    moves the flag, and deleting the default promotes the oldest remaining
    address.  Unflagging the current default is ignored.
    """

    def __init__(
        self,
        user_repository: IUserRepository,
        address_repository: IAddressRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._users = user_repository
        self._addresses = address_repository
        self._products = product_repository

    @transaction.atomic
    def update_profile(self, user: User, dto: UpdateProfileDTO) -> User:
        """Raises ``EmailAlreadyRegistered`` when the email belongs to someone else."""
        changes = dto.model_dump(exclude_none=True)
        if "email" in changes and self._users.email_taken(changes["email"], user.id):
            raise EmailAlreadyRegistered()
        for field, value in changes.items():
            setattr(user, field, value)
        self._users.save(user)
        logger.info("profile.updated", user_id=str(user.id), fields=sorted(changes))
        return user

    # ------------------------------------------------------------------
    # Addresses
    # ------------------------------------------------------------------

    def list_addresses(self, user: User) -> list[Address]:
        return self._addresses.list_for_user(user.id)

    @transaction.atomic
    def add_address(self, user: User, dto: AddressDTO) -> list[Address]:
        self._require_valid_phone(dto.phone)
        make_default = dto.is_default or not self._addresses.list_for_user(user.id)
        if make_default:
            self._addresses.clear_default(user.id)
        address = Address(user=user, **dto.model_dump(exclude={"is_default"}))
        address.is_default = make_default
        self._addresses.save(address)
        logger.info("address.added", user_id=str(user.id), address_id=str(address.id))
        return self.list_addresses(user)

    @transaction.atomic
    def update_address(
        self, user: User, address_id: str, dto: UpdateAddressDTO
    ) -> list[Address]:
        """Raises ``AddressNotFound`` for unknown ids and other users' addresses."""
        address = self._get_address(user, address_id)
        changes = dto.model_dump(exclude_none=True)
        if "phone" in changes:
            self._require_valid_phone(changes["phone"])
        make_default = changes.pop("is_default", False)
        if make_default and not address.is_default:
            self._addresses.clear_default(user.id)
            address.is_default = True
        for field, value in changes.items():
            setattr(address, field, value)
        self._addresses.save(address)
        logger.info("address.updated", user_id=str(user.id), address_id=address_id)
        return self.list_addresses(user)

    @transaction.atomic
    def delete_address(self, user: User, address_id: str) -> list[Address]:
        address = self._get_address(user, address_id)
        was_default = address.is_default
        self._addresses.delete(address)
        remaining = self._addresses.list_for_user(user.id)
        if was_default and remaining:
            remaining[0].is_default = True
            self._addresses.save(remaining[0])
        logger.info("address.deleted", user_id=str(user.id), address_id=address_id)
        return remaining

    # ------------------------------------------------------------------
    # Wishlist
    # ------------------------------------------------------------------

    def wishlist(self, user: User) -> list[Product]:
        return self._users.wishlist(user)

    def add_to_wishlist(self, user: User, product_id: str) -> list[Product]:
        """Raises ``ProductNotFound`` for unknown products; re-adding is a no-op."""
        product = self._products.get_by_id(product_id)
        if product is None:
            raise ProductNotFound()
        self._users.add_to_wishlist(user, product)
        return self.wishlist(user)

    def remove_from_wishlist(self, user: User, product_id: str) -> list[Product]:
        self._users.remove_from_wishlist(user, product_id)
        return self.wishlist(user)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_address(self, user: User, address_id: str) -> Address:
        address = self._addresses.get_for_user(user.id, address_id)
        if address is None:
            raise AddressNotFound()
        return address

    @staticmethod
    def _require_valid_phone(phone: str) -> None:
        if not is_valid_phone(phone):
            raise InvalidPhoneNumber()
