"""Account domain exceptions.

Raised by the Service Layer; ``envelope_exception_handler`` renders them.
"""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import (
    BusinessRuleError,
    ConflictError,
    DomainError,
    NotFoundError,
)


class InvalidPhoneNumber(BusinessRuleError):
    code = "invalid_phone"
    default_message = "Invalid phone number format"


class PhoneAlreadyRegistered(ConflictError):
    code = "phone_registered"
    default_message = "Phone number already registered. Please login instead."


class PhoneNotRegistered(NotFoundError):
    code = "phone_not_registered"
    default_message = "Phone number not registered. Please signup first."


class UserAlreadyExists(ConflictError):
    code = "user_exists"
    default_message = "Email or phone already registered"


class WeakPassword(BusinessRuleError):
    code = "weak_password"
    default_message = "Password must be at least 6 characters"


class OtpVerificationFailed(BusinessRuleError):
    """Carries the ``VerificationResult`` reason as its code."""

    default_message = "Invalid or expired OTP"


class InvalidCredentials(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class IncorrectPassword(BusinessRuleError):
    code = "incorrect_password"
    default_message = "Current password is incorrect"


class SessionError(Exception):
    """A bearer token could not be turned into a user.

    ``reason`` is one of ``expired``, ``invalid`` or ``unknown_subject``.
    """

    def __init__(self, reason: str, message: str = "") -> None:
        self.reason = reason
        super().__init__(message or reason)


class EmailAlreadyRegistered(ConflictError):
    code = "email_registered"
    default_message = "Email already registered"


class AddressNotFound(NotFoundError):
    default_message = "Address not found"
