"""Account DTOs for the Service Layer.

Pydantic v2 frozen models.  Phone numbers are sanitized on the way in;
whether they are valid Bangladesh mobiles is a service-level rule.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from modules.accounts.constants import OtpPurpose
from modules.accounts.validators import sanitize_phone


class _PhoneDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    phone: str

    @field_validator("phone", mode="before")
    @classmethod
    def sanitize(cls, v: Any) -> str:
        return sanitize_phone(str(v))


class SendOtpDTO(_PhoneDTO):
    purpose: OtpPurpose


class VerifyOtpDTO(_PhoneDTO):
    code: str
    purpose: OtpPurpose


class SignupDTO(_PhoneDTO):
    name: str
    email: EmailStr
    password: str
    otp: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required.")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    email_or_phone: str
    password: str


class LoginWithOtpDTO(_PhoneDTO):
    otp: str


class ResetPasswordDTO(_PhoneDTO):
    otp: str
    new_password: str


class ChangePasswordDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_password: str
    new_password: str


class UpdateProfileDTO(BaseModel):
    """Only supplied fields change; phone is bound to OTP verification."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank.")
        return v

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


class AddressDTO(_PhoneDTO):
    full_name: str
    region: str
    city: str
    address: str
    area: str = ""
    label: str = ""
    is_default: bool = False


class UpdateAddressDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: Optional[str] = None
    phone: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    area: Optional[str] = None
    label: Optional[str] = None
    is_default: Optional[bool] = None

    @field_validator("phone", mode="before")
    @classmethod
    def sanitize(cls, v: Any) -> Optional[str]:
        return sanitize_phone(str(v)) if v is not None else None


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class VerificationResult(BaseModel):
    """Outcome of ``OtpService.verify``; ``reason`` is set on failure."""

    model_config = ConfigDict(frozen=True)

    success: bool
    reason: Optional[str] = None
    message: str = ""


class AuthSession(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    user: Any
    token: str
