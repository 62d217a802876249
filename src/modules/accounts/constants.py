"""Account domain constants."""

import re

from django.db import models


class UserRole(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    ADMIN = "admin", "Admin"


class OtpPurpose(models.TextChoices):
    SIGNUP = "signup", "Signup"
    LOGIN = "login", "Login"
    RESET = "reset", "Password reset"


# Bangladesh mobile numbers, optionally prefixed with +88
PHONE_PATTERN = re.compile(r"^(\+88)?01[3-9]\d{8}$")

OTP_LENGTH = 6
MIN_PASSWORD_LENGTH = 6
