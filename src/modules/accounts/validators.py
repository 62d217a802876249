"""Phone number normalisation and validation."""

from __future__ import annotations

import re

from modules.accounts.constants import PHONE_PATTERN

_NON_DIGITS = re.compile(r"\D")


def sanitize_phone(phone: str) -> str:
    """Keep digits only and drop the ``88`` country code.

    >>> sanitize_phone("+880 1712-345678")
    '01712345678'
    """
    digits = _NON_DIGITS.sub("", phone or "")
    if digits.startswith("88"):
        digits = digits[2:]
    return digits


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(phone or ""))
