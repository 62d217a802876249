import pytest

from modules.accounts.validators import is_valid_phone, sanitize_phone

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("01712345678", "01712345678"),
        ("+880 1712-345678", "01712345678"),
        ("8801712345678", "01712345678"),
        ("", ""),
    ],
)
def test_sanitize_phone(raw, expected):
    assert sanitize_phone(raw) == expected


@pytest.mark.parametrize(
    "phone, valid",
    [
        ("01712345678", True),
        ("01312345678", True),
        ("01212345678", False),
        ("0171234567", False),
        ("02712345678", False),
    ],
)
def test_is_valid_phone(phone, valid):
    assert is_valid_phone(phone) is valid
