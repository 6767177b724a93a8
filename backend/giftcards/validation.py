from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any


# Upper bound of Numeric(12, 2)
MAX_AMOUNT = Decimal("9999999999.99")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def require_email(value: Any, field: str) -> str:
    email = _clean_str(value)
    if email is None:
        raise ValidationError(f"{field} is required")
    if len(email) > 255 or not EMAIL_PATTERN.match(email):
        raise ValidationError(f"{field} must be a valid email address")
    return email.lower()


def optional_email(value: Any, field: str) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_email(value, field)


def optional_text(value: Any, field: str, max_length: int = 255) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    stripped = value.strip()
    if len(stripped) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return stripped or None


def require_text(value: Any, field: str, max_length: int = 255) -> str:
    text = optional_text(value, field, max_length)
    if text is None:
        raise ValidationError(f"{field} is required")
    return text


def parse_amount(value: Any, field: str = "amount") -> Decimal:
    """
    Parse a positive money amount with at most 2 decimal places.

    Accepts int, float, Decimal, or a numeric string. Rejects booleans,
    NaN/Infinity, zero and negatives.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if not isinstance(value, (int, float, Decimal, str)):
        raise ValidationError(f"{field} must be a number")

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds the maximum of {MAX_AMOUNT}")
    if amount.as_tuple().exponent < -2 and amount != amount.quantize(Decimal("0.01")):
        raise ValidationError(f"{field} must have at most 2 decimal places")
    return amount.quantize(Decimal("0.01"))


def require_currency(value: Any, field: str = "currency") -> str:
    currency = _clean_str(value)
    if currency is None:
        raise ValidationError(f"{field} is required")
    if len(currency) > 8:
        raise ValidationError(f"{field} must be at most 8 characters")
    return currency.upper()


def parse_choice(value: Any, field: str, choices: set[str], default: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if not isinstance(value, str) or value.strip().lower() not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(choices))}")
    return value.strip().lower()
