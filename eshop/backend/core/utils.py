"""
Core Utilities.

Shared helpers used across the backend.
"""

import re
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")
_DIGITS = re.compile(r"\D")


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetimes in the application are naive and assumed to be UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def round_money(value: Decimal | float | int | str) -> Decimal:
    """Round a monetary amount to cents, half up."""
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def digits_only(value: str | None) -> str:
    """Keep only the ASCII digits of a string."""
    return _DIGITS.sub("", value or "")


def blank_to_none(value: str | None) -> str | None:
    """Strip a string and turn an empty result into None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
