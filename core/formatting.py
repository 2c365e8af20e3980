"""
Number and date helpers for the dashboard form and project pages.

Numeric inputs are typed freely ("1 200", "1.500.000 €"); only the digits are
kept. Display uses Finnish grouping with a non-breaking space.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo

GROUP_SEPARATOR = "\u00a0"
LOCAL_TZ = ZoneInfo("Europe/Helsinki")

_NON_DIGITS = re.compile(r"\D")


def only_digits(value: Any) -> str:
    return _NON_DIGITS.sub("", str(value or ""))


def digits_to_int_or_none(value: Any) -> Optional[int]:
    digits = only_digits(value)
    if not digits:
        return None
    return int(digits)


def format_thousands_fi(value: Any) -> str:
    """1200 -> '1 200'. Blank or non-numeric input renders as ''."""
    if value is None or value == "":
        return ""
    if isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        number = int(round(value))
    else:
        parsed = digits_to_int_or_none(value)
        if parsed is None:
            return ""
        number = parsed
    return f"{number:,}".replace(",", GROUP_SEPARATOR)


def format_eur(value: Any) -> str:
    text = format_thousands_fi(value)
    return f"{text}{GROUP_SEPARATOR}€" if text else ""


def format_m2(value: Any) -> str:
    text = format_thousands_fi(value)
    return f"{text}{GROUP_SEPARATOR}m²" if text else ""


def format_datetime_fi(value: Optional[datetime], empty: str = "-") -> str:
    """Aware UTC timestamp -> '14.3.2025 klo 09.05' in Finnish local time."""
    if value is None:
        return empty
    local = value.astimezone(LOCAL_TZ)
    return f"{local.day}.{local.month}.{local.year} klo {local:%H.%M}"


__all__ = [
    "GROUP_SEPARATOR",
    "LOCAL_TZ",
    "format_datetime_fi",
    "only_digits",
    "digits_to_int_or_none",
    "format_thousands_fi",
    "format_eur",
    "format_m2",
]
