"""
Formatting utilities.

Values are rendered the Swedish way: non-breaking space as thousands
separator and a decimal comma.
"""

import math
import re
from typing import Optional, Union


NBSP = "\u00a0"

Number = Union[int, float]


def _to_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    cleaned = re.sub(r"\s", "", str(value)).replace(",", ".", 1)
    match = re.match(r"^[-+]?\d+(\.\d+)?", cleaned)
    return float(match.group(0)) if match else None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_number(value: Number, decimals: int = 0) -> str:
    """
    Format a number with Swedish grouping and decimal comma.

    >>> format_number(3250000)
    '3\\xa0250\\xa0000'
    >>> format_number(3.25, 1)
    '3,3'
    """
    if decimals == 0:
        text = f"{_round_half_up(value):,}"
    else:
        scaled = _round_half_up(abs(value) * 10 ** decimals) / 10 ** decimals
        text = f"{math.copysign(scaled, value):,.{decimals}f}"
    return text.replace(",", NBSP).replace(".", ",")


def format_value(value, value_type: str) -> str:
    """
    Format an apartment figure for display.

    Args:
        value: Number or numeric text; missing or non-numeric renders as ""
        value_type: price, fee, area, rooms, price_per_sqm, fee_per_sqm
            or debt_per_sqm. Any other type returns the value as text.

    Returns:
        Display string such as "3,3 miljoner kr" or "45 kr/kvm"
    """
    number = _to_number(value)
    if number is None:
        return ""

    if value_type == "price":
        if number >= 1_000_000:
            return f"{format_number(number / 1_000_000, 1)} miljoner kr"
        return f"{format_number(number)} kr"
    if value_type == "fee":
        return f"{format_number(number)} kr/mån"
    if value_type == "area":
        return f"{format_number(number)} kvm"
    if value_type in ("price_per_sqm", "fee_per_sqm", "debt_per_sqm"):
        return f"{format_number(number)} kr/kvm"
    if value_type == "rooms":
        return f"{format_number(number)} rum"
    return str(value)


def format_currency(amount: Number, currency: str = "SEK") -> str:
    """
    Format a whole amount as currency.

    Args:
        amount: The amount in whole units.
        currency: Currency code (default SEK).

    Returns:
        Formatted currency string.
    """
    suffixes = {
        "SEK": "kr",
    }
    suffix = suffixes.get(currency, currency)
    return f"{format_number(amount)} {suffix}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{format_number(value, decimals)}{NBSP}%"
