"""
Monetary string parsing.

Disclosure feeds report amounts as free text: ``"$1,000,000"``,
``"15K"``, ``"$1,001 - $15,000"``. Everything that turns such text into a
number goes through :func:`parse_money`.

Grammar::

    amount  := [sign] ["$"] digits ["." digits] [suffix]
    digits  := \\d+ | \\d{1,3} ("," \\d{3})+
    suffix  := "K" | "M" | "B"        (case-insensitive)
    range   := amount "-" amount      (lower bound is returned; lower <= upper)

Surrounding whitespace is ignored.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union


logger = logging.getLogger(__name__)

_MULTIPLIERS = {
    "K": Decimal("1000"),
    "M": Decimal("1000000"),
    "B": Decimal("1000000000"),
}

_AMOUNT_RE = re.compile(
    r"^(?P<sign>[+-])?\s*\$?\s*"
    r"(?P<integer>\d{1,3}(?:,\d{3})+|\d+)"
    r"(?P<fraction>\.\d+)?"
    r"\s*(?P<suffix>[KkMmBb])?$"
)

# A dash between two amounts, not a leading minus sign
_RANGE_SPLIT_RE = re.compile(r"(?<=[\dKkMmBb])\s*[-–]\s*(?=[$\d])")


def parse_money(value: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """
    Parse a monetary amount.

    Args:
        value: Text such as "$1,500,000", "2.5M" or "$1,001 - $15,000";
            numbers are passed through as Decimal

    Returns:
        Decimal amount (lower bound for ranges), or None if unparseable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        return value if value.is_finite() else None

    if isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return None
        return result if result.is_finite() else None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    parts = _RANGE_SPLIT_RE.split(text, maxsplit=1)
    if len(parts) == 2:
        lower = _parse_amount(parts[0].strip())
        upper = _parse_amount(parts[1].strip())
        if lower is None or upper is None or lower > upper:
            logger.debug(f"Unparseable monetary range: {value!r}")
            return None
        return lower

    amount = _parse_amount(text)
    if amount is None:
        logger.debug(f"Unparseable monetary value: {value!r}")
    return amount


def _parse_amount(text: str) -> Optional[Decimal]:
    match = _AMOUNT_RE.match(text)
    if not match:
        return None

    number = match.group("integer").replace(",", "") + (match.group("fraction") or "")
    amount = Decimal(number)

    suffix = match.group("suffix")
    if suffix:
        amount *= _MULTIPLIERS[suffix.upper()]

    if match.group("sign") == "-":
        amount = -amount

    return amount
