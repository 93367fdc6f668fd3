"""Format-insensitive parsing of monetary strings.

Extraction models return amounts as free text ("1234,50", "€ 100",
"100.00"). Two amounts are equivalent when they parse to the same value,
regardless of how each model formatted them. Thousands separators
("1.234,50") are not supported; such strings do not parse.
"""
from __future__ import annotations

import re
from decimal import Decimal

_STRIP_CHARS = ("€", "$", "£", " ")
_AMOUNT_RE = re.compile(r"^-?\d+(\.\d{0,2})?$")


def parse_money(value: str | None) -> Decimal | None:
    """Parse a display amount into a Decimal with two-place precision.

    Handles currency symbols (stripped), embedded spaces (stripped),
    comma as decimal separator, and an optional leading minus sign.
    At most two decimal places are accepted.

    Args:
        value: Raw amount string as returned by an extraction model.

    Returns:
        The parsed amount, or None if the string is not a valid amount.
    """
    if value is None:
        return None

    cleaned = value
    for char in _STRIP_CHARS:
        cleaned = cleaned.replace(char, "")
    cleaned = cleaned.replace(",", ".").strip()

    if not cleaned or not _AMOUNT_RE.match(cleaned):
        return None

    return Decimal(cleaned).quantize(Decimal("0.01"))


def amounts_equal(first: str | None, second: str | None) -> bool:
    """Return True when both strings parse as money and the values match."""
    first_amount = parse_money(first)
    second_amount = parse_money(second)
    if first_amount is None or second_amount is None:
        return False
    return first_amount == second_amount
