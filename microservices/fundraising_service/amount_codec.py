"""
Amount codec

Converts between decimal cETH strings and fixed-point base units
(6 fractional digits).
"""

import re

from .protocols import InvalidFormatError

DECIMALS = 6
MICRO_UNITS = 10**DECIMALS

_AMOUNT_PATTERN = re.compile(r"^\d+(\.\d{0,6})?$", re.ASCII)


def parse_amount(text: str) -> int:
    """
    Parse a decimal amount into base units.

    Empty input parses to 0 so optional fields can be left blank; callers
    decide whether zero is acceptable.

    Raises:
        InvalidFormatError: more than 6 fractional digits, non-digit
            characters, or more than one decimal point
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return 0

    if not _AMOUNT_PATTERN.match(trimmed):
        raise InvalidFormatError("Enter a valid amount with up to 6 decimals")

    whole, _, fraction = trimmed.partition(".")
    normalized_fraction = (fraction + "0" * DECIMALS)[:DECIMALS]
    return int(whole) * MICRO_UNITS + int(normalized_fraction)


def format_amount(units: int, grouping: bool = False) -> str:
    """
    Render base units as a decimal string with up to 6 fractional digits.

    Display only: grouped output does not parse back.
    """
    if units < 0:
        raise InvalidFormatError(f"Amount cannot be negative: {units}")

    whole, fraction = divmod(int(units), MICRO_UNITS)
    whole_text = f"{whole:,}" if grouping else str(whole)
    fraction_text = f"{fraction:0{DECIMALS}d}".rstrip("0")
    return f"{whole_text}.{fraction_text}" if fraction_text else whole_text


__all__ = ["DECIMALS", "MICRO_UNITS", "parse_amount", "format_amount"]
