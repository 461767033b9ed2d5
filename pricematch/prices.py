"""
Price normalization into integer minor currency units.

Everything past this module compares prices as ints (cents, paise), so no
float rounding can reorder two listings.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

_PREFIX = re.compile(r"\b(?:rs\.?|inr|mrp)", re.IGNORECASE)
_DISALLOWED = re.compile(r"[^\d.,]+")
_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?|\.\d+")


def to_minor_units(raw_price_text: Optional[str], exponent: int = 2) -> Optional[int]:
    """
    Parse a display price ("₹1,499.00", "Rs. 1499", "$12.5") into minor units.

    Commas are thousands separators and the dot is the decimal point.
    Returns None when no digits remain or the value is not positive.
    """
    if raw_price_text is None:
        return None
    # "Rs." would otherwise read as a decimal point
    text = _PREFIX.sub(" ", str(raw_price_text))
    # Separate runs with spaces so "₹799 ₹1,299" stays two numbers
    cleaned = _DISALLOWED.sub(" ", text)
    match = _NUMBER.search(cleaned)
    if match is None:
        return None
    return major_to_minor_units(match.group(0).replace(",", ""), exponent)


def major_to_minor_units(value: Union[str, int, float, Decimal], exponent: int = 2) -> Optional[int]:
    """Convert a major-unit amount to minor units, rounding half up. None if not positive."""
    if isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    minor = (amount * (Decimal(10) ** exponent)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    if minor <= 0:
        return None
    return int(minor)


def format_minor_units(value: int, symbol: str = "₹", exponent: int = 2) -> str:
    major, minor = divmod(value, 10 ** exponent)
    if exponent == 0:
        return f"{symbol}{major:,}"
    return f"{symbol}{major:,}.{minor:0{exponent}d}"
