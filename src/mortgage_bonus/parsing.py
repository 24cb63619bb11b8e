"""Numeric text parsing — the only sanitization step between raw input and the model.

Both '.' and ',' are accepted as decimal separator ("1234,56" or "1234.56").
Thousands separators are not supported: "1.234,56" parses as 0.
Anything that cannot be read as a finite number becomes 0, including values
out of double range ("1e400") and digit-group underscores ("1_000");
nothing here raises.
"""
from __future__ import annotations

import re
import sys
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from .config import ZERO

_WHITESPACE = re.compile(r"\s+")

# Largest magnitude a double holds; anything beyond it counts as infinite
_MAX_FINITE = Decimal(sys.float_info.max)


def parse_number(raw: Optional[str]) -> Decimal:
    """Parse free text into a Decimal, defaulting to 0 on bad input."""
    if not raw:
        return ZERO
    clean = _WHITESPACE.sub("", raw).replace(",", ".", 1)
    if not clean or "_" in clean:
        return ZERO
    try:
        value = Decimal(clean)
    except InvalidOperation:
        return ZERO
    if not value.is_finite() or abs(value) > _MAX_FINITE:
        return ZERO
    return value


def parse_term_years(raw: Optional[str]) -> int:
    """Parse a loan term in years: rounded half-up, never below 1."""
    value = parse_number(raw).to_integral_value(rounding=ROUND_HALF_UP)
    return max(1, int(value))
