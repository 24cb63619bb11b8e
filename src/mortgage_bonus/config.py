"""Application-wide constants and configuration defaults.

All tuneable defaults live here so there is a single place to adjust them.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Literal

# ── Type aliases ──────────────────────────────────────────────────────────────

Objective = Literal["net_annual", "net_term"]

# ── Loan defaults ─────────────────────────────────────────────────────────────

DEFAULT_CAPITAL = Decimal("270000")
DEFAULT_TERM_YEARS: int = 30
DEFAULT_BASE_RATE_PCT = Decimal("2.7")            # % annual (TIN)
DEFAULT_MAX_COMBO_DISCOUNT_PCT = Decimal("0.85")  # max total discount, in points

# ── Custom bonus defaults ─────────────────────────────────────────────────────

CUSTOM_BONUS_ID_PREFIX = "custom_"
CUSTOM_BONUS_NAME = "Bonificación personalizada {n}"
CUSTOM_BONUS_DISCOUNT_PCT = Decimal("0.10")
CUSTOM_BONUS_ANNUAL_COST = Decimal("0")

# ── Undo ──────────────────────────────────────────────────────────────────────

UNDO_TIMEOUT_SECONDS: float = 6.0

# ── Best-combination search ───────────────────────────────────────────────────

MAX_SEARCH_BONUSES: int = 16   # 2**16 subsets
DEFAULT_OBJECTIVE: Objective = "net_annual"
VALID_OBJECTIVES: frozenset[str] = frozenset({"net_annual", "net_term"})

# ── Numeric convenience ───────────────────────────────────────────────────────

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR: int = 12
