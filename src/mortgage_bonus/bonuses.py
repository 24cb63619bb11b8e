"""Loan parameters, bonus records and the built-in default set.

All amounts and rates are stored as Decimal to avoid float imprecision.
Rates and discounts are expressed in percentage points (2.7 means 2.7 %).
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .config import (
    DEFAULT_BASE_RATE_PCT,
    DEFAULT_CAPITAL,
    DEFAULT_MAX_COMBO_DISCOUNT_PCT,
    DEFAULT_TERM_YEARS,
    MONTHS_PER_YEAR,
)


@dataclass
class LoanParameters:
    """Loan inputs as edited by the user.  No validation beyond parsing."""
    capital: Decimal = DEFAULT_CAPITAL
    term_years: int = DEFAULT_TERM_YEARS
    base_rate_pct: Decimal = DEFAULT_BASE_RATE_PCT
    max_combo_discount_pct: Decimal = DEFAULT_MAX_COMBO_DISCOUNT_PCT

    @property
    def months(self) -> int:
        return self.term_years * MONTHS_PER_YEAR


@dataclass(frozen=True)
class Bonus:
    id: str
    name: str
    discount_pct: Decimal   # points subtracted from the base rate
    annual_cost: Decimal    # currency per year
    enabled: bool = True


# Static embedded defaults, in display order.
_DEFAULT_BONUSES: tuple[Bonus, ...] = (
    Bonus(
        id="nomina",
        name="Domiciliación de nómina",
        discount_pct=Decimal("0.35"),
        annual_cost=Decimal("0"),
        enabled=True,
    ),
    Bonus(
        id="hogar",
        name="Seguro de hogar",
        discount_pct=Decimal("0.15"),
        annual_cost=Decimal("660"),
        enabled=True,
    ),
    Bonus(
        id="vida50",
        name="Seguro de vida 50% del capital (1 persona)",
        discount_pct=Decimal("0.20"),
        annual_cost=Decimal("338.28"),
        enabled=True,
    ),
    Bonus(
        id="vida100_1",
        name="Seguro de vida 100% del capital (1 persona)",
        discount_pct=Decimal("0.35"),
        annual_cost=Decimal("676.35"),
        enabled=False,
    ),
    Bonus(
        id="vida100_total",
        name="Seguro de vida 100% total 50% + 50% (2 personas)",
        discount_pct=Decimal("0.35"),
        annual_cost=Decimal("338.28") + Decimal("362.64"),
        enabled=False,
    ),
    Bonus(
        id="salud",
        name="Seguro de salud",
        discount_pct=Decimal("0.20"),
        annual_cost=Decimal("0"),
        enabled=True,
    ),
    Bonus(
        id="alarma",
        name="Alarma Securitas Direct",
        discount_pct=Decimal("0.15"),
        annual_cost=Decimal("52.03") * 12,
        enabled=True,
    ),
)


def default_parameters() -> LoanParameters:
    """Return a fresh copy of the built-in loan parameters."""
    return LoanParameters()


def default_bonuses() -> list[Bonus]:
    """Return a fresh list of the built-in bonuses (records are immutable)."""
    return list(_DEFAULT_BONUSES)
