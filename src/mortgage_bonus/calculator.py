"""Core financial calculation functions.

All monetary values use decimal.Decimal.
Nothing is rounded here: full precision throughout, rounding is left to
the display layer.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .bonuses import Bonus, LoanParameters
from .config import HUNDRED, MONTHS_PER_YEAR, ZERO


@dataclass(frozen=True)
class BonusProjection:
    bonus: Bonus
    new_rate: Decimal
    new_payment: Decimal
    monthly_saving: Decimal
    annual_saving: Decimal
    net_annual: Decimal      # annual saving minus the bonus's annual cost
    net_term: Decimal        # net saving over the whole loan term


@dataclass(frozen=True)
class ComboProjection:
    applied_discount: Decimal
    combo_rate: Decimal
    combo_payment: Decimal
    monthly_saving: Decimal
    annual_saving: Decimal
    annual_cost: Decimal
    net_annual: Decimal
    net_term: Decimal
    enabled_count: int


def monthly_payment(
    principal: Decimal,
    annual_rate_pct: Decimal,
    months: int,
) -> Decimal:
    """Return the fixed monthly payment of a French-amortization loan.

    Uses the standard annuity formula:
        payment = P * r / (1 - (1 + r)^-n),   r = annual_rate_pct / 100 / 12

    Special case: if the rate is zero, payment = P / n (flat amortization).
    Negative rates are accepted and computed as-is.
    """
    if months <= 0:
        raise ValueError("months must be > 0")
    if principal < ZERO:
        raise ValueError("principal must be >= 0")

    r = annual_rate_pct / HUNDRED / MONTHS_PER_YEAR
    if r == ZERO:
        return principal / Decimal(months)

    return principal * r / (1 - (1 + r) ** -months)


def base_payment(params: LoanParameters) -> Decimal:
    """Monthly payment at the base rate, without any bonus."""
    return monthly_payment(params.capital, params.base_rate_pct, params.months)


def _savings(
    params: LoanParameters,
    reference_payment: Decimal,
    new_payment: Decimal,
    annual_cost: Decimal,
) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    monthly_saving = reference_payment - new_payment
    annual_saving = monthly_saving * MONTHS_PER_YEAR
    net_annual = annual_saving - annual_cost
    net_term = monthly_saving * params.months - annual_cost * params.term_years
    return monthly_saving, annual_saving, net_annual, net_term


def project_bonus(
    params: LoanParameters,
    bonus: Bonus,
    reference_payment: Optional[Decimal] = None,
) -> BonusProjection:
    """Project a single bonus against the base rate.

    Each bonus is evaluated on its own; projections of different bonuses
    do not add up.  The resulting rate is not floored at zero.
    """
    if reference_payment is None:
        reference_payment = base_payment(params)

    new_rate = params.base_rate_pct - bonus.discount_pct
    new_payment = monthly_payment(params.capital, new_rate, params.months)
    monthly_saving, annual_saving, net_annual, net_term = _savings(
        params, reference_payment, new_payment, bonus.annual_cost
    )
    return BonusProjection(
        bonus=bonus,
        new_rate=new_rate,
        new_payment=new_payment,
        monthly_saving=monthly_saving,
        annual_saving=annual_saving,
        net_annual=net_annual,
        net_term=net_term,
    )


def project_bonuses(
    params: LoanParameters,
    bonuses: Iterable[Bonus],
) -> list[BonusProjection]:
    """Project every bonus, in list order, sharing one base payment."""
    reference = base_payment(params)
    return [project_bonus(params, b, reference) for b in bonuses]


def project_combo(
    params: LoanParameters,
    bonuses: Sequence[Bonus],
) -> ComboProjection:
    """Project the enabled bonuses combined.

    The summed discount is capped at ``max_combo_discount_pct``; any excess
    is dropped as a whole, never pro-rated across bonuses.
    """
    enabled = [b for b in bonuses if b.enabled]
    sum_discount = sum((b.discount_pct for b in enabled), ZERO)
    applied_discount = min(sum_discount, params.max_combo_discount_pct)
    combo_rate = params.base_rate_pct - applied_discount
    combo_payment = monthly_payment(params.capital, combo_rate, params.months)
    annual_cost = sum((b.annual_cost for b in enabled), ZERO)

    monthly_saving, annual_saving, net_annual, net_term = _savings(
        params, base_payment(params), combo_payment, annual_cost
    )
    return ComboProjection(
        applied_discount=applied_discount,
        combo_rate=combo_rate,
        combo_payment=combo_payment,
        monthly_saving=monthly_saving,
        annual_saving=annual_saving,
        annual_cost=annual_cost,
        net_annual=net_annual,
        net_term=net_term,
        enabled_count=len(enabled),
    )
