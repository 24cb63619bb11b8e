"""Exhaustive search for the most profitable bonus combination.

Evaluates every subset of the candidate bonuses with the combined-projection
rules (summed discount capped at ``max_combo_discount_pct``) and keeps the
subset with the highest net saving for the chosen objective.

Search space: 2**n subsets, n <= MAX_SEARCH_BONUSES.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Sequence

from .bonuses import Bonus, LoanParameters
from .calculator import ComboProjection, project_combo
from .config import DEFAULT_OBJECTIVE, MAX_SEARCH_BONUSES, VALID_OBJECTIVES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComboSearchResult:
    bonus_ids: tuple[str, ...]       # chosen ids, in list order
    projection: ComboProjection
    objective: str
    evaluated: int                   # number of subsets tried


def _objective_value(objective: str, projection: ComboProjection) -> Decimal:
    if objective == "net_term":
        return projection.net_term
    return projection.net_annual


def _score(
    objective: str,
    projection: ComboProjection,
    indices: tuple[int, ...],
) -> tuple:
    """Return a sort key (lower is better) for the given subset."""
    return (
        -_objective_value(objective, projection),
        len(indices),
        projection.annual_cost,
        indices,
    )


def best_combination(
    params: LoanParameters,
    bonuses: Sequence[Bonus],
    objective: str = DEFAULT_OBJECTIVE,
) -> ComboSearchResult:
    """Return the subset of *bonuses* with the best net saving.

    The current ``enabled`` flags are ignored: every subset is tried.
    Ties go to fewer bonuses, then lower annual cost, then list order.

    Raises ValueError for an unknown objective or too many candidates.
    """
    if objective not in VALID_OBJECTIVES:
        raise ValueError(
            f"Unknown objective '{objective}'. "
            f"Valid values: {', '.join(sorted(VALID_OBJECTIVES))}"
        )
    if len(bonuses) > MAX_SEARCH_BONUSES:
        raise ValueError(
            f"Too many bonuses to search ({len(bonuses)}); "
            f"the limit is {MAX_SEARCH_BONUSES}."
        )

    candidates = [replace(b, enabled=True) for b in bonuses]

    best_indices: tuple[int, ...] = ()
    best_projection: Optional[ComboProjection] = None
    best_score: Optional[tuple] = None
    evaluated = 0

    for size in range(len(candidates) + 1):
        for indices in itertools.combinations(range(len(candidates)), size):
            projection = project_combo(params, [candidates[i] for i in indices])
            evaluated += 1
            score = _score(objective, projection, indices)
            if best_score is None or score < best_score:
                best_score = score
                best_indices = indices
                best_projection = projection

    assert best_projection is not None  # the empty subset is always evaluated

    chosen = tuple(bonuses[i].id for i in best_indices)
    logger.debug(
        "Best combination by %s over %d subsets: %s", objective, evaluated, chosen
    )
    return ComboSearchResult(
        bonus_ids=chosen,
        projection=best_projection,
        objective=objective,
        evaluated=evaluated,
    )
