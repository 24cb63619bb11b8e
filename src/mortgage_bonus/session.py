"""Session state: loan parameters, the bonus ledger and the pending undo.

One ``BonusSession`` per interactive session.  It owns all mutable state;
derived figures are recomputed from a snapshot on every call.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Iterable, Optional

from .bonuses import Bonus, LoanParameters, default_bonuses, default_parameters
from .calculator import (
    BonusProjection,
    ComboProjection,
    base_payment,
    project_bonuses,
    project_combo,
)
from .config import (
    CUSTOM_BONUS_ANNUAL_COST,
    CUSTOM_BONUS_DISCOUNT_PCT,
    CUSTOM_BONUS_ID_PREFIX,
    CUSTOM_BONUS_NAME,
    UNDO_TIMEOUT_SECONDS,
)
from .scheduler import TimerHandle, TimerQueue

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset(f.name for f in fields(Bonus)) - {"id"}


@dataclass(eq=False)
class PendingUndo:
    """A removed bonus that can still be restored, and its expiry timer."""
    bonus: Bonus
    timer: Optional[TimerHandle] = None


class BonusSession:
    """Mutable ledger of bonuses plus the loan parameters they apply to.

    Unknown ids are silent no-ops for every mutation.
    """

    def __init__(
        self,
        params: Optional[LoanParameters] = None,
        bonuses: Optional[Iterable[Bonus]] = None,
        *,
        timers: Optional[TimerQueue] = None,
        undo_timeout: float = UNDO_TIMEOUT_SECONDS,
    ) -> None:
        self.params = params if params is not None else default_parameters()
        self._bonuses: list[Bonus] = list(bonuses) if bonuses is not None else default_bonuses()
        self.timers = timers if timers is not None else TimerQueue()
        self._undo_timeout = undo_timeout
        self._pending: Optional[PendingUndo] = None
        self._custom_seq = itertools.count(1)

    # ── Read side ─────────────────────────────────────────────────────────────

    @property
    def bonuses(self) -> tuple[Bonus, ...]:
        return tuple(self._bonuses)

    @property
    def pending_undo(self) -> Optional[Bonus]:
        return self._pending.bonus if self._pending else None

    def get(self, bonus_id: str) -> Optional[Bonus]:
        for b in self._bonuses:
            if b.id == bonus_id:
                return b
        return None

    def base_payment(self) -> Decimal:
        return base_payment(self.params)

    def projections(self) -> list[BonusProjection]:
        return project_bonuses(self.params, self._bonuses)

    def combo(self) -> ComboProjection:
        return project_combo(self.params, self._bonuses)

    # ── Loan parameter setters ────────────────────────────────────────────────

    def set_capital(self, value: Decimal) -> None:
        self.params.capital = value

    def set_term_years(self, value: int) -> None:
        self.params.term_years = max(1, value)

    def set_base_rate(self, value: Decimal) -> None:
        self.params.base_rate_pct = value

    def set_max_combo_discount(self, value: Decimal) -> None:
        self.params.max_combo_discount_pct = value

    # ── Ledger mutations ──────────────────────────────────────────────────────

    def update(self, bonus_id: str, **changes: object) -> Optional[Bonus]:
        """Shallow-merge *changes* into the bonus with *bonus_id*.

        Returns the updated record, or None if the id is unknown.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot update bonus field(s): {', '.join(sorted(unknown))}")

        for i, b in enumerate(self._bonuses):
            if b.id == bonus_id:
                updated = replace(b, **changes)
                self._bonuses[i] = updated
                logger.debug("Updated bonus %s: %s", bonus_id, changes)
                return updated
        return None

    def toggle(self, bonus_id: str) -> Optional[Bonus]:
        b = self.get(bonus_id)
        if b is None:
            return None
        return self.update(bonus_id, enabled=not b.enabled)

    def remove(self, bonus_id: str) -> Optional[Bonus]:
        """Remove a bonus and keep it as the pending undo.

        Any previous pending undo is discarded and its timer cancelled.
        """
        for i, b in enumerate(self._bonuses):
            if b.id == bonus_id:
                del self._bonuses[i]
                self._set_pending(b)
                logger.debug("Removed bonus %s", bonus_id)
                return b
        return None

    def undo(self) -> Optional[Bonus]:
        """Restore the pending bonus at the front of the list."""
        if self._pending is None:
            return None
        restored = self._pending.bonus
        self._bonuses.insert(0, restored)
        self._set_pending(None)
        logger.debug("Restored bonus %s", restored.id)
        return restored

    def add(self) -> Bonus:
        """Append a new custom bonus with a fresh, unused id."""
        taken = {b.id for b in self._bonuses}
        if self._pending is not None:
            taken.add(self._pending.bonus.id)
        for n in self._custom_seq:
            new_id = f"{CUSTOM_BONUS_ID_PREFIX}{n}"
            if new_id not in taken:
                break
        bonus = Bonus(
            id=new_id,
            name=CUSTOM_BONUS_NAME.format(n=n),
            discount_pct=CUSTOM_BONUS_DISCOUNT_PCT,
            annual_cost=CUSTOM_BONUS_ANNUAL_COST,
            enabled=True,
        )
        self._bonuses.append(bonus)
        logger.debug("Added bonus %s", new_id)
        return bonus

    def apply_combination(self, bonus_ids: Iterable[str]) -> None:
        """Enable exactly the given ids and disable every other bonus."""
        wanted = set(bonus_ids)
        self._bonuses = [
            replace(b, enabled=b.id in wanted) if b.enabled != (b.id in wanted) else b
            for b in self._bonuses
        ]

    def reset_to_defaults(self) -> None:
        """Restore the built-in parameters and bonuses, dropping any pending undo."""
        self.params = default_parameters()
        self._bonuses = default_bonuses()
        self._set_pending(None)
        logger.info("Session reset to defaults")

    def close(self) -> None:
        """Cancel outstanding timers; the session must not be mutated afterwards."""
        self._set_pending(None)
        self.timers.cancel_all()

    # ── Undo expiry ───────────────────────────────────────────────────────────

    def _set_pending(self, bonus: Optional[Bonus]) -> None:
        if self._pending is not None:
            if self._pending.timer is not None:
                self._pending.timer.cancel()
            self._pending = None
        if bonus is None:
            return

        pending = PendingUndo(bonus=bonus)
        pending.timer = self.timers.call_later(
            self._undo_timeout, lambda: self._expire(pending)
        )
        self._pending = pending

    def _expire(self, pending: PendingUndo) -> None:
        # Only clear if no newer removal, undo or reset happened since
        if self._pending is pending:
            self._pending = None
            logger.info("Undo for bonus %s expired", pending.bonus.id)
