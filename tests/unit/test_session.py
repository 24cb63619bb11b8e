"""Unit tests for session.py — ledger mutations, undo and its expiry."""
from decimal import Decimal

import pytest

from mortgage_bonus.bonuses import Bonus, LoanParameters, default_bonuses
from mortgage_bonus.scheduler import TimerQueue
from mortgage_bonus.session import BonusSession

DEFAULT_IDS = ["nomina", "hogar", "vida50", "vida100_1", "vida100_total", "salud", "alarma"]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _session():
    clock = FakeClock()
    return clock, BonusSession(timers=TimerQueue(clock=clock))


def _ids(session: BonusSession) -> list[str]:
    return [b.id for b in session.bonuses]


class TestDefaults:
    def test_default_bonus_order(self):
        _, s = _session()
        assert _ids(s) == DEFAULT_IDS

    def test_default_parameters(self):
        _, s = _session()
        assert s.params == LoanParameters(
            capital=Decimal("270000"),
            term_years=30,
            base_rate_pct=Decimal("2.7"),
            max_combo_discount_pct=Decimal("0.85"),
        )
        assert s.params.months == 360

    def test_derived_default_costs(self):
        _, s = _session()
        assert s.get("vida100_total").annual_cost == Decimal("700.92")
        assert s.get("alarma").annual_cost == Decimal("624.36")

    def test_bonuses_is_a_snapshot(self):
        _, s = _session()
        snapshot = s.bonuses
        s.remove("nomina")
        assert len(snapshot) == 7
        assert len(s.bonuses) == 6


class TestUpdate:
    def test_shallow_merge(self):
        _, s = _session()
        before = s.get("hogar")
        updated = s.update("hogar", annual_cost=Decimal("500"), enabled=False)
        assert updated == Bonus("hogar", before.name, before.discount_pct, Decimal("500"), False)
        assert s.get("hogar") == updated

    def test_order_and_others_untouched(self):
        _, s = _session()
        others = [b for b in s.bonuses if b.id != "salud"]
        s.update("salud", name="Health")
        assert _ids(s) == DEFAULT_IDS
        assert [b for b in s.bonuses if b.id != "salud"] == others

    def test_unknown_id_is_noop(self):
        _, s = _session()
        before = s.bonuses
        assert s.update("nope", name="x") is None
        assert s.bonuses == before

    def test_unknown_field_rejected(self):
        _, s = _session()
        with pytest.raises(TypeError, match="colour"):
            s.update("nomina", colour="red")

    def test_id_cannot_change(self):
        _, s = _session()
        with pytest.raises(TypeError, match="id"):
            s.update("nomina", id="other")

    def test_toggle(self):
        _, s = _session()
        assert s.toggle("vida100_1").enabled is True
        assert s.toggle("vida100_1").enabled is False
        assert s.toggle("nope") is None


class TestRemoveAndUndo:
    def test_remove_then_undo_restores_fields(self):
        _, s = _session()
        original = s.get("vida50")
        s.remove("vida50")
        assert s.get("vida50") is None
        assert s.pending_undo == original
        restored = s.undo()
        assert restored == original
        assert s.get("vida50") == original
        assert s.pending_undo is None

    def test_undo_prepends(self):
        _, s = _session()
        s.remove("alarma")
        s.undo()
        assert _ids(s) == ["alarma"] + DEFAULT_IDS[:-1]

    def test_remove_unknown_is_noop(self):
        _, s = _session()
        s.remove("hogar")
        assert s.remove("nope") is None
        assert s.pending_undo.id == "hogar"
        assert len(s.bonuses) == 6

    def test_newer_removal_replaces_pending(self):
        _, s = _session()
        s.remove("hogar")
        s.remove("salud")
        assert s.pending_undo.id == "salud"
        s.undo()
        assert s.get("salud") is not None
        assert s.get("hogar") is None
        assert s.undo() is None

    def test_undo_without_pending(self):
        _, s = _session()
        assert s.undo() is None
        assert _ids(s) == DEFAULT_IDS


class TestUndoExpiry:
    def test_expires_after_six_seconds(self):
        clock, s = _session()
        s.remove("nomina")
        clock.now = 5.9
        s.timers.run_due()
        assert s.pending_undo is not None
        clock.now = 6.0
        s.timers.run_due()
        assert s.pending_undo is None
        assert s.undo() is None

    def test_newer_removal_reschedules(self):
        clock, s = _session()
        s.remove("nomina")
        clock.now = 3
        s.remove("hogar")
        clock.now = 6
        s.timers.run_due()
        assert s.pending_undo.id == "hogar"
        clock.now = 9
        s.timers.run_due()
        assert s.pending_undo is None

    def test_undo_cancels_timer(self):
        clock, s = _session()
        s.remove("nomina")
        s.undo()
        assert s.timers.pending() == 0
        s.remove("hogar")
        clock.now = 100
        s.timers.run_due()
        assert s.pending_undo is None

    def test_only_one_timer_outstanding(self):
        _, s = _session()
        for bonus_id in ("nomina", "hogar", "vida50"):
            s.remove(bonus_id)
        assert s.timers.pending() == 1

    def test_custom_timeout(self):
        clock = FakeClock()
        s = BonusSession(timers=TimerQueue(clock=clock), undo_timeout=1)
        s.remove("nomina")
        clock.now = 1
        s.timers.run_due()
        assert s.pending_undo is None

    def test_close_cancels_timers(self):
        _, s = _session()
        s.remove("nomina")
        s.close()
        assert s.timers.pending() == 0
        assert s.pending_undo is None


class TestAdd:
    def test_appends_custom_bonus(self):
        _, s = _session()
        bonus = s.add()
        assert s.bonuses[-1] == bonus
        assert bonus.discount_pct == Decimal("0.10")
        assert bonus.annual_cost == Decimal("0")
        assert bonus.enabled is True
        assert bonus.name == "Bonificación personalizada 1"

    def test_two_adds_have_distinct_ids(self):
        _, s = _session()
        first, second = s.add(), s.add()
        assert first.id != second.id

    def test_no_collision_after_removal(self):
        _, s = _session()
        s.add()
        second = s.add()
        s.remove(second.id)
        s.undo()
        third = s.add()
        ids = _ids(s)
        assert len(ids) == len(set(ids))
        assert third.id not in (b.id for b in s.bonuses[:-1])

    def test_skips_ids_already_present(self):
        clock = FakeClock()
        existing = Bonus("custom_1", "Mine", Decimal("0.1"), Decimal("0"))
        s = BonusSession(bonuses=[existing], timers=TimerQueue(clock=clock))
        assert s.add().id == "custom_2"

    def test_does_not_reuse_pending_id(self):
        _, s = _session()
        first = s.add()
        s.remove(first.id)
        assert s.add().id != first.id
        s.undo()
        ids = _ids(s)
        assert len(ids) == len(set(ids))


class TestParametersAndReset:
    def test_setters(self):
        _, s = _session()
        s.set_capital(Decimal("150000"))
        s.set_term_years(20)
        s.set_base_rate(Decimal("3.1"))
        s.set_max_combo_discount(Decimal("1"))
        assert s.params == LoanParameters(Decimal("150000"), 20, Decimal("3.1"), Decimal("1"))

    def test_term_never_below_one(self):
        _, s = _session()
        s.set_term_years(0)
        assert s.params.term_years == 1

    def test_reset_restores_defaults(self):
        _, s = _session()
        s.set_capital(Decimal("1"))
        s.update("nomina", discount_pct=Decimal("2"))
        s.add()
        s.remove("hogar")
        s.reset_to_defaults()
        assert s.params == LoanParameters()
        assert list(s.bonuses) == default_bonuses()
        assert s.pending_undo is None
        assert s.timers.pending() == 0

    def test_apply_combination(self):
        _, s = _session()
        s.apply_combination(["vida100_1", "salud"])
        assert [b.id for b in s.bonuses if b.enabled] == ["vida100_1", "salud"]
        assert _ids(s) == DEFAULT_IDS


class TestDerivedViews:
    def test_projections_follow_ledger(self):
        _, s = _session()
        s.remove("hogar")
        assert [p.bonus.id for p in s.projections()] == [i for i in DEFAULT_IDS if i != "hogar"]

    def test_combo_reflects_toggles(self):
        _, s = _session()
        assert s.combo().enabled_count == 5
        s.toggle("nomina")
        assert s.combo().enabled_count == 4

    def test_base_payment_follows_parameters(self):
        _, s = _session()
        before = s.base_payment()
        s.set_base_rate(Decimal("3.5"))
        assert s.base_payment() > before
