"""Tests for factor scoring."""

from datetime import timedelta

import pytest

from recommender.factors import (
    PRIORITY_WEIGHTS,
    days_until_due,
    deadline_weight,
    estimate_duration,
    explain,
    full_score,
    quick_score,
)
from recommender.models import Factor, ScoredTask, TaskRef
from shared_types import FactorKind, FactorType, Priority

ENERGIES = ["high", "medium", "low"]
PATTERNS = ["productive", "moderate", "low", "inactive"]
DURATIONS = [None, 5, 20, 30, 45, 120]
STATUSES = ["pending", "in_progress", "blocked"]
DUE_OFFSETS = [None, -72, -1, 12, 48, 200]


def _ids(scored):
    return [f.id for f in scored.factors]


def _grid(make_task, now):
    for priority in Priority:
        for duration in DURATIONS:
            for status in STATUSES:
                for offset in DUE_OFFSETS:
                    due = now + timedelta(hours=offset) if offset is not None else None
                    yield make_task(
                        "g",
                        priority=priority,
                        estimated_duration_minutes=duration,
                        status=status,
                        due_date=due,
                    )


class TestDeadline:
    def test_days_round_up(self, now):
        assert days_until_due(now + timedelta(hours=12), now) == 1
        assert days_until_due(now + timedelta(hours=25), now) == 2
        assert days_until_due(now - timedelta(hours=1), now) == 0
        assert days_until_due(now - timedelta(hours=25), now) == -1

    @pytest.mark.parametrize(
        "hours,weight",
        [(-30, 90), (-1, 90), (12, 85), (24, 85), (60, 60), (72, 60), (100, 30)],
    )
    def test_weights(self, now, hours, weight):
        assert deadline_weight(now + timedelta(hours=hours), now) == weight

    def test_no_due_date_no_factor(self, make_task, make_snapshot):
        scored = full_score(make_task(), make_snapshot())
        assert not any(f.kind == FactorKind.DEADLINE for f in scored.factors)

    def test_overdue_and_distant_factor_types(self, now, make_task, make_snapshot):
        snap = make_snapshot()
        overdue = full_score(make_task(due_date=now - timedelta(days=2)), snap)
        distant = full_score(make_task(due_date=now + timedelta(days=10)), snap)
        overdue_factor = next(f for f in overdue.factors if f.kind == FactorKind.DEADLINE)
        distant_factor = next(f for f in distant.factors if f.kind == FactorKind.DEADLINE)
        assert overdue_factor.id == "overdue"
        assert overdue_factor.type == FactorType.POSITIVE
        assert distant_factor.id == "due_later"
        assert distant_factor.type == FactorType.NEUTRAL


class TestFactors:
    def test_urgency_weights(self, make_task, make_snapshot):
        for priority, weight in PRIORITY_WEIGHTS.items():
            scored = full_score(make_task(priority=priority), make_snapshot())
            assert scored.factors[0].kind == FactorKind.URGENCY
            assert scored.factors[0].weight == weight

    def test_high_energy_matches_demanding_task(self, make_task, make_snapshot):
        snap = make_snapshot("high")
        urgent = full_score(make_task(priority="urgent"), snap)
        high = full_score(make_task(priority="high"), snap)
        assert next(f.weight for f in urgent.factors if f.id == "energy_match") == 15
        assert next(f.weight for f in high.factors if f.id == "energy_match") == 10

    def test_low_energy_short_task_is_light_lift(self, make_task, make_snapshot):
        scored = full_score(make_task(estimated_duration_minutes=10), make_snapshot("low"))
        assert "light_lift" in _ids(scored)
        assert "quick_win" in _ids(scored)

    def test_energy_mismatch_is_never_negative(self, make_task, make_snapshot):
        scored = full_score(
            make_task(priority="urgent", estimated_duration_minutes=120), make_snapshot("low")
        )
        mismatch = next(f for f in scored.factors if f.id == "energy_mismatch")
        assert mismatch.type == FactorType.NEUTRAL
        assert mismatch.weight == 0
        assert all(f.type != FactorType.NEGATIVE for f in scored.factors)

    def test_duration_bonuses(self, make_task, make_snapshot):
        medium = make_snapshot("medium")
        assert "quick_win" in _ids(full_score(make_task(estimated_duration_minutes=15), medium))
        assert "short_task" in _ids(full_score(make_task(estimated_duration_minutes=30), medium))
        long_task = make_task(estimated_duration_minutes=90)
        assert not any(f.kind == FactorKind.DURATION for f in full_score(long_task, medium).factors)
        assert "deep_work" in _ids(full_score(long_task, make_snapshot("high")))

    def test_session_factors(self, make_task, make_snapshot, now):
        morning = make_snapshot("high", completed=3, at=now.replace(hour=9))
        scored = full_score(make_task(status="in_progress"), morning)
        assert {"in_progress", "peak_hours", "momentum"} <= set(_ids(scored))

    def test_momentum_needs_three_completions(self, make_task, make_snapshot):
        scored = full_score(make_task(), make_snapshot(completed=2))
        assert "momentum" not in _ids(scored)


class TestAggregates:
    def test_blend_is_sixty_forty(self, make_task, make_snapshot):
        scored = full_score(make_task(priority="high", estimated_duration_minutes=25), make_snapshot())
        expected = scored.confidence * 0.6 + scored.success_probability * 0.4
        assert scored.final_score == pytest.approx(expected, abs=0.01)

    def test_success_probability_is_capped(self, make_task, make_snapshot):
        scored = full_score(
            make_task(priority="urgent", status="in_progress"), make_snapshot("high", "productive")
        )
        assert scored.success_probability == 95

    def test_success_probability_components(self, make_task, make_snapshot):
        scored = full_score(
            make_task(priority="high", status="in_progress"), make_snapshot("medium", "moderate")
        )
        assert scored.success_probability == 90

    def test_scores_bounded_full(self, now, make_task, make_snapshot):
        for energy in ENERGIES:
            for pattern in PATTERNS:
                snap = make_snapshot(energy, pattern, completed=5)
                for task in _grid(make_task, now):
                    s = full_score(task, snap)
                    assert 0 <= s.confidence <= 100
                    assert 0 <= s.success_probability <= 100
                    assert 0 <= s.final_score <= 100

    def test_scores_bounded_quick(self, now, make_task, make_snapshot):
        for energy in ENERGIES:
            snap = make_snapshot(energy)
            for task in _grid(make_task, now):
                s = quick_score(task, snap)
                assert 0 <= s.final_score <= 100

    @pytest.mark.parametrize("scorer", [full_score, quick_score])
    def test_raising_priority_never_lowers_score(self, scorer, now, make_task, make_snapshot):
        for energy in ENERGIES:
            snap = make_snapshot(energy)
            for duration in DURATIONS:
                for offset in DUE_OFFSETS:
                    due = now + timedelta(hours=offset) if offset is not None else None
                    medium = make_task(priority="medium", estimated_duration_minutes=duration, due_date=due)
                    urgent = make_task(priority="urgent", estimated_duration_minutes=duration, due_date=due)
                    assert scorer(urgent, snap).final_score >= scorer(medium, snap).final_score

    def test_urgent_beats_medium_due_tomorrow(self, now, make_task, make_snapshot):
        snap = make_snapshot("high")
        a = full_score(make_task("A", priority="urgent"), snap)
        b = full_score(make_task("B", priority="medium", due_date=now + timedelta(hours=12)), snap)
        assert a.factors[0].weight == 100
        assert next(f.weight for f in b.factors if f.kind == FactorKind.DEADLINE) == 85
        assert a.final_score > b.final_score


class TestQuickScore:
    def test_three_term_blend(self, make_task, make_snapshot):
        # 100*0.4 + 0*0.3 + 100*0.3
        scored = quick_score(make_task(priority="urgent"), make_snapshot("high"))
        assert scored.final_score == pytest.approx(70)

    def test_deadline_term(self, now, make_task, make_snapshot):
        # 60*0.4 + 85*0.3 + 60*0.3
        task = make_task(priority="medium", due_date=now + timedelta(hours=12))
        assert quick_score(task, make_snapshot("high")).final_score == pytest.approx(67.5)

    def test_low_energy_prefers_short_tasks(self, make_task, make_snapshot):
        snap = make_snapshot("low")
        short = quick_score(make_task(estimated_duration_minutes=10), snap)
        long = quick_score(make_task(estimated_duration_minutes=90), snap)
        assert short.final_score > long.final_score


class TestExplainAndDuration:
    def test_explain_uses_top_factors(self, make_task, make_snapshot):
        scored = full_score(make_task(priority="urgent"), make_snapshot("high"))
        assert explain(scored) == "Marked as urgent priority. Energy match"

    def test_explain_without_factors(self):
        scored = ScoredTask(
            task=TaskRef(id="x"), factors=(), confidence=0, success_probability=50, final_score=20
        )
        assert explain(scored) == "Well positioned for right now"

    def test_explain_limit(self):
        factors = tuple(
            Factor(
                id=f"f{w}",
                label=f"L{w}",
                icon="",
                weight=w,
                type=FactorType.POSITIVE,
                description=f"D{w}",
                kind=FactorKind.SESSION,
            )
            for w in (5, 50, 20, 10)
        )
        scored = ScoredTask(
            task=TaskRef(id="x"), factors=factors, confidence=85, success_probability=50, final_score=71
        )
        assert explain(scored) == "D50. L20 and L10"

    def test_estimate_duration(self, make_task):
        assert estimate_duration(make_task(estimated_duration_minutes=25)) == 25
        assert estimate_duration(make_task(priority="urgent")) == 30
        assert estimate_duration(make_task(priority="low")) == 90

    def test_estimate_duration_zero_is_kept(self, make_task):
        task = make_task(priority="low", estimated_duration_minutes=0)
        assert estimate_duration(task) == 0
