"""Factor scoring for a single task against a context snapshot.

Two scorers share the ``Scorer`` signature:

- ``full_score`` builds the typed factor list and blends
  ``confidence * 0.6 + success_probability * 0.4`` into ``final_score``.
- ``quick_score`` is the lightweight fallback: a three-term blend of
  ``urgency * 0.4 + deadline * 0.3 + energy * 0.3``.

All tunable coefficients live at the top of this module. Only the [0, 100]
bounds and the two blend ratios are load-bearing for callers.
"""

import math
from datetime import datetime
from typing import Optional, Protocol, assert_never

from shared_types import (
    EnergyLevel,
    FactorKind,
    FactorType,
    Priority,
    TaskStatus,
    TimeOfDay,
    WorkPattern,
)

from .models import ContextSnapshot, Factor, ScoredTask, TaskRef

# Final blend (full scorer)
CONFIDENCE_SHARE = 0.6
SUCCESS_SHARE = 0.4

# Three-term blend (quick scorer)
QUICK_URGENCY_SHARE = 0.4
QUICK_DEADLINE_SHARE = 0.3
QUICK_ENERGY_SHARE = 0.3

PRIORITY_WEIGHTS = {
    Priority.URGENT: 100,
    Priority.HIGH: 80,
    Priority.MEDIUM: 60,
    Priority.LOW: 40,
}

DEADLINE_OVERDUE = 90  # due today or past
DEADLINE_ONE_DAY = 85
DEADLINE_THREE_DAYS = 60
DEADLINE_LATER = 30

ENERGY_MATCH_URGENT = 15
ENERGY_MATCH_HIGH = 10
ENERGY_MATCH_SHORT_TASK = 8
SHORT_TASK_FOR_LOW_ENERGY = 20  # minutes

QUICK_WIN_BONUS = 12  # <= 15 min
SHORT_TASK_BONUS = 6  # <= 30 min
DEEP_WORK_BONUS = 5  # longer, only at high energy

IN_PROGRESS_BONUS = 20
PEAK_HOURS_BONUS = 10
MOMENTUM_BONUS = 5
MOMENTUM_MIN_COMPLETED = 3

# Per-kind contribution to confidence. Deadline proximity counts for less
# than declared priority.
KIND_COEFFICIENTS = {
    FactorKind.URGENCY: 0.6,
    FactorKind.DEADLINE: 0.25,
    FactorKind.ENERGY: 1.0,
    FactorKind.DURATION: 1.0,
    FactorKind.SESSION: 1.0,
}
NEGATIVE_PENALTY = 0.5

SUCCESS_BASE = 50
SUCCESS_BY_ENERGY = {EnergyLevel.HIGH: 15, EnergyLevel.MEDIUM: 5, EnergyLevel.LOW: 0}
SUCCESS_BY_PATTERN = {
    WorkPattern.PRODUCTIVE: 10,
    WorkPattern.MODERATE: 5,
    WorkPattern.LOW: 0,
    WorkPattern.INACTIVE: 0,
}
SUCCESS_IN_PROGRESS = 20
SUCCESS_HIGH_PRIORITY = 10
SUCCESS_LIGHT_LOAD = 5  # low energy + task <= 30 min
SUCCESS_PER_NEGATIVE = 5
SUCCESS_FLOOR = 10
SUCCESS_CEILING = 95

DEFAULT_DURATIONS = {
    Priority.URGENT: 30,
    Priority.HIGH: 45,
    Priority.MEDIUM: 60,
    Priority.LOW: 90,
}

HEAVY_PRIORITIES = (Priority.HIGH, Priority.URGENT)


class Scorer(Protocol):
    def __call__(self, task: TaskRef, snapshot: ContextSnapshot) -> ScoredTask: ...


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)
    return dt


def days_until_due(due_date: datetime, now: datetime) -> int:
    """Whole days until due, rounded up. Zero or negative means due/overdue."""
    delta = _naive(due_date) - _naive(now)
    return math.ceil(delta.total_seconds() / 86400)


def deadline_weight(due_date: Optional[datetime], now: datetime) -> Optional[int]:
    if due_date is None:
        return None
    days = days_until_due(due_date, now)
    if days <= 0:
        return DEADLINE_OVERDUE
    if days <= 1:
        return DEADLINE_ONE_DAY
    if days <= 3:
        return DEADLINE_THREE_DAYS
    return DEADLINE_LATER


def estimate_duration(task: TaskRef) -> int:
    """Task's own estimate in minutes, or a priority-based default."""
    if task.estimated_duration_minutes is not None:
        return task.estimated_duration_minutes
    return DEFAULT_DURATIONS.get(task.priority, 60)


# ── factor builders ───────────────────────────────────────────────────


def urgency_factor(task: TaskRef) -> Factor:
    weight = PRIORITY_WEIGHTS[task.priority]
    return Factor(
        id=f"priority_{task.priority}",
        label=f"{task.priority.capitalize()} priority",
        icon="🔥" if task.priority in HEAVY_PRIORITIES else "📌",
        weight=weight,
        type=FactorType.POSITIVE,
        description=f"Marked as {task.priority} priority",
        kind=FactorKind.URGENCY,
    )


def deadline_factor(task: TaskRef, now: datetime) -> Optional[Factor]:
    weight = deadline_weight(task.due_date, now)
    if weight is None:
        return None
    days = days_until_due(task.due_date, now)
    if days < 0:
        fid, label, icon, desc = "overdue", "Overdue", "🚨", f"Overdue by {abs(days)} day(s)"
    elif days == 0:
        fid, label, icon, desc = "due_today", "Due today", "⏰", "The deadline is today"
    elif days == 1:
        fid, label, icon, desc = "due_tomorrow", "Due tomorrow", "📅", "The deadline is within a day"
    elif days <= 3:
        fid, label, icon, desc = "due_soon", "Due soon", "📅", f"Due in {days} days"
    else:
        fid, label, icon, desc = "due_later", "Has a deadline", "🗓", f"Due in {days} days"
    return Factor(
        id=fid,
        label=label,
        icon=icon,
        weight=weight,
        type=FactorType.POSITIVE if days <= 3 else FactorType.NEUTRAL,
        description=desc,
        kind=FactorKind.DEADLINE,
    )


def energy_factor(task: TaskRef, snapshot: ContextSnapshot) -> Optional[Factor]:
    """Reward energy/effort alignment. Mismatches are neutral, never negative."""
    energy = snapshot.user_energy_level
    duration = task.estimated_duration_minutes

    if energy == EnergyLevel.HIGH and task.priority in HEAVY_PRIORITIES:
        weight = ENERGY_MATCH_URGENT if task.priority == Priority.URGENT else ENERGY_MATCH_HIGH
        return Factor(
            id="energy_match",
            label="Energy match",
            icon="🎯",
            weight=weight,
            type=FactorType.POSITIVE,
            description="Your high energy fits a demanding task",
            kind=FactorKind.ENERGY,
        )
    if energy == EnergyLevel.LOW and duration is not None and duration <= SHORT_TASK_FOR_LOW_ENERGY:
        return Factor(
            id="light_lift",
            label="Light lift",
            icon="🪶",
            weight=ENERGY_MATCH_SHORT_TASK,
            type=FactorType.POSITIVE,
            description="Short enough to finish on low energy",
            kind=FactorKind.ENERGY,
        )
    if energy == EnergyLevel.LOW and (
        task.priority in HEAVY_PRIORITIES or (duration is not None and duration > 60)
    ):
        return Factor(
            id="energy_mismatch",
            label="Energy mismatch",
            icon="🔋",
            weight=0,
            type=FactorType.NEUTRAL,
            description="This task asks for more energy than you have right now",
            kind=FactorKind.ENERGY,
        )
    return None


def duration_factor(task: TaskRef, snapshot: ContextSnapshot) -> Optional[Factor]:
    duration = task.estimated_duration_minutes
    if duration is None:
        return None
    if duration <= 15:
        return Factor(
            id="quick_win",
            label="Quick win",
            icon="⚡",
            weight=QUICK_WIN_BONUS,
            type=FactorType.POSITIVE,
            description=f"Takes about {duration} minutes",
            kind=FactorKind.DURATION,
        )
    if duration <= 30:
        return Factor(
            id="short_task",
            label="Short task",
            icon="⏱",
            weight=SHORT_TASK_BONUS,
            type=FactorType.POSITIVE,
            description=f"Fits in a {duration}-minute slot",
            kind=FactorKind.DURATION,
        )
    if snapshot.user_energy_level == EnergyLevel.HIGH:
        return Factor(
            id="deep_work",
            label="Deep work",
            icon="🧠",
            weight=DEEP_WORK_BONUS,
            type=FactorType.POSITIVE,
            description="Good use of a high-energy block",
            kind=FactorKind.DURATION,
        )
    return None


def session_factors(task: TaskRef, snapshot: ContextSnapshot) -> list[Factor]:
    factors = []
    if task.status == TaskStatus.IN_PROGRESS:
        factors.append(
            Factor(
                id="in_progress",
                label="In progress",
                icon="🚀",
                weight=IN_PROGRESS_BONUS,
                type=FactorType.POSITIVE,
                description="You have already started this task",
                kind=FactorKind.SESSION,
            )
        )
    if snapshot.time_of_day == TimeOfDay.MORNING and snapshot.user_energy_level == EnergyLevel.HIGH:
        factors.append(
            Factor(
                id="peak_hours",
                label="Peak hours",
                icon="🌅",
                weight=PEAK_HOURS_BONUS,
                type=FactorType.POSITIVE,
                description="Morning session with high energy",
                kind=FactorKind.SESSION,
            )
        )
    if snapshot.completed_tasks_today >= MOMENTUM_MIN_COMPLETED:
        factors.append(
            Factor(
                id="momentum",
                label="Momentum",
                icon="📈",
                weight=MOMENTUM_BONUS,
                type=FactorType.POSITIVE,
                description="You are on a roll today",
                kind=FactorKind.SESSION,
            )
        )
    return factors


# ── aggregates ────────────────────────────────────────────────────────


def confidence_from(factors: list[Factor]) -> float:
    """Kind-weighted sum of factor weights; negatives subtract at half rate."""
    total = 0.0
    for f in factors:
        contribution = KIND_COEFFICIENTS[f.kind] * f.weight
        match f.type:
            case FactorType.POSITIVE | FactorType.NEUTRAL:
                total += contribution
            case FactorType.NEGATIVE:
                total -= contribution * NEGATIVE_PENALTY
            case _:
                assert_never(f.type)
    return _clamp(total)


def success_probability_from(task: TaskRef, snapshot: ContextSnapshot, factors: list[Factor]) -> float:
    probability = SUCCESS_BASE
    probability += SUCCESS_BY_ENERGY.get(snapshot.user_energy_level, 0)
    probability += SUCCESS_BY_PATTERN.get(snapshot.work_pattern, 0)
    if task.status == TaskStatus.IN_PROGRESS:
        probability += SUCCESS_IN_PROGRESS
    if task.priority in HEAVY_PRIORITIES:
        probability += SUCCESS_HIGH_PRIORITY
    if (
        snapshot.user_energy_level == EnergyLevel.LOW
        and task.estimated_duration_minutes is not None
        and task.estimated_duration_minutes <= 30
    ):
        probability += SUCCESS_LIGHT_LOAD
    negatives = sum(1 for f in factors if f.type == FactorType.NEGATIVE)
    probability -= negatives * SUCCESS_PER_NEGATIVE
    return _clamp(probability, SUCCESS_FLOOR, SUCCESS_CEILING)


# ── scorers ───────────────────────────────────────────────────────────


def full_score(task: TaskRef, snapshot: ContextSnapshot) -> ScoredTask:
    """Authoritative scorer. Missing optional fields omit their factor."""
    now = snapshot.taken_at
    factors: list[Factor] = [urgency_factor(task)]
    for optional in (
        deadline_factor(task, now),
        energy_factor(task, snapshot),
        duration_factor(task, snapshot),
    ):
        if optional is not None:
            factors.append(optional)
    factors.extend(session_factors(task, snapshot))

    confidence = confidence_from(factors)
    success = success_probability_from(task, snapshot, factors)
    final = _clamp(confidence * CONFIDENCE_SHARE + success * SUCCESS_SHARE)
    return ScoredTask(
        task=task,
        factors=tuple(factors),
        confidence=round(confidence, 2),
        success_probability=round(success, 2),
        final_score=round(final, 2),
    )


def energy_alignment(task: TaskRef, snapshot: ContextSnapshot) -> int:
    """0-100 energy term for the quick scorer."""
    energy = snapshot.user_energy_level
    if energy == EnergyLevel.HIGH:
        return 100 if task.priority in HEAVY_PRIORITIES else 60
    if energy == EnergyLevel.LOW:
        duration = task.estimated_duration_minutes
        return 100 if duration is not None and duration <= SHORT_TASK_FOR_LOW_ENERGY else 40
    return 70


def quick_score(task: TaskRef, snapshot: ContextSnapshot) -> ScoredTask:
    """Fallback scorer: urgency*0.4 + deadline*0.3 + energy*0.3.

    Tasks without a due date contribute zero for the deadline term.
    """
    now = snapshot.taken_at
    factors: list[Factor] = [urgency_factor(task)]
    deadline = deadline_factor(task, now)
    if deadline is not None:
        factors.append(deadline)
    energy = energy_alignment(task, snapshot)
    factors.append(
        Factor(
            id="energy_alignment",
            label="Energy alignment",
            icon="🔋",
            weight=energy,
            type=FactorType.POSITIVE if energy >= 70 else FactorType.NEUTRAL,
            description=f"{snapshot.user_energy_level.capitalize()} energy for this task",
            kind=FactorKind.ENERGY,
        )
    )

    blend = _clamp(
        PRIORITY_WEIGHTS[task.priority] * QUICK_URGENCY_SHARE
        + (deadline.weight if deadline is not None else 0) * QUICK_DEADLINE_SHARE
        + energy * QUICK_ENERGY_SHARE
    )
    return ScoredTask(
        task=task,
        factors=tuple(factors),
        confidence=round(blend, 2),
        success_probability=float(energy),
        final_score=round(blend, 2),
    )


def explain(scored: ScoredTask, limit: int = 3) -> str:
    """Human-readable reason built from the heaviest factors."""
    top = sorted(scored.factors, key=lambda f: -f.weight)[:limit]
    if not top:
        return "Well positioned for right now"
    reasoning = top[0].description
    if len(top) > 1:
        reasoning += ". " + " and ".join(f.label for f in top[1:])
    return reasoning
