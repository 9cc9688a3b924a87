"""Context snapshot builder: derive "now" from the clock and work history."""

from datetime import datetime
from typing import Any, Iterable, Optional

import structlog

from shared_types import EnergyLevel, TaskStatus, TimeOfDay, WorkPattern

from .models import ContextSnapshot, TaskRef, WorkHistory

logger = structlog.get_logger()

# Safe default when inputs are unusable
DEFAULT_TIME_OF_DAY = TimeOfDay.AFTERNOON
DEFAULT_HISTORY = WorkHistory(
    energy_level=EnergyLevel.MEDIUM,
    work_pattern=WorkPattern.INACTIVE,
    completed_tasks_today=0,
)


def time_of_day(hour: int) -> TimeOfDay:
    """[6,12) morning, [12,18) afternoon, [18,22) evening, else night."""
    if 6 <= hour < 12:
        return TimeOfDay.MORNING
    if 12 <= hour < 18:
        return TimeOfDay.AFTERNOON
    if 18 <= hour < 22:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT


def energy_for_hour(hour: int) -> EnergyLevel:
    if 6 <= hour < 12:
        return EnergyLevel.HIGH
    if 12 <= hour < 22:
        return EnergyLevel.MEDIUM
    return EnergyLevel.LOW


def work_pattern_for(completed: int, hour: int) -> WorkPattern:
    """Compare today's completions against a rough hourly expectation."""
    if completed <= 0:
        return WorkPattern.INACTIVE
    expected = max(1, hour // 4)
    if completed > expected + 2:
        return WorkPattern.PRODUCTIVE
    if completed < expected - 1:
        return WorkPattern.LOW
    return WorkPattern.MODERATE


def derive_work_history(now: datetime, tasks: Iterable[TaskRef]) -> WorkHistory:
    """Default history heuristic used when no provider is injected.

    Counts tasks marked completed whose ``updated_at`` falls on ``now``'s date.
    """
    today = now.date()
    completed = sum(
        1
        for t in tasks
        if t.status == TaskStatus.COMPLETED and t.updated_at is not None and t.updated_at.date() == today
    )
    return WorkHistory(
        energy_level=energy_for_hour(now.hour),
        work_pattern=work_pattern_for(completed, now.hour),
        completed_tasks_today=completed,
    )


def _coerce_history(history: Any) -> WorkHistory:
    if isinstance(history, WorkHistory):
        if history.completed_tasks_today < 0:
            return WorkHistory(history.energy_level, history.work_pattern, 0)
        return history
    if isinstance(history, dict):
        return WorkHistory(
            energy_level=EnergyLevel(history.get("energy_level", EnergyLevel.MEDIUM)),
            work_pattern=WorkPattern(history.get("work_pattern", WorkPattern.INACTIVE)),
            completed_tasks_today=max(0, int(history.get("completed_tasks_today", 0))),
        )
    raise TypeError(f"unsupported work history: {type(history).__name__}")


def build_snapshot(now: datetime, history: Optional[Any] = None) -> ContextSnapshot:
    """Build an immutable snapshot. Never raises; bad input yields the safe default."""
    if not isinstance(now, datetime):
        logger.warning("context.bad_clock", value=repr(now))
        return ContextSnapshot(
            time_of_day=DEFAULT_TIME_OF_DAY,
            day_of_week="",
            is_weekend=False,
            user_energy_level=DEFAULT_HISTORY.energy_level,
            work_pattern=DEFAULT_HISTORY.work_pattern,
            completed_tasks_today=0,
            taken_at=datetime.now(),
        )

    if history is None:
        resolved = DEFAULT_HISTORY
    else:
        try:
            resolved = _coerce_history(history)
        except (TypeError, ValueError) as e:
            logger.warning("context.bad_history", error=str(e))
            resolved = DEFAULT_HISTORY

    return ContextSnapshot(
        time_of_day=time_of_day(now.hour),
        day_of_week=now.strftime("%A"),
        is_weekend=now.weekday() >= 5,
        user_energy_level=resolved.energy_level,
        work_pattern=resolved.work_pattern,
        completed_tasks_today=resolved.completed_tasks_today,
        taken_at=now,
    )
