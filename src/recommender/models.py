"""Value types for the recommendation core."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog

from shared_types import (
    EnergyLevel,
    FactorKind,
    FactorType,
    FeedbackAction,
    Priority,
    ScoringMethod,
    TaskStatus,
    TimeOfDay,
    WorkPattern,
)

from .errors import InputError

logger = structlog.get_logger()


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Accept datetime or ISO string; aware values become naive local time."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"unsupported datetime value: {value!r}")
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


@dataclass(frozen=True)
class ContextSnapshot:
    """Point-in-time description of the user's situation."""

    time_of_day: TimeOfDay
    day_of_week: str
    is_weekend: bool
    user_energy_level: EnergyLevel
    work_pattern: WorkPattern
    completed_tasks_today: int
    taken_at: datetime


@dataclass(frozen=True)
class WorkHistory:
    """Energy/work-history signal consumed by the snapshot builder."""

    energy_level: EnergyLevel = EnergyLevel.MEDIUM
    work_pattern: WorkPattern = WorkPattern.INACTIVE
    completed_tasks_today: int = 0


@dataclass(frozen=True)
class TaskRef:
    """Read-only projection of a task owned by the external task store."""

    id: str
    title: str = ""
    status: TaskStatus = TaskStatus.PENDING
    priority: Priority = Priority.MEDIUM
    due_date: Optional[datetime] = None
    estimated_duration_minutes: Optional[int] = None
    tags: frozenset[str] = field(default_factory=frozenset)
    is_archived: bool = False
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TaskRef":
        """Build from a task row. Raises InputError on unusable rows.

        Malformed optional fields (due date, duration) are dropped rather
        than rejecting the whole task.
        """
        if not isinstance(data, dict):
            raise InputError(f"task row must be a mapping, got {type(data).__name__}")
        task_id = data.get("id")
        if task_id is None or str(task_id).strip() == "":
            raise InputError("task row has no id")

        try:
            status = TaskStatus(data.get("status") or TaskStatus.PENDING)
            priority = Priority(data.get("priority") or Priority.MEDIUM)
        except ValueError as e:
            raise InputError(f"task {task_id}: {e}") from e

        try:
            due_date = _parse_datetime(data.get("due_date"))
        except (TypeError, ValueError):
            logger.debug("task.bad_due_date", task_id=task_id, value=data.get("due_date"))
            due_date = None

        try:
            updated_at = _parse_datetime(data.get("updated_at"))
        except (TypeError, ValueError):
            updated_at = None

        raw_duration = data.get("estimated_duration_minutes", data.get("estimated_duration"))
        duration = None
        if raw_duration is not None:
            try:
                duration = int(raw_duration)
            except (TypeError, ValueError):
                logger.debug("task.bad_duration", task_id=task_id, value=raw_duration)
            if duration is not None and duration < 0:
                duration = None

        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [t.strip() for t in tags.split(",") if t.strip()]

        return cls(
            id=str(task_id),
            title=str(data.get("title") or ""),
            status=status,
            priority=priority,
            due_date=due_date,
            estimated_duration_minutes=duration,
            tags=frozenset(str(t) for t in tags),
            is_archived=bool(data.get("is_archived", False)),
            updated_at=updated_at,
        )


def tasks_from_dicts(rows: list[dict]) -> list[TaskRef]:
    """Parse task rows, dropping (and logging) malformed ones."""
    tasks = []
    for row in rows:
        try:
            tasks.append(TaskRef.from_dict(row))
        except InputError as e:
            logger.warning("task.dropped", error=str(e))
    return tasks


@dataclass(frozen=True)
class Factor:
    """One weighted, labeled reason contributing to a task's score."""

    id: str
    label: str
    icon: str
    weight: float
    type: FactorType
    description: str
    kind: FactorKind


@dataclass(frozen=True)
class ScoredTask:
    task: TaskRef
    factors: tuple[Factor, ...]
    confidence: float
    success_probability: float
    final_score: float

    def __post_init__(self):
        for name in ("confidence", "success_probability", "final_score"):
            value = getattr(self, name)
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"{name} out of range [0, 100]: {value}")


@dataclass(frozen=True)
class RecommendationResult:
    """The task to work on now, plus up to two alternatives."""

    primary: ScoredTask
    alternatives: tuple[ScoredTask, ...]
    snapshot: ContextSnapshot
    generated_at: datetime
    reasoning: str = ""
    estimated_duration: int = 60
    method: ScoringMethod = ScoringMethod.FULL


@dataclass(frozen=True)
class AnalysisPayload:
    """Full ranking for the basic analysis variant."""

    ranked: tuple[ScoredTask, ...]
    snapshot: ContextSnapshot
    generated_at: datetime


@dataclass(frozen=True)
class ActionEvent:
    """Outbound user action on a recommendation."""

    task_id: str
    action: FeedbackAction
    timestamp: datetime
    user_id: str = ""
