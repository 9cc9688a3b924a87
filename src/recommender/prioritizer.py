"""Order scored tasks and pick the best one plus alternatives.

Sort is descending by ``final_score``. Ties resolve, in order, by:

1. earlier due date (tasks without one sort after those with one)
2. higher priority
3. original list position

No randomness is involved, so identical inputs always rank identically.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared_types import PRIORITY_RANK

from .models import ScoredTask

DEFAULT_ALTERNATIVES = 2


@dataclass(frozen=True)
class Ranking:
    primary: ScoredTask
    alternatives: tuple[ScoredTask, ...]


def _due_sort_key(scored: ScoredTask) -> tuple:
    due = scored.task.due_date
    if due is None:
        return (1, datetime.min)
    if due.tzinfo is not None:
        due = due.astimezone().replace(tzinfo=None)
    return (0, due)


def rank_all(scored: list[ScoredTask]) -> list[ScoredTask]:
    """Full ordering under the ranking rules."""
    indexed = list(enumerate(scored))
    indexed.sort(
        key=lambda pair: (
            -pair[1].final_score,
            _due_sort_key(pair[1]),
            -PRIORITY_RANK[pair[1].task.priority],
            pair[0],
        )
    )
    return [s for _, s in indexed]


def rank(scored: list[ScoredTask], max_alternatives: int = DEFAULT_ALTERNATIVES) -> Optional[Ranking]:
    """Best task plus the next ``max_alternatives``. None for an empty pool."""
    if not scored:
        return None
    ordered = rank_all(scored)
    return Ranking(primary=ordered[0], alternatives=tuple(ordered[1 : 1 + max_alternatives]))
