"""Task recommendation core: context, scoring, ranking, cache, debounced engine."""

from .cache import VARIANT_ADVANCED, VARIANT_BASIC, RecommendationCache, make_fingerprint
from .context import build_snapshot, derive_work_history
from .engine import RecommendationEngine
from .errors import CacheCorruption, ComputationError, InputError, RecommenderError
from .factors import estimate_duration, explain, full_score, quick_score
from .models import (
    ActionEvent,
    AnalysisPayload,
    ContextSnapshot,
    Factor,
    RecommendationResult,
    ScoredTask,
    TaskRef,
    WorkHistory,
    tasks_from_dicts,
)
from .prioritizer import Ranking, rank, rank_all

__all__ = [
    "RecommendationEngine",
    "RecommendationCache",
    "make_fingerprint",
    "VARIANT_ADVANCED",
    "VARIANT_BASIC",
    "build_snapshot",
    "derive_work_history",
    "full_score",
    "quick_score",
    "estimate_duration",
    "explain",
    "rank",
    "rank_all",
    "Ranking",
    "ActionEvent",
    "AnalysisPayload",
    "ContextSnapshot",
    "Factor",
    "RecommendationResult",
    "ScoredTask",
    "TaskRef",
    "WorkHistory",
    "tasks_from_dicts",
    "RecommenderError",
    "InputError",
    "ComputationError",
    "CacheCorruption",
]
