"""Recommendation engine: fast estimate now, authoritative result after a quiet period.

Protocol per ``generate(tasks, user_id)`` call:

1. Filter to eligible tasks (not completed, not archived, not skipped).
2. Compute the quick estimate synchronously, every call.
3. (Re)start the per-user debounce timer; bursts collapse into one run that
   uses the latest inputs.
4. The run checks the cache (TTL + fingerprint) and only on a miss scores
   and ranks, then stores the result.
5. Each run takes a generation number; only the latest generation for a
   user may publish. Older results are dropped.
6. A failed run marks the user degraded and answers with the last good
   result or the estimate.
"""

import asyncio
import inspect
import itertools
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

import structlog

from observability import Metrics
from shared_types import FeedbackAction, ScoringMethod, TaskStatus

from .cache import VARIANT_ADVANCED, VARIANT_BASIC, RecommendationCache, make_fingerprint
from .context import build_snapshot, derive_work_history
from .debounce import DebounceTimer
from .errors import ComputationError, RecommenderError
from .factors import Scorer, estimate_duration, explain, full_score, quick_score
from .models import (
    ActionEvent,
    AnalysisPayload,
    ContextSnapshot,
    RecommendationResult,
    ScoredTask,
    TaskRef,
    tasks_from_dicts,
)
from .prioritizer import DEFAULT_ALTERNATIVES, Ranking, rank, rank_all

logger = structlog.get_logger()

DEFAULT_DEBOUNCE_SECONDS = 0.3
DEFAULT_BATCH_SIZE = 200
DEFAULT_ADVANCED_TTL = 300
DEFAULT_BASIC_TTL = 60

# (user_id, all tasks) -> WorkHistory | dict, optionally awaitable
HistoryProvider = Callable[[str, list[TaskRef]], Any]


def _coerce_tasks(tasks: Iterable[Any]) -> list[TaskRef]:
    """Accept TaskRef objects or raw task dicts (malformed dicts are dropped)."""
    refs: list[TaskRef] = []
    rows: list[dict] = []
    for t in tasks or []:
        if isinstance(t, TaskRef):
            if rows:
                refs.extend(tasks_from_dicts(rows))
                rows = []
            refs.append(t)
        else:
            rows.append(t)
    if rows:
        refs.extend(tasks_from_dicts(rows))
    return refs


class RecommendationEngine:
    """Owns the cache, debounce timers and generation bookkeeping for its users."""

    def __init__(
        self,
        cache: Optional[RecommendationCache] = None,
        history_provider: Optional[HistoryProvider] = None,
        feedback_recorder=None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        max_alternatives: int = DEFAULT_ALTERNATIVES,
        batch_size: int = DEFAULT_BATCH_SIZE,
        full_scorer: Scorer = full_score,
        quick_scorer: Scorer = quick_score,
        clock: Callable[[], datetime] = datetime.now,
        metrics: Optional[Metrics] = None,
    ):
        self.cache = cache or RecommendationCache(
            default_ttl=DEFAULT_ADVANCED_TTL,
            variant_ttls={VARIANT_ADVANCED: DEFAULT_ADVANCED_TTL, VARIANT_BASIC: DEFAULT_BASIC_TTL},
        )
        self.history_provider = history_provider
        self.feedback_recorder = feedback_recorder
        self.debounce_seconds = debounce_seconds
        self.max_alternatives = max_alternatives
        self.batch_size = batch_size
        self.full_scorer = full_scorer
        self.quick_scorer = quick_scorer
        self._clock = clock
        self.metrics = metrics or Metrics()

        self._generation = itertools.count(1)
        self._latest: dict[str, int] = {}
        self._inputs: dict[str, list[TaskRef]] = {}
        self._timers: dict[str, DebounceTimer] = {}
        self._waiters: dict[str, list[asyncio.Future]] = {}
        self._published: dict[str, Optional[RecommendationResult]] = {}
        self._last_good: dict[str, RecommendationResult] = {}
        self._estimates: dict[str, Optional[RecommendationResult]] = {}
        self._degraded: dict[str, bool] = {}
        self._skipped: dict[str, set[str]] = {}

    @classmethod
    def from_config(cls, config, **kwargs) -> "RecommendationEngine":
        """Build from a ``FocusConfig`` (see cli.config_models)."""
        cache = RecommendationCache(
            default_ttl=config.cache.advanced_ttl,
            variant_ttls={
                VARIANT_ADVANCED: config.cache.advanced_ttl,
                VARIANT_BASIC: config.cache.basic_ttl,
            },
            max_entries=config.cache.max_entries,
        )
        return cls(
            cache=cache,
            debounce_seconds=config.engine.debounce_seconds,
            max_alternatives=config.engine.max_alternatives,
            batch_size=config.engine.batch_size,
            **kwargs,
        )

    # ── eligibility ───────────────────────────────────────────────────

    def eligible(self, tasks: Iterable[Any], user_id: Optional[str] = None) -> list[TaskRef]:
        skipped = self._skipped.get(user_id, set()) if user_id is not None else set()
        return [
            t
            for t in _coerce_tasks(tasks)
            if t.status != TaskStatus.COMPLETED and not t.is_archived and t.id not in skipped
        ]

    def skip(self, user_id: str, task_id: str) -> None:
        """Hide a task from this session's recommendations."""
        self._skipped.setdefault(user_id, set()).add(task_id)

    def reset_skips(self, user_id: str) -> None:
        self._skipped.pop(user_id, None)

    # ── scoring helpers ───────────────────────────────────────────────

    def _score_one(self, task: TaskRef, snapshot: ContextSnapshot, scorer: Scorer) -> Optional[ScoredTask]:
        try:
            return scorer(task, snapshot)
        except Exception as e:
            err = ComputationError(task.id, e)
            logger.warning("scoring.task_failed", task_id=task.id, error=str(err))
            self.metrics.counter("scoring_failures")
            return None

    async def _score_all(
        self, tasks: list[TaskRef], snapshot: ContextSnapshot, scorer: Scorer
    ) -> list[ScoredTask]:
        """Score tasks, yielding to the loop every ``batch_size`` tasks."""
        scored = []
        for i, task in enumerate(tasks, start=1):
            result = self._score_one(task, snapshot, scorer)
            if result is not None:
                scored.append(result)
            if self.batch_size and i % self.batch_size == 0:
                await asyncio.sleep(0)
        return scored

    def _build_result(
        self, ranking: Ranking, snapshot: ContextSnapshot, method: ScoringMethod
    ) -> RecommendationResult:
        return RecommendationResult(
            primary=ranking.primary,
            alternatives=ranking.alternatives,
            snapshot=snapshot,
            generated_at=self._clock(),
            reasoning=explain(ranking.primary),
            estimated_duration=estimate_duration(ranking.primary.task),
            method=method,
        )

    async def _lookup_history(self, user_id: str, tasks: list[TaskRef], now: datetime) -> Optional[Any]:
        if self.history_provider is None:
            return derive_work_history(now, tasks)
        try:
            history = self.history_provider(user_id, tasks)
            if inspect.isawaitable(history):
                history = await history
            return history
        except Exception as e:
            logger.warning("context.history_lookup_failed", user_id=user_id, error=str(e))
            return None

    # ── fallback path ─────────────────────────────────────────────────

    def _history_now(self, user_id: Optional[str], tasks: list[TaskRef], now: datetime) -> Any:
        """History for the synchronous path.

        Uses a synchronous provider directly; async or failing providers fall
        back to the derived heuristic.
        """
        provider = self.history_provider
        if provider is None or inspect.iscoroutinefunction(provider):
            return derive_work_history(now, tasks)
        try:
            history = provider(user_id, tasks)
        except Exception as e:
            logger.warning("context.history_lookup_failed", user_id=user_id, error=str(e))
            return derive_work_history(now, tasks)
        if inspect.isawaitable(history):
            if inspect.iscoroutine(history):
                history.close()
            return derive_work_history(now, tasks)
        return history

    def estimate(self, tasks: Iterable[Any], user_id: Optional[str] = None) -> Optional[RecommendationResult]:
        """Synchronous quick-scored recommendation. None when nothing is eligible."""
        all_tasks = _coerce_tasks(tasks)
        candidates = self.eligible(all_tasks, user_id)
        self.metrics.counter("estimates")
        if not candidates:
            return None
        now = self._clock()
        snapshot = build_snapshot(now, self._history_now(user_id, all_tasks, now))
        scored = [s for s in (self._score_one(t, snapshot, self.quick_scorer) for t in candidates) if s]
        ranking = rank(scored, self.max_alternatives)
        if ranking is None:
            return None
        return self._build_result(ranking, snapshot, ScoringMethod.QUICK)

    # ── authoritative path ────────────────────────────────────────────

    async def generate(self, tasks: Iterable[Any], user_id: str) -> Optional[RecommendationResult]:
        """Debounced authoritative recommendation for ``user_id``.

        Concurrent callers within one quiet period share a single run and all
        receive its result.
        """
        all_tasks = _coerce_tasks(tasks)
        self._estimates[user_id] = self.estimate(all_tasks, user_id)

        if not self.eligible(all_tasks, user_id):
            timer = self._timers.get(user_id)
            if timer is not None:
                timer.cancel()
            # supersede anything still in flight
            self._latest[user_id] = next(self._generation)
            self._publish(user_id, None)
            self._degraded[user_id] = False
            return None

        self._inputs[user_id] = all_tasks
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(user_id, []).append(waiter)

        timer = self._timers.get(user_id)
        if timer is None:
            timer = DebounceTimer(self.debounce_seconds, lambda: self._run(user_id))
            self._timers[user_id] = timer
        timer.reset()
        return await waiter

    async def refresh(self, tasks: Iterable[Any], user_id: str) -> Optional[RecommendationResult]:
        """Drop the cached result and generate again."""
        self.invalidate(user_id, VARIANT_ADVANCED)
        return await self.generate(tasks, user_id)

    async def _run(self, user_id: str) -> None:
        generation = next(self._generation)
        self._latest[user_id] = generation
        tasks = self._inputs.get(user_id, [])
        self.metrics.counter("authoritative_runs")

        try:
            with self.metrics.timer("authoritative_run"):
                result = await self._authoritative(user_id, tasks, generation)
        except Exception as e:
            if generation != self._latest.get(user_id):
                return
            self._degraded[user_id] = True
            self.metrics.counter("degraded_runs")
            logger.warning("engine.degraded", user_id=user_id, generation=generation, error=str(e))
            fallback = self._last_good.get(user_id) or self._estimates.get(user_id)
            self._resolve_waiters(user_id, fallback)
            return

        if generation != self._latest.get(user_id):
            self.metrics.counter("stale_discarded")
            logger.debug("engine.stale_result_discarded", user_id=user_id, generation=generation)
            return

        self._degraded[user_id] = False
        self._publish(user_id, result)

    async def _authoritative(
        self, user_id: str, tasks: list[TaskRef], generation: int
    ) -> Optional[RecommendationResult]:
        now = self._clock()
        candidates = self.eligible(tasks, user_id)
        if not candidates:
            return None
        history = await self._lookup_history(user_id, tasks, now)
        snapshot = build_snapshot(now, history)
        fingerprint = make_fingerprint(snapshot, candidates)

        entry = self.cache.get(user_id, VARIANT_ADVANCED, fingerprint=fingerprint)
        if entry is not None:
            self.metrics.counter("cache_hits")
            return replace(entry.payload, method=ScoringMethod.CACHED)

        self.metrics.counter("recomputes")
        scored = await self._score_all(candidates, snapshot, self.full_scorer)
        ranking = rank(scored, self.max_alternatives)
        if ranking is None:
            raise RecommenderError(f"all {len(candidates)} eligible tasks failed scoring")
        result = self._build_result(ranking, snapshot, ScoringMethod.FULL)
        # a superseded run must not overwrite the newer entry
        if generation == self._latest.get(user_id):
            self.cache.set(user_id, result, fingerprint, VARIANT_ADVANCED)
        return result

    def _publish(self, user_id: str, result: Optional[RecommendationResult]) -> None:
        self._published[user_id] = result
        if result is not None:
            self._last_good[user_id] = result
        self._resolve_waiters(user_id, result)

    def _resolve_waiters(self, user_id: str, result: Optional[RecommendationResult]) -> None:
        for waiter in self._waiters.pop(user_id, []):
            if not waiter.done():
                waiter.set_result(result)

    # ── basic analysis variant ────────────────────────────────────────

    async def analyze(self, tasks: Iterable[Any], user_id: str) -> Optional[AnalysisPayload]:
        """Full ranking of eligible tasks, cached under the basic variant."""
        all_tasks = _coerce_tasks(tasks)
        candidates = self.eligible(all_tasks, user_id)
        if not candidates:
            return None
        now = self._clock()
        snapshot = build_snapshot(now, await self._lookup_history(user_id, all_tasks, now))
        fingerprint = make_fingerprint(snapshot, candidates)

        entry = self.cache.get(user_id, VARIANT_BASIC, fingerprint=fingerprint)
        if entry is not None:
            return entry.payload

        scored = await self._score_all(candidates, snapshot, self.full_scorer)
        payload = AnalysisPayload(ranked=tuple(rank_all(scored)), snapshot=snapshot, generated_at=now)
        self.cache.set(user_id, payload, fingerprint, VARIANT_BASIC)
        return payload

    # ── caller-facing state ───────────────────────────────────────────

    def current(self, user_id: str) -> Optional[RecommendationResult]:
        """Latest published result, else the latest estimate."""
        published = self._published.get(user_id)
        if published is not None:
            return published
        return self._estimates.get(user_id)

    def is_degraded(self, user_id: str) -> bool:
        return self._degraded.get(user_id, False)

    def invalidate(self, user_id: str, variant: Optional[str] = None) -> None:
        """Drop cached results and supersede any run already in flight.

        Callers still waiting are served by a fresh run.
        """
        self.cache.invalidate(user_id, variant)
        self._latest[user_id] = next(self._generation)
        timer = self._timers.get(user_id)
        if timer is not None and self._waiters.get(user_id):
            timer.reset()

    def get_cache_stats(self) -> dict:
        return self.cache.get_stats()

    def record_action(
        self, user_id: str, task_id: str, action: FeedbackAction | str
    ) -> ActionEvent:
        """Emit an action event to the feedback recorder. Never read back into scoring."""
        event = ActionEvent(
            task_id=task_id,
            action=FeedbackAction(action),
            timestamp=self._clock(),
            user_id=user_id,
        )
        if event.action == FeedbackAction.SKIPPED:
            self.skip(user_id, task_id)
        if self.feedback_recorder is not None:
            try:
                self.feedback_recorder.record(event)
            except Exception as e:
                logger.warning("feedback.record_failed", task_id=task_id, error=str(e))
        return event

    async def aclose(self) -> None:
        """Cancel pending timers, finish in-flight runs, release waiters."""
        for timer in self._timers.values():
            timer.cancel()
        for timer in self._timers.values():
            await timer.drain()
        for user_id in list(self._waiters):
            self._resolve_waiters(user_id, self.current(user_id))
