"""In-memory recommendation cache with TTL and fingerprint staleness."""

import hashlib
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

import structlog

from .errors import CacheCorruption
from .models import AnalysisPayload, ContextSnapshot, RecommendationResult, TaskRef

logger = structlog.get_logger()

VARIANT_ADVANCED = "advanced"
VARIANT_BASIC = "basic"

DEFAULT_TTL = 300
DEFAULT_MAX_ENTRIES = 100

PAYLOAD_TYPES = (RecommendationResult, AnalysisPayload)


@dataclass
class CacheEntry:
    key: str
    variant: str
    payload: Any
    context_fingerprint: str
    created_at: float
    ttl: float
    hits: int = 0

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


def _task_signature(task: TaskRef) -> list:
    # updated_at stands in for the whole row when the store provides it
    if task.updated_at is not None:
        return [task.id, task.updated_at.isoformat()]
    return [
        task.id,
        str(task.status),
        str(task.priority),
        task.due_date.isoformat() if task.due_date else None,
        task.estimated_duration_minutes,
    ]


def make_fingerprint(snapshot: ContextSnapshot, tasks: Iterable[TaskRef]) -> str:
    """Structural hash of the scoring-relevant context and task-list state.

    Titles, tags and other display fields are left out so edits to them do
    not force recomputation.
    """
    task_list = list(tasks)
    payload = json.dumps(
        {
            "date": snapshot.taken_at.date().isoformat(),
            "time_of_day": str(snapshot.time_of_day),
            "energy": str(snapshot.user_energy_level),
            "work_pattern": str(snapshot.work_pattern),
            "completed_today": snapshot.completed_tasks_today,
            "task_count": len(task_list),
            "tasks": [_task_signature(t) for t in task_list],
        },
        sort_keys=True,
    )
    return hashlib.sha256(payload.encode()).hexdigest()[:16]


class RecommendationCache:
    """Keyed memo of (user key, variant) -> payload.

    An entry is served only while it is within its TTL and, when the caller
    supplies one, its fingerprint still matches. One instance per engine.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        variant_ttls: Optional[dict[str, float]] = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ):
        self.default_ttl = default_ttl
        self.variant_ttls = dict(variant_ttls or {})
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def _ttl_for(self, variant: str) -> float:
        return self.variant_ttls.get(variant, self.default_ttl)

    def _live(self, key: str, variant: str) -> Optional[CacheEntry]:
        """Entry if present and unexpired; expired entries are evicted."""
        entry = self._entries.get((key, variant))
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[(key, variant)]
            return None
        return entry

    def _check_payload(self, entry: CacheEntry) -> None:
        if not isinstance(entry.payload, PAYLOAD_TYPES):
            raise CacheCorruption(
                f"{entry.key}:{entry.variant} holds {type(entry.payload).__name__}"
            )

    def get(
        self, key: str, variant: str = VARIANT_ADVANCED, fingerprint: Optional[str] = None
    ) -> Optional[CacheEntry]:
        """Return the entry on a fresh hit, else None (and count a miss).

        Passing ``fingerprint`` also treats a mismatch as stale: the entry is
        evicted and the lookup misses.
        """
        entry = self._live(key, variant)
        if entry is None:
            self._misses += 1
            return None

        try:
            self._check_payload(entry)
        except CacheCorruption as e:
            logger.warning("cache.corrupt_entry", key=key, variant=variant, error=str(e))
            del self._entries[(key, variant)]
            self._misses += 1
            return None

        if fingerprint is not None and fingerprint != entry.context_fingerprint:
            logger.debug("cache.stale", key=key, variant=variant)
            del self._entries[(key, variant)]
            self._misses += 1
            return None

        entry.hits += 1
        self._hits += 1
        return entry

    def set(
        self,
        key: str,
        payload: Any,
        context_fingerprint: str,
        variant: str = VARIANT_ADVANCED,
        ttl: Optional[float] = None,
    ) -> None:
        """Store payload, replacing any entry for the same (key, variant)."""
        slot = (key, variant)
        if slot not in self._entries and len(self._entries) >= self.max_entries:
            self._evict_oldest()
        self._entries[slot] = CacheEntry(
            key=key,
            variant=variant,
            payload=payload,
            context_fingerprint=context_fingerprint,
            created_at=self._clock(),
            ttl=ttl if ttl is not None else self._ttl_for(variant),
        )

    def has(self, key: str, variant: str = VARIANT_ADVANCED) -> bool:
        return self._live(key, variant) is not None

    def has_changed(self, key: str, new_fingerprint: str, variant: str = VARIANT_ADVANCED) -> bool:
        """True if there is no live entry or its fingerprint differs."""
        entry = self._live(key, variant)
        return entry is None or entry.context_fingerprint != new_fingerprint

    def invalidate(self, key: str, variant: Optional[str] = None) -> None:
        """Drop one variant, or every variant when ``variant`` is None."""
        if variant is not None:
            self._entries.pop((key, variant), None)
            return
        for slot in [s for s in self._entries if s[0] == key]:
            del self._entries[slot]

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def clear_expired(self) -> int:
        """Delete expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [slot for slot, e in self._entries.items() if e.expired(now)]
        for slot in expired:
            del self._entries[slot]
        if expired:
            logger.debug("cache.cleared_expired", count=len(expired))
        return len(expired)

    def _evict_oldest(self) -> None:
        if not self._entries:
            return
        oldest = min(self._entries, key=lambda slot: self._entries[slot].created_at)
        del self._entries[oldest]

    def popular_entries(self, limit: int = 5) -> list[dict]:
        now = self._clock()
        ranked = sorted(self._entries.values(), key=lambda e: -e.hits)[:limit]
        return [
            {"key": f"{e.key}:{e.variant}", "hits": e.hits, "age": now - e.created_at}
            for e in ranked
        ]

    def get_stats(self) -> dict:
        """Entry count, hit/miss rates (0-100), mean age (s), memory estimate (KB)."""
        total = self._hits + self._misses
        now = self._clock()
        entries = list(self._entries.values())
        avg_age = sum(now - e.created_at for e in entries) / len(entries) if entries else 0.0
        memory_bytes = sum(len(repr(e.payload)) for e in entries)
        return {
            "total_entries": len(entries),
            "hit_rate": (self._hits / total) * 100 if total else 0.0,
            "miss_rate": (self._misses / total) * 100 if total else 0.0,
            "avg_age": avg_age,
            "memory_usage": round(memory_bytes / 1024),
        }
