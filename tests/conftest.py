"""Shared test fixtures for focus."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from recommender.context import build_snapshot  # noqa: E402
from recommender.models import TaskRef, WorkHistory  # noqa: E402
from shared_types import EnergyLevel, Priority, TaskStatus, WorkPattern  # noqa: E402

# A Wednesday afternoon
NOW = datetime(2025, 3, 12, 14, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_task():
    """Factory for TaskRef with sensible defaults."""

    def _make(task_id="t1", **kwargs):
        kwargs.setdefault("title", f"Task {task_id}")
        if isinstance(kwargs.get("priority"), str):
            kwargs["priority"] = Priority(kwargs["priority"])
        if isinstance(kwargs.get("status"), str):
            kwargs["status"] = TaskStatus(kwargs["status"])
        return TaskRef(id=task_id, **kwargs)

    return _make


@pytest.fixture
def make_snapshot():
    """Factory for snapshots at NOW (or a given time) with a given energy level."""

    def _make(energy="medium", pattern="inactive", completed=0, at=NOW):
        return build_snapshot(
            at,
            WorkHistory(
                energy_level=EnergyLevel(energy),
                work_pattern=WorkPattern(pattern),
                completed_tasks_today=completed,
            ),
        )

    return _make
