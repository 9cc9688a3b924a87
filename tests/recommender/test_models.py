"""Tests for recommender value types and task parsing."""

from datetime import datetime

import pytest

from recommender.errors import InputError
from recommender.models import ScoredTask, TaskRef, tasks_from_dicts
from shared_types import Priority, TaskStatus


class TestTaskRefFromDict:
    def test_full_row(self):
        task = TaskRef.from_dict(
            {
                "id": 7,
                "title": "Write report",
                "status": "in_progress",
                "priority": "high",
                "due_date": "2025-03-13T09:00:00",
                "estimated_duration_minutes": "45",
                "tags": ["work", "writing"],
            }
        )
        assert task.id == "7"
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.priority == Priority.HIGH
        assert task.due_date == datetime(2025, 3, 13, 9, 0)
        assert task.estimated_duration_minutes == 45
        assert task.tags == frozenset({"work", "writing"})

    def test_defaults(self):
        task = TaskRef.from_dict({"id": "x"})
        assert task.status == TaskStatus.PENDING
        assert task.priority == Priority.MEDIUM
        assert task.due_date is None
        assert task.estimated_duration_minutes is None
        assert task.is_archived is False

    def test_duration_alias_and_comma_tags(self):
        task = TaskRef.from_dict({"id": "x", "estimated_duration": 20, "tags": "a, b,,c"})
        assert task.estimated_duration_minutes == 20
        assert task.tags == frozenset({"a", "b", "c"})

    def test_utc_suffix_parsed_to_naive(self):
        task = TaskRef.from_dict({"id": "x", "due_date": "2025-03-13T09:00:00Z"})
        assert task.due_date is not None
        assert task.due_date.tzinfo is None

    def test_bad_optional_fields_are_dropped(self):
        task = TaskRef.from_dict(
            {"id": "x", "due_date": "next tuesday", "estimated_duration_minutes": "soon"}
        )
        assert task.due_date is None
        assert task.estimated_duration_minutes is None

    def test_negative_duration_dropped(self):
        assert TaskRef.from_dict({"id": "x", "estimated_duration": -5}).estimated_duration_minutes is None

    def test_missing_id_raises(self):
        with pytest.raises(InputError):
            TaskRef.from_dict({"title": "orphan"})

    def test_unknown_priority_raises(self):
        with pytest.raises(InputError):
            TaskRef.from_dict({"id": "x", "priority": "critical"})

    def test_non_mapping_raises(self):
        with pytest.raises(InputError):
            TaskRef.from_dict(["id", "x"])


def test_tasks_from_dicts_drops_malformed_rows():
    rows = [{"id": "a"}, {"title": "no id"}, {"id": "b", "status": "exploded"}, {"id": "c"}]
    assert [t.id for t in tasks_from_dicts(rows)] == ["a", "c"]


def test_scored_task_rejects_out_of_range_scores():
    task = TaskRef(id="x")
    with pytest.raises(ValueError):
        ScoredTask(task=task, factors=(), confidence=101, success_probability=50, final_score=50)
    with pytest.raises(ValueError):
        ScoredTask(task=task, factors=(), confidence=50, success_probability=50, final_score=-1)
