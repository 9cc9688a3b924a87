"""Shared enums and types for the focus recommender."""

from enum import StrEnum


class TimeOfDay(StrEnum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class EnergyLevel(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class WorkPattern(StrEnum):
    PRODUCTIVE = "productive"
    MODERATE = "moderate"
    LOW = "low"
    INACTIVE = "inactive"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# Tie-break order: higher rank wins
PRIORITY_RANK = {
    Priority.LOW: 0,
    Priority.MEDIUM: 1,
    Priority.HIGH: 2,
    Priority.URGENT: 3,
}


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"


class FactorType(StrEnum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class FactorKind(StrEnum):
    URGENCY = "urgency"
    DEADLINE = "deadline"
    ENERGY = "energy"
    DURATION = "duration"
    SESSION = "session"


class FeedbackAction(StrEnum):
    ACCEPTED = "accepted"
    SKIPPED = "skipped"
    FEEDBACK_POSITIVE = "feedback_positive"
    FEEDBACK_NEGATIVE = "feedback_negative"


class ScoringMethod(StrEnum):
    FULL = "full"
    CACHED = "cached"
    QUICK = "quick"
