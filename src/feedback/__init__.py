"""Feedback log: accept/skip/feedback events emitted by the engine."""

from .recorder import FeedbackRecorder
from .store import FeedbackRecord, FeedbackStore

__all__ = ["FeedbackRecorder", "FeedbackRecord", "FeedbackStore"]
