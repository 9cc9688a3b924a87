"""CLI command modules."""

from .feedback import feedback, history
from .recommend import estimate, rank, recommend

__all__ = ["recommend", "estimate", "rank", "feedback", "history"]
