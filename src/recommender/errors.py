"""Error taxonomy for the recommender core."""


class RecommenderError(Exception):
    """Base recommender error."""


class InputError(RecommenderError):
    """Malformed task or snapshot fields."""


class ComputationError(RecommenderError):
    """Scoring failed for a single task."""

    def __init__(self, task_id: str, cause: Exception):
        super().__init__(f"scoring failed for task {task_id}: {cause}")
        self.task_id = task_id
        self.cause = cause


class CacheCorruption(RecommenderError):
    """Cache entry payload failed its type check."""
