"""Persists engine action events; nothing here feeds back into scoring."""

import structlog

from recommender.models import ActionEvent

from .store import FeedbackRecord, FeedbackStore

logger = structlog.get_logger()


class FeedbackRecorder:
    def __init__(self, store: FeedbackStore):
        self.store = store

    def record(self, event: ActionEvent) -> str | None:
        record = FeedbackRecord(
            task_id=event.task_id,
            action=str(event.action),
            user_id=event.user_id,
            created_at=event.timestamp.isoformat(),
        )
        record_id = self.store.save(record)
        if record_id:
            logger.info("feedback.recorded", task_id=event.task_id, action=record.action)
        return record_id
