from __future__ import annotations

import logging

from knowledgeflow.core.clock import SYSTEM_CLOCK, Clock, format_timestamp
from knowledgeflow.core.metrics import PROGRESS_UPDATES
from knowledgeflow.models.progress import ProgressRecord, ProgressUpdate
from knowledgeflow.repos import paths
from knowledgeflow.repos.document_store import DocumentStore

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Per-(learner, course) progress records.

    Enrollment gating is the caller's job: get_progress returns a zero
    record for a pair that has never been written, it does not signal
    "not enrolled".
    """

    def __init__(self, store: DocumentStore, clock: Clock = SYSTEM_CLOCK) -> None:
        self._store = store
        self._clock = clock

    async def get_progress(self, learner: str, course_id: str) -> ProgressRecord:
        doc = await self._store.get(paths.progress_path(learner, course_id))
        if doc is None:
            return ProgressRecord.empty(learner=learner, course_id=course_id)
        return ProgressRecord.from_document(
            learner=learner, course_id=course_id, document=doc
        )

    async def update_progress(self, update: ProgressUpdate) -> str:
        """Merge the supplied fields; everything else keeps its stored value.

        lastUpdated is stamped on every call and returned.  The record is
        not read back, so a committed write is never reported as failed.
        The progress fields and the enrollment's lastAccessed marker go out
        as one multi-path write, so a reader never sees new progress with a
        stale recency marker.
        """
        now = format_timestamp(self._clock.now())
        fields = update.supplied_fields()
        fields["lastUpdated"] = now

        await self._store.multi_update(
            {
                paths.progress_path(update.learner, update.course_id): fields,
                paths.last_accessed_path(update.learner, update.course_id): {"at": now},
            }
        )
        PROGRESS_UPDATES.inc()
        logger.debug(
            "Progress updated learner=%s course=%s fields=%s",
            update.learner,
            update.course_id,
            ",".join(sorted(fields)),
            extra={"learner": update.learner, "course_id": update.course_id},
        )
        return now
