"""Learner enrollment: the at-most-once state machine.

ENROLL SEQUENCE
----------------
  1. one conditional multi-path create, guarded on the enrollment:
       learners/{u}/enrollments/{courseId}     courseId, enrolledAt
       learners/{u}/courseProgress/{courseId}  zero progress record
       learners/{u}/lastAccessed/{courseId}    at = enrolledAt
       -> enrollment already there: AlreadyEnrolledError, nothing written
  2. best-effort increment of courses/{courseId}.students

All three documents land together or not at all, so a failed write
leaves nothing behind and a retry can succeed.  Step 1 is a
compare-and-set at the store boundary (a Lua script on Redis), so two
concurrent enroll calls for the same pair cannot both pass it.  No
in-process lock is needed, and the guarantee holds across API replicas.

Step 2 is a side effect on the course catalog.  Its failure is logged
and counted but never surfaced: the learner IS enrolled, and a student
counter that lags by one is not worth failing the request over.

Preconditions (learner and course exist) are checked by the caller.
"""

from __future__ import annotations

import logging

from knowledgeflow.core.clock import SYSTEM_CLOCK, Clock, format_timestamp
from knowledgeflow.core.metrics import ENROLLMENTS, STUDENT_COUNT_FAILURES
from knowledgeflow.models.enrollment import Enrollment, EnrollmentReceipt
from knowledgeflow.models.progress import ProgressRecord
from knowledgeflow.repos import paths
from knowledgeflow.repos.document_store import (
    DocumentStore,
    MissingDocumentError,
    StoreError,
)
from knowledgeflow.services.course_catalog import CourseCatalog

logger = logging.getLogger(__name__)


class AlreadyEnrolledError(Exception):
    def __init__(self, learner: str, course_id: str) -> None:
        super().__init__(f"{learner} is already enrolled in {course_id}")
        self.learner = learner
        self.course_id = course_id


class EnrollmentManager:
    def __init__(
        self,
        store: DocumentStore,
        catalog: CourseCatalog,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._clock = clock

    async def is_enrolled(self, learner: str, course_id: str) -> bool:
        # Always read through; the store is the only source of truth.
        return await self._store.exists(paths.enrollment_path(learner, course_id))

    async def enroll(self, learner: str, course_id: str) -> EnrollmentReceipt:
        enrolled_at = format_timestamp(self._clock.now())
        log_ctx = {"learner": learner, "course_id": course_id}

        initial = ProgressRecord.empty(
            learner=learner, course_id=course_id, last_updated=enrolled_at
        )
        created = await self._store.create(
            paths.enrollment_path(learner, course_id),
            {"courseId": course_id, "enrolledAt": enrolled_at},
            related={
                paths.progress_path(learner, course_id): initial.to_document(),
                paths.last_accessed_path(learner, course_id): {"at": enrolled_at},
            },
        )
        if not created:
            ENROLLMENTS.labels(result="conflict").inc()
            logger.info(
                "Duplicate enrollment rejected learner=%s course=%s",
                learner,
                course_id,
                extra=log_ctx,
            )
            raise AlreadyEnrolledError(learner, course_id)

        ENROLLMENTS.labels(result="created").inc()
        logger.info(
            "Enrolled learner=%s course=%s at=%s",
            learner,
            course_id,
            enrolled_at,
            extra=log_ctx,
        )

        await self._bump_student_count(course_id)

        return EnrollmentReceipt(
            learner=learner, course_id=course_id, enrolled_at=enrolled_at
        )

    async def _bump_student_count(self, course_id: str) -> None:
        try:
            await self._catalog.increment_student_count(course_id)
        except (StoreError, MissingDocumentError):
            STUDENT_COUNT_FAILURES.inc()
            logger.warning(
                "Dropped student count increment for course=%s",
                course_id,
                exc_info=True,
                extra={"course_id": course_id},
            )

    async def list_enrollments(self, learner: str) -> list[str]:
        """Enrolled course ids, oldest enrollment first.  Empty if none."""
        return [e.course_id for e in await self.list_enrollment_records(learner)]

    async def list_enrollment_records(self, learner: str) -> list[Enrollment]:
        docs = await self._store.children(paths.enrollments_path(learner))
        records = [
            Enrollment(
                learner=learner,
                course_id=course_id,
                enrolled_at=doc.get("enrolledAt") or "",
            )
            for course_id, doc in docs.items()
        ]
        records.sort(key=lambda e: (e.enrolled_at, e.course_id))
        return records

    async def last_accessed(self, learner: str, course_id: str) -> str | None:
        doc = await self._store.get(paths.last_accessed_path(learner, course_id))
        if doc is None:
            return None
        return doc.get("at")

