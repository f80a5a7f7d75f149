"""Enrolled-courses dashboard view.

For each enrolled course we need three independent reads: the course
metadata, the learner's progress record, and the lastAccessed marker.
All of them, for all courses, are issued concurrently and joined per
course:

    build_view(alice)
      ├─ course c1: metadata ┐
      │             progress ├─ asyncio.wait(timeout=per-course bound)
      │             accessed ┘
      ├─ course c2: ...
      └─ ... gathered, then sorted by lastAccessed (newest first)

A course whose reads do not all finish within the per-course bound (or
fail) is not allowed to sink the whole dashboard: the straggling field
falls back to its default (progress 0, lastAccessed "now", metadata
with only the id) and the row is still returned.  A course whose
metadata comes back as definitely absent was removed from the catalog
and is left out.

Ties on lastAccessed are broken by course id so the order is stable
across requests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

from knowledgeflow.core.clock import SYSTEM_CLOCK, Clock, format_timestamp
from knowledgeflow.core.metrics import VIEW_FALLBACKS
from knowledgeflow.models.course import CourseMetadata
from knowledgeflow.models.enrollment import EnrolledCourseView
from knowledgeflow.repos.document_store import StoreError
from knowledgeflow.services.course_catalog import CourseCatalog
from knowledgeflow.services.enrollment_manager import EnrollmentManager
from knowledgeflow.services.progress_tracker import ProgressTracker

logger = logging.getLogger(__name__)

_MISSING = object()


class EnrolledCoursesViewBuilder:
    def __init__(
        self,
        enrollments: EnrollmentManager,
        catalog: CourseCatalog,
        progress: ProgressTracker,
        *,
        per_course_timeout: float,
        clock: Clock = SYSTEM_CLOCK,
    ) -> None:
        self._enrollments = enrollments
        self._catalog = catalog
        self._progress = progress
        self._timeout = per_course_timeout
        self._clock = clock

    async def build_view(self, learner: str) -> list[EnrolledCourseView]:
        course_ids = await self._enrollments.list_enrollments(learner)
        if not course_ids:
            return []

        rows = await asyncio.gather(
            *(self._build_row(learner, course_id) for course_id in course_ids)
        )
        views = [row for row in rows if row is not None]

        # Two stable sorts: secondary key first, then primary.
        views.sort(key=lambda v: v.course_id)
        views.sort(key=lambda v: v.last_accessed, reverse=True)
        return views

    async def _build_row(self, learner: str, course_id: str) -> EnrolledCourseView | None:
        metadata, progress, last_accessed = await self._fetch_bounded(
            learner,
            course_id,
            {
                "course": self._catalog.get_course_metadata(course_id),
                "progress": self._progress.get_progress(learner, course_id),
                "last_accessed": self._enrollments.last_accessed(learner, course_id),
            },
        )

        if metadata is None:
            logger.info(
                "Skipping enrollment in missing course learner=%s course=%s",
                learner,
                course_id,
            )
            return None
        if metadata is _MISSING:
            metadata = CourseMetadata(id=course_id)

        return EnrolledCourseView(
            course=metadata,
            progress=progress.overall_progress if progress is not _MISSING else 0,
            last_accessed=(
                last_accessed
                if last_accessed not in (None, _MISSING)
                else format_timestamp(self._clock.now())
            ),
        )

    async def _fetch_bounded(
        self, learner: str, course_id: str, fetches: dict[str, Awaitable[Any]]
    ) -> list[Any]:
        tasks = {name: asyncio.ensure_future(aw) for name, aw in fetches.items()}
        _, pending = await asyncio.wait(tasks.values(), timeout=self._timeout)
        for task in pending:
            task.cancel()
        if pending:
            # Let cancellation finish so the backend call releases its connection.
            await asyncio.gather(*pending, return_exceptions=True)

        results: list[Any] = []
        for name, task in tasks.items():
            if task in pending:
                VIEW_FALLBACKS.labels(field=name).inc()
                logger.warning(
                    "Enrolled view %s fetch timed out learner=%s course=%s",
                    name,
                    learner,
                    course_id,
                )
                results.append(_MISSING)
            elif isinstance(task.exception(), StoreError):
                VIEW_FALLBACKS.labels(field=name).inc()
                logger.warning(
                    "Enrolled view %s fetch failed learner=%s course=%s: %s",
                    name,
                    learner,
                    course_id,
                    task.exception(),
                )
                results.append(_MISSING)
            else:
                # Anything other than a store failure is a bug; let it surface.
                results.append(task.result())
        return results
