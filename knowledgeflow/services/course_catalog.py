from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from knowledgeflow.core.clock import SYSTEM_CLOCK, Clock, epoch_millis
from knowledgeflow.models.course import Course, CourseMetadata, Lesson, Quiz
from knowledgeflow.repos import paths
from knowledgeflow.repos.document_store import DocumentStore

logger = logging.getLogger(__name__)


class CourseValidationError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class CourseDraft:
    """Instructor input for a new course, before ids and timestamps exist."""

    title: str
    description: str
    thumbnail_url: str
    creator_username: str
    category: str | None = None
    certificate_link: str | None = None
    lessons: list[dict[str, Any]] = field(default_factory=list)
    quizzes: list[dict[str, Any]] = field(default_factory=list)


class CourseCatalog:
    """Course documents under ``courses/``.

    The enrollment core only needs existence, metadata and the student
    counter; the authoring and browsing operations serve the Instructor
    and Learner APIs.
    """

    def __init__(self, store: DocumentStore, clock: Clock = SYSTEM_CLOCK) -> None:
        self._store = store
        self._clock = clock

    async def course_exists(self, course_id: str) -> bool:
        return await self._store.exists(paths.course_path(course_id))

    async def get_course_metadata(self, course_id: str) -> CourseMetadata | None:
        doc = await self._store.get(paths.course_path(course_id))
        if doc is None:
            return None
        return CourseMetadata.from_document(course_id, doc)

    async def get_course(self, course_id: str) -> Course | None:
        doc = await self._store.get(paths.course_path(course_id))
        if doc is None:
            return None
        return Course.from_document(course_id, doc)

    async def increment_student_count(self, course_id: str) -> int:
        return await self._store.increment(paths.course_path(course_id), "students")

    @staticmethod
    def validate_draft(draft: CourseDraft) -> None:
        missing = [
            name
            for name, value in (
                ("title", draft.title),
                ("description", draft.description),
                ("thumbnailUrl", draft.thumbnail_url),
                ("username", draft.creator_username),
            )
            if not (value or "").strip()
        ]
        if missing:
            logger.warning("Rejected course draft, missing=%s", ",".join(missing))
            raise CourseValidationError(
                f"Missing required course information: {', '.join(missing)}"
            )

    async def create_course(self, draft: CourseDraft) -> Course:
        self.validate_draft(draft)

        course = Course(
            id=str(uuid4()),
            title=draft.title.strip(),
            description=draft.description,
            thumbnail_url=draft.thumbnail_url,
            creator_username=draft.creator_username,
            created_at=epoch_millis(self._clock.now()),
            category=draft.category,
            certificate_link=draft.certificate_link or None,
            lessons=tuple(Lesson.from_document(d) for d in draft.lessons),
            quizzes=tuple(Quiz.from_document(d) for d in draft.quizzes),
        )
        await self._store.set(paths.course_path(course.id), course.to_document())
        logger.info(
            "Created course id=%s creator=%s lessons=%d quizzes=%d",
            course.id,
            course.creator_username,
            len(course.lessons),
            len(course.quizzes),
        )
        return course

    async def list_courses_by_creator(self, username: str) -> dict[str, Course]:
        docs = await self._store.query(paths.COURSES, "creatorUsername", username)
        return {
            course_id: Course.from_document(course_id, doc)
            for course_id, doc in sorted(docs.items())
        }

    async def browse(
        self, category: str | None = None, search: str | None = None
    ) -> list[CourseMetadata]:
        """All courses, optionally filtered.

        category: case-insensitive exact match; empty or "all" disables it.
        search:   case-insensitive substring of title, description or creator.
        """
        docs = await self._store.children(paths.COURSES)
        wanted_category = (category or "").strip().lower()
        needle = (search or "").strip().lower()

        results: list[CourseMetadata] = []
        for course_id, doc in sorted(docs.items()):
            meta = CourseMetadata.from_document(course_id, doc)
            if wanted_category and wanted_category != "all":
                if (meta.category or "").lower() != wanted_category:
                    continue
            if needle and not any(
                needle in (text or "").lower()
                for text in (meta.title, meta.description, meta.creator_username)
            ):
                continue
            results.append(meta)
        return results
