from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from knowledgeflow.models.course import CourseMetadata


@dataclass(frozen=True, slots=True)
class Enrollment:
    learner: str
    course_id: str
    enrolled_at: str


@dataclass(frozen=True, slots=True)
class EnrollmentReceipt:
    """What a successful enroll call hands back to the controller."""

    learner: str
    course_id: str
    enrolled_at: str


@dataclass(frozen=True, slots=True)
class EnrolledCourseView:
    """One row of a learner's dashboard: course metadata + progress + recency.

    Derived on every request, never stored.
    """

    course: CourseMetadata
    progress: int
    last_accessed: str

    @property
    def course_id(self) -> str:
        return self.course.id

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.course.to_dict(),
            "progress": self.progress,
            "lastAccessed": self.last_accessed,
        }
