from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _unique(items: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    # Completed lessons are a set; keep first-seen order for stable output.
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    """Per-(learner, course) progress as stored under courseProgress/.

    overall_progress is supplied by the client; it is not derived from
    completed_lessons and is not range-checked.
    """

    learner: str
    course_id: str
    completed_lessons: tuple[str, ...] = ()
    quiz_answers: dict[str, Any] = field(default_factory=dict)
    quiz_submitted: dict[str, Any] = field(default_factory=dict)
    quiz_results: dict[str, Any] = field(default_factory=dict)
    certificate_unlocked: bool = False
    overall_progress: int = 0
    last_updated: str | None = None

    @staticmethod
    def empty(
        *, learner: str, course_id: str, last_updated: str | None = None
    ) -> ProgressRecord:
        return ProgressRecord(
            learner=learner, course_id=course_id, last_updated=last_updated
        )

    @staticmethod
    def from_document(
        *, learner: str, course_id: str, document: dict[str, Any]
    ) -> ProgressRecord:
        return ProgressRecord(
            learner=learner,
            course_id=course_id,
            completed_lessons=_unique(document.get("completedLessons") or []),
            quiz_answers=dict(document.get("quizAnswers") or {}),
            quiz_submitted=dict(document.get("quizSubmitted") or {}),
            quiz_results=dict(document.get("quizResults") or {}),
            certificate_unlocked=bool(document.get("certificateUnlocked", False)),
            overall_progress=int(document.get("overallProgress") or 0),
            last_updated=document.get("lastUpdated"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "completedLessons": list(self.completed_lessons),
            "quizAnswers": dict(self.quiz_answers),
            "quizSubmitted": dict(self.quiz_submitted),
            "quizResults": dict(self.quiz_results),
            "certificateUnlocked": self.certificate_unlocked,
            "overallProgress": self.overall_progress,
            "lastUpdated": self.last_updated,
        }


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """A partial progress write.  None means "not supplied, keep as is"."""

    learner: str
    course_id: str
    completed_lessons: list[str] | None = None
    quiz_answers: dict[str, Any] | None = None
    quiz_submitted: dict[str, Any] | None = None
    quiz_results: dict[str, Any] | None = None
    certificate_unlocked: bool | None = None
    overall_progress: int | None = None

    def supplied_fields(self) -> dict[str, Any]:
        """Document fields this update overwrites, in stored (camelCase) form."""
        candidates: dict[str, Any] = {
            "completedLessons": (
                list(_unique(self.completed_lessons))
                if self.completed_lessons is not None
                else None
            ),
            "quizAnswers": self.quiz_answers,
            "quizSubmitted": self.quiz_submitted,
            "quizResults": self.quiz_results,
            "certificateUnlocked": self.certificate_unlocked,
            "overallProgress": self.overall_progress,
        }
        return {name: value for name, value in candidates.items() if value is not None}
