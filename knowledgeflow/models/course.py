from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    title: str
    content: str = ""
    order: int = 0
    video_url: str | None = None

    @staticmethod
    def from_document(document: dict[str, Any]) -> Lesson:
        return Lesson(
            id=str(document.get("id") or uuid4()),
            title=document.get("title") or "",
            content=document.get("content") or "",
            order=int(document.get("order") or 0),
            video_url=document.get("videoUrl"),
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "order": self.order,
        }
        if self.video_url:
            doc["videoUrl"] = self.video_url
        return doc


@dataclass(frozen=True, slots=True)
class Quiz:
    id: str
    question: str
    options: tuple[str, ...] = ()
    correct_option: int = 0

    @staticmethod
    def from_document(document: dict[str, Any]) -> Quiz:
        return Quiz(
            id=str(document.get("id") or uuid4()),
            question=document.get("question") or "",
            options=tuple(document.get("options") or ()),
            correct_option=int(document.get("correctOption") or 0),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": list(self.options),
            "correctOption": self.correct_option,
        }


@dataclass(frozen=True, slots=True)
class CourseMetadata:
    """The catalog fields learners see when browsing or on their dashboard."""

    id: str
    title: str | None = None
    description: str | None = None
    category: str | None = None
    thumbnail_url: str | None = None
    creator_username: str | None = None

    @staticmethod
    def from_document(course_id: str, document: dict[str, Any]) -> CourseMetadata:
        return CourseMetadata(
            id=course_id,
            title=document.get("title"),
            description=document.get("description"),
            category=document.get("category"),
            thumbnail_url=document.get("thumbnailUrl"),
            creator_username=document.get("creatorUsername"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "thumbnailUrl": self.thumbnail_url,
            "creatorUsername": self.creator_username,
        }


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str
    description: str
    thumbnail_url: str
    creator_username: str
    created_at: int
    category: str | None = None
    students: int = 0
    certificate_link: str | None = None
    lessons: tuple[Lesson, ...] = ()
    quizzes: tuple[Quiz, ...] = ()

    @staticmethod
    def from_document(course_id: str, document: dict[str, Any]) -> Course:
        return Course(
            id=course_id,
            title=document.get("title") or "",
            description=document.get("description") or "",
            thumbnail_url=document.get("thumbnailUrl") or "",
            creator_username=document.get("creatorUsername") or "",
            created_at=int(document.get("createdAt") or 0),
            category=document.get("category"),
            students=int(document.get("students") or 0),
            certificate_link=document.get("certificateLink"),
            lessons=tuple(Lesson.from_document(d) for d in document.get("lessons") or ()),
            quizzes=tuple(Quiz.from_document(d) for d in document.get("quizzes") or ()),
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "thumbnailUrl": self.thumbnail_url,
            "creatorUsername": self.creator_username,
            "createdAt": self.created_at,
            "students": self.students,
            "lessons": [lesson.to_document() for lesson in self.lessons],
            "quizzes": [quiz.to_document() for quiz in self.quizzes],
        }
        if self.certificate_link:
            doc["certificateLink"] = self.certificate_link
        return doc

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_document()}
