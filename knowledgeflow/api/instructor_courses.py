"""Course authoring for instructors (POST /courses, GET /courses?username=)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from knowledgeflow.api.dependencies import CatalogDep, UsersDep
from knowledgeflow.services.course_catalog import CourseDraft, CourseValidationError


router = APIRouter(prefix="/courses", tags=["instructor"])


class CourseIn(BaseModel):
    title: str = ""
    description: str = ""
    category: str | None = None
    thumbnailUrl: str = ""
    username: str = ""
    certificateLink: str | None = None
    lessons: list[dict[str, Any]] = Field(default_factory=list)
    quizzes: list[dict[str, Any]] = Field(default_factory=list)


class CourseCreatedOut(BaseModel):
    message: str
    courseId: str


@router.post("", response_model=CourseCreatedOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseIn, catalog: CatalogDep, users: UsersDep
) -> CourseCreatedOut:
    draft = CourseDraft(
        title=payload.title,
        description=payload.description,
        thumbnail_url=payload.thumbnailUrl,
        creator_username=payload.username.strip(),
        category=payload.category,
        certificate_link=payload.certificateLink,
        lessons=payload.lessons,
        quizzes=payload.quizzes,
    )

    # A half-filled form never reaches the store.
    try:
        catalog.validate_draft(draft)
    except CourseValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)}
        ) from None

    if not await users.user_exists(draft.creator_username):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "User not found"},
        )

    course = await catalog.create_course(draft)
    return CourseCreatedOut(message="Course created successfully", courseId=course.id)


@router.get("")
async def list_courses(
    catalog: CatalogDep, username: str | None = None
) -> dict[str, dict[str, Any]]:
    if not (username or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Username parameter is required"},
        )

    courses = await catalog.list_courses_by_creator(username.strip())
    return {course_id: course.to_dict() for course_id, course in courses.items()}
