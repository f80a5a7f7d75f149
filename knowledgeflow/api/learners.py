"""Learner endpoints: enrollment, progress, and the enrolled-courses dashboard.

Existence checks (404) and the enrollment gate (403) happen here, before
any write.  The services below assume their preconditions hold.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from knowledgeflow.api.dependencies import (
    CatalogDep,
    EnrollmentsDep,
    ProgressDep,
    UsersDep,
    ViewBuilderDep,
)
from knowledgeflow.models.progress import ProgressUpdate
from knowledgeflow.services.enrollment_manager import AlreadyEnrolledError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["learners"])


# --- Request / Response schemas -------------------------------------------


class EnrollIn(BaseModel):
    username: str = ""


class EnrollOut(BaseModel):
    message: str
    enrollmentDate: str


class ProgressIn(BaseModel):
    """Partial progress update.  Omitted (or null) fields keep their stored value."""

    completedLessons: list[str] | None = None
    quizAnswers: dict[str, Any] | None = None
    quizSubmitted: dict[str, Any] | None = None
    quizResults: dict[str, Any] | None = None
    certificateUnlocked: bool | None = None
    overallProgress: int | None = None


class ProgressOut(BaseModel):
    message: str
    timestamp: str


def _not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail={"error": f"{what} not found"}
    )


# ---------------------------------------------------------------------------
# POST /api/courses/{course_id}/enroll
# ---------------------------------------------------------------------------


@router.post("/courses/{course_id}/enroll", response_model=EnrollOut)
async def enroll(
    course_id: str,
    payload: EnrollIn,
    catalog: CatalogDep,
    users: UsersDep,
    enrollments: EnrollmentsDep,
) -> EnrollOut:
    username = payload.username.strip()
    if not course_id.strip() or not username:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Course ID and username are required"},
        )

    if not await catalog.course_exists(course_id):
        raise _not_found("Course")
    if not await users.user_exists(username):
        raise _not_found("User")

    try:
        receipt = await enrollments.enroll(username, course_id)
    except AlreadyEnrolledError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "User is already enrolled in this course"},
        ) from None

    return EnrollOut(
        message="Successfully enrolled in course",
        enrollmentDate=receipt.enrolled_at,
    )


# ---------------------------------------------------------------------------
# GET /api/users/{username}/enrolled-courses
# ---------------------------------------------------------------------------


@router.get("/users/{username}/enrolled-courses")
async def enrolled_courses(
    username: str, users: UsersDep, view: ViewBuilderDep
) -> list[dict[str, Any]]:
    if not await users.user_exists(username):
        raise _not_found("User")

    rows = await view.build_view(username)
    return [row.to_dict() for row in rows]


# ---------------------------------------------------------------------------
# /api/users/{username}/courses/{course_id}/progress
# ---------------------------------------------------------------------------


@router.post("/users/{username}/courses/{course_id}/progress", response_model=ProgressOut)
async def update_progress(
    username: str,
    course_id: str,
    payload: ProgressIn,
    users: UsersDep,
    catalog: CatalogDep,
    enrollments: EnrollmentsDep,
    progress: ProgressDep,
) -> ProgressOut:
    if not await users.user_exists(username):
        raise _not_found("User")
    if not await catalog.course_exists(course_id):
        raise _not_found("Course")
    if not await enrollments.is_enrolled(username, course_id):
        logger.warning(
            "Progress update rejected, not enrolled learner=%s course=%s",
            username,
            course_id,
            extra={"learner": username, "course_id": course_id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "User is not enrolled in this course"},
        )

    timestamp = await progress.update_progress(
        ProgressUpdate(
            learner=username,
            course_id=course_id,
            completed_lessons=payload.completedLessons,
            quiz_answers=payload.quizAnswers,
            quiz_submitted=payload.quizSubmitted,
            quiz_results=payload.quizResults,
            certificate_unlocked=payload.certificateUnlocked,
            overall_progress=payload.overallProgress,
        )
    )
    return ProgressOut(
        message="Progress updated successfully",
        timestamp=timestamp,
    )


@router.get("/users/{username}/courses/{course_id}/progress")
async def get_progress(
    username: str,
    course_id: str,
    users: UsersDep,
    catalog: CatalogDep,
    progress: ProgressDep,
) -> dict[str, Any]:
    if not await users.user_exists(username):
        raise _not_found("User")
    if not await catalog.course_exists(course_id):
        raise _not_found("Course")

    record = await progress.get_progress(username, course_id)
    return record.to_document()
