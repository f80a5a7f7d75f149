"""Course browsing for learners.

Two routers: the filtered listing lives under /api, the single-course
page under /courses (the Instructor API mounts the same detail route).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status

from knowledgeflow.api.dependencies import CatalogDep

router = APIRouter(prefix="/api/courses", tags=["catalog"])

course_detail_router = APIRouter(prefix="/courses", tags=["catalog"])


@router.get("")
async def browse_courses(
    catalog: CatalogDep,
    category: str | None = None,
    search: str | None = None,
) -> list[dict[str, Any]]:
    courses = await catalog.browse(category=category, search=search)
    return [c.to_dict() for c in courses]


@course_detail_router.get("/{course_id}")
async def get_course(course_id: str, catalog: CatalogDep) -> dict[str, Any]:
    course = await catalog.get_course(course_id)
    if course is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Course not found"},
        )
    return course.to_dict()
