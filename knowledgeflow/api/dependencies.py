"""FastAPI dependencies shared by both services.

The document store lives on ``app.state`` (set up by the lifespan) and
every service object is built per request from it.  Services are cheap
wrappers over the store handle, so there is nothing to cache.

Tests replace ``get_store`` and ``get_clock`` through
``app.dependency_overrides``; everything else follows from those two.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from knowledgeflow.core.clock import SYSTEM_CLOCK, Clock
from knowledgeflow.core.config import SETTINGS, Settings
from knowledgeflow.repos.document_store import DocumentStore
from knowledgeflow.services.course_catalog import CourseCatalog
from knowledgeflow.services.enrolled_courses import EnrolledCoursesViewBuilder
from knowledgeflow.services.enrollment_manager import EnrollmentManager
from knowledgeflow.services.progress_tracker import ProgressTracker
from knowledgeflow.services.user_directory import UserDirectory


def get_settings() -> Settings:
    return SETTINGS


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_clock() -> Clock:
    return SYSTEM_CLOCK


StoreDep = Annotated[DocumentStore, Depends(get_store)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def get_course_catalog(store: StoreDep, clock: ClockDep) -> CourseCatalog:
    return CourseCatalog(store, clock)


def get_user_directory(store: StoreDep, clock: ClockDep) -> UserDirectory:
    return UserDirectory(store, clock)


def get_enrollment_manager(
    store: StoreDep,
    catalog: Annotated[CourseCatalog, Depends(get_course_catalog)],
    clock: ClockDep,
) -> EnrollmentManager:
    return EnrollmentManager(store, catalog, clock)


def get_progress_tracker(store: StoreDep, clock: ClockDep) -> ProgressTracker:
    return ProgressTracker(store, clock)


def get_view_builder(
    enrollments: Annotated[EnrollmentManager, Depends(get_enrollment_manager)],
    catalog: Annotated[CourseCatalog, Depends(get_course_catalog)],
    progress: Annotated[ProgressTracker, Depends(get_progress_tracker)],
    settings: Annotated[Settings, Depends(get_settings)],
    clock: ClockDep,
) -> EnrolledCoursesViewBuilder:
    return EnrolledCoursesViewBuilder(
        enrollments,
        catalog,
        progress,
        per_course_timeout=settings.view_fetch_timeout_seconds,
        clock=clock,
    )


CatalogDep = Annotated[CourseCatalog, Depends(get_course_catalog)]
UsersDep = Annotated[UserDirectory, Depends(get_user_directory)]
EnrollmentsDep = Annotated[EnrollmentManager, Depends(get_enrollment_manager)]
ProgressDep = Annotated[ProgressTracker, Depends(get_progress_tracker)]
ViewBuilderDep = Annotated[EnrolledCoursesViewBuilder, Depends(get_view_builder)]
