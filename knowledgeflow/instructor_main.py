"""Instructor API: accounts and course authoring."""

from __future__ import annotations

from knowledgeflow.api.accounts import router as accounts_router
from knowledgeflow.api.catalog import course_detail_router
from knowledgeflow.api.instructor_courses import router as instructor_courses_router
from knowledgeflow.core.application import create_app
from knowledgeflow.core.config import SETTINGS
from knowledgeflow.core.logging import setup_logging

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

app = create_app(
    "knowledgeflow-instructor",
    [accounts_router, instructor_courses_router, course_detail_router],
)
