"""Learner API: accounts, course browsing, enrollment and progress."""

from __future__ import annotations

from knowledgeflow.api.accounts import router as accounts_router
from knowledgeflow.api.catalog import course_detail_router
from knowledgeflow.api.catalog import router as catalog_router
from knowledgeflow.api.learners import router as learners_router
from knowledgeflow.core.application import create_app
from knowledgeflow.core.config import SETTINGS
from knowledgeflow.core.logging import setup_logging

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

app = create_app(
    "knowledgeflow-learner",
    [accounts_router, catalog_router, course_detail_router, learners_router],
)
