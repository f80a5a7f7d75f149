"""Document store lifecycle.

The store handle is built once per process in the FastAPI lifespan and
handed to request handlers through ``Depends(get_store)``.  Nothing
imports a module-level client, so tests swap the store by overriding a
single dependency.

When REDIS_URL is configured we create a Redis connection pool; when it
is not (local dev, tests) the in-memory backend is used and no Redis
server is needed.  Either way the backend is wrapped in
BoundedDocumentStore so every call has a timeout.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from knowledgeflow.core.config import Settings
from knowledgeflow.repos.bounded_store import BoundedDocumentStore
from knowledgeflow.repos.document_store import InMemoryDocumentStore
from knowledgeflow.repos.redis_document_store import RedisDocumentStore

logger = logging.getLogger(__name__)


def create_redis_client(redis_url: str) -> aioredis.Redis:  # type: ignore[type-arg]
    return aioredis.from_url(
        redis_url,
        decode_responses=True,  # return str instead of bytes; documents are JSON text
        max_connections=20,
    )


@asynccontextmanager
async def lifespan_store(settings: Settings) -> AsyncIterator[BoundedDocumentStore]:
    """Open the configured document store for the lifetime of the app."""
    if settings.redis_url is None:
        logger.info("No REDIS_URL configured; using the in-memory document store")
        yield BoundedDocumentStore(
            InMemoryDocumentStore(), timeout_seconds=settings.store_timeout_seconds
        )
        return

    client = create_redis_client(settings.redis_url)
    store = BoundedDocumentStore(
        RedisDocumentStore(client), timeout_seconds=settings.store_timeout_seconds
    )
    # Verify connectivity on startup, but keep serving if Redis is down:
    # store-backed endpoints answer 503 until it comes back, /health
    # reports degraded, and /ready takes the instance out of rotation.
    if await store.ping():
        logger.info("Redis document store connected: %s", settings.redis_url)
    else:
        logger.error("Redis document store unreachable on startup: %s", settings.redis_url)

    try:
        yield store
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")
