"""Timed facade over a DocumentStore backend.

Every service call awaits exactly one store operation at a time and is
suspended until the backend answers.  If the backend never answers, the
request would hang forever, so each call is wrapped in
``asyncio.wait_for``:

  - completes in time   -> result returned to the caller
  - bound elapses       -> the pending backend coroutine is CANCELLED
                           (its connection/registration is released) and
                           StoreTimeoutError is raised
  - backend fails       -> StoreUnavailableError propagates unchanged

Outcomes are counted in ``store_operations_total`` so a slow or failing
backend shows up on the dashboard before users report it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, TypeVar

from knowledgeflow.core.metrics import STORE_OPERATIONS
from knowledgeflow.repos.document_store import (
    Document,
    DocumentStore,
    StoreError,
    StoreTimeoutError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BoundedDocumentStore:
    def __init__(self, backend: DocumentStore, *, timeout_seconds: float) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        self._backend = backend
        self._timeout = timeout_seconds

    @property
    def backend(self) -> DocumentStore:
        return self._backend

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            result = await asyncio.wait_for(awaitable, timeout=self._timeout)
        except TimeoutError:
            STORE_OPERATIONS.labels(operation=operation, outcome="timeout").inc()
            logger.warning(
                "Store %s timed out after %.2fs", operation, self._timeout
            )
            raise StoreTimeoutError(operation, self._timeout) from None
        except StoreError:
            STORE_OPERATIONS.labels(operation=operation, outcome="error").inc()
            raise
        STORE_OPERATIONS.labels(operation=operation, outcome="ok").inc()
        return result

    async def get(self, path: str) -> Document | None:
        return await self._call("get", self._backend.get(path))

    async def exists(self, path: str) -> bool:
        return await self._call("exists", self._backend.exists(path))

    async def set(self, path: str, document: Mapping[str, Any]) -> None:
        await self._call("set", self._backend.set(path, document))

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        await self._call("update", self._backend.update(path, fields))

    async def create(
        self,
        path: str,
        document: Mapping[str, Any],
        related: Mapping[str, Mapping[str, Any]] | None = None,
        also_absent: Iterable[str] = (),
    ) -> bool:
        return await self._call(
            "create", self._backend.create(path, document, related, also_absent)
        )

    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        return await self._call(
            "increment", self._backend.increment(path, field, amount)
        )

    async def multi_update(self, updates: Mapping[str, Mapping[str, Any]]) -> None:
        await self._call("multi_update", self._backend.multi_update(updates))

    async def children(self, path: str) -> dict[str, Document]:
        return await self._call("children", self._backend.children(path))

    async def query(self, path: str, field: str, value: Any) -> dict[str, Document]:
        return await self._call("query", self._backend.query(path, field, value))

    async def ping(self) -> bool:
        try:
            return await self._call("ping", self._backend.ping())
        except StoreError:
            return False
