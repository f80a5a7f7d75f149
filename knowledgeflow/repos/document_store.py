"""Hierarchical document store shared by both services.

A path such as ``learners/alice/courseProgress/c1`` addresses one
*document*: a flat mapping of field name to JSON-compatible value.  The
documents directly beneath a path are its *children*, which is how
collections (all courses, one learner's enrollments) are read.

Every operation is a one-shot async call; there are no live
subscriptions.  Two backends implement the protocol:

  InMemoryDocumentStore  (below) for local development and tests
  RedisDocumentStore     (redis_document_store.py) for deployments

Callers never talk to a backend directly.  The application wraps the
backend in BoundedDocumentStore, which puts a timeout on every call.

WRITE SEMANTICS
----------------
  set           replace the whole document
  update        merge the given fields into the document (creating it);
                fields not mentioned keep their value
  create        write only if no document exists at the path; returns
                False and writes nothing otherwise.  Optional related
                documents are merged in the same atomic step, under the
                same guard; also_absent names further paths that must
                not exist either.  This is the compare-and-set primitive
                at-most-once enrollment uses.
  increment     atomically add to an integer field of an existing
                document; a missing document raises
                MissingDocumentError and nothing is created
  multi_update  merge into several documents as one atomic write
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from knowledgeflow.repos.paths import parent_and_name

Document = dict[str, Any]


class StoreError(Exception):
    """Base class for document store failures."""


class StoreUnavailableError(StoreError):
    """The backend rejected or could not serve the call."""


class MissingDocumentError(LookupError):
    """A write that requires an existing document found none."""

    def __init__(self, path: str) -> None:
        super().__init__(f"no document at {path}")
        self.path = path


class StoreTimeoutError(StoreError):
    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(
            f"document store {operation} did not complete within {timeout_seconds}s"
        )
        self.operation = operation
        self.timeout_seconds = timeout_seconds


@runtime_checkable
class DocumentStore(Protocol):
    async def get(self, path: str) -> Document | None:
        """Fetch the document at path.  Returns None when absent."""
        ...

    async def exists(self, path: str) -> bool: ...

    async def set(self, path: str, document: Mapping[str, Any]) -> None: ...

    async def update(self, path: str, fields: Mapping[str, Any]) -> None: ...

    async def create(
        self,
        path: str,
        document: Mapping[str, Any],
        related: Mapping[str, Mapping[str, Any]] | None = None,
        also_absent: Iterable[str] = (),
    ) -> bool: ...

    async def increment(self, path: str, field: str, amount: int = 1) -> int: ...

    async def multi_update(self, updates: Mapping[str, Mapping[str, Any]]) -> None: ...

    async def children(self, path: str) -> dict[str, Document]:
        """Direct child documents of path, keyed by their last path segment."""
        ...

    async def query(self, path: str, field: str, value: Any) -> dict[str, Document]:
        """Children of path whose ``field`` equals ``value``."""
        ...

    async def ping(self) -> bool: ...


class InMemoryDocumentStore:
    """Dict-backed store for development and tests.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state through a returned reference.  The lock makes
    create/increment/multi_update atomic even when TestClient drives the
    app from another thread.
    """

    def __init__(self) -> None:
        self._docs: dict[str, Document] = {}
        self._lock = threading.Lock()

    async def get(self, path: str) -> Document | None:
        with self._lock:
            doc = self._docs.get(path)
            return copy.deepcopy(doc) if doc is not None else None

    async def exists(self, path: str) -> bool:
        with self._lock:
            return path in self._docs

    async def set(self, path: str, document: Mapping[str, Any]) -> None:
        with self._lock:
            self._docs[path] = copy.deepcopy(dict(document))

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            self._merge(path, fields)

    async def create(
        self,
        path: str,
        document: Mapping[str, Any],
        related: Mapping[str, Mapping[str, Any]] | None = None,
        also_absent: Iterable[str] = (),
    ) -> bool:
        with self._lock:
            if path in self._docs or any(p in self._docs for p in also_absent):
                return False
            self._docs[path] = copy.deepcopy(dict(document))
            for other, fields in (related or {}).items():
                self._merge(other, fields)
            return True

    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        with self._lock:
            doc = self._docs.get(path)
            if doc is None:
                raise MissingDocumentError(path)
            value = int(doc.get(field) or 0) + amount
            doc[field] = value
            return value

    async def multi_update(self, updates: Mapping[str, Mapping[str, Any]]) -> None:
        with self._lock:
            for path, fields in updates.items():
                self._merge(path, fields)

    async def children(self, path: str) -> dict[str, Document]:
        with self._lock:
            found: dict[str, Document] = {}
            for doc_path, doc in self._docs.items():
                parent, name = parent_and_name(doc_path)
                if parent == path:
                    found[name] = copy.deepcopy(doc)
            return found

    async def query(self, path: str, field: str, value: Any) -> dict[str, Document]:
        return {
            name: doc
            for name, doc in (await self.children(path)).items()
            if doc.get(field) == value
        }

    async def ping(self) -> bool:
        return True

    def _merge(self, path: str, fields: Mapping[str, Any]) -> None:
        doc = self._docs.setdefault(path, {})
        doc.update(copy.deepcopy(dict(fields)))
