"""Redis-backed document store.

KEY LAYOUT
-----------
  {prefix}doc:{path}    HASH, one hash field per document field.  Values
                        are JSON-encoded so lists and nested objects
                        (lessons, quiz answers) survive the round trip.
  {prefix}idx:{parent}  SET of child names under a parent path, kept up
                        to date on every write.  children() reads this
                        index instead of scanning the keyspace.

Because a document is a hash, ``update`` is a plain HSET: Redis merges
the named fields and leaves the rest alone, with no read-modify-write
on our side.  JSON-encoded integers are plain digit strings, so HINCRBY
works on them directly for the course student counter.

ATOMICITY
----------
  create        Lua script (EXISTS guards, then HSET + SADD for the
                guarded document and every related one, run as one
                unit), so two concurrent enrollments of the same
                learner/course cannot both succeed, and an enrollment
                never lands without its progress and lastAccessed.
  increment     Lua script (EXISTS guard + HINCRBY); a missing document
                is reported, never created.
  multi_update  MULTI/EXEC pipeline: every document in the batch is
                written, or none is.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import Any

from redis.exceptions import RedisError

from knowledgeflow.repos.document_store import (
    Document,
    MissingDocumentError,
    StoreUnavailableError,
)
from knowledgeflow.repos.paths import parent_and_name


class RedisDocumentStore:
    # KEYS = g extra guard keys, then doc key, index key pairs (guarded doc first)
    # ARGV = g, then per document: child name, field count n, n field/value pairs
    _CREATE_SCRIPT = """
    local g = tonumber(ARGV[1])
    for k = 1, g + 1 do
        if redis.call('EXISTS', KEYS[k]) == 1 then
            return 0
        end
    end
    local a = 2
    for k = g + 1, #KEYS, 2 do
        local name = ARGV[a]
        local n = tonumber(ARGV[a + 1])
        a = a + 2
        if n > 0 then
            for i = a, a + 2 * n - 2, 2 do
                redis.call('HSET', KEYS[k], ARGV[i], ARGV[i + 1])
            end
            redis.call('SADD', KEYS[k + 1], name)
        end
        a = a + 2 * n
    end
    return 1
    """

    # KEYS[1] = document key; ARGV[1] = field, ARGV[2] = amount
    # Returns {found, new value}.
    _INCREMENT_SCRIPT = """
    if redis.call('EXISTS', KEYS[1]) == 0 then
        return {0, 0}
    end
    return {1, redis.call('HINCRBY', KEYS[1], ARGV[1], ARGV[2])}
    """

    def __init__(self, redis_client, *, prefix: str = "kf:") -> None:
        self._redis = redis_client
        self._prefix = prefix
        self._create_script = None
        self._increment_script = None

    def _doc_key(self, path: str) -> str:
        return f"{self._prefix}doc:{path}"

    def _index_key(self, path: str) -> str:
        return f"{self._prefix}idx:{path}"

    @staticmethod
    def _encode(fields: Mapping[str, Any]) -> dict[str, str]:
        return {name: json.dumps(value) for name, value in fields.items()}

    @staticmethod
    def _decode(raw: Mapping[str, str]) -> Document:
        return {name: json.loads(value) for name, value in raw.items()}

    async def get(self, path: str) -> Document | None:
        try:
            raw = await self._redis.hgetall(self._doc_key(path))
        except RedisError as e:
            raise StoreUnavailableError(f"get {path}: {e}") from e
        return self._decode(raw) if raw else None

    async def exists(self, path: str) -> bool:
        try:
            return bool(await self._redis.exists(self._doc_key(path)))
        except RedisError as e:
            raise StoreUnavailableError(f"exists {path}: {e}") from e

    async def set(self, path: str, document: Mapping[str, Any]) -> None:
        parent, name = parent_and_name(path)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(self._doc_key(path))
                if document:
                    pipe.hset(self._doc_key(path), mapping=self._encode(document))
                    pipe.sadd(self._index_key(parent), name)
                else:
                    pipe.srem(self._index_key(parent), name)
                await pipe.execute()
        except RedisError as e:
            raise StoreUnavailableError(f"set {path}: {e}") from e

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        await self.multi_update({path: fields})

    async def create(
        self,
        path: str,
        document: Mapping[str, Any],
        related: Mapping[str, Mapping[str, Any]] | None = None,
        also_absent: Iterable[str] = (),
    ) -> bool:
        if not document:
            raise ValueError("create requires at least one field")
        keys = [self._doc_key(p) for p in also_absent]
        args: list[str | int] = [len(keys)]
        for doc_path, fields in [(path, document), *(related or {}).items()]:
            parent, name = parent_and_name(doc_path)
            encoded = self._encode(fields)
            keys.extend((self._doc_key(doc_path), self._index_key(parent)))
            args.extend((name, len(encoded)))
            for field, value in encoded.items():
                args.extend((field, value))
        try:
            if self._create_script is None:
                self._create_script = self._redis.register_script(self._CREATE_SCRIPT)
            created = await self._create_script(keys=keys, args=args)
        except RedisError as e:
            raise StoreUnavailableError(f"create {path}: {e}") from e
        return bool(created)

    async def increment(self, path: str, field: str, amount: int = 1) -> int:
        try:
            if self._increment_script is None:
                self._increment_script = self._redis.register_script(
                    self._INCREMENT_SCRIPT
                )
            found, value = await self._increment_script(
                keys=[self._doc_key(path)], args=[field, amount]
            )
        except RedisError as e:
            raise StoreUnavailableError(f"increment {path}.{field}: {e}") from e
        if not int(found):
            raise MissingDocumentError(path)
        return int(value)

    async def multi_update(self, updates: Mapping[str, Mapping[str, Any]]) -> None:
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                for path, fields in updates.items():
                    if not fields:
                        continue
                    parent, name = parent_and_name(path)
                    pipe.hset(self._doc_key(path), mapping=self._encode(fields))
                    pipe.sadd(self._index_key(parent), name)
                await pipe.execute()
        except RedisError as e:
            raise StoreUnavailableError(f"multi_update {sorted(updates)}: {e}") from e

    async def children(self, path: str) -> dict[str, Document]:
        try:
            names = sorted(await self._redis.smembers(self._index_key(path)))
            if not names:
                return {}
            async with self._redis.pipeline(transaction=False) as pipe:
                for name in names:
                    pipe.hgetall(self._doc_key(f"{path}/{name}"))
                raws = await pipe.execute()
        except RedisError as e:
            raise StoreUnavailableError(f"children {path}: {e}") from e
        # A name can outlive its document if a set() emptied it concurrently.
        return {name: self._decode(raw) for name, raw in zip(names, raws) if raw}

    async def query(self, path: str, field: str, value: Any) -> dict[str, Document]:
        return {
            name: doc
            for name, doc in (await self.children(path)).items()
            if doc.get(field) == value
        }

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())  # type: ignore[misc]
        except RedisError:
            return False
