from __future__ import annotations

import asyncio

import fakeredis
import pytest
from fakeredis import aioredis as fake_aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from knowledgeflow.repos.document_store import (
    DocumentStore,
    MissingDocumentError,
    StoreUnavailableError,
)
from knowledgeflow.repos.redis_document_store import RedisDocumentStore


def _run(scenario):
    """Run ``scenario(store)`` against a private fake Redis server.

    The client is built inside the event loop that uses it.
    """

    async def main():
        client = fake_aioredis.FakeRedis(
            server=fakeredis.FakeServer(), decode_responses=True
        )
        try:
            return await scenario(RedisDocumentStore(client))
        finally:
            await client.aclose()

    return asyncio.run(main())


def test_redis_store_satisfies_protocol() -> None:
    assert isinstance(RedisDocumentStore(object()), DocumentStore)


def test_get_missing_returns_none() -> None:
    async def scenario(store):
        return await store.get("users/nobody"), await store.exists("users/nobody")

    assert _run(scenario) == (None, False)


def test_nested_values_survive_the_round_trip() -> None:
    course = {
        "title": "Intro",
        "students": 0,
        "certificateLink": None,
        "lessons": [{"title": "Hello", "order": 1}],
        "quizzes": [{"question": "2+2?", "options": ["3", "4"], "correctOption": 1}],
    }

    async def scenario(store):
        await store.set("courses/c1", course)
        return await store.get("courses/c1")

    assert _run(scenario) == course


def test_set_replaces_the_whole_document() -> None:
    async def scenario(store):
        await store.set("courses/c1", {"title": "A", "students": 3})
        await store.set("courses/c1", {"title": "B"})
        return await store.get("courses/c1")

    assert _run(scenario) == {"title": "B"}


def test_update_merges_fields() -> None:
    async def scenario(store):
        await store.set("courses/c1", {"title": "A", "students": 3})
        await store.update("courses/c1", {"title": "B"})
        return await store.get("courses/c1")

    assert _run(scenario) == {"title": "B", "students": 3}


def test_create_is_conditional() -> None:
    async def scenario(store):
        first = await store.create("users/alice", {"email": "a"})
        second = await store.create("users/alice", {"email": "b"})
        return first, second, await store.get("users/alice")

    assert _run(scenario) == (True, False, {"email": "a"})


def test_create_writes_related_documents_under_the_same_guard() -> None:
    enrollment = "learners/alice/enrollments/c1"
    progress = "learners/alice/courseProgress/c1"
    last_accessed = "learners/alice/lastAccessed/c1"

    async def scenario(store):
        created = await store.create(
            enrollment,
            {"courseId": "c1", "enrolledAt": "t1"},
            related={
                progress: {"completedLessons": [], "overallProgress": 0},
                last_accessed: {"at": "t1"},
            },
        )
        again = await store.create(
            enrollment,
            {"courseId": "c1", "enrolledAt": "t2"},
            related={last_accessed: {"at": "t2"}},
        )
        return (
            created,
            again,
            await store.get(progress),
            await store.get(last_accessed),
            set(await store.children("learners/alice/lastAccessed")),
        )

    created, again, progress_doc, last_doc, names = _run(scenario)
    assert created is True
    assert again is False
    assert progress_doc == {"completedLessons": [], "overallProgress": 0}
    assert last_doc == {"at": "t1"}
    assert names == {"c1"}


def test_create_also_checks_extra_guard_paths() -> None:
    async def scenario(store):
        await store.set("emails/a@x.io", {"username": "alice"})
        blocked = await store.create(
            "users/bob", {"email": "a@x.io"}, also_absent=["emails/a@x.io"]
        )
        free = await store.create(
            "users/carol",
            {"email": "c@x.io"},
            related={"emails/c@x.io": {"username": "carol"}},
            also_absent=["emails/c@x.io"],
        )
        return (
            blocked,
            await store.exists("users/bob"),
            free,
            await store.get("emails/c@x.io"),
        )

    assert _run(scenario) == (False, False, True, {"username": "carol"})


def test_concurrent_creates_admit_exactly_one() -> None:
    async def scenario(store):
        results = await asyncio.gather(
            *(store.create("learners/alice/enrollments/c1", {"n": n}) for n in range(8))
        )
        return results

    assert sorted(_run(scenario)) == [False] * 7 + [True]


def test_create_requires_fields() -> None:
    async def scenario(store):
        await store.create("users/alice", {})

    with pytest.raises(ValueError):
        _run(scenario)


def test_increment_adds_to_existing_document() -> None:
    async def scenario(store):
        await store.set("courses/c1", {"title": "A", "students": 2})
        await store.increment("courses/c1", "students")
        value = await store.increment("courses/c1", "students", 4)
        return value, await store.get("courses/c1")

    value, doc = _run(scenario)
    assert value == 7
    assert doc == {"title": "A", "students": 7}


def test_increment_never_creates_a_document() -> None:
    async def scenario(store):
        with pytest.raises(MissingDocumentError):
            await store.increment("courses/ghost", "students")
        return await store.children("courses")

    assert _run(scenario) == {}


def test_multi_update_writes_every_path() -> None:
    async def scenario(store):
        await store.multi_update(
            {
                "learners/alice/courseProgress/c1": {"overallProgress": 10},
                "learners/alice/lastAccessed/c1": {"at": "t"},
            }
        )
        return (
            await store.get("learners/alice/courseProgress/c1"),
            await store.get("learners/alice/lastAccessed/c1"),
        )

    assert _run(scenario) == ({"overallProgress": 10}, {"at": "t"})


def test_children_returns_direct_children_only() -> None:
    async def scenario(store):
        await store.set("learners/alice/enrollments/c1", {"courseId": "c1"})
        await store.set("learners/alice/enrollments/c2", {"courseId": "c2"})
        await store.set("learners/alice/lastAccessed/c1", {"at": "t"})
        return (
            await store.children("learners/alice/enrollments"),
            await store.children("learners/bob/enrollments"),
        )

    alice, bob = _run(scenario)
    assert alice == {"c1": {"courseId": "c1"}, "c2": {"courseId": "c2"}}
    assert bob == {}


def test_emptied_document_leaves_the_index() -> None:
    async def scenario(store):
        await store.set("courses/c1", {"title": "A"})
        await store.set("courses/c1", {})
        return await store.children("courses"), await store.exists("courses/c1")

    assert _run(scenario) == ({}, False)


def test_query_matches_field_value() -> None:
    async def scenario(store):
        await store.set("courses/a", {"creatorUsername": "prof"})
        await store.set("courses/b", {"creatorUsername": "other"})
        return await store.query("courses", "creatorUsername", "prof")

    assert set(_run(scenario)) == {"a"}


def test_ping() -> None:
    async def scenario(store):
        return await store.ping()

    assert _run(scenario) is True


class _UnreachableRedis:
    async def hgetall(self, key):
        raise RedisConnectionError("connection refused")

    async def ping(self):
        raise RedisConnectionError("connection refused")


def test_redis_errors_become_store_unavailable() -> None:
    store = RedisDocumentStore(_UnreachableRedis())
    with pytest.raises(StoreUnavailableError, match="get courses/c1"):
        asyncio.run(store.get("courses/c1"))
    assert asyncio.run(store.ping()) is False
