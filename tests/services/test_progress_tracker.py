from __future__ import annotations

import asyncio

import pytest

from knowledgeflow.models.progress import ProgressUpdate
from knowledgeflow.repos import paths
from knowledgeflow.repos.bounded_store import BoundedDocumentStore
from knowledgeflow.repos.document_store import InMemoryDocumentStore, StoreUnavailableError
from knowledgeflow.services.progress_tracker import ProgressTracker


def test_missing_record_reads_as_zero(store, clock) -> None:
    record = asyncio.run(ProgressTracker(store, clock).get_progress("alice", "c1"))
    assert record.overall_progress == 0
    assert record.completed_lessons == ()
    assert record.quiz_answers == {}
    assert record.certificate_unlocked is False
    assert record.last_updated is None


def test_update_merges_only_supplied_fields(store, clock) -> None:
    tracker = ProgressTracker(store, clock)
    asyncio.run(
        tracker.update_progress(
            ProgressUpdate(
                learner="alice",
                course_id="c1",
                completed_lessons=["l1"],
                quiz_answers={"q1": 1},
            )
        )
    )
    clock.advance(90)
    stamped = asyncio.run(
        tracker.update_progress(
            ProgressUpdate(learner="alice", course_id="c1", overall_progress=30)
        )
    )

    record = asyncio.run(tracker.get_progress("alice", "c1"))
    assert record.completed_lessons == ("l1",)
    assert record.quiz_answers == {"q1": 1}
    assert record.overall_progress == 30
    assert record.last_updated == stamped == "2024-03-01T09:01:30Z"


def test_update_touches_last_accessed(store, clock) -> None:
    tracker = ProgressTracker(store, clock)
    clock.advance(3600)
    asyncio.run(
        tracker.update_progress(
            ProgressUpdate(learner="alice", course_id="c1", certificate_unlocked=True)
        )
    )
    assert asyncio.run(store.get(paths.last_accessed_path("alice", "c1"))) == {
        "at": "2024-03-01T10:00:00Z"
    }


def test_empty_update_only_stamps_time(store, clock) -> None:
    tracker = ProgressTracker(store, clock)
    asyncio.run(
        tracker.update_progress(
            ProgressUpdate(learner="alice", course_id="c1", overall_progress=10)
        )
    )
    clock.advance(1)
    asyncio.run(tracker.update_progress(ProgressUpdate(learner="alice", course_id="c1")))

    record = asyncio.run(tracker.get_progress("alice", "c1"))
    assert record.overall_progress == 10
    assert record.last_updated == "2024-03-01T09:00:01Z"


class _ProgressReadsDownStore(InMemoryDocumentStore):
    async def get(self, path: str):
        if "/courseProgress/" in path:
            raise StoreUnavailableError("progress replica down")
        return await super().get(path)


def test_update_succeeds_without_reading_the_record_back(clock) -> None:
    backend = _ProgressReadsDownStore()
    store = BoundedDocumentStore(backend, timeout_seconds=1.0)
    tracker = ProgressTracker(store, clock)

    stamped = asyncio.run(
        tracker.update_progress(
            ProgressUpdate(learner="alice", course_id="c1", overall_progress=50)
        )
    )

    assert stamped == "2024-03-01T09:00:00Z"
    with pytest.raises(StoreUnavailableError):
        asyncio.run(tracker.get_progress("alice", "c1"))
    stored = asyncio.run(
        InMemoryDocumentStore.get(backend, paths.progress_path("alice", "c1"))
    )
    assert stored == {"overallProgress": 50, "lastUpdated": "2024-03-01T09:00:00Z"}
