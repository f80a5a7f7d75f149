from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from knowledgeflow.repos import paths


def _enroll(client: TestClient, course_id: str, username: str = "alice") -> None:
    resp = client.post(f"/api/courses/{course_id}/enroll", json={"username": username})
    assert resp.status_code == 200, resp.text


def test_no_enrollments_returns_empty_list(client: TestClient, signup_user) -> None:
    signup_user("alice")
    resp = client.get("/api/users/alice/enrolled-courses")
    assert resp.status_code == 200
    assert resp.json() == []


def test_unknown_user_returns_404(client: TestClient) -> None:
    resp = client.get("/api/users/ghost/enrolled-courses")
    assert resp.status_code == 404
    assert resp.json() == {"detail": {"error": "User not found"}}


def test_view_is_sorted_by_last_access_newest_first(
    client: TestClient, signup_user, make_course, clock
) -> None:
    signup_user("alice")
    c1 = make_course(title="First")
    c2 = make_course(title="Second")
    c3 = make_course(title="Third")

    _enroll(client, c1)  # T1
    clock.advance(10)
    _enroll(client, c2)  # T2
    clock.advance(10)
    _enroll(client, c3)  # T3

    view = client.get("/api/users/alice/enrolled-courses").json()
    assert [row["id"] for row in view] == [c3, c2, c1]

    # Touching the oldest course moves it to the top.
    clock.advance(10)
    client.post(
        f"/api/users/alice/courses/{c1}/progress", json={"overallProgress": 5}
    )
    view = client.get("/api/users/alice/enrolled-courses").json()
    assert [row["id"] for row in view] == [c1, c3, c2]


def test_ties_are_broken_by_course_id(
    client: TestClient, signup_user, make_course
) -> None:
    signup_user("alice")
    ids = [make_course(title=f"Course {n}") for n in range(3)]
    for course_id in ids:
        _enroll(client, course_id)  # frozen clock: all share one timestamp

    view = client.get("/api/users/alice/enrolled-courses").json()
    assert [row["id"] for row in view] == sorted(ids)


def test_row_carries_course_metadata(
    client: TestClient, signup_user, make_course
) -> None:
    signup_user("alice")
    course_id = make_course(title="Go", description="Concurrency", category="Systems")
    _enroll(client, course_id)

    (row,) = client.get("/api/users/alice/enrolled-courses").json()
    assert row == {
        "id": course_id,
        "title": "Go",
        "description": "Concurrency",
        "category": "Systems",
        "thumbnailUrl": "https://img.example.com/thumb.png",
        "creatorUsername": "prof",
        "progress": 0,
        "lastAccessed": "2024-03-01T09:00:00Z",
    }


def test_enrollment_in_deleted_course_is_skipped(
    client: TestClient, signup_user, make_course, store
) -> None:
    signup_user("alice")
    kept = make_course(title="Kept")
    _enroll(client, kept)
    # An enrollment whose course document no longer exists.
    asyncio.run(
        store.set(
            paths.enrollment_path("alice", "gone"),
            {"courseId": "gone", "enrolledAt": "2024-01-01T00:00:00Z"},
        )
    )

    view = client.get("/api/users/alice/enrolled-courses").json()
    assert [row["id"] for row in view] == [kept]
