"""Prometheus counters cannot be reset between tests, so every assertion
here is on the delta around the request."""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _sample("http_requests_total", labels)
    client.get("/health")
    assert _sample("http_requests_total", labels) - before == 1


def test_endpoint_label_is_route_template(client: TestClient, signup_user) -> None:
    signup_user("alice")
    signup_user("bob")
    labels = {
        "method": "GET",
        "endpoint": "/api/users/{username}/enrolled-courses",
        "status_code": "200",
    }
    before = _sample("http_requests_total", labels)

    client.get("/api/users/alice/enrolled-courses")
    client.get("/api/users/bob/enrolled-courses")

    assert _sample("http_requests_total", labels) - before == 2


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "<unmatched>", "status_code": "404"}
    before = _sample("http_requests_total", labels)
    client.get("/no/such/page")
    client.get("/another/missing/page")
    assert _sample("http_requests_total", labels) - before == 2


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert _sample("http_request_duration_seconds_count", labels) - before == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "store_operations_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _sample("http_requests_total", labels)
    client.get("/metrics")
    assert _sample("http_requests_total", labels) == before
