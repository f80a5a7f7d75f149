"""Health and readiness endpoints.

  /health (liveness):  is the process up?  Always 200; the body says
                       whether the document store answers.
  /ready  (readiness): can this instance serve traffic?  503 when the
                       store is unreachable, so the load balancer takes
                       the instance out of rotation without restarting it.

Every store-backed endpoint needs the store, so unlike an optional cache
it is a critical dependency for readiness.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from knowledgeflow.api.dependencies import StoreDep
from knowledgeflow.repos.bounded_store import BoundedDocumentStore

router = APIRouter(tags=["health"])


def _backend_name(store: object) -> str:
    if isinstance(store, BoundedDocumentStore):
        store = store.backend
    return type(store).__name__


@router.get("/health")
async def health(store: StoreDep) -> dict:
    """Liveness probe plus store status.

    Returns 200 even when degraded: a 503 here would get the container
    restarted, which does not help when the store itself is down.
    """
    store_ok = await store.ping()
    return {
        "status": "ok" if store_ok else "degraded",
        "checks": {
            "store": "ok" if store_ok else "degraded",
            "backend": _backend_name(store),
        },
    }


@router.get("/ready")
async def ready(store: StoreDep) -> Response:
    if not await store.ping():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
