"""App factory shared by the Learner and Instructor services.

Both services run the same stack (document store lifespan, CORS,
request context, metrics, error mapping) and differ only in the routers
they mount.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from knowledgeflow.api.health import router as health_router
from knowledgeflow.api.metrics_endpoint import router as metrics_router
from knowledgeflow.core.config import SETTINGS
from knowledgeflow.db.store import lifespan_store
from knowledgeflow.middleware.metrics import MetricsMiddleware
from knowledgeflow.middleware.request_context import RequestContextMiddleware
from knowledgeflow.repos.document_store import StoreError
from knowledgeflow.repos.paths import InvalidPathSegmentError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_store(SETTINGS) as store:
        app.state.store = store
        yield


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": {"error": message}})


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error(status.HTTP_400_BAD_REQUEST, message)


async def _invalid_path_handler(
    _request: Request, exc: InvalidPathSegmentError
) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.exception(
        "Document store failure on %s %s", request.method, request.url.path, exc_info=exc
    )
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Storage temporarily unavailable")


def create_app(title: str, routers: Iterable[APIRouter]) -> FastAPI:
    app = FastAPI(
        title=title,
        lifespan=lifespan,
        docs_url="/docs" if SETTINGS.is_dev else None,
        redoc_url="/redoc" if SETTINGS.is_dev else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(SETTINGS.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last added runs first: RequestContext -> Metrics -> CORS -> route.
    # The request ID is set before anything below it logs.
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(InvalidPathSegmentError, _invalid_path_handler)
    app.add_exception_handler(StoreError, _store_error_handler)

    app.include_router(metrics_router)
    app.include_router(health_router)
    for router in routers:
        app.include_router(router)

    logger.info(
        "%s configured  env=%s log_level=%s port=%d docs=%s",
        title,
        SETTINGS.app_env,
        SETTINGS.log_level,
        SETTINGS.port,
        "on" if SETTINGS.is_dev else "off",
    )
    return app
