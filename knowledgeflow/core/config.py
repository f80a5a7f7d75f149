from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it's easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number (got {raw!r})") from None
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero (got {raw!r})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    redis_url: str | None
    # Upper bound on any single document-store round trip.
    store_timeout_seconds: float = 5.0
    # Upper bound on the per-course fan-out of the enrolled-courses view.
    view_fetch_timeout_seconds: float = 5.0
    cors_origins: tuple[str, ...] = ()

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "7000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    store_timeout = _positive_float(
        "STORE_TIMEOUT_SECONDS", _getenv("STORE_TIMEOUT_SECONDS", "5")
    )
    view_timeout = _positive_float(
        "VIEW_FETCH_TIMEOUT_SECONDS", _getenv("VIEW_FETCH_TIMEOUT_SECONDS", "5")
    )

    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    )

    redis_url = _getenv("REDIS_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        redis_url=redis_url,
        store_timeout_seconds=store_timeout,
        view_fetch_timeout_seconds=view_timeout,
        cors_origins=cors_origins,
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
