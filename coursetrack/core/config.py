from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so type casting and validation live in one place
    return os.environ.get(name, default).strip()


def _getenv_float(name: str, default: str) -> float:
    raw = _getenv(name, default)
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number (got {raw!r})") from None
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0 (got {raw!r})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    progress_sample_interval: float
    report_cache_ttl: int
    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: str | None = None

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
    port_raw = _getenv("PORT", "8000")
    cache_ttl_raw = _getenv("REPORT_CACHE_TTL", "60")

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

    try:
        report_cache_ttl = int(cache_ttl_raw)
    except ValueError:
        raise ValueError(
            f"REPORT_CACHE_TTL must be an integer (got {cache_ttl_raw!r})"
        ) from None

    progress_sample_interval = _getenv_float("PROGRESS_SAMPLE_INTERVAL", "5")

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    admin_email = _getenv("BOOTSTRAP_ADMIN_EMAIL", "").lower() or None
    admin_password = _getenv("BOOTSTRAP_ADMIN_PASSWORD", "") or None

    if (admin_email is None) != (admin_password is None):
        raise ValueError(
            "BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD must be set together"
        )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        progress_sample_interval=progress_sample_interval,
        report_cache_ttl=report_cache_ttl,
        bootstrap_admin_email=admin_email,
        bootstrap_admin_password=admin_password,
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
