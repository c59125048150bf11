from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

DEFAULT_CATALOG_BASE_URL = "https://api.themoviedb.org/3"

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off", "")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    catalog_base_url: str = DEFAULT_CATALOG_BASE_URL
    catalog_api_key: str | None = None
    auth_public_key: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def catalog_enabled(self) -> bool:
        return self.catalog_api_key is not None


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

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

    log_json = _getenv_bool("LOG_JSON", False)

    database_url = _getenv("DATABASE_URL", "") or None
    catalog_base_url = (
        _getenv("CATALOG_BASE_URL", DEFAULT_CATALOG_BASE_URL).rstrip("/")
        or DEFAULT_CATALOG_BASE_URL
    )
    catalog_api_key = _getenv("CATALOG_API_KEY", "") or None
    # PEM blocks arrive through env vars with literal "\n" sequences
    auth_public_key = _getenv("AUTH_PUBLIC_KEY", "").replace("\\n", "\n") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        catalog_base_url=catalog_base_url,
        catalog_api_key=catalog_api_key,
        auth_public_key=auth_public_key,
    )


SETTINGS = load_settings()
