# src/terceiro_olho/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole client (API location, local store, retry timers).
- Nothing is required at import time: the defaults talk to a local dev server.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "OLHO"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env (gitignored); real environment variables win.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Server API ----
    api_base_url: str
    connect_timeout_seconds: float
    read_timeout_seconds: float

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_path: Path

    # ---- Switches ----
    offline_enabled: bool
    console_enabled: bool
    sync_enabled: bool

    # ---- Pending comments / refresh timers ----
    max_retries: int
    retry_delay_seconds: float
    reconnect_delay_seconds: float
    refresh_interval_seconds: float
    sync_poll_seconds: float

    # ---- Views ----
    cache_ttl_minutes: int
    page_size: int
    search_debounce_ms: int
    default_page: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "O Terceiro Olho")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_base_url = _env(_k("API_BASE_URL"), "http://localhost:3001/api").rstrip("/")
        connect_timeout_seconds = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        # keep read >= connect as a sane baseline
        read_timeout_seconds = max(
            _env_float(_k("READ_TIMEOUT_SECONDS"), 10.0), connect_timeout_seconds
        )

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/terceiro_olho"))
        store_path = _env_path(_k("STORE_PATH"), data_dir / "local_store.sqlite3")

        offline_enabled = _env_bool(_k("OFFLINE_ENABLED"), True)
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        sync_enabled = _env_bool(_k("SYNC_ENABLED"), True)

        max_retries = max(0, _env_int(_k("MAX_RETRIES"), 3))
        # Fixed delay between retry rounds (5 minutes), not an exponential backoff.
        retry_delay_seconds = max(1.0, _env_float(_k("RETRY_DELAY_SECONDS"), 300.0))
        reconnect_delay_seconds = max(0.0, _env_float(_k("RECONNECT_DELAY_SECONDS"), 3.0))
        refresh_interval_seconds = max(0.0, _env_float(_k("REFRESH_INTERVAL_SECONDS"), 60.0))
        sync_poll_seconds = max(0.1, _env_float(_k("SYNC_POLL_SECONDS"), 1.0))

        cache_ttl_minutes = max(1, _env_int(_k("CACHE_TTL_MINUTES"), 60))
        page_size = max(1, _env_int(_k("PAGE_SIZE"), 10))
        search_debounce_ms = max(0, _env_int(_k("SEARCH_DEBOUNCE_MS"), 300))
        default_page = _env(_k("DEFAULT_PAGE"), "geral").strip() or "geral"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_base_url=api_base_url,
            connect_timeout_seconds=connect_timeout_seconds,
            read_timeout_seconds=read_timeout_seconds,
            data_dir=data_dir,
            store_path=store_path,
            offline_enabled=offline_enabled,
            console_enabled=console_enabled,
            sync_enabled=sync_enabled,
            max_retries=max_retries,
            retry_delay_seconds=retry_delay_seconds,
            reconnect_delay_seconds=reconnect_delay_seconds,
            refresh_interval_seconds=refresh_interval_seconds,
            sync_poll_seconds=sync_poll_seconds,
            cache_ttl_minutes=cache_ttl_minutes,
            page_size=page_size,
            search_debounce_ms=search_debounce_ms,
            default_page=default_page,
        )


SETTINGS = Settings.from_env()

# ---- Optional local overrides (never committed) ----
# Prefer .env; use config_local.py only for a few safe switches.
try:
    import config_local as _config_local  # type: ignore

    if hasattr(_config_local, "OFFLINE_ENABLED"):
        object.__setattr__(SETTINGS, "offline_enabled", bool(_config_local.OFFLINE_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "SYNC_ENABLED"):
        object.__setattr__(SETTINGS, "sync_enabled", bool(_config_local.SYNC_ENABLED))  # type: ignore[misc]
    if hasattr(_config_local, "API_BASE_URL"):
        object.__setattr__(SETTINGS, "api_base_url", str(_config_local.API_BASE_URL).rstrip("/"))  # type: ignore[misc]
except ImportError:
    pass


def get_settings() -> Settings:
    return SETTINGS
