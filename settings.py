from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DEFAULT_WINDOW_ENV = "DEFAULT_WINDOW_MS"
_FANOUT_ENV = "MAX_PER_REQUEST_FANOUT"
_STORE_TIMEOUT_ENV = "STORE_TIMEOUT_MS"
_WORKER_COUNT_ENV = "QUERY_WORKER_COUNT"
_DATABASE_URL_ENV = "SENSOR_DATABASE_URL"
_RECORD_ROOT_ENV = "RECORD_STORE_ROOT_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DAY_MS = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class Settings:
    default_window_ms: int
    max_per_request_fanout: int
    store_timeout_ms: int
    query_workers: int
    sensor_database_url: str
    record_store_root_path: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_int_env(name: str, default: int, minimum: int = 0) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        default_window_ms=_read_int_env(_DEFAULT_WINDOW_ENV, DAY_MS, minimum=1),
        max_per_request_fanout=_read_int_env(_FANOUT_ENV, 0),
        store_timeout_ms=_read_int_env(_STORE_TIMEOUT_ENV, 0),
        query_workers=_read_int_env(_WORKER_COUNT_ENV, 8, minimum=1),
        sensor_database_url=_read_str_env(_DATABASE_URL_ENV, "sqlite:///./tmp/sensors.db"),
        record_store_root_path=_read_optional_env(_RECORD_ROOT_ENV, "./tmp/records"),
        log_level=_read_log_level("INFO"),
    )
