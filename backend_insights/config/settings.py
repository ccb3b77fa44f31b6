"""
Application settings.

Single source of truth for database path, remote source, scheduler, aggregation
and cache configuration. Built from environment variables (and .env) by
get_settings(); components receive the pieces they need explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from backend_insights.config.env import (
    env_bool,
    env_float,
    env_int,
    env_str,
    load_insights_env,
)

DEFAULT_DB_PATH = "insights.db"
DEFAULT_HORIZON_URL = "https://horizon.stellar.org"
DEFAULT_SOURCE_PAGE_LIMIT = 200
DEFAULT_SOURCE_TIMEOUT_SEC = 15.0
DEFAULT_SYNC_INTERVAL_SEC = 300.0
DEFAULT_INGEST_TASK_NAME = "payments"
DEFAULT_AGGREGATION_JOB_ID = "hourly_corridor_metrics"
DEFAULT_AGGREGATION_MAX_RETRIES = 5
DEFAULT_CACHE_TTL_SEC = 300
DEFAULT_SHUTDOWN_JOIN_TIMEOUT_SEC = 15.0


@dataclass(frozen=True)
class Settings:
    """Typed runtime settings."""

    db_path: Path = Path(DEFAULT_DB_PATH)
    horizon_url: str = DEFAULT_HORIZON_URL
    source_page_limit: int = DEFAULT_SOURCE_PAGE_LIMIT
    source_timeout_sec: float = DEFAULT_SOURCE_TIMEOUT_SEC
    sync_interval_sec: float = DEFAULT_SYNC_INTERVAL_SEC
    sync_run_on_start: bool = True
    ingest_task_name: str = DEFAULT_INGEST_TASK_NAME
    aggregation_job_id: str = DEFAULT_AGGREGATION_JOB_ID
    aggregation_max_retries: int = DEFAULT_AGGREGATION_MAX_RETRIES
    cache_url: str = ""
    """Redis URL; empty means the in-process memory cache."""
    cache_default_ttl_sec: int = DEFAULT_CACHE_TTL_SEC
    shutdown_join_timeout_sec: float = DEFAULT_SHUTDOWN_JOIN_TIMEOUT_SEC


def get_settings() -> Settings:
    """
    Return settings from the environment (after loading .env).

    Raises:
        ConfigError: when a numeric variable cannot be parsed.
    """
    load_insights_env()
    return Settings(
        db_path=Path(env_str("DB_PATH", DEFAULT_DB_PATH)),
        horizon_url=env_str("HORIZON_URL", DEFAULT_HORIZON_URL).rstrip("/"),
        source_page_limit=env_int("SOURCE_PAGE_LIMIT", DEFAULT_SOURCE_PAGE_LIMIT),
        source_timeout_sec=env_float("SOURCE_TIMEOUT_SEC", DEFAULT_SOURCE_TIMEOUT_SEC),
        sync_interval_sec=env_float("SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SEC),
        sync_run_on_start=env_bool("SYNC_RUN_ON_START", True),
        ingest_task_name=env_str("INGEST_TASK_NAME", DEFAULT_INGEST_TASK_NAME),
        aggregation_job_id=env_str("AGGREGATION_JOB_ID", DEFAULT_AGGREGATION_JOB_ID),
        aggregation_max_retries=env_int("AGGREGATION_MAX_RETRIES", DEFAULT_AGGREGATION_MAX_RETRIES),
        cache_url=env_str("CACHE_URL", ""),
        cache_default_ttl_sec=env_int("CACHE_DEFAULT_TTL_SECONDS", DEFAULT_CACHE_TTL_SEC),
        shutdown_join_timeout_sec=env_float(
            "SHUTDOWN_JOIN_TIMEOUT_SEC", DEFAULT_SHUTDOWN_JOIN_TIMEOUT_SEC
        ),
    )
