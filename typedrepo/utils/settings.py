"""Runtime configuration sourced from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"


@dataclass(frozen=True)
class RepositorySettings:
    database_url: str
    sql_echo: bool
    batch_transactional: bool
    # None means "ask the dialect"
    inline_identity: Optional[bool]
    log_level: str


def _normalize_bool(value: str | None, default: bool) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


def _normalize_tristate(value: str | None) -> Optional[bool]:
    """Like _normalize_bool, but "auto" (or anything unknown) maps to None."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in {"0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return None


def _get_database_url() -> str:
    return (
        os.getenv("TYPEDREPO_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or DEFAULT_DATABASE_URL
    )


@lru_cache(maxsize=None)
def get_settings() -> RepositorySettings:
    """Return the cached settings for this process."""
    return RepositorySettings(
        database_url=_get_database_url(),
        sql_echo=_normalize_bool(os.getenv("TYPEDREPO_SQL_ECHO"), default=False),
        batch_transactional=_normalize_bool(os.getenv("TYPEDREPO_BATCH_TRANSACTIONAL"), default=True),
        inline_identity=_normalize_tristate(os.getenv("TYPEDREPO_INLINE_IDENTITY")),
        log_level=(os.getenv("TYPEDREPO_LOG_LEVEL") or "INFO").strip().upper(),
    )


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()
