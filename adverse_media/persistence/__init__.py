"""Persistence adapter and record store backends."""

from functools import lru_cache

from adverse_media.config import get_settings
from adverse_media.persistence.memory import InMemoryRecordStore
from adverse_media.persistence.repository import ScreeningRepository
from adverse_media.persistence.store import (
    RELATIONSHIPS_TABLE,
    RESULTS_TABLE,
    RUNS_TABLE,
    SOURCES_TABLE,
    RecordStore,
)


@lru_cache(maxsize=1)
def get_repository() -> ScreeningRepository:
    """Process-wide repository over the configured record store."""
    settings = get_settings()
    if settings.record_store == "supabase":
        from adverse_media.persistence.supabase import get_supabase_store

        return ScreeningRepository(get_supabase_store())
    return ScreeningRepository(InMemoryRecordStore())


__all__ = [
    "RELATIONSHIPS_TABLE",
    "RESULTS_TABLE",
    "RUNS_TABLE",
    "SOURCES_TABLE",
    "InMemoryRecordStore",
    "RecordStore",
    "ScreeningRepository",
    "get_repository",
]
