"""Supabase-backed record store."""

import asyncio
from functools import lru_cache
from typing import Any

from supabase import Client, create_client

from adverse_media.config import get_settings
from adverse_media.persistence.store import Row


class SupabaseRecordStore:
    """RecordStore over the supabase-py client.

    The client is synchronous; calls run in a worker thread so a screening
    stream keeps sending heartbeats while the database responds.
    """

    def __init__(self, client: Client, *, supports_relationships: bool = False) -> None:
        self._client = client
        self.supports_relationships = supports_relationships

    @staticmethod
    def _apply_match(query: Any, match: Row | None) -> Any:
        for key, value in (match or {}).items():
            query = query.eq(key, value)
        return query

    async def insert(self, table: str, rows: list[Row]) -> list[Row]:
        def _run() -> list[Row]:
            return self._client.table(table).insert(rows).execute().data

        return await asyncio.to_thread(_run)

    async def update(self, table: str, values: Row, *, match: Row) -> list[Row]:
        def _run() -> list[Row]:
            query = self._apply_match(self._client.table(table).update(values), match)
            return query.execute().data

        return await asyncio.to_thread(_run)

    async def select(
        self,
        table: str,
        *,
        match: Row | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        def _run() -> list[Row]:
            query = self._apply_match(self._client.table(table).select("*"), match)
            if order_by:
                query = query.order(order_by, desc=descending)
            return query.execute().data

        return await asyncio.to_thread(_run)

    async def delete(self, table: str, *, match: Row) -> None:
        def _run() -> None:
            self._apply_match(self._client.table(table).delete(), match).execute()

        await asyncio.to_thread(_run)


@lru_cache(maxsize=1)
def get_supabase_store() -> SupabaseRecordStore:
    settings = get_settings()
    client = create_client(settings.supabase_url, settings.supabase_key)
    return SupabaseRecordStore(client, supports_relationships=settings.supabase_relationships_table)
