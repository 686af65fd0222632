"""Process-local record store, used by default and in tests."""

import asyncio
from collections import defaultdict
from copy import deepcopy
from datetime import datetime, timezone
from uuid import uuid4

from adverse_media.persistence.store import Row


def _matches(row: Row, match: Row | None) -> bool:
    return not match or all(row.get(key) == value for key, value in match.items())


class InMemoryRecordStore:
    """Dict-of-lists store. Rows are deep-copied in and out."""

    def __init__(self, *, supports_relationships: bool = True) -> None:
        self.supports_relationships = supports_relationships
        self._tables: dict[str, list[Row]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def insert(self, table: str, rows: list[Row]) -> list[Row]:
        stored: list[Row] = []
        async with self._lock:
            for row in rows:
                record = deepcopy(row)
                record.setdefault("id", str(uuid4()))
                record.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                self._tables[table].append(record)
                stored.append(deepcopy(record))
        return stored

    async def update(self, table: str, values: Row, *, match: Row) -> list[Row]:
        updated: list[Row] = []
        async with self._lock:
            for record in self._tables[table]:
                if _matches(record, match):
                    record.update(deepcopy(values))
                    updated.append(deepcopy(record))
        return updated

    async def select(
        self,
        table: str,
        *,
        match: Row | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        async with self._lock:
            rows = [deepcopy(record) for record in self._tables[table] if _matches(record, match)]
        if order_by:
            # sorted() is stable, so ties keep insertion order
            rows = sorted(rows, key=lambda record: record.get(order_by) or 0, reverse=descending)
        return rows

    async def delete(self, table: str, *, match: Row) -> None:
        async with self._lock:
            self._tables[table] = [record for record in self._tables[table] if not _matches(record, match)]

    def count(self, table: str) -> int:
        return len(self._tables[table])
