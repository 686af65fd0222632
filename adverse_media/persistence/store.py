"""Record store protocol (DIP) and table names shared by all backends."""

from typing import Any, Protocol

RUNS_TABLE = "searches"
RESULTS_TABLE = "search_results"
SOURCES_TABLE = "search_sources"
RELATIONSHIPS_TABLE = "relationships"

Row = dict[str, Any]


class RecordStore(Protocol):
    """Table-level CRUD over the record store.

    ``supports_relationships`` is a capability flag: backends without a
    relationships table set it False and the repository skips those writes.
    """

    supports_relationships: bool

    async def insert(self, table: str, rows: list[Row]) -> list[Row]:
        """Insert rows and return them as stored (with generated ids)."""
        ...

    async def update(self, table: str, values: Row, *, match: Row) -> list[Row]:
        """Update rows equal to ``match`` on every key; return updated rows."""
        ...

    async def select(
        self,
        table: str,
        *,
        match: Row | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        """Return rows equal to ``match`` on every key, optionally ordered."""
        ...

    async def delete(self, table: str, *, match: Row) -> None:
        """Delete rows equal to ``match`` on every key."""
        ...
