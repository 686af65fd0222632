"""Tests for the Supabase record store query building."""

from typing import Any

import pytest

from adverse_media.persistence.supabase import SupabaseRecordStore


class FakeResponse:
    def __init__(self, data: list[dict[str, Any]]) -> None:
        self.data = data


class FakeQuery:
    """Records the fluent calls made against one table."""

    def __init__(self, table: str, calls: list[tuple], data: list[dict[str, Any]]) -> None:
        self.table = table
        self.calls = calls
        self.data = data

    def __getattr__(self, name: str) -> Any:
        def _call(*args: Any, **kwargs: Any) -> "FakeQuery":
            self.calls.append((self.table, name, args, kwargs))
            return self

        return _call

    def execute(self) -> FakeResponse:
        self.calls.append((self.table, "execute", (), {}))
        return FakeResponse(self.data)


class FakeClient:
    def __init__(self, data: list[dict[str, Any]] | None = None) -> None:
        self.calls: list[tuple] = []
        self.data = data or []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(name, self.calls, self.data)


class TestSupabaseRecordStore:
    @pytest.mark.asyncio
    async def test__select__applies_match_and_order(self) -> None:
        client = FakeClient(data=[{"id": "r1"}])
        store = SupabaseRecordStore(client)  # type: ignore[arg-type]

        rows = await store.select("search_results", match={"search_id": "s1"}, order_by="risk_score", descending=True)

        assert rows == [{"id": "r1"}]
        assert [call[1:] for call in client.calls] == [
            ("select", ("*",), {}),
            ("eq", ("search_id", "s1"), {}),
            ("order", ("risk_score",), {"desc": True}),
            ("execute", (), {}),
        ]

    @pytest.mark.asyncio
    async def test__insert__returns_stored_rows(self) -> None:
        client = FakeClient(data=[{"id": "s1", "individual_name": "Jane Doe"}])
        store = SupabaseRecordStore(client)  # type: ignore[arg-type]

        rows = await store.insert("searches", [{"individual_name": "Jane Doe"}])

        assert rows[0]["id"] == "s1"
        assert client.calls[0] == ("searches", "insert", ([{"individual_name": "Jane Doe"}],), {})

    @pytest.mark.asyncio
    async def test__update_and_delete__filter_by_match(self) -> None:
        client = FakeClient()
        store = SupabaseRecordStore(client)  # type: ignore[arg-type]

        await store.update("searches", {"progress": 50}, match={"id": "s1"})
        await store.delete("searches", match={"id": "s1"})

        names = [call[1] for call in client.calls]
        assert names == ["update", "eq", "execute", "delete", "eq", "execute"]

    def test__relationships_flag__defaults_off(self) -> None:
        assert SupabaseRecordStore(FakeClient()).supports_relationships is False  # type: ignore[arg-type]
        assert SupabaseRecordStore(FakeClient(), supports_relationships=True).supports_relationships  # type: ignore[arg-type]
