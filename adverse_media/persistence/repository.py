"""Persistence adapter: idempotent incremental writes and history reads for runs.

Header writes (run creation, finalization, error marking) are critical and
raise ``PersistenceError``. Everything else (sources, relationships, progress
bumps, existence probes) is best-effort: failures are logged and the
pipeline carries on. Result rows are de-duplicated by URL against what is
already stored, so partial saves can be repeated safely.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from adverse_media.exceptions import PersistenceError, RunNotFoundError
from adverse_media.logging import get_logger
from adverse_media.models import (
    EntityMatch,
    EntityMatchStats,
    Relationship,
    RiskLevel,
    RunDetails,
    RunStatus,
    SearchRequest,
    SearchResultItem,
    SearchRun,
    SearchSources,
    SearchSummary,
    SourceRecord,
)
from adverse_media.persistence.store import (
    RELATIONSHIPS_TABLE,
    RESULTS_TABLE,
    RUNS_TABLE,
    SOURCES_TABLE,
    RecordStore,
    Row,
)

log = get_logger("adverse_media.persistence.repository")

PLACEHOLDER_RECOMMENDATION = "Screening in progress"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# --- Row mapping ---


def _run_from_row(row: Row) -> SearchRun:
    return SearchRun(
        id=str(row["id"]),
        individual_name=row["individual_name"],
        company_name=row.get("company_name"),
        additional_info=row.get("additional_info"),
        status=row.get("status") or RunStatus.IN_PROGRESS,
        progress=row.get("progress") or 0,
        created_at=row["created_at"],
        last_updated_at=row.get("last_updated_at") or row["created_at"],
        completed_at=row.get("completed_at"),
        risk_level=row.get("risk_level") or RiskLevel.PENDING,
        adverse_findings=row.get("adverse_findings") or 0,
        recommendation=row.get("recommendation") or "",
        entity_match_stats=EntityMatchStats(
            total_results=row.get("entity_match_total") or 0,
            valid_entity_matches=row.get("entity_match_valid") or 0,
        ),
        keyword_tags=row.get("keyword_tags") or [],
    )


def _result_to_row(run_id: str, item: SearchResultItem) -> Row:
    match = item.entity_match or EntityMatch()
    return {
        "search_id": run_id,
        "url": item.url,
        "title": item.title,
        "description": item.description,
        "risk_score": item.risk_score,
        "adverse_content": list(item.adverse_content),
        "status": item.status,
        "summary": item.summary,
        "raw_search_data": item.raw_search_data,
        "raw_crawl_data": item.raw_crawl_data,
        "entity_match_is_exact": match.is_exact_match,
        "entity_match_confidence": match.confidence,
        "entity_match_reason": match.reason or None,
    }


def _result_from_row(row: Row, relationships: Sequence[Relationship] = ()) -> SearchResultItem:
    return SearchResultItem(
        url=row["url"],
        title=row.get("title") or "No title",
        description=row.get("description") or "No description",
        risk_score=row.get("risk_score") or 0,
        adverse_content=row.get("adverse_content") or [],
        status=row.get("status") or "complete",
        summary=row.get("summary"),
        entity_match=EntityMatch(
            is_exact_match=bool(row.get("entity_match_is_exact")),
            confidence=row.get("entity_match_confidence") or 0,
            reason=row.get("entity_match_reason") or "",
        ),
        raw_search_data=row.get("raw_search_data"),
        raw_crawl_data=row.get("raw_crawl_data"),
        relationships=list(relationships),
    )


def _source_to_row(run_id: str, source: SourceRecord) -> Row:
    return {
        "search_id": run_id,
        "source_type": source.source_type,
        "url": source.url,
        "status": source.status,
        "raw_data": source.raw_data,
        "metadata": source.metadata,
    }


def _source_from_row(row: Row) -> SourceRecord:
    return SourceRecord(
        source_type=row["source_type"],
        url=row["url"],
        status=row.get("status") or "",
        raw_data=row.get("raw_data"),
        metadata=row.get("metadata") or {},
    )


def _relationship_to_row(run_id: str, relationship: Relationship) -> Row:
    return {
        "search_id": run_id,
        "name": relationship.name,
        "type": relationship.type.value,
        "description": relationship.description,
        "confidence": relationship.confidence,
        "source_url": relationship.source_url,
        "source_title": relationship.source_title,
    }


class ScreeningRepository:
    """Reads and writes screening runs through a ``RecordStore``."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    # --- Critical header writes ---

    async def create_or_update_run(
        self,
        run_id: str | None,
        request: SearchRequest,
        status: RunStatus,
        keyword_tags: Sequence[str],
    ) -> str:
        """Upsert the run header; placeholder risk fields are set only on creation."""
        now = _now()
        identity = {
            "individual_name": request.individual_name,
            "company_name": request.company_name,
            "additional_info": request.additional_info,
            "keyword_tags": list(keyword_tags),
        }
        try:
            if run_id:
                existing = await self.store.select(RUNS_TABLE, match={"id": run_id})
                if existing:
                    await self.store.update(
                        RUNS_TABLE,
                        {**identity, "status": status.value, "last_updated_at": now},
                        match={"id": run_id},
                    )
                    log.info("repository.run_reused", search_id=run_id)
                    return run_id

            new_id = run_id or str(uuid4())
            await self.store.insert(
                RUNS_TABLE,
                [
                    {
                        "id": new_id,
                        **identity,
                        "status": status.value,
                        "progress": 0,
                        "created_at": now,
                        "last_updated_at": now,
                        "completed_at": None,
                        "risk_level": RiskLevel.PENDING.value,
                        "adverse_findings": 0,
                        "recommendation": PLACEHOLDER_RECOMMENDATION,
                        "entity_match_total": 0,
                        "entity_match_valid": 0,
                    }
                ],
            )
        except Exception as e:
            log.error("repository.create_run_failed", search_id=run_id, error=str(e))
            raise PersistenceError(operation="create_or_update_run", reason=str(e)) from e

        log.info("repository.run_created", search_id=new_id)
        return new_id

    async def finalize_run(self, run_id: str, summary: SearchSummary) -> None:
        now = _now()
        values = {
            "status": RunStatus.COMPLETE.value,
            "progress": 100,
            "completed_at": now,
            "last_updated_at": now,
            "risk_level": summary.risk_level.value,
            "adverse_findings": summary.adverse_findings,
            "recommendation": summary.recommendation,
            "entity_match_total": summary.entity_match_stats.total_results,
            "entity_match_valid": summary.entity_match_stats.valid_entity_matches,
        }
        try:
            updated = await self.store.update(RUNS_TABLE, values, match={"id": run_id})
        except Exception as e:
            log.error("repository.finalize_failed", search_id=run_id, error=str(e))
            raise PersistenceError(operation="finalize_run", reason=str(e)) from e
        if not updated:
            raise PersistenceError(operation="finalize_run", reason=f"run '{run_id}' does not exist")
        log.info("repository.run_finalized", search_id=run_id, risk_level=summary.risk_level.value)

    async def mark_run_error(self, run_id: str, message: str) -> None:
        values = {
            "status": RunStatus.ERROR.value,
            "recommendation": message,
            "last_updated_at": _now(),
        }
        try:
            await self.store.update(RUNS_TABLE, values, match={"id": run_id})
        except Exception as e:
            log.error("repository.mark_error_failed", search_id=run_id, error=str(e))
            raise PersistenceError(operation="mark_run_error", reason=str(e)) from e
        log.warning("repository.run_marked_error", search_id=run_id)

    # --- Incremental writes ---

    async def save_partial_results(
        self,
        run_id: str,
        new_results: Sequence[SearchResultItem],
        sources: SearchSources | None,
        progress: int,
    ) -> int:
        """Persist completed results not stored yet, plus sources and progress.

        Returns:
            Number of result rows inserted. Zero when every URL already exists.
        """
        inserted = await self._insert_new_results(run_id, new_results)
        await self._bump_progress(run_id, progress)
        if sources is not None:
            await self._save_sources(run_id, sources)
        return inserted

    async def _insert_new_results(self, run_id: str, new_results: Sequence[SearchResultItem]) -> int:
        completed = [item for item in new_results if item.status == "complete"]
        if not completed:
            return 0

        try:
            stored = await self.store.select(RESULTS_TABLE, match={"search_id": run_id})
        except Exception as e:
            # Without the stored URLs we cannot dedup; the next checkpoint resends these
            log.warning("repository.result_probe_failed", search_id=run_id, error=str(e))
            return 0

        seen = {row["url"] for row in stored}
        fresh: list[SearchResultItem] = []
        for item in completed:
            if item.url not in seen:
                seen.add(item.url)
                fresh.append(item)

        if not fresh:
            log.debug("repository.no_new_results", search_id=run_id)
            return 0

        try:
            await self.store.insert(RESULTS_TABLE, [_result_to_row(run_id, item) for item in fresh])
        except Exception as e:
            log.warning("repository.result_insert_failed", search_id=run_id, count=len(fresh), error=str(e))
            return 0

        await self._save_relationships(run_id, fresh)
        log.info("repository.results_saved", search_id=run_id, count=len(fresh))
        return len(fresh)

    async def _save_relationships(self, run_id: str, items: Sequence[SearchResultItem]) -> None:
        if not self.store.supports_relationships:
            return
        rows = [_relationship_to_row(run_id, rel) for item in items for rel in item.relationships]
        if not rows:
            return
        try:
            await self.store.insert(RELATIONSHIPS_TABLE, rows)
        except Exception as e:
            log.warning("repository.relationship_insert_failed", search_id=run_id, error=str(e))

    async def _bump_progress(self, run_id: str, progress: int) -> None:
        try:
            rows = await self.store.select(RUNS_TABLE, match={"id": run_id})
            stored_progress = (rows[0].get("progress") or 0) if rows else 0
            await self.store.update(
                RUNS_TABLE,
                {"progress": max(stored_progress, progress), "last_updated_at": _now()},
                match={"id": run_id},
            )
        except Exception as e:
            log.warning("repository.progress_update_failed", search_id=run_id, error=str(e))

    async def _save_sources(self, run_id: str, sources: SearchSources) -> None:
        try:
            stored = await self.store.select(SOURCES_TABLE, match={"search_id": run_id})
        except Exception as e:
            log.warning("repository.source_probe_failed", search_id=run_id, error=str(e))
            return

        has_search_source = any(row.get("source_type") == "search" for row in stored)
        stored_crawl_urls = {row["url"] for row in stored if row.get("source_type") == "crawl"}

        pending: list[SourceRecord] = []
        if not has_search_source:
            pending.append(sources.search_record())
        for record in sources.crawl:
            if record.url not in stored_crawl_urls:
                stored_crawl_urls.add(record.url)
                pending.append(record)

        if not pending:
            return
        try:
            await self.store.insert(SOURCES_TABLE, [_source_to_row(run_id, record) for record in pending])
        except Exception as e:
            log.warning("repository.source_insert_failed", search_id=run_id, count=len(pending), error=str(e))

    # --- Reads and deletes ---

    async def get_run(self, run_id: str) -> RunDetails:
        try:
            runs = await self.store.select(RUNS_TABLE, match={"id": run_id})
            if not runs:
                raise RunNotFoundError(run_id)
            results = await self.store.select(
                RESULTS_TABLE, match={"search_id": run_id}, order_by="risk_score", descending=True
            )
            sources = await self.store.select(SOURCES_TABLE, match={"search_id": run_id}, order_by="created_at")
            relationships: list[Row] = []
            if self.store.supports_relationships:
                relationships = await self.store.select(RELATIONSHIPS_TABLE, match={"search_id": run_id})
        except RunNotFoundError:
            raise
        except Exception as e:
            raise PersistenceError(operation="get_run", reason=str(e)) from e

        stored_relationships = [Relationship.model_validate(_strip_keys(row)) for row in relationships]
        by_source: dict[str, list[Relationship]] = {}
        for relationship in stored_relationships:
            by_source.setdefault(relationship.source_url or "", []).append(relationship)

        return RunDetails(
            run=_run_from_row(runs[0]),
            results=[_result_from_row(row, by_source.get(row["url"], ())) for row in results],
            sources=[_source_from_row(row) for row in sources],
            relationships=stored_relationships,
        )

    async def list_runs(self) -> list[SearchRun]:
        try:
            rows = await self.store.select(RUNS_TABLE, order_by="created_at", descending=True)
        except Exception as e:
            raise PersistenceError(operation="list_runs", reason=str(e)) from e
        return [_run_from_row(row) for row in rows]

    async def delete_run(self, run_id: str) -> None:
        """Delete a run and everything recorded under it."""
        try:
            runs = await self.store.select(RUNS_TABLE, match={"id": run_id})
            if not runs:
                raise RunNotFoundError(run_id)
            await self.store.delete(RESULTS_TABLE, match={"search_id": run_id})
            await self.store.delete(SOURCES_TABLE, match={"search_id": run_id})
            if self.store.supports_relationships:
                await self.store.delete(RELATIONSHIPS_TABLE, match={"search_id": run_id})
            await self.store.delete(RUNS_TABLE, match={"id": run_id})
        except RunNotFoundError:
            raise
        except Exception as e:
            raise PersistenceError(operation="delete_run", reason=str(e)) from e
        log.info("repository.run_deleted", search_id=run_id)


def _strip_keys(row: Row) -> dict[str, Any]:
    return {key: value for key, value in row.items() if key not in ("id", "search_id", "created_at")}
