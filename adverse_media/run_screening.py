"""CLI entry point: run one screening and save the result and a markdown report."""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from adverse_media.config import get_settings
from adverse_media.events import SSEEvent, SSEEventType
from adverse_media.logging import configure_structlog, get_logger
from adverse_media.models import ScreeningSnapshot, SearchRequest
from adverse_media.workflow import run_screening_workflow

# Load environment variables from .env file
load_dotenv()

# Human-readable logs for terminal use
configure_structlog(testing=True)
log = get_logger("adverse_media.run_screening")


async def _print_event(event: SSEEvent) -> None:
    if event.event != SSEEventType.PROGRESS:
        return
    data = event.data
    done = sum(1 for item in data.get("results", []) if item.get("status") == "complete")
    total = len(data.get("results", []))
    print(f"  [{data.get('progress', 0):3d}%] {data.get('status')} {done}/{total}")


async def run_screening(request: SearchRequest) -> ScreeningSnapshot:
    print(f"Screening: {request.individual_name}")
    snapshot = await run_screening_workflow(request, event_callback=_print_event)
    if snapshot.error:
        print(f"\nScreening failed: {snapshot.error}")
    elif snapshot.summary:
        print(f"\nRisk level: {snapshot.summary.risk_level.value}")
        print(f"Adverse findings: {snapshot.summary.adverse_findings}")
        print(f"Recommendation: {snapshot.summary.recommendation}")
    return snapshot


def _format_report_as_markdown(snapshot: ScreeningSnapshot, request: SearchRequest) -> str:
    """Format a screening snapshot as Markdown."""
    md_lines = [
        f"# Adverse Media Screening: {request.individual_name}",
        "",
    ]
    if request.company_name:
        md_lines.append(f"**Company:** {request.company_name}")
    if request.additional_info:
        md_lines.append(f"**Additional info:** {request.additional_info}")
    if request.keyword_tags:
        md_lines.append(f"**Keywords:** {', '.join(request.keyword_tags)}")
    md_lines.extend(["", "---", ""])

    if snapshot.error:
        md_lines.extend(["## Error", "", snapshot.error, ""])

    if snapshot.summary:
        summary = snapshot.summary
        md_lines.extend(
            [
                "## Summary",
                "",
                f"- **Risk level:** {summary.risk_level.value}",
                f"- **Adverse findings:** {summary.adverse_findings}",
                f"- **Entity matches:** {summary.entity_match_stats.valid_entity_matches}"
                f" of {summary.entity_match_stats.total_results}",
                f"- **Scraping failures:** {summary.scraping_failures}",
                "",
                summary.recommendation,
                "",
                "---",
                "",
            ]
        )

    md_lines.extend(["## Results", ""])
    for i, item in enumerate(snapshot.results, 1):
        match = item.entity_match
        verdict = "match" if match and match.is_valid else "no match"
        confidence = match.confidence if match else 0
        md_lines.append(f"{i}. [{item.title}]({item.url}) - risk {item.risk_score}, {verdict} ({confidence}%)")
        for finding in item.adverse_content:
            md_lines.append(f"   - {finding}")
    md_lines.append("")

    if snapshot.relationships:
        md_lines.extend(["---", "", "## Relationships", ""])
        for relationship in snapshot.relationships:
            md_lines.append(
                f"- **{relationship.name}** ({relationship.type.value}, {relationship.confidence}%): "
                f"{relationship.description}"
            )

    return "\n".join(md_lines)


def _parse_args(argv: list[str]) -> SearchRequest:
    parser = argparse.ArgumentParser(prog="python -m adverse_media.run_screening")
    parser.add_argument("individual_name")
    parser.add_argument("--company", dest="company_name")
    parser.add_argument("--info", dest="additional_info")
    parser.add_argument("--tags", dest="keyword_tags", nargs="*", default=[])
    parser.add_argument(
        "--resume",
        dest="search_id",
        help="Continue a stored run by id (needs RECORD_STORE=supabase; the memory store starts empty)",
    )
    args = parser.parse_args(argv)
    try:
        return SearchRequest(**vars(args))
    except ValidationError as e:
        parser.print_usage(sys.stderr)
        messages = "; ".join(f"{'.'.join(map(str, error['loc']))}: {error['msg']}" for error in e.errors())
        parser.exit(1, f"{parser.prog}: error: {messages}\n")


def main() -> None:
    """Main CLI entry point."""
    request = _parse_args(sys.argv[1:])
    if request.search_id and get_settings().record_store == "memory":
        log.warning("screening.resume.memory_store", search_id=request.search_id)
        print(f"Run {request.search_id} cannot be resumed from the in-memory store; starting it fresh.")

    try:
        snapshot = asyncio.run(run_screening(request))
    except Exception as e:
        log.exception("screening.main.failed", error=str(e))
        print(f"\nScreening failed: {e}")
        sys.exit(1)

    outputs_dir = Path("outputs")
    outputs_dir.mkdir(exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    try:
        json_file = outputs_dir / f"screening_{timestamp}.json"
        json_file.write_text(json.dumps(snapshot.to_wire(), indent=2, ensure_ascii=False), encoding="utf-8")
        log.info("screening.output.saved", file_type="json", path=str(json_file))
        print(f"\nFull results saved to: {json_file}")

        report_file = outputs_dir / f"screening_{timestamp}.md"
        report_file.write_text(_format_report_as_markdown(snapshot, request), encoding="utf-8")
        log.info("screening.output.saved", file_type="markdown", path=str(report_file))
        print(f"Report saved to: {report_file}")
    except OSError as e:
        log.exception("screening.output.failed", error=str(e))
        print(f"Failed to save outputs: {e}")
        sys.exit(1)

    if snapshot.error:
        sys.exit(1)


if __name__ == "__main__":
    main()
