"""Generate OpenAPI specification as YAML file."""

import sys
from pathlib import Path
from typing import Any

import structlog
import yaml

from adverse_media.models import ScreeningSnapshot
from adverse_media.server import get_app

log = structlog.get_logger("adverse_media.export_openapi")

DEFAULT_OUTPUT_PATH = Path("docs/openapi.yaml")


def with_stream_snapshot_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Add the SSE snapshot payload to ``components.schemas``.

    ``/screening/stream`` answers ``text/event-stream``, so FastAPI never
    references the snapshot model from that route. Every ``data:`` line is
    a camelCase ``ScreeningSnapshot``; publishing it lets clients generate
    the type they fold events into.
    """
    snapshot_schema = ScreeningSnapshot.model_json_schema(
        by_alias=True, ref_template="#/components/schemas/{model}"
    )
    nested = snapshot_schema.pop("$defs", {})

    components = schema.setdefault("components", {}).setdefault("schemas", {})
    for name, definition in nested.items():
        components.setdefault(name, definition)
    components.setdefault("ScreeningSnapshot", snapshot_schema)
    return schema


def export_openapi_yaml(output_path: Path = DEFAULT_OUTPUT_PATH) -> int:
    """
    Write the screening API's OpenAPI schema to a YAML file.

    Args:
        output_path: Path to write the YAML file (default: docs/openapi.yaml)

    Returns:
        0 on success, 1 on failure (for CI/CD integration)
    """
    log.info("export.started", output_path=str(output_path))

    try:
        openapi_schema: dict[str, Any] = get_app().openapi()
        if not openapi_schema:
            raise ValueError("FastAPI app returned empty OpenAPI schema")
        openapi_schema = with_stream_snapshot_schema(openapi_schema)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(openapi_schema, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
    except OSError as e:
        log.error("export.failed.io", error=str(e), output_path=str(output_path))
        print(f"File system error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        log.error("export.failed.unexpected", error=str(e), output_path=str(output_path))
        print(f"Unexpected error during OpenAPI export: {e}", file=sys.stderr)
        return 1

    path_count = len(openapi_schema.get("paths", {}))
    log.info("export.completed", output_path=str(output_path), path_count=path_count)
    print(f"OpenAPI specification exported to {output_path} ({path_count} paths)")
    return 0


if __name__ == "__main__":
    sys.exit(export_openapi_yaml(Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_OUTPUT_PATH))
