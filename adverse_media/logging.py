import logging
import os
import sys
from datetime import datetime
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

PACKAGE_PREFIX = "adverse_media"

# Third-party loggers that flood stdout at INFO during a screening run
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "openai._base_client", "uvicorn.access")

# Top-level keys of every JSON line; anything else is nested under "extra"
STANDARD_FIELDS = frozenset({"timestamp", "level", "logger", "message", "context"})

# Bound per run by the workflow
RUN_CONTEXT_FIELDS = ("correlation_id", "search_id")

DEFAULT_CONTEXT = "default"
UNKNOWN_CORRELATION_ID = "unknown"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_NOISY_LOG_LEVEL = "WARNING"

# Raw LLM output and scraped pages end up in log fields; keep lines bounded
MAX_LOGGED_TEXT_LENGTH = 2000
MAX_DISPLAY_VALUE_LENGTH = 50
SHORT_ID_LENGTH = 8


def _context_value(key: str, default: str) -> str:
    return str(structlog.contextvars.get_contextvars().get(key, default))


def get_correlation_id() -> str:
    """Get current correlation ID from context."""
    return _context_value("correlation_id", UNKNOWN_CORRELATION_ID)


# --- Processors ---


def _clip_long_text(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    for key, value in event_dict.items():
        if isinstance(value, str) and len(value) > MAX_LOGGED_TEXT_LENGTH:
            clipped = len(value) - MAX_LOGGED_TEXT_LENGTH
            event_dict[key] = f"{value[:MAX_LOGGED_TEXT_LENGTH]}...[{clipped} chars clipped]"
    return event_dict


def _nest_extra_fields(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Rename event to message and move non-standard keys under 'extra'."""
    event_dict["message"] = event_dict.pop("event", "")
    event_dict["context"] = _context_value("context", DEFAULT_CONTEXT)

    extra = {key: event_dict.pop(key) for key in list(event_dict) if key not in STANDARD_FIELDS}
    # merge_contextvars already copied run context in; drop placeholder values
    for key in RUN_CONTEXT_FIELDS:
        if extra.get(key) in (None, "", UNKNOWN_CORRELATION_ID):
            extra.pop(key, None)

    if extra:
        event_dict["extra"] = extra
    return event_dict


# --- Human-readable rendering (CLI and tests) ---


def _shorten(value: Any, limit: int = MAX_DISPLAY_VALUE_LENGTH) -> str:
    text = str(value)
    return text if len(text) <= limit else f"{text[: limit - 3]}..."


def _clock_time(timestamp: str) -> str:
    if not timestamp:
        return ""
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%H:%M:%S")
    except ValueError:
        return ""


def _short_logger_name(name: str) -> str:
    """'adverse_media.analysis.analyzer' -> 'analysis.analyzer'."""
    if not name.startswith(PACKAGE_PREFIX):
        return name
    parts = name.split(".")[1:] or [name]
    return ".".join(parts[-2:])


def render_human(_: WrappedLogger, __: str, event_dict: EventDict) -> str:
    """HH:MM:SS [LEVEL] logger: message [key=value, ...] [run:search_id] [id:correlation_id]"""
    extra = dict(event_dict.get("extra", {}))
    search_id = extra.pop("search_id", "")
    correlation_id = extra.pop("correlation_id", "")

    line = (
        f"{_clock_time(event_dict.get('timestamp', ''))} "
        f"[{str(event_dict.get('level', 'info')).upper()}] "
        f"{_short_logger_name(event_dict.get('logger', ''))}: "
        f"{event_dict.get('message', '')}"
    )
    if extra:
        line += " [" + ", ".join(f"{key}={_shorten(value)}" for key, value in extra.items()) + "]"
    if search_id:
        line += f" [run:{str(search_id)[:SHORT_ID_LENGTH]}]"
    if correlation_id:
        line += f" [id:{str(correlation_id)[:SHORT_ID_LENGTH]}]"
    return line


# --- Configuration ---


def _level_from_env(variable: str, default: str, fallback: int) -> int:
    level = logging.getLevelName(os.environ.get(variable, default).upper())
    return level if isinstance(level, int) else fallback


def configure_structlog(testing: bool = False) -> None:
    """JSON lines for the service; one readable line per event when ``testing``."""
    level = _level_from_env("LOGGING_LEVEL", DEFAULT_LOG_LEVEL, logging.INFO)
    logging.basicConfig(format="%(message)s", level=level, stream=sys.stdout)
    logging.getLogger().setLevel(level)

    noisy_level = _level_from_env("NOISY_LOGGING_LEVEL", DEFAULT_NOISY_LOG_LEVEL, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.contextvars.merge_contextvars,
        _clip_long_text,
        _nest_extra_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        render_human if testing else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


# --- Context helpers ---


def clear_context_fields() -> None:
    structlog.contextvars.clear_contextvars()


def bind_context_vars(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context_vars(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def get_context_vars() -> dict[str, Any]:
    return structlog.contextvars.get_contextvars()


def get_logger(name: str = "") -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name or __name__)  # type: ignore
