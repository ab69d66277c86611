"""
Structured logging: timestamp, event_type, login / repository context.

structlog with ISO timestamps, log level, and consistent keys. Every module
uses get_logger() and logs snake_case events with keyword context.

Logs go to stderr so CLI tables on stdout stay readable. LOG_FORMAT=json
switches to one JSON object per line for aggregation.

Uses only Python stdlib logging and structlog; no gitcircles imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# console for local CLI use; json for log shipping
LOG_FORMAT = os.getenv("LOG_FORMAT", "console").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type for consistency."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog() -> None:
    """Configure structlog once at import: timestamp, level, event_type."""
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if LOG_FORMAT == "json":
        shared_processors.append(_normalize_event)
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
        )
    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("wallet_sync_changed", login="carol", changed=True)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_login(platform: str, login: str) -> structlog.BoundLogger:
    """Return a logger with platform and login bound to all subsequent log calls."""
    return get_logger("gitcircles").bind(platform=platform, login=login)
