"""
Structured JSON logging: timestamp, event_type, block_number, tx_hash, wallet_id.

structlog with ISO timestamps and level, rendered as JSON for log aggregation or
as colored console lines for local runs (LOG_FORMAT=console). Modules call
get_logger(__name__) and log a snake_case event name plus keyword fields.

No backend_arcscore imports here so any module can import it first.
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

LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """ISO 8601 UTC timestamp on every record."""
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _rename_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog 'event' becomes event_type; message mirrors it unless given."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def configure_structlog(level: int = LOG_LEVEL_VALUE, fmt: str = LOG_FORMAT) -> None:
    """(Re)configure structlog processors, renderer and level filter."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _rename_event,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger bound to the module name.

        logger = get_logger(__name__)
        logger.info("block_indexed", block_number=1204, transactions=3)

    Output (JSON): {"event_type": "block_indexed", "block_number": 1204, "transactions": 3,
    "logger": "backend_arcscore.ingestion.indexer", "level": "info", "timestamp": "..."}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_block(block_number: int) -> structlog.BoundLogger:
    """Logger with block_number bound to every call."""
    return get_logger("backend_arcscore.ingestion").bind(block_number=block_number)
