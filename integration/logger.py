"""Structured logging for the triage command line via *structlog*.

The core logs JSON lines through :func:`triage.telemetry.get_logger`.
This module configures the CLI side.  :func:`bind_request` opens a
request context (correlation ID + provider) in structlog's contextvars,
so every CLI event of one ``analyze`` run carries both; the same ID is
handed to the core so the two log streams can be joined.
"""

from __future__ import annotations

import logging
import sys
import uuid
from typing import Any, MutableMapping, Optional

import structlog

MAX_FIELD_CHARS = 200

_CONFIGURED = False


# ── request context ────────────────────────────────────────────────


def bind_request(provider: str, correlation_id: Optional[str] = None) -> str:
    """Start a fresh request context and return its correlation ID.

    Anything bound by a previous request is dropped first.
    """
    cid = correlation_id or uuid.uuid4().hex[:12]
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=cid, provider=provider)
    return cid


def unbind_request() -> None:
    structlog.contextvars.clear_contextvars()


# ── processors ─────────────────────────────────────────────────────


def _truncate_long_fields(
    logger: Any,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Clip long string fields (causes, raw log lines) to ``MAX_FIELD_CHARS``."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
            event_dict[key] = value[:MAX_FIELD_CHARS] + "…"
    return event_dict


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger so redirected streams are honoured
    return structlog.PrintLogger(sys.stderr)


def _set_core_level(level: int) -> None:
    """Apply *level* to the already-created ``triage.*`` stdlib loggers."""
    for name in list(logging.root.manager.loggerDict):
        if name == "triage" or name.startswith("triage."):
            logging.getLogger(name).setLevel(level)


# ── setup ──────────────────────────────────────────────────────────


def setup_logging(log_level: str = "INFO", json_output: Optional[bool] = None) -> None:
    """Configure CLI logging once per process.

    Args:
        log_level: ``DEBUG``, ``INFO``, ``WARNING`` or ``ERROR``; also
            applied to the core's loggers.
        json_output: Force JSON (True) or console (False) rendering.
            Defaults to JSON unless stderr is a TTY.
    """
    global _CONFIGURED  # noqa: PLW0603
    if _CONFIGURED:
        return
    _CONFIGURED = True

    level = getattr(logging, log_level.upper(), logging.INFO)
    _set_core_level(level)

    if json_output is None:
        json_output = not sys.stderr.isatty()
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _truncate_long_fields,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )


def command_logger(command: str) -> Any:
    """Logger for one CLI command; events carry ``command=<name>``."""
    return structlog.get_logger().bind(command=command)
