"""
Structured logging with automatic trace context propagation.

Key Features:
- Standard logger.info() calls pick up the current sequence/node context
- ContextVar-based propagation: thread-safe, so sequences resumed from
  different worker threads keep their own context
- Dual output modes: JSON for production, human-readable for development

Architecture:
    Sequence.run() / Sequence.resume() → sets sequence_id and graph_id
        ↓ (automatic propagation via ContextVar)
    Node execution → adds node_id to context
        ↓ (automatic propagation)
    Node action code → logger.info("message") → gets ALL context automatically
"""

import json
import logging
import os
import re
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variable for trace propagation
trace_context: ContextVar[dict[str, Any] | None] = ContextVar("trace_context", default=None)

# ANSI escape code pattern (matches \033[...m or \x1b[...m)
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m|\033\[[0-9;]*m")


def strip_ansi_codes(text: str) -> str:
    """Remove ANSI escape codes from text for clean JSON logging."""
    return ANSI_ESCAPE_PATTERN.sub("", text)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Produces machine-parseable log entries with:
    - Standard fields (timestamp, level, logger, message)
    - Trace context (sequence_id, graph_id, node_id)
    - Custom fields from the extra dict (event, status, node_id)
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        context = trace_context.get() or {}

        message = strip_ansi_codes(record.getMessage())

        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": message,
        }

        log_entry.update(context)

        event = getattr(record, "event", None)
        if event is not None:
            log_entry["event"] = strip_ansi_codes(str(event))

        status = getattr(record, "status", None)
        if status is not None:
            log_entry["status"] = str(status)

        # An explicit node_id in extra wins over the ambient one
        node_id = getattr(record, "node_id", None)
        if node_id is not None:
            log_entry["node_id"] = node_id

        if record.exc_info:
            exception_text = self.formatException(record.exc_info)
            log_entry["exception"] = strip_ansi_codes(exception_text)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    Colorized level names with a short sequence/node prefix for correlation.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable string."""
        context = trace_context.get() or {}
        sequence_id = context.get("sequence_id", "")
        graph_id = context.get("graph_id", "")
        node_id = context.get("node_id", "")

        prefix_parts = []
        if sequence_id:
            prefix_parts.append(f"seq:{sequence_id[-8:]}")
        if graph_id:
            prefix_parts.append(f"graph:{graph_id}")
        if node_id:
            prefix_parts.append(f"node:{node_id}")

        context_prefix = f"[{' | '.join(prefix_parts)}] " if prefix_parts else ""

        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET

        level = f"{record.levelname:<8}"

        event = ""
        record_event = getattr(record, "event", None)
        if record_event is not None:
            event = f" [{record_event}]"

        text = f"{color}[{level}]{reset} {context_prefix}{record.getMessage()}{event}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def configure_logging(
    level: str = "INFO",
    format: str = "auto",  # "json", "human", or "auto"
) -> None:
    """
    Configure structured logging for the application.

    Call this ONCE at application startup (the CLI does it for you).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format:
            - "json": Machine-parseable JSON (for production)
            - "human": Human-readable with colors (for development)
            - "auto": JSON if SEQUENCER_LOG_FORMAT=json or ENV=production, else human

    Examples:
        configure_logging(level="DEBUG", format="human")
        configure_logging(level="INFO", format="json")
    """
    if format == "auto":
        log_format_env = os.getenv("SEQUENCER_LOG_FORMAT", "").lower()
        env = os.getenv("ENV", "development").lower()

        if log_format_env == "json" or env == "production":
            format = "json"
        else:
            format = "human"

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = HumanReadableFormatter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())


def set_trace_context(**kwargs: Any) -> None:
    """
    Set trace context for the current execution.

    Called by the framework at key points:
    - Sequence.run()/resume(): sets sequence_id, graph_id
    - Node execution: adds node_id

    Args:
        **kwargs: Context fields (sequence_id, graph_id, node_id, ...)
    """
    current = trace_context.get() or {}
    trace_context.set({**current, **kwargs})


def get_trace_context() -> dict:
    """
    Get current trace context.

    Returns:
        Dict with sequence_id, graph_id, node_id, etc.
        Empty dict if no context set.
    """
    context = trace_context.get() or {}
    return context.copy()


def clear_trace_context() -> None:
    """
    Clear trace context.

    Mostly useful for cleanup between test runs.
    """
    trace_context.set(None)
