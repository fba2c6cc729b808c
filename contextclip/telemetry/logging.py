"""Structured logging for contextclip.

The window pipeline logs through an injected logger and attaches
structured fields with ``extra=``. This module provides the formatter and
adapter that render those fields.

Key Components:
    - WindowLogFormatter: JSON Lines formatter carrying the structured extras
    - WindowTextFormatter: Bracketed single-line formatter for consoles
    - WindowLogAdapter: LoggerAdapter binding a conversation id to every record
    - setup_logging: Configure the package logger from settings

Log Format (JSON Lines):
    {"timestamp": "2026-10-19T10:30:45.123000+00:00", "level": "DEBUG",
     "logger": "contextclip.window.assembler", "event": "window.complete",
     "message": "[ContextWindow] Context window assembled", "context_size": 11,
     "evicted_count": 9, "remaining_budget": 887}
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, MutableMapping, Optional

if TYPE_CHECKING:
    from contextclip.config.settings import ContextClipSettings


# Fields emitted by the window pipeline through ``extra=``
STRUCTURED_FIELDS = (
    "event",
    "conversation_id",
    "total_messages",
    "regular_messages",
    "recent_messages",
    "old_messages",
    "header_source",
    "header_size",
    "policy",
    "max_recent_messages",
    "max_context_tokens",
    "instructions_tokens",
    "ceiling",
    "running_total",
    "message_id",
    "message_tokens",
    "context_size",
    "admitted_count",
    "evicted_count",
    "remaining_budget",
    "summary_tokens",
    "summary_preview",
    "reason",
    "error",
    "error_type",
    "duration_ms",
)


class WindowLogFormatter(logging.Formatter):
    """JSON Lines formatter for window pipeline records.

    Every record becomes one JSON object. Structured fields passed through
    ``extra=`` are copied when present.

    Example:
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(WindowLogFormatter())
        >>> logging.getLogger("contextclip").addHandler(handler)
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as a JSON Lines entry.

        Args:
            record: The log record to format.

        Returns:
            JSON string (single line) with the log entry.
        """
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }

        for field_name in STRUCTURED_FIELDS:
            value = getattr(record, field_name, None)
            if value is not None:
                if isinstance(value, float):
                    value = round(value, 2)
                entry[field_name] = value

        entry["message"] = record.getMessage()

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, separators=(",", ":"), default=str)


class WindowTextFormatter(logging.Formatter):
    """Bracketed text formatter.

    Format:
        [TIMESTAMP] [LEVEL] [COMPONENT] Message {event=..., ...}
    """

    STANDARD_FORMAT = "[%(asctime)s] [%(levelname)s] [%(component)s] %(message)s"
    DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.STANDARD_FORMAT, datefmt=self.DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "component"):
            record.component = record.name.split(".")[-1].upper()

        text = super().format(record)
        fields = [
            f"{name}={getattr(record, name)}"
            for name in STRUCTURED_FIELDS
            if getattr(record, name, None) is not None
        ]
        if fields:
            text += " {" + ", ".join(fields) + "}"
        return text


class WindowLogAdapter(logging.LoggerAdapter):
    """Logger adapter that binds a conversation id to every record.

    Extras passed on the individual call are merged with the bound ones,
    so structured fields from the pipeline are preserved.

    Example:
        >>> log = WindowLogAdapter(logging.getLogger(__name__), {"conversation_id": "conv-1"})
        >>> result = await compute_window(messages, ..., logger=log)
    """

    def process(
        self,
        msg: Any,
        kwargs: MutableMapping[str, Any],
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    settings: Optional["ContextClipSettings"] = None,
    handler: Optional[logging.Handler] = None,
) -> logging.Logger:
    """Configure the package logger from settings.

    Installs a single handler on the configured logger; calling it again
    replaces the handler instead of stacking duplicates.

    Args:
        settings: Settings instance (defaults to the cached settings)
        handler: Optional handler (defaults to a StreamHandler)

    Returns:
        The configured logger.
    """
    if settings is None:
        from contextclip.config import get_settings

        settings = get_settings()

    package_logger = logging.getLogger(settings.logging.logger_name)
    package_logger.setLevel(getattr(logging, settings.log_level))

    for existing in list(package_logger.handlers):
        if getattr(existing, "_contextclip_handler", False):
            package_logger.removeHandler(existing)

    handler = handler or logging.StreamHandler()
    handler.setFormatter(
        WindowLogFormatter() if settings.logging.json_format else WindowTextFormatter()
    )
    handler._contextclip_handler = True  # type: ignore[attr-defined]
    package_logger.addHandler(handler)
    return package_logger


__all__ = [
    "STRUCTURED_FIELDS",
    "WindowLogFormatter",
    "WindowTextFormatter",
    "WindowLogAdapter",
    "setup_logging",
]
