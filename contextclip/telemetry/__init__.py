"""Telemetry module for contextclip.

Structured, leveled logging for the window pipeline.

Example:
    >>> from contextclip.telemetry import setup_logging, WindowLogAdapter
    >>> logger = setup_logging()
"""

from contextclip.telemetry.logging import (
    STRUCTURED_FIELDS,
    WindowLogFormatter,
    WindowTextFormatter,
    WindowLogAdapter,
    setup_logging,
)

__all__ = [
    "STRUCTURED_FIELDS",
    "WindowLogFormatter",
    "WindowTextFormatter",
    "WindowLogAdapter",
    "setup_logging",
]
