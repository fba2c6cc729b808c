"""Core primitives for contextclip.

Currently exposes the exception hierarchy shared by every component.
"""

from contextclip.core.exceptions import (
    ContextClipError,
    ConfigurationError,
    TokenCountError,
    SummarizationError,
)

__all__ = [
    "ContextClipError",
    "ConfigurationError",
    "TokenCountError",
    "SummarizationError",
]
