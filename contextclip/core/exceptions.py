"""Custom exceptions for the contextclip package.

This module defines the exception hierarchy used by the context window
manager. All exceptions inherit from ContextClipError, enabling catch-all
exception handling while still allowing specific exception types.

Exception Hierarchy:
    ContextClipError (base)
    ├── ConfigurationError: Invalid or missing window configuration
    ├── TokenCountError: Token counter failed or returned an invalid cost
    └── SummarizationError: Summarizer failed, timed out or was aborted
                            (recovered locally, never raised to callers)

Features:
    - Error codes for programmatic handling
    - Context information included in each exception type
    - Structured logging support via to_log_dict method
"""

from typing import Any, Optional


class ContextClipError(Exception):
    """Base exception for all contextclip errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        context: Additional context information about the error
        recoverable: Whether the error is potentially recoverable
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "CONTEXTCLIP_ERROR"
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_log_dict(self) -> dict[str, Any]:
        """Return structured dict for logging.

        Returns:
            Dictionary with error details suitable for structured logging
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ConfigurationError(ContextClipError):
    """Raised when window configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that caused the error
        validation_details: Details about why validation failed
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        validation_details: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if config_key:
            context["config_key"] = config_key
        if validation_details:
            context["validation_details"] = validation_details
        super().__init__(message, code="CONFIG_ERROR", context=context, **kwargs)
        self.config_key = config_key
        self.validation_details = validation_details


class TokenCountError(ContextClipError):
    """Raised when the cost of a message cannot be resolved.

    The token counter either raised or returned something that is not a
    non-negative integer. The error is fatal for the window computation.

    Attributes:
        message_id: Identifier of the message being costed, if it has one
        role: Role of the message being costed
    """

    def __init__(
        self,
        message: str,
        message_id: Optional[Any] = None,
        role: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        if message_id is not None:
            context["message_id"] = message_id
        if role:
            context["role"] = role
        super().__init__(message, code="TOKEN_COUNT_ERROR", context=context, **kwargs)
        self.message_id = message_id
        self.role = role


class SummarizationError(ContextClipError):
    """Describes a failed summarization attempt.

    Only used to shape the diagnostic event; the window pipeline recovers
    by falling back to clip mode.

    Attributes:
        reason: Short failure reason ('error', 'timeout', 'aborted', 'cancelled', 'invalid')
        evicted_count: Number of old messages that were offered to the summarizer
    """

    def __init__(
        self,
        message: str,
        reason: str = "error",
        evicted_count: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", {}) or {}
        context["reason"] = reason
        if evicted_count is not None:
            context["evicted_count"] = evicted_count
        kwargs.setdefault("recoverable", True)
        super().__init__(message, code="SUMMARIZATION_ERROR", context=context, **kwargs)
        self.reason = reason
        self.evicted_count = evicted_count


__all__ = [
    "ContextClipError",
    "ConfigurationError",
    "TokenCountError",
    "SummarizationError",
]
