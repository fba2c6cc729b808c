"""Pydantic settings for contextclip.

This module defines the ContextClipSettings class that loads configuration
from environment variables and .env files. It uses pydantic-settings for
automatic environment variable parsing and validation.

Settings Categories:
    - Core: Package-level settings (debug mode, log level, environment)
    - Window: Sliding window and token budget defaults
    - Summarization: Summarizer timeout and generation parameters
    - Logging: Log output format

Environment Variables:
    CONTEXTCLIP_DEBUG: Enable debug mode (default: false)
    CONTEXTCLIP_LOG_LEVEL: Logging level (default: INFO)
    CONTEXTCLIP_WINDOW__STRATEGY: clip, summarize or simple (default: clip)
    CONTEXTCLIP_WINDOW__MAX_RECENT_MESSAGES: Sliding window size (default: 10)
    CONTEXTCLIP_WINDOW__MAX_CONTEXT_TOKENS: Default token budget (default: unset)
    CONTEXTCLIP_WINDOW__ADMISSION_POLICY: exhaustive_greedy or prefix_stop
    CONTEXTCLIP_SUMMARIZATION__TIMEOUT_SECONDS: Summarizer timeout (default: 30)

Usage:
    from contextclip.config.settings import get_settings

    settings = get_settings()
    print(settings.window.max_recent_messages)
    print(settings.summarization.timeout_seconds)
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Default Constants
# =============================================================================

DEFAULT_MAX_RECENT_MESSAGES = 10
"""Default sliding window size, in regular messages."""

DEFAULT_REPLY_OVERHEAD_TOKENS = 3
"""Tokens reserved for the framing of the assistant reply."""

DEFAULT_CHARS_PER_TOKEN = 4
"""Characters per token used by the heuristic estimator."""

DEFAULT_SUMMARY_TIMEOUT_SECONDS = 30.0
"""Default time allowed for one summarization attempt."""

VALID_STRATEGIES = {"clip", "summarize", "simple"}
VALID_ADMISSION_POLICIES = {"exhaustive_greedy", "prefix_stop"}


# =============================================================================
# Nested Settings Models
# =============================================================================


class WindowSettings(BaseModel):
    """Settings for context window selection.

    Attributes:
        strategy: Context strategy ('clip', 'summarize', 'simple').
        max_recent_messages: Number of recent regular messages eligible for the context.
        max_context_tokens: Default token budget when callers do not pass one.
        admission_policy: Packing policy ('exhaustive_greedy', 'prefix_stop').
        reply_overhead_tokens: Tokens reserved for the reply framing.
        chars_per_token: Ratio used by the heuristic token estimator.

    Strategy Types:
        - 'clip': Token-aware window, old messages are dropped.
        - 'summarize': Token-aware window, old messages are summarized when
            a summarizer is available, dropped otherwise.
        - 'simple': Message-count window only, no token accounting.
    """

    strategy: str = Field(
        default="clip",
        description="Context strategy: 'clip', 'summarize' or 'simple'"
    )
    max_recent_messages: int = Field(
        default=DEFAULT_MAX_RECENT_MESSAGES,
        ge=0,
        description="Sliding window size in regular messages"
    )
    max_context_tokens: Optional[int] = Field(
        default=None,
        ge=1,
        description="Default token budget for token-aware windows"
    )
    admission_policy: str = Field(
        default="exhaustive_greedy",
        description="Packing policy: 'exhaustive_greedy' or 'prefix_stop'"
    )
    reply_overhead_tokens: int = Field(
        default=DEFAULT_REPLY_OVERHEAD_TOKENS,
        ge=0,
        description="Tokens reserved for the reply framing"
    )
    chars_per_token: int = Field(
        default=DEFAULT_CHARS_PER_TOKEN,
        ge=1,
        description="Characters per token for the heuristic estimator"
    )

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        """Validate context strategy."""
        normalized = v.lower().strip()
        if normalized not in VALID_STRATEGIES:
            raise ValueError(
                f"Invalid strategy '{v}'. Must be one of: {', '.join(sorted(VALID_STRATEGIES))}"
            )
        return normalized

    @field_validator("admission_policy")
    @classmethod
    def validate_admission_policy(cls, v: str) -> str:
        """Validate admission policy."""
        normalized = v.lower().strip().replace("-", "_")
        if normalized not in VALID_ADMISSION_POLICIES:
            raise ValueError(
                f"Invalid admission policy '{v}'. "
                f"Must be one of: {', '.join(sorted(VALID_ADMISSION_POLICIES))}"
            )
        return normalized


class SummarizationSettings(BaseModel):
    """Settings for the optional summarizer.

    Attributes:
        enabled: Whether a bound summarizer may be used at all.
        timeout_seconds: Time allowed for one attempt (None disables the timeout).
        max_summary_tokens: Upper bound on generated summary length.
        temperature: Sampling temperature for LLM summaries.
    """

    enabled: bool = Field(
        default=True,
        description="Whether summarization is enabled"
    )
    timeout_seconds: Optional[float] = Field(
        default=DEFAULT_SUMMARY_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for one summarization attempt"
    )
    max_summary_tokens: int = Field(
        default=500,
        ge=1,
        description="Maximum tokens for generated summaries"
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for LLM summaries"
    )


class LoggingSettings(BaseModel):
    """Settings for log output.

    Attributes:
        json_format: Emit JSON Lines instead of bracketed text.
        logger_name: Root logger name configured by setup_logging.
    """

    json_format: bool = Field(
        default=False,
        description="Emit JSON Lines log records"
    )
    logger_name: str = Field(
        default="contextclip",
        description="Logger configured by setup_logging"
    )


class ContextClipSettings(BaseSettings):
    """Main settings class for contextclip configuration.

    Environment variables use the CONTEXTCLIP_ prefix; nested groups are
    addressed with a double underscore (CONTEXTCLIP_WINDOW__STRATEGY).

    Attributes:
        debug: Enable debug mode for verbose logging.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: Deployment environment (development, staging, production, test).
        window: Window selection defaults.
        summarization: Summarizer configuration.
        logging: Log output configuration.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTEXTCLIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    environment: str = Field(
        default="development",
        description="Deployment environment"
    )

    window: WindowSettings = Field(
        default_factory=WindowSettings,
        description="Window selection configuration"
    )
    summarization: SummarizationSettings = Field(
        default_factory=SummarizationSettings,
        description="Summarization configuration"
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        return normalized

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment."""
        valid_envs = {"development", "staging", "production", "test"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(sorted(valid_envs))}"
            )
        return normalized

    @model_validator(mode="after")
    def force_debug_logging(self) -> "ContextClipSettings":
        """Debug mode always logs at DEBUG."""
        if self.debug:
            self.log_level = "DEBUG"
        return self

    def to_dict(self) -> dict[str, Any]:
        """Export settings as a dictionary."""
        return self.model_dump()


# =============================================================================
# Singleton Pattern
# =============================================================================

_settings_instance: Optional[ContextClipSettings] = None


def get_settings() -> ContextClipSettings:
    """Get the cached settings instance.

    The settings are created once and cached for subsequent calls to avoid
    repeated .env parsing and validation.

    Returns:
        The cached ContextClipSettings instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = ContextClipSettings()
    return _settings_instance


def reload_settings() -> ContextClipSettings:
    """Reload settings from environment, clearing the cache.

    Primarily useful in tests that modify environment variables.

    Returns:
        A fresh ContextClipSettings instance.
    """
    global _settings_instance
    _settings_instance = ContextClipSettings()
    return _settings_instance


def clear_settings_cache() -> None:
    """Clear the settings cache without creating a new instance."""
    global _settings_instance
    _settings_instance = None


__all__ = [
    "ContextClipSettings",
    "WindowSettings",
    "SummarizationSettings",
    "LoggingSettings",
    "get_settings",
    "reload_settings",
    "clear_settings_cache",
    "DEFAULT_MAX_RECENT_MESSAGES",
    "DEFAULT_REPLY_OVERHEAD_TOKENS",
    "DEFAULT_CHARS_PER_TOKEN",
    "DEFAULT_SUMMARY_TIMEOUT_SECONDS",
]
