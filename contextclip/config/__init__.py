"""Configuration module for contextclip.

Centralized configuration using pydantic-settings, with .env support and a
cached settings singleton.

Usage:
    from contextclip.config import get_settings

    settings = get_settings()
    print(settings.window.strategy)
"""

from contextclip.config.settings import (
    ContextClipSettings,
    WindowSettings,
    SummarizationSettings,
    LoggingSettings,
    get_settings,
    reload_settings,
    clear_settings_cache,
    DEFAULT_MAX_RECENT_MESSAGES,
    DEFAULT_REPLY_OVERHEAD_TOKENS,
    DEFAULT_CHARS_PER_TOKEN,
    DEFAULT_SUMMARY_TIMEOUT_SECONDS,
)

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
