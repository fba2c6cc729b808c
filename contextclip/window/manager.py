"""ContextWindowManager - settings-driven facade over the window pipeline.

The manager binds collaborators (token counter, summarizer, logger) and
fills unspecified arguments from ContextClipSettings. Every call is still
computed from scratch; the manager keeps no conversation state.

Strategies:
    - CLIP: token-aware window, old messages dropped
    - SUMMARIZE: token-aware window, old messages summarized when a
      summarizer is bound (clip mode otherwise)
    - SIMPLE: message-count window, no token accounting

Example:
    >>> from contextclip.window import ContextWindowManager, Message
    >>>
    >>> manager = ContextWindowManager(token_counter=estimate_message_tokens)
    >>> result = await manager.build_window(
    ...     messages,
    ...     instructions=Message("system", "You are a helpful assistant."),
    ...     max_context_tokens=4000,
    ... )
    >>> send(result.context)
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional, Sequence, Union

from contextclip.config import get_settings
from contextclip.config.settings import ContextClipSettings
from contextclip.core.exceptions import ConfigurationError
from contextclip.window.assembler import compute_window, simple_window
from contextclip.window.messages import Message, SimpleWindowResult, WindowResult
from contextclip.window.packer import AdmissionPolicy
from contextclip.window.summarizer import Summarizer
from contextclip.window.tokens import TokenCounter

logger = logging.getLogger(__name__)
_module_logger = logger

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


class ContextStrategy(str, Enum):
    """How the manager selects context in select_context."""
    CLIP = "clip"
    SUMMARIZE = "summarize"
    SIMPLE = "simple"

    @classmethod
    def parse(cls, value: Union["ContextStrategy", str]) -> "ContextStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower().strip())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ConfigurationError(
                f"Unknown context strategy '{value}'",
                config_key="strategy",
                validation_details=f"expected one of: {valid}",
            ) from None


class ContextWindowManager:
    """Selects the context sent to the model on each turn.

    Attributes:
        settings: Settings providing window defaults
        token_counter: Bound token counter
        summarizer: Bound summarizer (ignored when summarization is disabled)
        strategy: Strategy used by select_context
    """

    def __init__(
        self,
        settings: Optional[ContextClipSettings] = None,
        token_counter: Optional[TokenCounter] = None,
        summarizer: Optional[Summarizer] = None,
        logger: Optional[LoggerLike] = None,
        strategy: Optional[Union[ContextStrategy, str]] = None,
    ) -> None:
        """Initialize the manager.

        Args:
            settings: Optional settings instance (cached settings by default)
            token_counter: Counter for messages without token_count
            summarizer: Summarizer for messages evicted by age
            logger: Logger or adapter injected into the pipeline
            strategy: Overrides settings.window.strategy
        """
        self.settings = settings or get_settings()
        self.token_counter = token_counter
        self.summarizer = summarizer
        self._logger = logger or _module_logger
        self.strategy = ContextStrategy.parse(strategy or self.settings.window.strategy)

    @property
    def default_policy(self) -> AdmissionPolicy:
        return AdmissionPolicy.parse(self.settings.window.admission_policy)

    def _active_summarizer(self, override: Optional[Summarizer]) -> Optional[Summarizer]:
        if not self.settings.summarization.enabled:
            return None
        return override if override is not None else self.summarizer

    async def build_window(
        self,
        messages: Sequence[Message],
        instructions: Optional[Message] = None,
        *,
        max_recent_messages: Optional[int] = None,
        max_context_tokens: Optional[int] = None,
        policy: Optional[Union[AdmissionPolicy, str]] = None,
        token_counter: Optional[TokenCounter] = None,
        summarizer: Optional[Summarizer] = None,
        abort_signal: Optional[asyncio.Event] = None,
    ) -> WindowResult:
        """Compute a token-aware window.

        Unspecified arguments come from the bound collaborators and from
        settings.window; the resolved policy is recorded on the result.

        Raises:
            ConfigurationError: If no token budget is given or configured
        """
        return await self._compute(
            messages,
            instructions,
            max_recent_messages=max_recent_messages,
            max_context_tokens=max_context_tokens,
            policy=policy,
            token_counter=token_counter,
            summarizer=self._active_summarizer(summarizer),
            abort_signal=abort_signal,
        )

    async def _compute(
        self,
        messages: Sequence[Message],
        instructions: Optional[Message],
        *,
        max_recent_messages: Optional[int],
        max_context_tokens: Optional[int],
        policy: Optional[Union[AdmissionPolicy, str]],
        token_counter: Optional[TokenCounter],
        summarizer: Optional[Summarizer],
        abort_signal: Optional[asyncio.Event],
    ) -> WindowResult:
        window = self.settings.window
        return await compute_window(
            messages,
            instructions,
            max_recent_messages=(
                window.max_recent_messages if max_recent_messages is None else max_recent_messages
            ),
            max_context_tokens=(
                window.max_context_tokens if max_context_tokens is None else max_context_tokens
            ),
            policy=self.default_policy if policy is None else policy,
            token_counter=token_counter or self.token_counter,
            summarizer=summarizer,
            abort_signal=abort_signal,
            summary_timeout=self.settings.summarization.timeout_seconds,
            overhead_tokens=window.reply_overhead_tokens,
            logger=self._logger,
        )

    def simple_window(
        self,
        messages: Sequence[Message],
        instructions: Optional[Message] = None,
        *,
        max_recent_messages: Optional[int] = None,
    ) -> SimpleWindowResult:
        """Compute a message-count window without token accounting."""
        return simple_window(
            messages,
            instructions,
            max_recent_messages=(
                self.settings.window.max_recent_messages
                if max_recent_messages is None
                else max_recent_messages
            ),
            logger=self._logger,
        )

    async def select_context(
        self,
        messages: Sequence[Message],
        instructions: Optional[Message] = None,
        *,
        max_recent_messages: Optional[int] = None,
        max_context_tokens: Optional[int] = None,
        abort_signal: Optional[asyncio.Event] = None,
    ) -> Union[WindowResult, SimpleWindowResult]:
        """Select context according to the configured strategy."""
        if self.strategy is ContextStrategy.SIMPLE:
            return self.simple_window(
                messages, instructions, max_recent_messages=max_recent_messages
            )

        summarizer = None
        if self.strategy is ContextStrategy.SUMMARIZE:
            summarizer = self._active_summarizer(None)

        return await self._compute(
            messages,
            instructions,
            max_recent_messages=max_recent_messages,
            max_context_tokens=max_context_tokens,
            policy=None,
            token_counter=None,
            summarizer=summarizer,
            abort_signal=abort_signal,
        )


__all__ = [
    "ContextStrategy",
    "ContextWindowManager",
]
