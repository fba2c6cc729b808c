"""Window assembly: the token-aware pipeline and the simple windower.

compute_window runs the stages strictly in sequence:

    select retention -> summarize old messages (optional) -> pack -> assemble

context = header + [summary] + admitted, all oldest to newest.
evicted = old + rejected, also oldest to newest.

simple_window keeps the header and the last N regular messages without
any token accounting.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Sequence, Union

from contextclip.config.settings import DEFAULT_REPLY_OVERHEAD_TOKENS
from contextclip.core.exceptions import ConfigurationError
from contextclip.window.messages import Message, SimpleWindowResult, WindowResult
from contextclip.window.packer import AdmissionPolicy, BudgetLedger, pack
from contextclip.window.selector import (
    HeaderSource,
    select_retention,
    validate_max_recent,
)
from contextclip.window.summarizer import Summarizer, request_summary
from contextclip.window.tokens import TokenCounter, resolve_cost

logger = logging.getLogger(__name__)
_module_logger = logger

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def _require_non_negative_int(value: object, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(
            f"{key} must be an integer",
            config_key=key,
            validation_details=f"got {type(value).__name__}",
        )
    if value < 0:
        raise ConfigurationError(
            f"{key} must be >= 0",
            config_key=key,
            validation_details=f"got {value}",
        )
    return value


async def compute_window(
    messages: Optional[Sequence[Message]],
    instructions: Optional[Message] = None,
    *,
    max_recent_messages: int,
    max_context_tokens: Optional[int],
    policy: Union[AdmissionPolicy, str],
    token_counter: Optional[TokenCounter] = None,
    summarizer: Optional[Summarizer] = None,
    abort_signal: Optional[asyncio.Event] = None,
    summary_timeout: Optional[float] = None,
    overhead_tokens: int = DEFAULT_REPLY_OVERHEAD_TOKENS,
    logger: Optional[LoggerLike] = None,
) -> WindowResult:
    """Compute the token-aware context window for one model turn.

    Args:
        messages: Conversation, oldest to newest
        instructions: Optional system instructions superseding system messages
        max_recent_messages: Size of the recency window (>= 0)
        max_context_tokens: Token budget; required
        policy: Admission policy used by the packer
        token_counter: Counter for messages without a precomputed token_count
        summarizer: Optional summarizer for messages evicted by age
        abort_signal: Cancellation signal forwarded to the summarizer
        summary_timeout: Time limit for the summarizer call, in seconds
        overhead_tokens: Reservation for the reply framing
        logger: Logger or LoggerAdapter for diagnostics (module logger by default)

    Returns:
        WindowResult

    Raises:
        ConfigurationError: If the budget or window parameters are invalid
        TokenCountError: If a message cost cannot be resolved
    """
    log = logger or _module_logger
    started = time.perf_counter()

    if max_context_tokens is None:
        raise ConfigurationError(
            "max_context_tokens is required for token-aware windows",
            config_key="max_context_tokens",
        )
    _require_non_negative_int(max_context_tokens, "max_context_tokens")
    _require_non_negative_int(overhead_tokens, "overhead_tokens")
    validate_max_recent(max_recent_messages)
    policy = AdmissionPolicy.parse(policy)

    instructions_cost = (
        await resolve_cost(instructions, token_counter) if instructions is not None else 0
    )
    ceiling = max_context_tokens - instructions_cost
    messages = list(messages or [])

    log.debug(
        "[ContextWindow] Starting context window",
        extra={
            "event": "window.start",
            "total_messages": len(messages),
            "max_recent_messages": max_recent_messages,
            "max_context_tokens": max_context_tokens,
            "instructions_tokens": instructions_cost,
            "policy": policy.value,
        },
    )

    if not messages:
        log.debug(
            "[ContextWindow] No messages to process",
            extra={"event": "window.complete", "context_size": 0, "remaining_budget": ceiling},
        )
        return WindowResult(
            context=[],
            remaining_budget=ceiling,
            evicted=[],
            policy=policy,
            header_source=HeaderSource.NONE,
        )

    selection = select_retention(messages, instructions, max_recent_messages)
    header = selection.header

    ledger = BudgetLedger(ceiling=ceiling, running=overhead_tokens)
    if header.source is HeaderSource.SYSTEM_MESSAGES:
        for message in header.messages:
            ledger.charge(await resolve_cost(message, token_counter))

    log.debug(
        "[ContextWindow] Message distribution",
        extra={
            "event": "window.header",
            "header_source": header.source.value,
            "header_size": len(header.messages),
            "regular_messages": len(selection.regular),
            "recent_messages": len(selection.recent),
            "old_messages": len(selection.old),
            "running_total": ledger.running,
            "ceiling": ledger.ceiling,
        },
    )
    if ledger.remaining < 0:
        log.warning(
            "[ContextWindow] Header and reply overhead exceed the token budget",
            extra={
                "event": "window.header_over_budget",
                "running_total": ledger.running,
                "ceiling": ledger.ceiling,
            },
        )

    summary: Optional[Message] = None
    summary_cost = 0
    if selection.old:
        if summarizer is None:
            log.info(
                "[ContextWindow] Summarization not configured, using clip mode",
                extra={
                    "event": "summary.skipped",
                    "old_messages": len(selection.old),
                    "max_recent_messages": max_recent_messages,
                },
            )
        else:
            attempt = await request_summary(
                summarizer,
                selection.old,
                ledger.remaining,
                token_counter=token_counter,
                abort_signal=abort_signal,
                timeout=summary_timeout,
                log=log,
            )
            if attempt.summary is not None:
                summary = attempt.summary
                summary_cost = attempt.summary_cost
                ledger.reserve(summary_cost)

    packed = await pack(selection.recent, ledger, policy, token_counter, log)

    context: list[Message] = list(header.messages)
    if summary is not None:
        context.append(summary)
    context.extend(packed.admitted)

    result = WindowResult(
        context=context,
        remaining_budget=ledger.remaining,
        evicted=selection.old + packed.rejected,
        summary=summary,
        summary_cost=summary_cost,
        policy=policy,
        header_source=header.source,
    )

    log.debug(
        "[ContextWindow] Context window assembled",
        extra={
            "event": "window.complete",
            "context_size": len(result.context),
            "admitted_count": len(packed.admitted),
            "evicted_count": result.evicted_count,
            "running_total": ledger.running,
            "remaining_budget": result.remaining_budget,
            "summary_tokens": summary_cost or None,
            "duration_ms": (time.perf_counter() - started) * 1000,
        },
    )
    return result


def simple_window(
    messages: Optional[Sequence[Message]],
    instructions: Optional[Message] = None,
    *,
    max_recent_messages: int,
    logger: Optional[LoggerLike] = None,
) -> SimpleWindowResult:
    """Keep the header and the last max_recent_messages regular messages.

    No token counting and no summarization; meant for latency-sensitive
    callers.
    """
    log = logger or _module_logger
    messages = list(messages or [])

    selection = select_retention(messages, instructions, max_recent_messages)
    result = SimpleWindowResult(
        context=list(selection.header.messages) + selection.recent,
        evicted=selection.old,
    )

    log.debug(
        "[SimpleWindow] Context clipped",
        extra={
            "event": "simple_window.complete",
            "total_messages": len(messages),
            "header_source": selection.header.source.value,
            "context_size": len(result.context),
            "evicted_count": result.evicted_count,
        },
    )
    return result


__all__ = [
    "compute_window",
    "simple_window",
]
