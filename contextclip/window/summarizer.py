"""Summarizer adapter for messages evicted by age.

The summarizer is an optional external collaborator. It receives the
messages that fell out of the recency window and may return one summary
message with its token cost. Any failure, timeout or abort is recovered
here: the old messages are simply dropped (clip mode) and the window is
built as if no summarizer had been configured.

Contract:
    summarizer(SummarizationRequest) -> SummaryOutcome | None
    (plain callable or coroutine function)

Example:
    >>> async def summarize(request):
    ...     text = await llm.generate(render(request.evicted))
    ...     return SummaryOutcome(Message("system", text), summary_cost=42)
    >>> result = await compute_window(messages, ..., summarizer=summarize)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, Union

from contextclip.core.exceptions import SummarizationError, TokenCountError
from contextclip.window.messages import Message, MessageRole
from contextclip.window.tokens import (
    TokenCounter,
    estimate_message_tokens,
    make_estimator,
    resolve_cost,
)

logger = logging.getLogger(__name__)

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]

SUMMARY_PREFIX = "[CONVERSATION SUMMARY]"


# =============================================================================
# Request / Outcome
# =============================================================================


@dataclass(frozen=True)
class SummarizationRequest:
    """What the summarizer is asked to compress.

    Attributes:
        evicted: Messages older than the recency window, oldest to newest
        remaining_budget: Tokens still available under the ceiling
        abort_signal: Set when the surrounding request is cancelled or times out
    """
    evicted: tuple[Message, ...]
    remaining_budget: int
    abort_signal: asyncio.Event = field(compare=False)


@dataclass(frozen=True)
class SummaryOutcome:
    """A produced summary.

    Attributes:
        summary: The summary message, or None for "no summary"
        summary_cost: Token cost; None resolves it from the message itself
    """
    summary: Optional[Message]
    summary_cost: Optional[int] = None


Summarizer = Callable[
    [SummarizationRequest],
    Union[Optional[SummaryOutcome], Awaitable[Optional[SummaryOutcome]]],
]


@dataclass
class SummaryAttempt:
    """Result of the guarded summarizer call.

    Attributes:
        summary: Accepted summary message
        summary_cost: Tokens to reserve for it
        failure: Failure description when the attempt was recovered
    """
    summary: Optional[Message] = None
    summary_cost: int = 0
    failure: Optional[SummarizationError] = None


# =============================================================================
# Guarded invocation
# =============================================================================


async def _call_summarizer(summarizer: Summarizer, request: SummarizationRequest) -> Any:
    result = summarizer(request)
    if inspect.isawaitable(result):
        result = await result
    return result


def _consume_late_result(task: "asyncio.Task[Any]") -> None:
    # Abandoned tasks may still finish with an error; retrieve it so it is not reported as lost
    if not task.cancelled():
        task.exception()


def _record_failure(
    log: LoggerLike,
    error: SummarizationError,
    cause: Optional[BaseException] = None,
) -> SummaryAttempt:
    extra = {
        "event": "summary.failed",
        "reason": error.reason,
        "old_messages": error.evicted_count,
        "error": error.message,
        "error_type": type(cause).__name__ if cause else None,
    }
    if cause is not None and error.reason == "error":
        log.error(
            "[ContextWindow] Summary generation failed, falling back to clip mode",
            extra=extra,
            exc_info=(type(cause), cause, cause.__traceback__),
        )
    else:
        log.warning(
            "[ContextWindow] Summary generation failed, falling back to clip mode",
            extra=extra,
        )
    return SummaryAttempt(failure=error)


async def request_summary(
    summarizer: Summarizer,
    old_messages: Sequence[Message],
    remaining_budget: int,
    *,
    token_counter: Optional[TokenCounter] = None,
    abort_signal: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
    log: Optional[LoggerLike] = None,
) -> SummaryAttempt:
    """Run one summarization attempt and recover from any failure.

    The summarizer races against the caller's abort signal and the timeout.
    It sees its own request-local signal, which mirrors the caller's; when
    the abort or the timeout wins, only the local signal is set (so a
    cooperative summarizer can stop), the summarizer task is cancelled and
    the attempt counts as failed. The caller's event is never modified.

    A summary whose cost cannot be counted is a failed attempt like any
    other. Cancellation of the calling task is not swallowed: the
    summarizer task is cancelled and CancelledError propagates.

    Args:
        summarizer: Summarizer collaborator
        old_messages: Messages evicted by age
        remaining_budget: Tokens still available under the ceiling
        token_counter: Counter used when the outcome leaves summary_cost unset
        abort_signal: Optional caller-owned cancellation signal
        timeout: Optional time limit in seconds
        log: Logger for the diagnostic events

    Returns:
        SummaryAttempt; summary is None when nothing should be inserted
    """
    log = log or logger
    signal = asyncio.Event()
    request = SummarizationRequest(
        evicted=tuple(old_messages),
        remaining_budget=remaining_budget,
        abort_signal=signal,
    )
    evicted_count = len(request.evicted)

    log.debug(
        "[ContextWindow] Summarizing old messages",
        extra={
            "event": "summary.start",
            "old_messages": evicted_count,
            "remaining_budget": remaining_budget,
        },
    )

    if abort_signal is not None and abort_signal.is_set():
        return _record_failure(
            log,
            SummarizationError(
                "Abort signal was set before summarization started",
                reason="aborted",
                evicted_count=evicted_count,
            ),
        )

    summary_task = asyncio.create_task(_call_summarizer(summarizer, request))
    pending = {summary_task}
    abort_task: Optional["asyncio.Task[Any]"] = None
    if abort_signal is not None:
        abort_task = asyncio.create_task(abort_signal.wait())
        pending.add(abort_task)
    try:
        done, _ = await asyncio.wait(
            pending,
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        signal.set()
        summary_task.cancel()
        raise
    finally:
        if abort_task is not None:
            abort_task.cancel()
            # Drop the waiter from the caller's event before returning
            await asyncio.wait({abort_task})

    if summary_task not in done:
        aborted = abort_task is not None and abort_task in done
        signal.set()
        summary_task.cancel()
        summary_task.add_done_callback(_consume_late_result)
        if aborted:
            error = SummarizationError(
                "Summarization aborted by caller",
                reason="aborted",
                evicted_count=evicted_count,
            )
        else:
            error = SummarizationError(
                f"Summarization timed out after {timeout}s",
                reason="timeout",
                evicted_count=evicted_count,
            )
        return _record_failure(log, error)

    if summary_task.cancelled():
        return _record_failure(
            log,
            SummarizationError(
                "Summarizer task was cancelled",
                reason="cancelled",
                evicted_count=evicted_count,
            ),
        )

    exc = summary_task.exception()
    if exc is not None:
        return _record_failure(
            log,
            SummarizationError(
                f"{type(exc).__name__}: {exc}",
                reason="error",
                evicted_count=evicted_count,
            ),
            cause=exc,
        )

    outcome = summary_task.result()
    if isinstance(outcome, Message):
        outcome = SummaryOutcome(summary=outcome)

    if outcome is None or (isinstance(outcome, SummaryOutcome) and outcome.summary is None):
        log.info(
            "[ContextWindow] Summarizer returned no summary, old messages dropped",
            extra={"event": "summary.empty", "old_messages": evicted_count},
        )
        return SummaryAttempt()

    if not isinstance(outcome, SummaryOutcome) or not isinstance(outcome.summary, Message):
        return _record_failure(
            log,
            SummarizationError(
                f"Summarizer returned an unsupported value ({type(outcome).__name__})",
                reason="invalid",
                evicted_count=evicted_count,
            ),
        )

    cost = outcome.summary_cost
    if cost is None:
        try:
            cost = await resolve_cost(outcome.summary, token_counter)
        except TokenCountError as e:
            return _record_failure(
                log,
                SummarizationError(
                    f"Summary cost could not be counted: {e.message}",
                    reason="invalid",
                    evicted_count=evicted_count,
                ),
                cause=e,
            )
    elif isinstance(cost, bool) or not isinstance(cost, int) or cost < 0:
        return _record_failure(
            log,
            SummarizationError(
                f"Summarizer returned an invalid summary cost ({cost!r})",
                reason="invalid",
                evicted_count=evicted_count,
            ),
        )

    if cost > remaining_budget:
        log.warning(
            "[ContextWindow] Summary does not fit the remaining budget, discarded",
            extra={
                "event": "summary.over_budget",
                "summary_tokens": cost,
                "remaining_budget": remaining_budget,
            },
        )
        return SummaryAttempt()

    log.info(
        "[ContextWindow] Summary created",
        extra={
            "event": "summary.created",
            "old_messages": evicted_count,
            "summary_tokens": cost,
            "summary_preview": outcome.summary.content[:100],
        },
    )
    return SummaryAttempt(summary=outcome.summary, summary_cost=cost)


# =============================================================================
# Ready-made summarizers
# =============================================================================


class LLMClient(Protocol):
    """Protocol for LLM clients usable by LLMSummarizer."""

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 500,
        temperature: float = 0.3,
    ) -> str:
        ...


def build_basic_summary(messages: Sequence[Message]) -> str:
    """Create a deterministic summary without an LLM.

    Reports message counts per role and the first and last user topics.
    """
    if not messages:
        return "No earlier conversation history."

    user_count = sum(1 for m in messages if m.role == MessageRole.USER.value)
    assistant_count = sum(1 for m in messages if m.role == MessageRole.ASSISTANT.value)
    user_messages = [m.content for m in messages if m.role == MessageRole.USER.value]

    first_topic = user_messages[0][:200] if user_messages else "N/A"
    last_topic = user_messages[-1][:200] if len(user_messages) > 1 else first_topic

    return (
        f"Summary of earlier conversation ({len(messages)} messages):\n"
        f"- {user_count} user messages, {assistant_count} assistant responses\n"
        f'- Started with: "{first_topic}"\n'
        f'- Progressed to: "{last_topic}"'
    )


def render_transcript(messages: Sequence[Message], max_chars: int = 50000) -> str:
    """Render messages as a plain "Role: content" transcript."""
    parts = []
    for msg in messages:
        role_label = msg.role.capitalize() if msg.role else "Unknown"
        parts.append(f"{role_label}: {msg.content}")
    transcript = "\n\n".join(parts)
    if len(transcript) > max_chars:
        transcript = transcript[:max_chars] + "\n[Earlier messages truncated...]"
    return transcript


class BasicSummarizer:
    """Model-free summarizer built on build_basic_summary."""

    def __init__(
        self,
        role: str = MessageRole.SYSTEM.value,
        token_counter: Optional[TokenCounter] = None,
    ) -> None:
        self.role = role
        self.token_counter = token_counter or estimate_message_tokens

    async def __call__(self, request: SummarizationRequest) -> Optional[SummaryOutcome]:
        summary = Message(
            role=self.role,
            content=f"{SUMMARY_PREFIX}\n{build_basic_summary(request.evicted)}",
        )
        return SummaryOutcome(summary, await resolve_cost(summary, self.token_counter))


class LLMSummarizer:
    """Summarizer backed by an LLM client exposing ``generate``.

    The generation length is capped by both max_summary_tokens and the
    budget the window still has available.

    Attributes:
        llm_client: Client with an async generate(prompt, max_tokens, temperature)
        max_summary_tokens: Upper bound on summary length
        temperature: Sampling temperature
        role: Role given to the summary message

    Example:
        >>> summarizer = LLMSummarizer(llm_client, max_summary_tokens=400)
        >>> result = await compute_window(messages, ..., summarizer=summarizer)
    """

    PROMPT_TEMPLATE = """Summarize the following conversation in 2-3 concise paragraphs.
Focus on:
1. Main topics discussed
2. Key decisions or conclusions reached
3. Any action items or follow-ups mentioned

Conversation:
{transcript}

Summary:"""

    def __init__(
        self,
        llm_client: LLMClient,
        max_summary_tokens: int = 500,
        temperature: float = 0.3,
        role: str = MessageRole.SYSTEM.value,
        token_counter: Optional[TokenCounter] = None,
        max_transcript_chars: int = 50000,
    ) -> None:
        self.llm_client = llm_client
        self.max_summary_tokens = max_summary_tokens
        self.temperature = temperature
        self.role = role
        self.token_counter = token_counter or estimate_message_tokens
        self.max_transcript_chars = max_transcript_chars

    @classmethod
    def from_settings(cls, settings: Any, llm_client: LLMClient, **kwargs: Any) -> "LLMSummarizer":
        """Create the summarizer from ContextClipSettings.

        Summary costs default to the heuristic estimator configured by
        settings.window.chars_per_token.
        """
        kwargs.setdefault("token_counter", make_estimator(settings.window.chars_per_token))
        return cls(
            llm_client,
            max_summary_tokens=settings.summarization.max_summary_tokens,
            temperature=settings.summarization.temperature,
            **kwargs,
        )

    def build_prompt(self, messages: Sequence[Message]) -> str:
        return self.PROMPT_TEMPLATE.format(
            transcript=render_transcript(messages, self.max_transcript_chars)
        )

    async def __call__(self, request: SummarizationRequest) -> Optional[SummaryOutcome]:
        max_tokens = min(self.max_summary_tokens, request.remaining_budget)
        if max_tokens <= 0 or not request.evicted:
            return None

        text = await self.llm_client.generate(
            prompt=self.build_prompt(request.evicted),
            max_tokens=max_tokens,
            temperature=self.temperature,
        )
        text = (text or "").strip()
        if not text:
            return None

        summary = Message(role=self.role, content=f"{SUMMARY_PREFIX}\n{text}")
        return SummaryOutcome(summary, await resolve_cost(summary, self.token_counter))


__all__ = [
    "SUMMARY_PREFIX",
    "SummarizationRequest",
    "SummaryOutcome",
    "Summarizer",
    "SummaryAttempt",
    "request_summary",
    "LLMClient",
    "build_basic_summary",
    "render_transcript",
    "BasicSummarizer",
    "LLMSummarizer",
]
