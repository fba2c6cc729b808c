"""Token cost resolution for messages.

Cost precedence, used for every message the window touches:
    1. message.token_count when it is set
    2. the token counter, awaited when it returns an awaitable
    3. zero

A counter that raises, or returns something other than a non-negative
integer, is fatal for the call and surfaces as TokenCountError.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable, Optional, Union

from contextclip.config.settings import DEFAULT_CHARS_PER_TOKEN
from contextclip.core.exceptions import TokenCountError
from contextclip.window.messages import Message

TokenCounter = Callable[[Message], Union[int, Awaitable[int]]]


def estimate_tokens(text: str, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Rough token estimate for a string (ceil of chars / chars_per_token)."""
    if not text:
        return 0
    return -(-len(text) // chars_per_token)


def estimate_message_tokens(message: Message) -> int:
    """Heuristic token counter usable as a default TokenCounter."""
    return estimate_tokens(message.content)


def make_estimator(chars_per_token: int) -> TokenCounter:
    """Build a heuristic counter with a custom characters-per-token ratio."""
    if chars_per_token < 1:
        raise ValueError("chars_per_token must be positive")

    def _count(message: Message) -> int:
        return estimate_tokens(message.content, chars_per_token)

    return _count


def _validate_cost(message: Message, value: object, source: str) -> int:
    # bool is an int subclass but never a meaningful cost
    if isinstance(value, bool) or not isinstance(value, int):
        raise TokenCountError(
            f"{source} returned a non-integer cost ({type(value).__name__})",
            message_id=message.id,
            role=message.role,
        )
    if value < 0:
        raise TokenCountError(
            f"{source} returned a negative cost ({value})",
            message_id=message.id,
            role=message.role,
        )
    return value


async def resolve_cost(message: Message, token_counter: Optional[TokenCounter] = None) -> int:
    """Resolve the token cost of a message.

    Args:
        message: Message to cost
        token_counter: Optional counter, sync or async

    Returns:
        Non-negative integer cost

    Raises:
        TokenCountError: If the counter fails or returns an invalid cost
    """
    if message.token_count is not None:
        return _validate_cost(message, message.token_count, "token_count")
    if token_counter is None:
        return 0

    try:
        value = token_counter(message)
        if inspect.isawaitable(value):
            value = await value
    except TokenCountError:
        raise
    except Exception as e:
        raise TokenCountError(
            f"Token counter failed: {type(e).__name__}: {e}",
            message_id=message.id,
            role=message.role,
        ) from e

    return _validate_cost(message, value, "Token counter")


__all__ = [
    "TokenCounter",
    "estimate_tokens",
    "estimate_message_tokens",
    "make_estimator",
    "resolve_cost",
]
