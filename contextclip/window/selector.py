"""Retention selection: header extraction and the recency window.

The header is chosen by a small pure function so the precedence rule
(instructions supersede system messages) can be tested on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from contextclip.core.exceptions import ConfigurationError
from contextclip.window.messages import Message


class HeaderSource(str, Enum):
    """Where the non-evictable header comes from."""
    INSTRUCTIONS = "instructions"
    SYSTEM_MESSAGES = "system_messages"
    NONE = "none"


@dataclass(frozen=True)
class Header:
    """The non-evictable leading part of the context.

    Attributes:
        source: Which variant produced the header
        messages: Header messages in order
    """
    source: HeaderSource
    messages: tuple[Message, ...] = ()


@dataclass
class RetentionSelection:
    """Conversation split into header and regular messages.

    Attributes:
        header: Selected header
        regular: Non-system messages in original order
        old: Regular messages older than the recency window
        recent: The last max_recent_messages regular messages
    """
    header: Header
    regular: list[Message] = field(default_factory=list)
    old: list[Message] = field(default_factory=list)
    recent: list[Message] = field(default_factory=list)


def select_header(
    messages: Sequence[Message],
    instructions: Optional[Message] = None,
) -> Header:
    """Choose the header.

    Instructions win when given; otherwise every system message of the
    conversation forms the header in its original order.
    """
    if instructions is not None:
        return Header(HeaderSource.INSTRUCTIONS, (instructions,))

    system_messages = tuple(m for m in messages if m.is_system)
    if system_messages:
        return Header(HeaderSource.SYSTEM_MESSAGES, system_messages)
    return Header(HeaderSource.NONE)


def regular_messages(messages: Sequence[Message]) -> list[Message]:
    """Non-system messages in original order.

    System messages never become regular: they are either the header or,
    when instructions supersede them, dropped.
    """
    return [m for m in messages if not m.is_system]


def validate_max_recent(max_recent_messages: int) -> int:
    """Reject a recency window that is not a non-negative integer."""
    if isinstance(max_recent_messages, bool) or not isinstance(max_recent_messages, int):
        raise ConfigurationError(
            "max_recent_messages must be an integer",
            config_key="max_recent_messages",
            validation_details=f"got {type(max_recent_messages).__name__}",
        )
    if max_recent_messages < 0:
        raise ConfigurationError(
            "max_recent_messages must be >= 0",
            config_key="max_recent_messages",
            validation_details=f"got {max_recent_messages}",
        )
    return max_recent_messages


def split_recent(
    regular: Sequence[Message],
    max_recent_messages: int,
) -> tuple[list[Message], list[Message]]:
    """Split regular messages into (old, recent).

    recent is the tail of length max_recent_messages; a window of zero
    leaves every message in old.
    """
    validate_max_recent(max_recent_messages)
    cut = max(0, len(regular) - max_recent_messages)
    return list(regular[:cut]), list(regular[cut:])


def select_retention(
    messages: Sequence[Message],
    instructions: Optional[Message],
    max_recent_messages: int,
) -> RetentionSelection:
    """Partition a conversation into header, old and recent messages."""
    header = select_header(messages, instructions)
    regular = regular_messages(messages)
    old, recent = split_recent(regular, max_recent_messages)
    return RetentionSelection(header=header, regular=regular, old=old, recent=recent)


__all__ = [
    "HeaderSource",
    "Header",
    "RetentionSelection",
    "select_header",
    "regular_messages",
    "validate_max_recent",
    "split_recent",
    "select_retention",
]
