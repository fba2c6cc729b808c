"""Pytest fixtures for window tests."""

import pytest

from contextclip.config.settings import ContextClipSettings
from contextclip.window.messages import Message


def make_conversation(count, tokens=5, start=0):
    """Alternating user/assistant messages with fixed token counts."""
    return [
        Message(
            role="user" if i % 2 == 0 else "assistant",
            content=f"Message {i}",
            token_count=tokens,
            id=f"msg-{i}",
        )
        for i in range(start, start + count)
    ]


def char_counter(message):
    """Roughly one token per four characters."""
    return -(-len(message.content) // 4)


@pytest.fixture
def system_message():
    return Message(role="system", content="You are a helpful assistant.", token_count=10, id="sys-1")


@pytest.fixture
def instructions():
    return Message(role="system", content="Custom instructions", token_count=10, id="instr")


@pytest.fixture
def conversation():
    """Twenty alternating messages costing 5 tokens each."""
    return make_conversation(20)


@pytest.fixture
def equal_cost_messages():
    """Five messages costing 25 tokens each."""
    return [
        Message(role="user" if i % 2 == 0 else "assistant", content=letter * 100, token_count=25, id=letter)
        for i, letter in enumerate("ABCDE")
    ]


@pytest.fixture
def summary_message():
    return Message(role="system", content="[CONVERSATION SUMMARY]\nEarlier chat.", id="summary")


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return ContextClipSettings(
        _env_file=None,
        environment="test",
        window={"max_recent_messages": 10, "max_context_tokens": 1000},
    )


@pytest.fixture
def make_messages():
    """Factory fixture for alternating conversations."""
    return make_conversation


@pytest.fixture
def counter():
    return char_counter
