"""Tests for window assembly.

Tests cover:
- The reference scenarios (system header, equal costs, heavy instructions,
  empty conversation, summary placement)
- Budget, header and partition properties
- Summarizer fallback to clip mode
- The simple (message-count) window
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, MagicMock

from contextclip.core.exceptions import ConfigurationError, TokenCountError
from contextclip.window.assembler import compute_window, simple_window
from contextclip.window.messages import Message
from contextclip.window.packer import AdmissionPolicy
from contextclip.window.selector import HeaderSource
from contextclip.window.summarizer import SummaryOutcome

GREEDY = AdmissionPolicy.EXHAUSTIVE_GREEDY
PREFIX = AdmissionPolicy.PREFIX_STOP


async def window(messages, instructions=None, **overrides):
    kwargs = {
        "max_recent_messages": 10,
        "max_context_tokens": 1000,
        "policy": GREEDY,
    }
    kwargs.update(overrides)
    return await compute_window(messages, instructions, **kwargs)


class TestScenarios:
    """End-to-end window computations."""

    @pytest.mark.asyncio
    async def test_system_header_with_recency_window(self, system_message, make_messages):
        """Test 1 system + 19 regular messages with a window of 10."""
        conversation = make_messages(19)

        result = await window([system_message] + conversation)

        assert len(result.context) <= 11
        assert result.context[0] is system_message
        assert result.context[1:] == conversation[-10:]
        assert result.evicted == conversation[:9]
        assert result.evicted_count == 9
        assert result.header_source is HeaderSource.SYSTEM_MESSAGES

    @pytest.mark.asyncio
    async def test_twenty_regular_messages_evicts_ten(self, system_message, conversation):
        result = await window([system_message] + conversation)

        assert len(result.context) == 11
        assert result.evicted_count == 10

    @pytest.mark.asyncio
    async def test_equal_cost_messages(self, equal_cost_messages):
        """Test 5 x 25 tokens against a budget of 60."""
        result = await window(equal_cost_messages, max_context_tokens=60)

        assert [m.id for m in result.context] == ["D", "E"]
        assert result.evicted_count == 3
        assert result.remaining_budget == 7

    @pytest.mark.asyncio
    async def test_heavy_instructions_kept(self, make_messages):
        """Test that instructions are never evicted, even when expensive."""
        instructions = Message("system", "Long instructions", token_count=50, id="instr")
        conversation = make_messages(3)

        result = await window(conversation, instructions, max_context_tokens=70)

        assert result.context[0] is instructions
        assert result.context[1:] == conversation
        assert result.remaining_budget == 70 - 50 - 3 - 15
        assert result.header_source is HeaderSource.INSTRUCTIONS

    @pytest.mark.asyncio
    async def test_instructions_over_budget_still_included(self, make_messages):
        instructions = Message("system", "Huge", token_count=500)

        result = await window(make_messages(2), instructions, max_context_tokens=100)

        assert result.context == [instructions]
        assert result.evicted_count == 2
        assert result.remaining_budget < 0

    @pytest.mark.asyncio
    async def test_empty_conversation(self):
        result = await window([])

        assert result.context == []
        assert result.evicted_count == 0
        assert result.remaining_budget == 1000

    @pytest.mark.asyncio
    async def test_empty_conversation_with_instructions(self, instructions):
        """Test that an empty conversation reserves only the instructions cost."""
        result = await window(None, instructions)

        assert result.context == []
        assert result.remaining_budget == 990
        assert result.header_source is HeaderSource.NONE

    @pytest.mark.asyncio
    async def test_summary_follows_header(self, system_message, conversation, summary_message):
        """Test summary placement and the evicted slice."""
        summarizer = AsyncMock(return_value=SummaryOutcome(summary_message, summary_cost=20))

        result = await window([system_message] + conversation, summarizer=summarizer)

        assert result.context[0] is system_message
        assert result.context[1] is summary_message
        assert result.context[2:] == conversation[10:]
        assert [m for m in result.context if m is summary_message] == [summary_message]
        request = summarizer.await_args.args[0]
        assert list(request.evicted) == conversation[:10]
        assert result.evicted == conversation[:10]
        assert result.summary_cost == 20
        assert result.summarized


class TestBudget:
    """Budget accounting properties."""

    @pytest.mark.asyncio
    async def test_admitted_never_exceed_ceiling(self, system_message, make_messages, counter):
        messages = [system_message] + [
            Message("user", "x" * (i * 13 % 97), id=i) for i in range(30)
        ]

        result = await window(
            messages, max_recent_messages=30, max_context_tokens=120, token_counter=counter
        )

        admitted = [m for m in result.context if m is not system_message]
        used = 3 + 10 + sum(counter(m) for m in admitted)
        assert used <= 120
        assert result.remaining_budget == 120 - used

    @pytest.mark.asyncio
    async def test_summary_cost_reduces_budget(self, make_messages, summary_message):
        """Test that the summary cost is reserved before packing."""
        conversation = make_messages(6, tokens=10)
        summarizer = AsyncMock(return_value=SummaryOutcome(summary_message, summary_cost=20))

        result = await window(
            conversation, max_recent_messages=4, max_context_tokens=50, summarizer=summarizer
        )

        # 3 overhead + 20 summary leaves room for two 10-token messages
        assert result.context == [summary_message] + conversation[-2:]
        assert result.evicted == conversation[:4]
        assert result.remaining_budget == 7

    @pytest.mark.asyncio
    async def test_summarizer_receives_remaining_budget(self, system_message, conversation):
        summarizer = AsyncMock(return_value=None)

        await window([system_message] + conversation, summarizer=summarizer)

        assert summarizer.await_args.args[0].remaining_budget == 1000 - 3 - 10

    @pytest.mark.asyncio
    async def test_prefix_stop_policy(self, equal_cost_messages):
        result = await window(equal_cost_messages, max_context_tokens=60, policy="prefix_stop")

        assert [m.id for m in result.context] == ["A", "B"]
        assert [m.id for m in result.evicted] == ["C", "D", "E"]
        assert result.policy is PREFIX

    @pytest.mark.asyncio
    async def test_instructions_cost_from_counter(self, make_messages, counter):
        instructions = Message("system", "A" * 40)

        result = await window(make_messages(1), instructions, token_counter=counter)

        assert result.remaining_budget == 1000 - 10 - 3 - 5


class TestHeader:
    """Header inclusion properties."""

    @pytest.mark.asyncio
    async def test_instructions_replace_system_messages(self, system_message, instructions, make_messages):
        conversation = make_messages(4)

        result = await window([system_message] + conversation, instructions)

        assert result.context[0] is instructions
        assert system_message not in result.context
        assert system_message not in result.evicted

    @pytest.mark.asyncio
    async def test_all_system_messages_kept_in_order(self, make_messages):
        first = Message("system", "first", token_count=1)
        second = Message("system", "second", token_count=1)
        conversation = make_messages(4)

        result = await window([first] + conversation[:2] + [second] + conversation[2:])

        assert result.context[:2] == [first, second]
        assert result.context[2:] == conversation


class TestPartition:
    """Every regular message is either kept or evicted."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("policy", [GREEDY, PREFIX])
    async def test_context_and_evicted_partition_regular(self, policy, system_message, make_messages):
        conversation = make_messages(12, tokens=30)

        result = await window(
            [system_message] + conversation,
            max_recent_messages=8,
            max_context_tokens=150,
            policy=policy,
        )

        kept = [m for m in result.context if m is not system_message]
        assert sorted(m.id for m in kept + result.evicted) == sorted(m.id for m in conversation)
        assert not set(m.id for m in kept) & set(m.id for m in result.evicted)

    @pytest.mark.asyncio
    async def test_zero_window_evicts_all_regular(self, system_message, make_messages):
        conversation = make_messages(5)

        result = await window([system_message] + conversation, max_recent_messages=0)

        assert result.context == [system_message]
        assert result.evicted == conversation

    @pytest.mark.asyncio
    async def test_large_window_no_age_eviction(self, make_messages):
        conversation = make_messages(5)
        summarizer = AsyncMock()

        result = await window(conversation, max_recent_messages=50, summarizer=summarizer)

        assert result.context == conversation
        assert result.evicted == []
        summarizer.assert_not_called()

    @pytest.mark.asyncio
    async def test_deterministic(self, system_message, make_messages, counter):
        messages = [system_message] + make_messages(15)

        first = await window(messages, max_context_tokens=40, token_counter=counter)
        second = await window(messages, max_context_tokens=40, token_counter=counter)

        assert first == second


class TestSummarizerFallback:
    """Summarizer failures degrade to clip mode."""

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_clip(self, system_message, conversation):
        summarizer = AsyncMock(side_effect=RuntimeError("model down"))

        result = await window([system_message] + conversation, summarizer=summarizer)
        clipped = await window([system_message] + conversation)

        assert result.context == clipped.context
        assert result.evicted == clipped.evicted
        assert result.remaining_budget == clipped.remaining_budget
        assert result.summary is None

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_clip(self, conversation):
        async def slow_summarizer(request):
            await asyncio.sleep(10)

        result = await window(conversation, summarizer=slow_summarizer, summary_timeout=0.01)

        assert result.summary is None
        assert result.context == conversation[10:]

    @pytest.mark.asyncio
    async def test_shared_abort_signal_survives_timeout(self, conversation, summary_message):
        """Test that one call timing out does not affect the next one."""
        abort_signal = asyncio.Event()

        async def slow_summarizer(request):
            await asyncio.sleep(10)

        first = await window(
            conversation,
            summarizer=slow_summarizer,
            abort_signal=abort_signal,
            summary_timeout=0.01,
        )
        second = await window(
            conversation,
            summarizer=AsyncMock(return_value=SummaryOutcome(summary_message, summary_cost=5)),
            abort_signal=abort_signal,
        )

        assert first.summary is None
        assert not abort_signal.is_set()
        assert second.summary is summary_message

    @pytest.mark.asyncio
    async def test_uncountable_summary_falls_back_to_clip(self, conversation):
        summarizer = AsyncMock(return_value=SummaryOutcome(Message("system", "summary")))

        result = await window(
            conversation,
            summarizer=summarizer,
            token_counter=MagicMock(side_effect=RuntimeError("tokenizer offline")),
        )

        assert result.summary is None
        assert result.context == conversation[10:]

    @pytest.mark.asyncio
    async def test_clip_mode_logged(self, conversation, caplog):
        with caplog.at_level(logging.INFO, logger="contextclip"):
            await window(conversation)

        skipped = [r for r in caplog.records if getattr(r, "event", None) == "summary.skipped"]
        assert len(skipped) == 1
        assert skipped[0].old_messages == 10

    @pytest.mark.asyncio
    async def test_injected_logger_used(self, conversation):
        log = MagicMock()

        await window(conversation, logger=log)

        events = [c.kwargs["extra"]["event"] for c in log.debug.call_args_list]
        assert events[0] == "window.start"
        assert events[-1] == "window.complete"
        log.info.assert_called_once()


class TestValidation:
    """Invalid arguments."""

    @pytest.mark.asyncio
    async def test_missing_budget(self, conversation):
        with pytest.raises(ConfigurationError) as exc_info:
            await window(conversation, max_context_tokens=None)

        assert exc_info.value.config_key == "max_context_tokens"

    @pytest.mark.asyncio
    async def test_negative_window(self, conversation):
        with pytest.raises(ConfigurationError):
            await window(conversation, max_recent_messages=-1)

    @pytest.mark.asyncio
    async def test_unknown_policy(self, conversation):
        with pytest.raises(ConfigurationError):
            await window(conversation, policy="random")

    @pytest.mark.asyncio
    async def test_counter_failure_propagates(self):
        messages = [Message("user", "hello")]

        with pytest.raises(TokenCountError):
            await window(messages, token_counter=MagicMock(side_effect=OSError("offline")))


class TestSimpleWindow:
    """Tests for the message-count window."""

    def test_keeps_header_and_tail(self, system_message, conversation):
        result = simple_window([system_message] + conversation, max_recent_messages=5)

        assert result.context == [system_message] + conversation[-5:]
        assert result.evicted == conversation[:-5]
        assert result.evicted_count == 15

    def test_instructions_header(self, system_message, instructions, make_messages):
        conversation = make_messages(3)

        result = simple_window([system_message] + conversation, instructions, max_recent_messages=10)

        assert result.context == [instructions] + conversation
        assert result.evicted == []

    def test_ignores_token_counts(self):
        conversation = [Message("user", "big", token_count=10**6) for _ in range(3)]

        result = simple_window(conversation, max_recent_messages=2)

        assert result.context == conversation[1:]

    def test_empty(self):
        result = simple_window(None, max_recent_messages=3)

        assert result.context == []
        assert result.evicted_count == 0
