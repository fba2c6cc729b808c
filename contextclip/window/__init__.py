"""Context window selection for contextclip.

Selects which part of a growing conversation is sent to the model on each
turn, under a hard token budget, keeping instructions and preferring
recent messages.

Key Components:
    - Message: Immutable conversation message
    - select_header / select_retention: Header choice and recency window
    - AdmissionPolicy / pack: Token budget packing
    - request_summary / LLMSummarizer: Optional summarization of old messages
    - compute_window / simple_window: Window assembly
    - ContextWindowManager: Settings-driven facade

Example:
    >>> from contextclip.window import compute_window, AdmissionPolicy, Message
    >>>
    >>> result = await compute_window(
    ...     messages,
    ...     instructions=Message("system", "Be brief.", token_count=4),
    ...     max_recent_messages=10,
    ...     max_context_tokens=4000,
    ...     policy=AdmissionPolicy.EXHAUSTIVE_GREEDY,
    ... )
"""

from contextclip.window.messages import (
    MessageRole,
    Message,
    WindowResult,
    SimpleWindowResult,
)

from contextclip.window.tokens import (
    TokenCounter,
    estimate_tokens,
    estimate_message_tokens,
    make_estimator,
    resolve_cost,
)

from contextclip.window.selector import (
    HeaderSource,
    Header,
    RetentionSelection,
    select_header,
    regular_messages,
    split_recent,
    select_retention,
)

from contextclip.window.packer import (
    AdmissionPolicy,
    BudgetLedger,
    PackResult,
    pack,
    pack_exhaustive_greedy,
    pack_prefix_stop,
)

from contextclip.window.summarizer import (
    SUMMARY_PREFIX,
    SummarizationRequest,
    SummaryOutcome,
    Summarizer,
    SummaryAttempt,
    request_summary,
    build_basic_summary,
    BasicSummarizer,
    LLMSummarizer,
)

from contextclip.window.assembler import (
    compute_window,
    simple_window,
)

from contextclip.window.manager import (
    ContextStrategy,
    ContextWindowManager,
)

__all__ = [
    # Messages
    "MessageRole",
    "Message",
    "WindowResult",
    "SimpleWindowResult",
    # Tokens
    "TokenCounter",
    "estimate_tokens",
    "estimate_message_tokens",
    "make_estimator",
    "resolve_cost",
    # Selector
    "HeaderSource",
    "Header",
    "RetentionSelection",
    "select_header",
    "regular_messages",
    "split_recent",
    "select_retention",
    # Packer
    "AdmissionPolicy",
    "BudgetLedger",
    "PackResult",
    "pack",
    "pack_exhaustive_greedy",
    "pack_prefix_stop",
    # Summarizer
    "SUMMARY_PREFIX",
    "SummarizationRequest",
    "SummaryOutcome",
    "Summarizer",
    "SummaryAttempt",
    "request_summary",
    "build_basic_summary",
    "BasicSummarizer",
    "LLMSummarizer",
    # Assembly
    "compute_window",
    "simple_window",
    # Manager
    "ContextStrategy",
    "ContextWindowManager",
]
