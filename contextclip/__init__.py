"""contextclip - context window management for LLM conversations.

Chooses which messages of a conversation are sent to a language model on
each turn:
- Instructions or system messages are always kept
- Only the most recent N messages are eligible
- Eligible messages are packed into a hard token budget
- Messages evicted by age can be replaced by a single summary
"""

__version__ = "1.0.0"

from contextclip.core.exceptions import (
    ContextClipError,
    ConfigurationError,
    TokenCountError,
    SummarizationError,
)
from contextclip.window import (
    AdmissionPolicy,
    ContextStrategy,
    ContextWindowManager,
    Message,
    SimpleWindowResult,
    SummarizationRequest,
    SummaryOutcome,
    WindowResult,
    compute_window,
    simple_window,
)

__all__ = [
    "ContextClipError",
    "ConfigurationError",
    "TokenCountError",
    "SummarizationError",
    "AdmissionPolicy",
    "ContextStrategy",
    "ContextWindowManager",
    "Message",
    "SimpleWindowResult",
    "SummarizationRequest",
    "SummaryOutcome",
    "WindowResult",
    "compute_window",
    "simple_window",
]
