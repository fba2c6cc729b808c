"""Message and result types for the context window.

Messages are immutable values owned by the caller. The window pipeline
never mutates them; it only selects, reorders and drops them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from contextclip.window.packer import AdmissionPolicy
    from contextclip.window.selector import HeaderSource


class MessageRole(str, Enum):
    """Well-known conversation roles.

    Message.role is a plain string so providers with extra roles still
    work; compare against these members for the common ones.
    """
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    FUNCTION = "function"


@dataclass(frozen=True)
class Message:
    """A single conversation message.

    Attributes:
        role: Sender role ("system", "user", "assistant", ...)
        content: Message text
        token_count: Precomputed cost; takes precedence over any token counter
        id: Opaque identifier, only used for diagnostics
    """
    role: str
    content: str = ""
    token_count: Optional[int] = None
    id: Optional[Any] = None

    @property
    def is_system(self) -> bool:
        return self.role == MessageRole.SYSTEM.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Create a Message from a provider-style dictionary.

        Accepts both snake_case and camelCase keys for the token count
        and the identifier.
        """
        token_count = data.get("token_count", data.get("tokenCount"))
        message_id = data.get("id", data.get("message_id", data.get("messageId")))
        role = data.get("role", MessageRole.USER.value)
        if isinstance(role, MessageRole):
            role = role.value
        return cls(
            role=role,
            content=data.get("content") or "",
            token_count=token_count,
            id=message_id,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary, omitting unset optional fields."""
        result: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.token_count is not None:
            result["token_count"] = self.token_count
        if self.id is not None:
            result["id"] = self.id
        return result


@dataclass
class WindowResult:
    """Result of a token-aware window computation.

    Attributes:
        context: Messages to send, oldest to newest (header, summary, admitted)
        remaining_budget: Tokens left under the ceiling after packing
        evicted: Regular messages left out, oldest to newest
        summary: Summary message inserted after the header, if any
        summary_cost: Tokens reserved for the summary
        policy: Admission policy used for packing
        header_source: Where the header came from
    """
    context: list[Message] = field(default_factory=list)
    remaining_budget: int = 0
    evicted: list[Message] = field(default_factory=list)
    summary: Optional[Message] = None
    summary_cost: int = 0
    policy: Optional["AdmissionPolicy"] = None
    header_source: Optional["HeaderSource"] = None

    @property
    def evicted_count(self) -> int:
        return len(self.evicted)

    @property
    def summarized(self) -> bool:
        return self.summary is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "context": [m.to_dict() for m in self.context],
            "remaining_budget": self.remaining_budget,
            "evicted": [m.to_dict() for m in self.evicted],
            "evicted_count": self.evicted_count,
            "summary": self.summary.to_dict() if self.summary else None,
            "summary_cost": self.summary_cost,
            "policy": self.policy.value if self.policy else None,
            "header_source": self.header_source.value if self.header_source else None,
        }


@dataclass
class SimpleWindowResult:
    """Result of the token-unaware window.

    Attributes:
        context: Header followed by the most recent regular messages
        evicted: Regular messages outside the window, oldest to newest
    """
    context: list[Message] = field(default_factory=list)
    evicted: list[Message] = field(default_factory=list)

    @property
    def evicted_count(self) -> int:
        return len(self.evicted)


__all__ = [
    "MessageRole",
    "Message",
    "WindowResult",
    "SimpleWindowResult",
]
