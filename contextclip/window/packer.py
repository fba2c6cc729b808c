"""Budget packing: admit regular messages into the remaining token budget.

Two admission policies exist and the caller picks one per call:

    EXHAUSTIVE_GREEDY: newest to oldest, admit anything that still fits
        and keep scanning after a miss. A large message does not block a
        smaller, older one.
    PREFIX_STOP: oldest to newest, stop at the first message that does
        not fit; it and everything newer are rejected.

Both accept an exact fit (running + cost <= ceiling).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Union

from contextclip.core.exceptions import ConfigurationError
from contextclip.window.messages import Message
from contextclip.window.tokens import TokenCounter, resolve_cost

logger = logging.getLogger(__name__)

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


class AdmissionPolicy(str, Enum):
    """Admission policy used by the packer."""
    EXHAUSTIVE_GREEDY = "exhaustive_greedy"
    PREFIX_STOP = "prefix_stop"

    @classmethod
    def parse(cls, value: Union["AdmissionPolicy", str]) -> "AdmissionPolicy":
        """Accept a member or its (case/hyphen-insensitive) name."""
        if isinstance(value, cls):
            return value
        normalized = str(value).lower().strip().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise ConfigurationError(
                f"Unknown admission policy '{value}'",
                config_key="admission_policy",
                validation_details=f"expected one of: {valid}",
            ) from None


@dataclass
class BudgetLedger:
    """Running token total against a ceiling.

    Attributes:
        ceiling: Maximum tokens available to header, summary and admitted messages
        running: Tokens consumed so far (overhead, system header, admitted)
    """
    ceiling: int
    running: int = 0

    @property
    def remaining(self) -> int:
        return self.ceiling - self.running

    def fits(self, cost: int) -> bool:
        return self.running + cost <= self.ceiling

    def charge(self, cost: int) -> None:
        self.running += cost

    def reserve(self, cost: int) -> None:
        """Lower the ceiling, e.g. for an accepted summary."""
        self.ceiling -= cost


@dataclass
class PackResult:
    """Outcome of packing.

    Attributes:
        admitted: Admitted messages in chronological order
        rejected: Rejected messages in chronological order
        admitted_tokens: Total cost of the admitted messages
    """
    admitted: list[Message] = field(default_factory=list)
    rejected: list[Message] = field(default_factory=list)
    admitted_tokens: int = 0


def _log_rejection(
    log: LoggerLike,
    message: Message,
    cost: int,
    ledger: BudgetLedger,
    policy: AdmissionPolicy,
) -> None:
    log.debug(
        "[ContextWindow] Message exceeds token limit",
        extra={
            "event": "window.rejected",
            "message_id": message.id,
            "message_tokens": cost,
            "running_total": ledger.running,
            "ceiling": ledger.ceiling,
            "policy": policy.value,
        },
    )


async def pack_exhaustive_greedy(
    candidates: Sequence[Message],
    ledger: BudgetLedger,
    token_counter: Optional[TokenCounter] = None,
    log: Optional[LoggerLike] = None,
) -> PackResult:
    """Admit every candidate that fits, scanning newest to oldest.

    Args:
        candidates: Candidate messages in chronological order
        ledger: Budget ledger, charged in place
        token_counter: Optional counter for messages without token_count
        log: Logger for per-message diagnostics

    Returns:
        PackResult with both lists in chronological order
    """
    log = log or logger
    result = PackResult()

    for message in reversed(candidates):
        cost = await resolve_cost(message, token_counter)
        if ledger.fits(cost):
            ledger.charge(cost)
            result.admitted.append(message)
            result.admitted_tokens += cost
        else:
            _log_rejection(log, message, cost, ledger, AdmissionPolicy.EXHAUSTIVE_GREEDY)
            result.rejected.append(message)

    result.admitted.reverse()
    result.rejected.reverse()
    return result


async def pack_prefix_stop(
    candidates: Sequence[Message],
    ledger: BudgetLedger,
    token_counter: Optional[TokenCounter] = None,
    log: Optional[LoggerLike] = None,
) -> PackResult:
    """Admit the longest chronological prefix of candidates that fits.

    Messages after the first miss are rejected without being costed.

    Args:
        candidates: Candidate messages in chronological order
        ledger: Budget ledger, charged in place
        token_counter: Optional counter for messages without token_count
        log: Logger for per-message diagnostics

    Returns:
        PackResult with both lists in chronological order
    """
    log = log or logger
    result = PackResult()

    for index, message in enumerate(candidates):
        cost = await resolve_cost(message, token_counter)
        if not ledger.fits(cost):
            _log_rejection(log, message, cost, ledger, AdmissionPolicy.PREFIX_STOP)
            result.rejected.extend(candidates[index:])
            break
        ledger.charge(cost)
        result.admitted.append(message)
        result.admitted_tokens += cost

    return result


async def pack(
    candidates: Sequence[Message],
    ledger: BudgetLedger,
    policy: Union[AdmissionPolicy, str],
    token_counter: Optional[TokenCounter] = None,
    log: Optional[LoggerLike] = None,
) -> PackResult:
    """Pack candidates with the given policy."""
    policy = AdmissionPolicy.parse(policy)
    if policy is AdmissionPolicy.EXHAUSTIVE_GREEDY:
        return await pack_exhaustive_greedy(candidates, ledger, token_counter, log)
    return await pack_prefix_stop(candidates, ledger, token_counter, log)


__all__ = [
    "AdmissionPolicy",
    "BudgetLedger",
    "PackResult",
    "pack_exhaustive_greedy",
    "pack_prefix_stop",
    "pack",
]
