"""
State machine for a single DigiLocker callback and the retry/escalation policy.

A callback starts in ``INITIATED`` and ends in exactly one terminal state:

    INITIATED         -> TOKEN_EXCHANGED | FAILED
    TOKEN_EXCHANGED   -> DOCUMENTS_FETCHED | VERIFIED (document fetch degraded)
    DOCUMENTS_FETCHED -> RETRY_PENDING | MANUAL_REQUIRED | VERIFIED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, List

from docverify.core.errors import InvalidTransition
from docverify.schemas.verification import LockerStatus

logger = logging.getLogger(__name__)


class LockerFlowState(str, Enum):
    INITIATED = "INITIATED"
    TOKEN_EXCHANGED = "TOKEN_EXCHANGED"
    DOCUMENTS_FETCHED = "DOCUMENTS_FETCHED"
    RETRY_PENDING = "RETRY_PENDING"
    MANUAL_REQUIRED = "MANUAL_REQUIRED"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"


TRANSITIONS: Dict[LockerFlowState, FrozenSet[LockerFlowState]] = {
    LockerFlowState.INITIATED: frozenset(
        {LockerFlowState.TOKEN_EXCHANGED, LockerFlowState.FAILED}
    ),
    LockerFlowState.TOKEN_EXCHANGED: frozenset(
        {LockerFlowState.DOCUMENTS_FETCHED, LockerFlowState.VERIFIED}
    ),
    LockerFlowState.DOCUMENTS_FETCHED: frozenset(
        {
            LockerFlowState.RETRY_PENDING,
            LockerFlowState.MANUAL_REQUIRED,
            LockerFlowState.VERIFIED,
        }
    ),
    LockerFlowState.RETRY_PENDING: frozenset(),
    LockerFlowState.MANUAL_REQUIRED: frozenset(),
    LockerFlowState.VERIFIED: frozenset(),
    LockerFlowState.FAILED: frozenset(),
}

# Redirect status carried to the mobile client for each terminal state.
TERMINAL_STATUS: Dict[LockerFlowState, str] = {
    LockerFlowState.VERIFIED: "success",
    LockerFlowState.RETRY_PENDING: "retry_required",
    LockerFlowState.MANUAL_REQUIRED: "manual_required",
    LockerFlowState.FAILED: "error",
}


@dataclass
class LockerFlow:
    """Tracks the states a callback has passed through."""

    state: LockerFlowState = LockerFlowState.INITIATED
    history: List[LockerFlowState] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.state)

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.state]

    def require_terminal(self) -> LockerFlowState:
        """Guard for code that reports an outcome to the client."""
        if not self.is_terminal:
            raise InvalidTransition(f"Flow still in non-terminal state {self.state.value}")
        return self.state

    def advance(self, target: LockerFlowState) -> LockerFlowState:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot move from {self.state.value} to {target.value}")
        logger.debug("Locker flow %s -> %s", self.state.value, target.value)
        self.state = target
        self.history.append(target)
        return target


@dataclass(frozen=True)
class RetryState:
    retry_count: int = 0
    locker_status: LockerStatus = LockerStatus.NONE


class LockerRetryPolicy:
    """Decide what a fetch outcome means for the user's retry state."""

    def __init__(self, max_retries: int = 1) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self.max_retries = max_retries

    def on_documents(self, current: RetryState, *, documents_found: bool) -> tuple[LockerFlowState, RetryState]:
        if documents_found:
            return LockerFlowState.VERIFIED, RetryState(0, LockerStatus.VERIFIED)
        if current.locker_status is LockerStatus.MANUAL_UPLOAD:
            return LockerFlowState.MANUAL_REQUIRED, current
        if current.retry_count < self.max_retries:
            return LockerFlowState.RETRY_PENDING, replace(
                current, retry_count=current.retry_count + 1
            )
        return LockerFlowState.MANUAL_REQUIRED, replace(
            current, locker_status=LockerStatus.MANUAL_UPLOAD
        )


__all__ = [
    "LockerFlow",
    "LockerFlowState",
    "LockerRetryPolicy",
    "RetryState",
    "TERMINAL_STATUS",
    "TRANSITIONS",
]
