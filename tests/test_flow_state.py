try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from docverify.core.errors import InvalidTransition
from docverify.schemas import LockerStatus
from docverify.services.flow_state import (
    TRANSITIONS,
    LockerFlow,
    LockerFlowState,
    LockerRetryPolicy,
    RetryState,
)


def test_happy_path_transitions() -> None:
    flow = LockerFlow()
    assert not flow.is_terminal
    with pytest.raises(InvalidTransition):
        flow.require_terminal()

    flow.advance(LockerFlowState.TOKEN_EXCHANGED)
    flow.advance(LockerFlowState.DOCUMENTS_FETCHED)
    flow.advance(LockerFlowState.VERIFIED)

    assert flow.is_terminal
    assert flow.require_terminal() is LockerFlowState.VERIFIED
    assert flow.history == [
        LockerFlowState.INITIATED,
        LockerFlowState.TOKEN_EXCHANGED,
        LockerFlowState.DOCUMENTS_FETCHED,
        LockerFlowState.VERIFIED,
    ]


def test_degraded_fetch_goes_straight_to_verified() -> None:
    flow = LockerFlow()
    flow.advance(LockerFlowState.TOKEN_EXCHANGED)

    assert flow.advance(LockerFlowState.VERIFIED) is LockerFlowState.VERIFIED


@pytest.mark.parametrize(
    ("path", "illegal"),
    [
        ([], LockerFlowState.VERIFIED),
        ([], LockerFlowState.DOCUMENTS_FETCHED),
        ([LockerFlowState.TOKEN_EXCHANGED], LockerFlowState.FAILED),
        ([LockerFlowState.FAILED], LockerFlowState.TOKEN_EXCHANGED),
        (
            [LockerFlowState.TOKEN_EXCHANGED, LockerFlowState.DOCUMENTS_FETCHED, LockerFlowState.RETRY_PENDING],
            LockerFlowState.MANUAL_REQUIRED,
        ),
    ],
)
def test_illegal_transitions_raise(path, illegal) -> None:
    flow = LockerFlow()
    for state in path:
        flow.advance(state)

    with pytest.raises(InvalidTransition):
        flow.advance(illegal)


def test_terminal_states_have_no_exits() -> None:
    for state in (
        LockerFlowState.RETRY_PENDING,
        LockerFlowState.MANUAL_REQUIRED,
        LockerFlowState.VERIFIED,
        LockerFlowState.FAILED,
    ):
        assert not TRANSITIONS[state]


def test_first_empty_fetch_asks_for_retry() -> None:
    policy = LockerRetryPolicy(max_retries=1)

    state, retry = policy.on_documents(RetryState(), documents_found=False)

    assert state is LockerFlowState.RETRY_PENDING
    assert retry == RetryState(retry_count=1, locker_status=LockerStatus.NONE)


def test_second_empty_fetch_escalates_to_manual_upload() -> None:
    policy = LockerRetryPolicy(max_retries=1)

    state, retry = policy.on_documents(RetryState(retry_count=1), documents_found=False)

    assert state is LockerFlowState.MANUAL_REQUIRED
    assert retry.retry_count == 1
    assert retry.locker_status is LockerStatus.MANUAL_UPLOAD


def test_manual_upload_freezes_retry_count() -> None:
    policy = LockerRetryPolicy(max_retries=1)
    current = RetryState(retry_count=1, locker_status=LockerStatus.MANUAL_UPLOAD)

    state, retry = policy.on_documents(current, documents_found=False)

    assert state is LockerFlowState.MANUAL_REQUIRED
    assert retry == current


def test_documents_found_resets_retry_state() -> None:
    policy = LockerRetryPolicy(max_retries=1)
    current = RetryState(retry_count=1, locker_status=LockerStatus.MANUAL_UPLOAD)

    state, retry = policy.on_documents(current, documents_found=True)

    assert state is LockerFlowState.VERIFIED
    assert retry == RetryState(retry_count=0, locker_status=LockerStatus.VERIFIED)


def test_retry_threshold_is_configurable() -> None:
    policy = LockerRetryPolicy(max_retries=3)
    retry = RetryState()
    states = []
    for _ in range(4):
        state, retry = policy.on_documents(retry, documents_found=False)
        states.append(state)

    assert states == [LockerFlowState.RETRY_PENDING] * 3 + [LockerFlowState.MANUAL_REQUIRED]


def test_negative_threshold_rejected() -> None:
    with pytest.raises(ValueError):
        LockerRetryPolicy(max_retries=-1)
