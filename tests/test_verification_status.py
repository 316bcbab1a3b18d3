try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from docverify.clients import SQLiteStore, UserRecordRepository
from docverify.core.errors import InputError
from docverify.models.user import UserRecord
from docverify.schemas import VerificationStatusDetail
from docverify.services.verification_status import VerificationStatusAggregator


@pytest.fixture()
def users(db_path) -> UserRecordRepository:
    repository = UserRecordRepository(SQLiteStore(db_path))
    repository.save(UserRecord(user_id="user-1"))
    return repository


def test_verified_status_approves_user(users) -> None:
    aggregator = VerificationStatusAggregator(users)

    response = aggregator.finalize(
        "user-1", "VERIFIED", VerificationStatusDetail(dl=True, pan=True, aadhar=True)
    )

    assert response.approved is True
    assert response.message == "User verified successfully."
    user = users.get("user-1")
    assert user.is_approved is True
    assert user.verification_status == VerificationStatusDetail(dl=True, pan=True, aadhar=True)


def test_other_status_records_detail_without_approval(users) -> None:
    aggregator = VerificationStatusAggregator(users)

    response = aggregator.finalize(
        "user-1", "PARTIAL", VerificationStatusDetail(dl=True)
    )

    assert response.approved is False
    assert response.message == "Partial verification status recorded."
    user = users.get("user-1")
    assert user.is_approved is False
    assert user.verification_status.dl is True
    assert user.verification_status.pan is False


def test_non_verified_status_does_not_revoke_existing_approval(users) -> None:
    aggregator = VerificationStatusAggregator(users)
    aggregator.finalize("user-1", "VERIFIED")

    aggregator.finalize("user-1", "FAILED", VerificationStatusDetail())

    assert users.get("user-1").is_approved is True


def test_missing_detail_keeps_previous_record(users) -> None:
    aggregator = VerificationStatusAggregator(users)
    aggregator.finalize("user-1", "PARTIAL", VerificationStatusDetail(pan=True))

    aggregator.finalize("user-1", "PARTIAL")

    assert users.get("user-1").verification_status.pan is True


@pytest.mark.parametrize("user_id", ["", None, "unknown"])
def test_unknown_or_missing_user_is_input_error(users, user_id) -> None:
    aggregator = VerificationStatusAggregator(users)

    with pytest.raises(InputError):
        aggregator.finalize(user_id, "VERIFIED")
