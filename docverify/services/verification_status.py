"""Persist per-document verdicts and the caller-asserted final approval."""

from __future__ import annotations

import logging
from typing import Optional

from docverify.clients.user_records import UserRecordRepository
from docverify.core.errors import InputError
from docverify.schemas.verification import (
    FinalizeVerificationResponse,
    VerdictStatus,
    VerificationStatusDetail,
)

logger = logging.getLogger(__name__)


class VerificationStatusAggregator:
    """
    Record the outcome of a verification round on the user record.

    Approval is taken from the caller's ``final_status`` as-is; stored
    per-document flags are not re-derived from verdicts here.
    """

    def __init__(self, users: UserRecordRepository) -> None:
        self._users = users

    def finalize(
        self,
        user_id: Optional[str],
        final_status: str,
        per_document_status: Optional[VerificationStatusDetail] = None,
    ) -> FinalizeVerificationResponse:
        if not user_id:
            raise InputError("User ID is required")
        user = self._users.get(user_id)

        if per_document_status is not None:
            user.verification_status = per_document_status.model_copy()

        approved = final_status == VerdictStatus.VERIFIED.value
        if approved:
            user.is_approved = True
        user = self._users.save(user)

        if approved:
            logger.info("User %s approved", user_id)
            message = "User verified successfully."
        else:
            logger.info(
                "Partial verification recorded for user %s: %s",
                user_id,
                user.verification_status.model_dump(),
            )
            message = "Partial verification status recorded."
        return FinalizeVerificationResponse(
            approved=approved, message=message, recorded_at=user.updated_at
        )


__all__ = ["VerificationStatusAggregator"]
