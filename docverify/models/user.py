"""
Domain model for the user fields the verification pipeline reads and writes.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from docverify.schemas.verification import (
    AuthoritativeRecord,
    LockerStatus,
    VerificationStatusDetail,
)


class UserRecord(BaseModel):
    """Represents a user record stored in the shared key-value table."""

    user_id: str = Field(..., description="Application-level user identifier.")
    name: Optional[str] = None
    license_number: Optional[str] = None
    pan_number: Optional[str] = None
    aadhar_number: Optional[str] = None
    access_token_encrypted: Optional[str] = Field(
        None, description="DigiLocker access token, encrypted at rest."
    )
    retry_count: int = Field(0, ge=0)
    locker_status: LockerStatus = LockerStatus.NONE
    is_approved: bool = False
    verification_status: VerificationStatusDetail = Field(
        default_factory=VerificationStatusDetail
    )
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def authoritative_record(self) -> AuthoritativeRecord:
        return AuthoritativeRecord(
            license_number=self.license_number,
            pan_number=self.pan_number,
            aadhar_number=self.aadhar_number,
            name=self.name,
        )


__all__ = ["UserRecord"]
