"""Schemas for the DigiLocker authorize/callback legs and result sessions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from docverify.schemas.verification import LockerSnapshot


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthSession(BaseModel):
    """Pending authorization, keyed by its state token until the callback."""

    state: str
    code_verifier: str
    user_id: str
    callback_url: str
    created_at: datetime = Field(default_factory=_utcnow)


class ResultSession(BaseModel):
    """Completed locker fetch, handed to the mobile client exactly once."""

    session_id: str
    access_token: str
    extracted_data: LockerSnapshot = Field(default_factory=LockerSnapshot)
    created_at: datetime = Field(default_factory=_utcnow)


class InitiateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_url: str = Field(
        ..., alias="authUrl", description="DigiLocker consent URL to open in a browser."
    )


class OAuthCallbackPayload(BaseModel):
    """Payload sent by clients that complete the exchange themselves."""

    code: str = Field(..., min_length=1, description="Authorization code returned by DigiLocker.")
    state: str = Field(..., min_length=1, description="Opaque state token issued on initiate.")


class CallbackOutcome(BaseModel):
    """Terminal result of a callback, rendered as a deep link or JSON."""

    status: str
    session_id: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    callback_url: Optional[str] = None
    flow_state: Optional[str] = None


class ResultSessionResponse(BaseModel):
    """Body returned to the mobile client; serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    access_token: str
    extracted_data: LockerSnapshot = Field(..., alias="extractedData")


__all__ = [
    "AuthSession",
    "CallbackOutcome",
    "InitiateResponse",
    "OAuthCallbackPayload",
    "ResultSession",
    "ResultSessionResponse",
]
