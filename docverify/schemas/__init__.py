"""Public schema exports."""

from .auth import (
    AuthSession,
    CallbackOutcome,
    InitiateResponse,
    OAuthCallbackPayload,
    ResultSession,
    ResultSessionResponse,
)
from .verification import (
    AadhaarData,
    AuthoritativeRecord,
    DocumentType,
    DrivingLicenceData,
    ExtractedIdentityData,
    FinalizeVerificationRequest,
    FinalizeVerificationResponse,
    LockerMatchReport,
    LockerMatchRequest,
    LockerSnapshot,
    LockerStatus,
    OcrVerificationResult,
    PanCardData,
    Verdict,
    VerdictStatus,
    VerificationStatusDetail,
)

__all__ = [
    "AadhaarData",
    "AuthSession",
    "AuthoritativeRecord",
    "CallbackOutcome",
    "DocumentType",
    "DrivingLicenceData",
    "ExtractedIdentityData",
    "FinalizeVerificationRequest",
    "FinalizeVerificationResponse",
    "InitiateResponse",
    "LockerMatchReport",
    "LockerMatchRequest",
    "LockerSnapshot",
    "LockerStatus",
    "OAuthCallbackPayload",
    "OcrVerificationResult",
    "PanCardData",
    "ResultSession",
    "ResultSessionResponse",
    "Verdict",
    "VerdictStatus",
    "VerificationStatusDetail",
]
