"""
Document, verdict and snapshot models shared by extraction and reconciliation.

Extracted data is a tagged union keyed on ``document_type`` so every consumer
receives a model whose optional fields are explicit for that document kind.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class DocumentType(str, Enum):
    DL = "DL"
    PAN = "PAN"
    AADHAAR = "AADHAAR"


class VerdictStatus(str, Enum):
    VERIFIED = "VERIFIED"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    FAILED = "FAILED"


class LockerStatus(str, Enum):
    NONE = "NONE"
    VERIFIED = "VERIFIED"
    MANUAL_UPLOAD = "MANUAL_UPLOAD"


class DrivingLicenceData(BaseModel):
    """Fields recovered from a driving licence."""

    document_type: Literal["DL"] = "DL"
    number: Optional[str] = None
    name: Optional[str] = None
    date_of_birth: Optional[str] = None


class PanCardData(BaseModel):
    """Fields recovered from a PAN card."""

    document_type: Literal["PAN"] = "PAN"
    number: Optional[str] = None
    name: Optional[str] = None
    date_of_birth: Optional[str] = None


class AadhaarData(BaseModel):
    """Aadhaar cards only yield a (possibly masked) number."""

    document_type: Literal["AADHAAR"] = "AADHAAR"
    number: Optional[str] = None
    name: None = None
    date_of_birth: None = None


ExtractedIdentityData = Annotated[
    Union[DrivingLicenceData, PanCardData, AadhaarData],
    Field(discriminator="document_type"),
]


class Verdict(BaseModel):
    """Outcome of comparing one extracted number with an authoritative one."""

    status: VerdictStatus
    reason: str
    document_type: DocumentType


class AuthoritativeRecord(BaseModel):
    """
    Numbers the caller vouches for, typically the locker snapshot returned by
    the result session or the user's declared profile.

    ``number`` overrides the type-specific fields when present; a snapshot's
    ``documents`` list is consulted last.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    number: Optional[str] = None
    license_number: Optional[str] = Field(None, alias="licenseNumber")
    pan_number: Optional[str] = Field(None, alias="panNumber")
    aadhar_number: Optional[str] = Field(None, alias="aadharNumber")
    name: Optional[str] = None
    documents: list[ExtractedIdentityData] = Field(default_factory=list)

    def number_for(self, document_type: DocumentType) -> Optional[str]:
        if self.number:
            return self.number
        declared = {
            DocumentType.DL: self.license_number,
            DocumentType.PAN: self.pan_number,
            DocumentType.AADHAAR: self.aadhar_number,
        }[document_type]
        if declared:
            return declared
        for document in self.documents:
            if document.document_type == document_type and document.number:
                return document.number
        return None


class LockerSnapshot(BaseModel):
    """Identity data gathered from DigiLocker during a single callback."""

    name: Optional[str] = None
    date_of_birth: Optional[str] = None
    documents: list[ExtractedIdentityData] = Field(default_factory=list)

    def number_for(self, document_type: DocumentType) -> Optional[str]:
        for document in self.documents:
            if document.document_type == document_type:
                return document.number
        return None


class VerificationStatusDetail(BaseModel):
    """Per-document verification flags persisted on the user record."""

    dl: bool = False
    pan: bool = False
    aadhar: bool = False


class OcrVerificationResult(BaseModel):
    """Response body for an uploaded document photo."""

    success: bool = True
    status: VerdictStatus
    reason: str
    ocr_data: Optional[ExtractedIdentityData] = None


class FinalizeVerificationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    status: str
    detailed_status: Optional[VerificationStatusDetail] = Field(
        None, alias="detailedStatus"
    )


class FinalizeVerificationResponse(BaseModel):
    success: bool = True
    approved: bool
    message: str
    recorded_at: datetime


class LockerMatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    snapshot: LockerSnapshot


class LockerMatchReport(BaseModel):
    """Exact comparison of locker numbers against the user's declared numbers."""

    success: bool
    message: str
    dl_matched: bool = False
    pan_matched: bool = False
    snapshot: LockerSnapshot


__all__ = [
    "AadhaarData",
    "AuthoritativeRecord",
    "DocumentType",
    "DrivingLicenceData",
    "ExtractedIdentityData",
    "FinalizeVerificationRequest",
    "FinalizeVerificationResponse",
    "LockerMatchReport",
    "LockerMatchRequest",
    "LockerSnapshot",
    "LockerStatus",
    "OcrVerificationResult",
    "PanCardData",
    "Verdict",
    "VerdictStatus",
    "VerificationStatusDetail",
]
