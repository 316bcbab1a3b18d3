"""Exception taxonomy for the identity verification pipeline."""

from __future__ import annotations

from typing import Optional


class VerificationError(Exception):
    """Base class for all pipeline errors."""


class InputError(VerificationError):
    """Raised when a required field is missing or malformed."""


class SessionNotFound(VerificationError):
    """Raised when a state or session id is unknown, expired or already consumed."""


class UpstreamError(VerificationError):
    """Raised when DigiLocker answers with a non-2xx status or a malformed body."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExtractionFailure(VerificationError):
    """No document number could be recognised in the OCR text."""


class MatchFailure(VerificationError):
    """Normalized numbers differ beyond the fuzzy and partial thresholds."""


class ImageFormatError(VerificationError):
    """Raised for zero-length or structurally truncated images."""


class InvalidTransition(VerificationError):
    """Raised when the locker flow attempts a move its state machine forbids."""


__all__ = [
    "ExtractionFailure",
    "ImageFormatError",
    "InputError",
    "InvalidTransition",
    "MatchFailure",
    "SessionNotFound",
    "UpstreamError",
    "VerificationError",
]
