"""
Cross-validation of OCR-extracted document numbers against trusted records.
"""

from __future__ import annotations

import logging
from typing import Optional

from docverify.core.errors import ExtractionFailure, MatchFailure
from docverify.schemas.verification import (
    DocumentType,
    LockerMatchReport,
    LockerSnapshot,
    Verdict,
    VerdictStatus,
)
from docverify.services.extraction import normalize_number

logger = logging.getLogger(__name__)

FUZZY_MAX_DISTANCE = 2
PARTIAL_MIN_LENGTH = 6
AADHAAR_TAIL = 4
AADHAAR_FULL_LENGTH = 12


def levenshtein_distance(first: str, second: str) -> int:
    """Case-insensitive edit distance using a rolling two-row table."""
    first, second = first.lower(), second.lower()
    previous = list(range(len(second) + 1))
    for i, left in enumerate(first, start=1):
        current = [i] + [0] * len(second)
        for j, right in enumerate(second, start=1):
            cost = 0 if left == right else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[-1]


class ReconciliationEngine:
    """Produce a :class:`Verdict` for one document number."""

    def __init__(
        self,
        *,
        fuzzy_max_distance: int = FUZZY_MAX_DISTANCE,
        partial_min_length: int = PARTIAL_MIN_LENGTH,
    ) -> None:
        self._fuzzy_max_distance = fuzzy_max_distance
        self._partial_min_length = partial_min_length

    def compare(
        self,
        extracted_number: Optional[str],
        authoritative_number: Optional[str],
        document_type: DocumentType,
    ) -> Verdict:
        document_type = DocumentType(document_type)
        ocr = normalize_number(extracted_number)
        record = normalize_number(authoritative_number)
        logger.info(
            "Comparing %s numbers (ocr length=%d, record length=%d)",
            document_type.value,
            len(ocr),
            len(record),
        )
        try:
            if document_type is DocumentType.AADHAAR:
                reason = self._compare_aadhaar(ocr, record)
            else:
                reason = self._compare_identifier(ocr, record, document_type)
        except (ExtractionFailure, MatchFailure) as exc:
            return Verdict(
                status=VerdictStatus.FAILED, reason=str(exc), document_type=document_type
            )
        return Verdict(
            status=VerdictStatus.VERIFIED, reason=reason, document_type=document_type
        )

    @staticmethod
    def _compare_aadhaar(ocr: str, record: str) -> str:
        tail = record[-AADHAAR_TAIL:]
        if tail and ocr:
            if len(ocr) >= AADHAAR_FULL_LENGTH and ocr[-AADHAAR_TAIL:] == tail:
                return "Matched (last 4 digits)"
            if "X" in ocr:
                digits = "".join(ch for ch in ocr if ch.isdigit())
                if len(digits) >= AADHAAR_TAIL and digits[-AADHAAR_TAIL:] == tail:
                    return "Matched (masked, last 4 digits)"
            if len(ocr) == AADHAAR_TAIL and ocr == tail:
                return "Matched (last 4 digits found)"
        raise MatchFailure(f"Aadhaar number mismatch (record ends with: {tail})")

    def _compare_identifier(self, ocr: str, record: str, document_type: DocumentType) -> str:
        if not ocr:
            raise ExtractionFailure("Could not extract document number from image")
        if ocr == record:
            return "Matched (exact)"

        distance = levenshtein_distance(ocr, record)
        if distance <= self._fuzzy_max_distance:
            return f"Matched (fuzzy, distance {distance})"

        if document_type is DocumentType.DL and record:
            shorter = min(len(ocr), len(record))
            if (ocr in record or record in ocr) and shorter > self._partial_min_length:
                return "Matched (partial number)"

        raise MatchFailure(f"Document number mismatch (OCR: {ocr}, record: {record})")


def match_locker_records(
    *,
    declared_license: Optional[str],
    declared_pan: Optional[str],
    snapshot: LockerSnapshot,
) -> LockerMatchReport:
    """Exact normalized comparison of locker numbers with a user's declared numbers."""
    declared_dl = normalize_number(declared_license)
    declared_pan_number = normalize_number(declared_pan)
    locker_dl = normalize_number(snapshot.number_for(DocumentType.DL))
    locker_pan = normalize_number(snapshot.number_for(DocumentType.PAN))

    dl_matched = bool(declared_dl and locker_dl and declared_dl == locker_dl)
    pan_matched = bool(declared_pan_number and locker_pan and declared_pan_number == locker_pan)

    messages = []
    if dl_matched:
        messages.append("Driving License Verified.")
    if pan_matched:
        messages.append("PAN Verified.")
    success = dl_matched or pan_matched
    return LockerMatchReport(
        success=success,
        message=" ".join(messages) if success else "Documents did not match our records.",
        dl_matched=dl_matched,
        pan_matched=pan_matched,
        snapshot=snapshot,
    )


__all__ = [
    "FUZZY_MAX_DISTANCE",
    "PARTIAL_MIN_LENGTH",
    "ReconciliationEngine",
    "levenshtein_distance",
    "match_locker_records",
]
