"""
Heuristic field extraction from raw OCR text.

Each document type has its own ``extract_*`` function taking the OCR text and
returning the typed fields for that document. Extraction never raises:
anything that cannot be recognised is returned as ``None``.
"""

from __future__ import annotations

import re
from typing import Callable, Dict, Iterable, Optional

from docverify.schemas.verification import (
    AadhaarData,
    DocumentType,
    DrivingLicenceData,
    ExtractedIdentityData,
    PanCardData,
)

_NON_TEXT = re.compile(r"[^A-Z0-9 ]")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")

_DATE = re.compile(r"\b(\d{2})[-/](\d{2})[-/](\d{4})\b")
# Used only on labelled lines, where OCR often breaks or swaps separators.
_LOOSE_DATE = re.compile(r"(\d{2})\s*[-/.]\s*(\d{2})\s*[-/.]\s*(\d{4})")
_DOB_LABEL = re.compile(r"\bDOB\b|Date\s+of\s+Birth", re.IGNORECASE)

_LICENCE_LABEL = re.compile(r"Licen[cs]e\s*(?:No|Number)", re.IGNORECASE)
_DL_NUMBER = re.compile(r"(?<![A-Z0-9])[A-Z]{2}[ -]?\d{2}[ -]?\d{4}[ -]?\d{0,9}(?!\d)")
_DL_NAME = re.compile(r"(?:Name|S/O|D/O|W/O)[:\s]+([A-Za-z ]+)", re.IGNORECASE)
_DL_MIN_LABELLED_LENGTH = 10
_DL_BOILERPLATE = frozenset(
    {
        "FORM",
        "DRIVING",
        "LICENCE",
        "LICENSE",
        "UNION",
        "INDIA",
        "STATE",
        "GOVT",
        "GOVERNMENT",
        "TRANSPORT",
        "DEPARTMENT",
        "VALID",
        "VALIDITY",
        "ISSUED",
        "ISSUE",
        "DATE",
        "BIRTH",
        "DOB",
        "NO",
        "DL",
        "ADDRESS",
        "BLOOD",
        "GROUP",
    }
)

_PAN_NUMBER = re.compile(r"[A-Z]{5}[\s.\-]?\d{4}[\s.\-]?[A-Z]")
_PAN_BOILERPLATE = ("INCOME", "TAX", "DEPARTMENT", "INDIA", "GOVT")

_AADHAAR_FULL = re.compile(r"\b\d{4} ?\d{4} ?\d{4}\b")
_AADHAAR_MASKED = re.compile(r"[X\d]{4} ?[X\d]{4} ?(\d{4})\b", re.IGNORECASE)
_AADHAAR_MASK_PREFIX = "X" * 8


def normalize_text(value: Optional[str]) -> str:
    """Trim, uppercase and keep only ``[A-Z0-9 ]``."""
    if not value:
        return ""
    return _NON_TEXT.sub("", value.strip().upper()).strip()


def normalize_number(value: Optional[str]) -> str:
    """Uppercase alphanumeric form used for every number comparison."""
    if not value:
        return ""
    return _NON_ALNUM.sub("", value.upper())


def _or_none(value: str) -> Optional[str]:
    return value or None


def _format_date(match: re.Match[str]) -> str:
    day, month, year = match.groups()
    return f"{day}-{month}-{year}"


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines()]


def find_date_of_birth(text: str, lines: Iterable[str]) -> Optional[str]:
    match = _DATE.search(text)
    if match:
        return _format_date(match)
    for line in lines:
        if _DOB_LABEL.search(line):
            labelled = _LOOSE_DATE.search(line)
            if labelled:
                return _format_date(labelled)
    return None


def extract_driving_licence(text: str) -> DrivingLicenceData:
    text = text or ""
    lines = _lines(text)

    number = None
    for line in lines:
        if _LICENCE_LABEL.search(line):
            candidate = normalize_number(re.split(r"[:.]", line)[-1])
            if len(candidate) >= _DL_MIN_LABELLED_LENGTH:
                number = candidate
                break
    if number is None:
        match = _DL_NUMBER.search(text)
        if match:
            number = match.group(0)

    name = None
    name_match = _DL_NAME.search(text)
    if name_match:
        name = _or_none(normalize_text(name_match.group(1)))
    if name is None:
        for line in lines:
            cleaned = re.sub(r"[^A-Z ]", "", line.upper()).strip()
            if len(cleaned) <= 3:
                continue
            if _DL_BOILERPLATE.intersection(cleaned.split()):
                continue
            name = cleaned
            break

    return DrivingLicenceData(
        number=_or_none(normalize_number(number)),
        name=name,
        date_of_birth=find_date_of_birth(text, lines),
    )


def extract_pan_card(text: str) -> PanCardData:
    text = text or ""
    lines = _lines(text)

    match = _PAN_NUMBER.search(text)
    number = match.group(0) if match else None

    name = None
    dob_index = next((i for i, line in enumerate(lines) if _DATE.search(line)), -1)
    if dob_index > 0:
        candidates = [
            line
            for line in lines[:dob_index]
            if normalize_text(line)
            and not any(word in line.upper() for word in _PAN_BOILERPLATE)
        ]
        if candidates:
            # The line right above the date is usually the father's name.
            name = candidates[-2] if len(candidates) >= 2 else candidates[-1]
    if name is None:
        name = next(
            (
                line
                for line in lines
                if re.fullmatch(r"[A-Z ]+", line) and len(line) > 4 and "TAX" not in line
            ),
            None,
        )

    date_match = _DATE.search(text)
    return PanCardData(
        number=_or_none(normalize_number(number)),
        name=_or_none(normalize_text(name)),
        date_of_birth=_format_date(date_match) if date_match else None,
    )


def extract_aadhaar(text: str) -> AadhaarData:
    text = text or ""
    full = _AADHAAR_FULL.search(text)
    if full:
        return AadhaarData(number=full.group(0).replace(" ", ""))
    masked = _AADHAAR_MASKED.search(text)
    if masked:
        return AadhaarData(number=_AADHAAR_MASK_PREFIX + masked.group(1))
    return AadhaarData()


class DocumentExtractionEngine:
    """Dispatch OCR text to the extractor registered for its document type."""

    def __init__(
        self,
        extractors: Optional[Dict[DocumentType, Callable[[str], ExtractedIdentityData]]] = None,
    ) -> None:
        self._extractors = extractors or {
            DocumentType.DL: extract_driving_licence,
            DocumentType.PAN: extract_pan_card,
            DocumentType.AADHAAR: extract_aadhaar,
        }

    def extract(self, ocr_text: Optional[str], document_type: DocumentType) -> ExtractedIdentityData:
        return self._extractors[DocumentType(document_type)](ocr_text or "")


__all__ = [
    "DocumentExtractionEngine",
    "extract_aadhaar",
    "extract_driving_licence",
    "extract_pan_card",
    "find_date_of_birth",
    "normalize_number",
    "normalize_text",
]
