"""Photo -> OCR text -> extracted fields -> verdict."""

from __future__ import annotations

import logging
from typing import Protocol

from docverify.clients.gemini import GeminiModelError
from docverify.core.errors import ImageFormatError
from docverify.schemas.verification import (
    AuthoritativeRecord,
    DocumentType,
    OcrVerificationResult,
    VerdictStatus,
)
from docverify.services.extraction import DocumentExtractionEngine
from docverify.services.image_guard import validate_image
from docverify.services.reconciliation import ReconciliationEngine

logger = logging.getLogger(__name__)


class OcrEngine(Protocol):
    async def transcribe_document(self, image_bytes: bytes, *, mime_type: str) -> str:
        ...


class OcrVerificationService:
    """Verify one uploaded document photo against an authoritative record."""

    def __init__(
        self,
        ocr_engine: OcrEngine,
        *,
        extraction_engine: DocumentExtractionEngine | None = None,
        reconciliation_engine: ReconciliationEngine | None = None,
    ) -> None:
        self._ocr = ocr_engine
        self._extraction = extraction_engine or DocumentExtractionEngine()
        self._reconciliation = reconciliation_engine or ReconciliationEngine()

    async def verify_document(
        self,
        image_bytes: bytes,
        document_type: DocumentType,
        record: AuthoritativeRecord,
    ) -> OcrVerificationResult:
        try:
            mime_type = validate_image(image_bytes)
        except ImageFormatError as exc:
            return self._failed(f"Image rejected: {exc}")

        try:
            raw_text = await self._ocr.transcribe_document(image_bytes, mime_type=mime_type)
        except GeminiModelError as exc:
            logger.error("OCR engine failed for %s: %s", document_type.value, exc)
            return self._failed(f"OCR service failed: {exc}")

        extracted = self._extraction.extract(raw_text, document_type)
        verdict = self._reconciliation.compare(
            extracted.number, record.number_for(document_type), document_type
        )
        logger.info(
            "OCR verdict for %s: %s (%s)",
            document_type.value,
            verdict.status.value,
            verdict.reason,
        )
        return OcrVerificationResult(
            status=verdict.status, reason=verdict.reason, ocr_data=extracted
        )

    @staticmethod
    def _failed(reason: str) -> OcrVerificationResult:
        return OcrVerificationResult(status=VerdictStatus.FAILED, reason=reason)


__all__ = ["OcrEngine", "OcrVerificationService"]
