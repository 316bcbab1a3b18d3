"""Service layer exports."""

from .extraction import DocumentExtractionEngine
from .flow_state import LockerFlow, LockerFlowState, LockerRetryPolicy, RetryState
from .locker_flow import DigiLockerFlowController
from .ocr_verification import OcrVerificationService
from .reconciliation import ReconciliationEngine, levenshtein_distance
from .token_cipher import LockerTokenCipher
from .verification_status import VerificationStatusAggregator

__all__ = [
    "DigiLockerFlowController",
    "DocumentExtractionEngine",
    "LockerFlow",
    "LockerFlowState",
    "LockerRetryPolicy",
    "LockerTokenCipher",
    "OcrVerificationService",
    "ReconciliationEngine",
    "RetryState",
    "VerificationStatusAggregator",
    "levenshtein_distance",
]
