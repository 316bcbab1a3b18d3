"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from docverify.clients import (
    AuthSessionStore,
    DigiLockerClient,
    GeminiClient,
    ResultSessionStore,
    SQLiteStore,
    UserRecordRepository,
)
from docverify.core.config import get_settings
from docverify.services import (
    DigiLockerFlowController,
    LockerRetryPolicy,
    LockerTokenCipher,
    OcrVerificationService,
    VerificationStatusAggregator,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_digilocker_client() -> DigiLockerClient:
    """Create a singleton DigiLocker client."""
    return DigiLockerClient(_settings().digilocker)


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the shared SQLite record store."""
    return SQLiteStore(_settings().store_db_path)


@lru_cache()
def get_user_repository() -> UserRecordRepository:
    return UserRecordRepository(get_sqlite_store())


@lru_cache()
def get_auth_session_store() -> AuthSessionStore:
    settings = _settings()
    return AuthSessionStore(
        settings.store_db_path, ttl_seconds=settings.oauth.state_ttl_seconds
    )


@lru_cache()
def get_result_session_store() -> ResultSessionStore:
    settings = _settings()
    return ResultSessionStore(
        settings.store_db_path, ttl_seconds=settings.oauth.result_ttl_seconds
    )


@lru_cache()
def get_token_cipher() -> LockerTokenCipher:
    """Provide symmetric encryption for stored access tokens."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.digilocker.client_secret
    return LockerTokenCipher(secret=secret)


@lru_cache()
def get_gemini_client() -> GeminiClient:
    """Provide the vision OCR client."""
    return GeminiClient(_settings().gemini)


def get_flow_controller() -> DigiLockerFlowController:
    """Build the DigiLocker flow controller from shared clients."""
    settings = _settings()
    return DigiLockerFlowController(
        client=get_digilocker_client(),
        auth_sessions=get_auth_session_store(),
        result_sessions=get_result_session_store(),
        users=get_user_repository(),
        token_cipher=get_token_cipher(),
        oauth_settings=settings.oauth,
        retry_policy=LockerRetryPolicy(settings.oauth.max_locker_retries),
    )


def get_ocr_verification_service() -> OcrVerificationService:
    return OcrVerificationService(get_gemini_client())


def get_status_aggregator() -> VerificationStatusAggregator:
    return VerificationStatusAggregator(get_user_repository())


__all__ = [
    "get_auth_session_store",
    "get_digilocker_client",
    "get_flow_controller",
    "get_gemini_client",
    "get_ocr_verification_service",
    "get_result_session_store",
    "get_sqlite_store",
    "get_status_aggregator",
    "get_token_cipher",
    "get_user_repository",
]
