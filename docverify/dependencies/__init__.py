"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_auth_session_store,
    get_digilocker_client,
    get_flow_controller,
    get_gemini_client,
    get_ocr_verification_service,
    get_result_session_store,
    get_sqlite_store,
    get_status_aggregator,
    get_token_cipher,
    get_user_repository,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
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
