"""Expose constructed client wrappers."""

from .digilocker import DigiLockerClient
from .gemini import GeminiClient
from .session_store import AuthSessionStore, ResultSessionStore, ResultSessionSweeper
from .sqlite_store import SQLiteStore
from .user_records import UserRecordRepository

__all__ = [
    "AuthSessionStore",
    "DigiLockerClient",
    "GeminiClient",
    "ResultSessionStore",
    "ResultSessionSweeper",
    "SQLiteStore",
    "UserRecordRepository",
]
