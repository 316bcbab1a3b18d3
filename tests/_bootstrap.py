"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


_DEFAULT_ENV_VARS: dict[str, str] = {
    "DIGILOCKER_CLIENT_ID": "test-client-id",
    "DIGILOCKER_CLIENT_SECRET": "test-client-secret",
    "DIGILOCKER_REDIRECT_URI": "https://api.example.com/api/digilocker/callback",
    "DIGILOCKER_BASE_URL": "https://digilocker.example.com/public/oauth2",
    "TOKEN_ENCRYPTION_SECRET": "test-secret",
    "GEMINI_API_KEY": "",
    "STORE_DB_PATH": str(Path(tempfile.gettempdir()) / "docverify-tests.db"),
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)
