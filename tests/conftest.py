"""Pytest configuration shared across the suite."""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def db_path(tmp_path) -> str:
    """Per-test SQLite file shared by every store a test builds."""
    return str(tmp_path / "docverify.db")
