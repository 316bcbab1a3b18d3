"""Read/write access to the user fields owned by the verification pipeline."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from docverify.clients.sqlite_store import SQLiteStore
from docverify.core.errors import InputError
from docverify.models.user import UserRecord

logger = logging.getLogger(__name__)

_SORT_KEY = "profile#verification"


def _partition_key(user_id: str) -> str:
    return f"user#{user_id}"


class UserRecordRepository:
    """Persist :class:`UserRecord` documents in the shared record table."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def find(self, user_id: str) -> UserRecord | None:
        item = self._store.get_item(
            partition_key=_partition_key(user_id), sort_key=_SORT_KEY
        )
        if not item:
            return None
        return UserRecord.model_validate(item["record"])

    def get(self, user_id: str) -> UserRecord:
        record = self.find(user_id)
        if record is None:
            raise InputError(f"User {user_id} not found.")
        return record

    def save(self, record: UserRecord) -> UserRecord:
        record.updated_at = datetime.now(timezone.utc)
        self._store.put_item(
            {
                "pk": _partition_key(record.user_id),
                "sk": _SORT_KEY,
                "record": record.model_dump(mode="json"),
            }
        )
        logger.debug("Saved user record %s", record.user_id)
        return record


__all__ = ["UserRecordRepository"]
