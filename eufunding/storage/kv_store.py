"""
Key-value store for JSON blobs.

Keys are namespaced by prefix ("partner:", "proposal:", ...) so a single
table holds every kind of record.
"""

import json
import logging
from typing import Any, List, Optional

from eufunding.core.errors import StoreError
from .db import Database


logger = logging.getLogger(__name__)


class KVStore:
    """
    Persistent key → JSON value store.

    Usage:
        kv = KVStore(Database("eufunding.db"))
        kv.set("partner:123", {"name": "ACME"})
        kv.get("partner:123")
    """

    def __init__(self, db: Database):
        self.db = db

    def set(self, key: str, value: Any) -> None:
        """Insert or replace the value stored under key."""
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StoreError(f"KV set error: value for {key!r} is not JSON-serializable: {e}") from e

        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=CURRENT_TIMESTAMP;
                """,
                (key, payload),
            )

        logger.debug(f"KV set: {key}")

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when the key is absent."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ? LIMIT 1",
                (key,)
            ).fetchone()

        if not row:
            return None
        return json.loads(row["value"])

    def delete(self, key: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

        logger.debug(f"KV delete: {key}")

    def get_by_prefix(self, prefix: str) -> List[Any]:
        """Return all values whose key starts with prefix, ordered by key."""
        with self.db.get_connection() as conn:
            rows = conn.execute(
                "SELECT value FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix)
            ).fetchall()

        return [json.loads(row["value"]) for row in rows]
