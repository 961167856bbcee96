"""
Lightweight SQLite database wrapper.

Handles:
- Database initialization
- Schema creation
- Connection management

Two tables: `opportunities` (keyed by call_id) and `kv_store`, a generic
key → JSON blob table used for partners, proposals and funding schemes.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
import logging

from eufunding.core.errors import StoreError


logger = logging.getLogger(__name__)


class Database:
    """
    SQLite database wrapper.

    Usage:
        db = Database("eufunding.db")
        with db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM opportunities")
    """

    def __init__(self, path: str = "eufunding.db"):
        """
        Initialize database.

        Args:
            path: Path to SQLite database file
        """
        self.path = path

        # Ensure parent directory exists
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        # Initialize schema
        self._init_db()

        logger.info(f"Database initialized: {self.path}")

    def _init_db(self):
        """Create database schema if it doesn't exist."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS opportunities (
                    call_id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    url TEXT NOT NULL,
                    description TEXT,
                    source TEXT,
                    status TEXT,
                    deadline TEXT,
                    opening_date TEXT,
                    budget TEXT,
                    funding_entity TEXT,
                    topic TEXT,
                    ccm_id TEXT,
                    last_enriched TEXT,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                );
                """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_opportunities_status
                ON opportunities(status);
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                );
                """
            )

            logger.debug("Database schema created/verified")

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection context manager.

        Automatically commits on success, closes on exit.

        Yields:
            sqlite3.Connection

        Raises:
            StoreError: wrapping any sqlite3.Error raised inside the block
        """
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row  # Enable column access by name

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database error: {e}")
            raise StoreError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
