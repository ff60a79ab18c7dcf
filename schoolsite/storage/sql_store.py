"""
SQLAlchemy implementation of the DocumentStore interface.

Values live in a two-column key/value table. The same class backs the
client's Durable Local Cache and the server's document store; only the table
name and the raised error type differ.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Optional, Type

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from schoolsite.core.db import get_engine
from schoolsite.core.exceptions import LocalPersistError, PersistenceError, StorageError
from schoolsite.storage.base import DocumentStore

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqlKeyValueStore(DocumentStore):
    """
    Key/value table accessed through SQLAlchemy.

    Attributes:
        engine: SQLAlchemy engine
        table: Table name (created on first use)
    """

    error_class: Type[PersistenceError] = StorageError

    def __init__(self, url: Optional[str] = None, table: str = "kv_store", engine: Optional[Engine] = None):
        """
        Initialize the store.

        Args:
            url: SQLAlchemy URL (ignored when engine is given)
            table: Table name
            engine: Existing engine to reuse
        """
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.engine = engine or get_engine(url)
        self.table = table
        self._table_ready = False

    def _fail(self, action: str, key: str, error: Exception) -> PersistenceError:
        logger.error(f"{type(self).__name__} {action} failed for '{key}': {error}")
        return self.error_class(
            f"Could not {action} '{key}'",
            details={"table": self.table},
            original_error=error,
        )

    def _ensure_table(self, conn) -> None:
        if self._table_ready:
            return
        conn.execute(text(f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                store_key VARCHAR(255) PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at VARCHAR(40) NOT NULL
            )
        """))
        self._table_ready = True

    def read(self, key: str) -> Optional[str]:
        try:
            with self.engine.begin() as conn:
                self._ensure_table(conn)
                row = conn.execute(
                    text(f"SELECT value FROM {self.table} WHERE store_key = :key"),
                    {"key": key},
                ).fetchone()
        except SQLAlchemyError as e:
            raise self._fail("read", key, e) from e
        return row[0] if row else None

    def write(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise self.error_class("Stored values must be strings", details={"key": key})
        params = {"key": key, "value": value, "updated_at": datetime.now(timezone.utc).isoformat()}
        try:
            with self.engine.begin() as conn:
                self._ensure_table(conn)
                result = conn.execute(
                    text(f"UPDATE {self.table} SET value = :value, updated_at = :updated_at WHERE store_key = :key"),
                    params,
                )
                if result.rowcount == 0:
                    conn.execute(
                        text(f"INSERT INTO {self.table} (store_key, value, updated_at) VALUES (:key, :value, :updated_at)"),
                        params,
                    )
        except SQLAlchemyError as e:
            raise self._fail("write", key, e) from e
        logger.debug(f"Stored {len(value)} chars under '{key}' in {self.table}")

    def delete(self, key: str) -> None:
        try:
            with self.engine.begin() as conn:
                self._ensure_table(conn)
                conn.execute(text(f"DELETE FROM {self.table} WHERE store_key = :key"), {"key": key})
        except SQLAlchemyError as e:
            raise self._fail("delete", key, e) from e


class LocalCache(SqlKeyValueStore):
    """
    Durable Local Cache: the client-side fallback replica of the document.

    Failures raise LocalPersistError, the one error class the sync engine
    lets through to the caller.
    """

    error_class = LocalPersistError

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None):
        super().__init__(url=url, table="local_cache", engine=engine)
