"""
Tests for the SQLAlchemy key/value stores (schoolsite/storage/sql_store.py)
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from schoolsite.core.exceptions import LocalPersistError, StorageError
from schoolsite.storage.sql_store import LocalCache, SqlKeyValueStore


class TestSqlKeyValueStore:
    """Tests for SqlKeyValueStore against a temporary SQLite database."""

    def test_read_missing_key(self, tmp_path):
        store = SqlKeyValueStore(url=f"sqlite:///{tmp_path / 'kv.db'}")
        assert store.read("nothing") is None

    def test_write_then_overwrite(self, tmp_path):
        """Test that a second write replaces the first."""
        store = SqlKeyValueStore(url=f"sqlite:///{tmp_path / 'kv.db'}")
        store.write("doc", '{"a": 1}')
        store.write("doc", '{"a": 2}')
        assert store.read("doc") == '{"a": 2}'

    def test_values_survive_a_new_store(self, tmp_path):
        """Test that data is durable across store instances."""
        url = f"sqlite:///{tmp_path / 'kv.db'}"
        SqlKeyValueStore(url=url).write("doc", "persisted")
        assert SqlKeyValueStore(url=url).read("doc") == "persisted"

    def test_delete(self, tmp_path):
        store = SqlKeyValueStore(url=f"sqlite:///{tmp_path / 'kv.db'}")
        store.write("doc", "x")
        store.delete("doc")
        assert store.read("doc") is None

    def test_rejects_bad_table_name(self, tmp_path):
        with pytest.raises(ValueError):
            SqlKeyValueStore(url=f"sqlite:///{tmp_path / 'kv.db'}", table="kv; DROP TABLE x")

    def test_non_string_value(self, tmp_path):
        store = SqlKeyValueStore(url=f"sqlite:///{tmp_path / 'kv.db'}")
        with pytest.raises(StorageError):
            store.write("doc", {"a": 1})

    def test_database_error_is_wrapped(self):
        """Test that SQLAlchemy failures surface as StorageError."""
        engine = MagicMock()
        engine.begin.side_effect = OperationalError("SELECT", {}, Exception("locked"))
        store = SqlKeyValueStore(engine=engine)

        with pytest.raises(StorageError) as exc_info:
            store.read("doc")
        assert isinstance(exc_info.value.original_error, OperationalError)


class TestLocalCache:
    """Tests for the Durable Local Cache."""

    def test_uses_its_own_table(self, cache):
        assert cache.table == "local_cache"

    def test_write_failure_is_local_persist_error(self):
        """Test that cache failures are LocalPersistError, not StorageError."""
        engine = MagicMock()
        engine.begin.side_effect = OperationalError("UPDATE", {}, Exception("read-only"))
        cache = LocalCache(engine=engine)

        with pytest.raises(LocalPersistError) as exc_info:
            cache.write("adminData", "{}")
        assert not isinstance(exc_info.value, StorageError)
