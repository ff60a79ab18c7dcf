"""
pytest configuration for schoolsite tests.
Sets up Python path and shared fixtures.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add the project root to Python path
# This allows 'import schoolsite' to work without installing the package
project_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_dir))

from schoolsite.client.site_api_client import SiteApiClient  # noqa: E402
from schoolsite.core.db import dispose_engines  # noqa: E402
from schoolsite.models.defaults import default_document_dict  # noqa: E402
from schoolsite.storage.document_store import KeyValueDocumentStore  # noqa: E402
from schoolsite.storage.sql_store import LocalCache, SqlKeyValueStore  # noqa: E402
from schoolsite.sync.engine import SyncEngine  # noqa: E402


@pytest.fixture(autouse=True)
def _dispose_engines():
    yield
    dispose_engines()


@pytest.fixture
def cache(tmp_path):
    """Durable Local Cache backed by a temporary SQLite file."""
    return LocalCache(url=f"sqlite:///{tmp_path / 'cache.db'}")


@pytest.fixture
def remote():
    """Remote adapter client double; every call succeeds by default."""
    client = MagicMock(spec=SiteApiClient)
    client.get_document.return_value = default_document_dict()
    return client


@pytest.fixture
def engine(remote, cache):
    """Sync engine with a reachable remote and no debounce delay."""
    return SyncEngine(remote=remote, cache=cache, debounce_seconds=0)


@pytest.fixture
def offline_engine(cache):
    """Sync engine without a remote adapter."""
    return SyncEngine(remote=None, cache=cache, debounce_seconds=0)


@pytest.fixture
def document_store(tmp_path):
    """Server-side document store on a temporary SQLite file."""
    return KeyValueDocumentStore(SqlKeyValueStore(url=f"sqlite:///{tmp_path / 'store.db'}"))
