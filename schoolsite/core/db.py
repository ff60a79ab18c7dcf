"""
Database connection utilities.
SQLAlchemy engines back both the Durable Local Cache and the server-side
key/value document store.
"""
import logging
from contextlib import contextmanager
from typing import Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from schoolsite.core.config import CACHE_URL

logger = logging.getLogger(__name__)

# One engine per URL, created on first use
_engines: Dict[str, Engine] = {}


def get_engine(url: Optional[str] = None) -> Engine:
    """
    Get (or create) the SQLAlchemy engine for a database URL.

    Args:
        url: SQLAlchemy URL (defaults to the local cache URL)

    Returns:
        Engine with connection pre-ping enabled
    """
    url = url or CACHE_URL
    engine = _engines.get(url)
    if engine is None:
        # pool_pre_ping=True verifies connections before using them
        engine = create_engine(url, pool_pre_ping=True)
        _engines[url] = engine
    return engine


def dispose_engines() -> None:
    """Dispose every cached engine (used on shutdown and in tests)."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()


@contextmanager
def get_db_connection(engine: Optional[Engine] = None):
    """
    Context manager for database connections.
    Ensures connection is closed after use.
    """
    engine = engine or get_engine()
    conn = None
    try:
        conn = engine.connect()
        yield conn
    finally:
        if conn:
            conn.close()


def check_db_connection(engine: Optional[Engine] = None) -> bool:
    """
    Test database connection (run before serving the document store).

    Returns:
        True if connection successful, False otherwise
    """
    try:
        with get_db_connection(engine) as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
