"""
Storage backends for the site document.
"""

from .base import DocumentStore
from .sql_store import LocalCache, SqlKeyValueStore
from .document_store import KeyValueDocumentStore

__all__ = [
    "DocumentStore",
    "LocalCache",
    "SqlKeyValueStore",
    "KeyValueDocumentStore",
]
