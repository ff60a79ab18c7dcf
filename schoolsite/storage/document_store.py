"""
Whole-document access on top of a key/value DocumentStore.

Used by the storage adapter service: the full site document is one JSON
value, and scoped endpoints are read-modify-write cycles on that value.
"""
import json
import logging
import threading
from typing import Any, Callable, Dict, Optional, TypeVar

from schoolsite.core.config import DATA_KEY
from schoolsite.core.exceptions import StorageError
from schoolsite.models.defaults import default_document_dict
from schoolsite.storage.base import DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueDocumentStore:
    """
    The site document stored as a single JSON value.

    Attributes:
        store: Backing key/value store
        key: Key holding the document
    """

    def __init__(self, store: DocumentStore, key: str = DATA_KEY):
        self.store = store
        self.key = key
        self._lock = threading.RLock()

    def _read(self) -> Optional[Dict[str, Any]]:
        raw = self.store.read(self.key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError("Stored document is not valid JSON", details={"key": self.key}, original_error=e) from e
        if not isinstance(data, dict):
            raise StorageError("Stored document is not a JSON object", details={"key": self.key})
        return data

    def get_document(self) -> Dict[str, Any]:
        """
        Return the stored document, seeding the store on first access.
        """
        with self._lock:
            data = self._read()
            if data is None:
                logger.info(f"No document under '{self.key}', initializing with defaults")
                data = default_document_dict()
                self.set_document(data)
            return data

    def set_document(self, data: Dict[str, Any]) -> None:
        """Replace the whole stored document."""
        if not isinstance(data, dict):
            raise StorageError("Document must be a JSON object")
        with self._lock:
            self.store.write(self.key, json.dumps(data, ensure_ascii=False))

    def mutate(self, fn: Callable[[Dict[str, Any]], T]) -> T:
        """
        Read-modify-write under the store lock.

        Args:
            fn: Receives the current document, changes it in place and
                returns a result for the caller

        Returns:
            Whatever fn returned
        """
        with self._lock:
            data = self.get_document()
            result = fn(data)
            self.set_document(data)
            return result
