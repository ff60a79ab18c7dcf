"""
Document store abstract base class.

This module defines the key/value interface shared by the Durable Local
Cache and the storage adapter service, so either backend can be swapped
without touching the sync layer.
"""

from abc import ABC, abstractmethod
from typing import Optional


class DocumentStore(ABC):
    """
    Abstract key/value store holding serialized documents.

    Implementations:
    1. LocalCache - client-side fallback replica of the site document
    2. SqlKeyValueStore - server-side table behind the HTTP adapter
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Store key

        Returns:
            str: Stored value or None if absent
        """
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: Store key
            value: Serialized document
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove a key if present.

        Args:
            key: Store key
        """
        pass
