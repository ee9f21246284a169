"""
Storage interface - the durable key-value contract the cache depends on.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Durable, quota-bounded string store.

    The cache keeps its whole entry table under a single key and rewrites
    it on every mutation, so implementations only need whole-value reads
    and writes.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Storage key

        Returns:
            Stored string, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Storage key
            value: String to store

        Raises:
            QuotaExceededError: If the write would exceed the store's quota
            StorageError: For any other backend failure
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Removing an absent key is a no-op."""
        pass
