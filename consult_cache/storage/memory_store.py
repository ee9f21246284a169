"""
In-process key-value store with an optional byte quota.

Behaves like a browser's localStorage: values live only as long as the
process, and a write that would push the total size over the quota fails
without changing anything.
"""

from typing import Dict, Optional

from ..exceptions import QuotaExceededError
from ..interfaces.storage import KeyValueStore


def _size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryKeyValueStore(KeyValueStore):

    def __init__(self, quota_bytes: Optional[int] = None):
        self._values: Dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.write_count = 0

    def read(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def write(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            others = sum(_size(k, v) for k, v in self._values.items() if k != key)
            required = others + _size(key, value)
            if required > self.quota_bytes:
                raise QuotaExceededError(
                    f"Writing '{key}' needs {required} bytes, quota is {self.quota_bytes}",
                    required_bytes=required,
                    quota_bytes=self.quota_bytes,
                )
        self._values[key] = value
        self.write_count += 1

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def used_bytes(self) -> int:
        """Total size of all stored keys and values."""
        return sum(_size(k, v) for k, v in self._values.items())
