from __future__ import annotations

"""In-memory persistence gateway.

Values are stored as JSON text so that the gateway behaves like a real
medium: what comes back from ``load`` is a fresh object, and non-serializable
data fails on ``save``. An optional ``max_size`` simulates a storage quota.
"""

import json
import sys
from typing import Any, Dict, List, Optional

from planner_toolkit.core.exceptions import PersistenceError, StorageErrorCode
from planner_toolkit.core.storage.base import PersistenceGateway, StorageInfo

__all__ = ["MemoryGateway"]


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryGateway(PersistenceGateway):
    """Dictionary-backed gateway, useful for tests and ephemeral sessions.

    Parameters
    ----------
    max_size : int, optional
        Maximum total size in bytes; saves that would exceed it fail with
        ``QUOTA_EXCEEDED``.
    """

    def __init__(self, max_size: Optional[int] = None) -> None:
        self._storage: Dict[str, str] = {}
        self._max_size = max_size

    def _current_size(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._storage.items())

    async def save(self, key: str, data: Any) -> None:
        try:
            serialized = json.dumps(data)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(
                f"Failed to save data for key '{key}': {exc}", StorageErrorCode.WRITE_ERROR, key, exc
            ) from exc

        if self._max_size is not None:
            existing = self._storage.get(key)
            existing_size = _entry_size(key, existing) if existing is not None else 0
            projected = self._current_size() - existing_size + _entry_size(key, serialized)
            if projected > self._max_size:
                raise PersistenceError(
                    f"Storage quota exceeded: {projected} bytes > {self._max_size} bytes",
                    StorageErrorCode.QUOTA_EXCEEDED,
                    key,
                )
        self._storage[key] = serialized

    async def load(self, key: str) -> Optional[Any]:
        serialized = self._storage.get(key)
        if serialized is None:
            return None
        try:
            return json.loads(serialized)
        except json.JSONDecodeError as exc:
            raise PersistenceError(
                f"Failed to parse data for key '{key}': {exc}", StorageErrorCode.PARSE_ERROR, key, exc
            ) from exc

    async def remove(self, key: str) -> None:
        self._storage.pop(key, None)

    async def get_size(self) -> Optional[StorageInfo]:
        used = self._current_size()
        available = sys.maxsize if self._max_size is None else max(0, self._max_size - used)
        return StorageInfo(used=used, available=available)

    async def has(self, key: str) -> bool:
        return key in self._storage

    async def keys(self) -> List[str]:
        return list(self._storage)

    async def clear(self) -> None:
        self._storage.clear()

    def raw(self) -> Dict[str, str]:
        """Underlying key -> JSON text mapping (for tests and debugging)."""
        return self._storage
