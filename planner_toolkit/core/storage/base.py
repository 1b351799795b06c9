from __future__ import annotations

"""Persistence gateway contract.

The planner core depends on this interface only; concrete gateways decide
on the storage medium. All methods are coroutines. Failures are reported as
:class:`~planner_toolkit.core.exceptions.PersistenceError` carrying a
:class:`~planner_toolkit.core.exceptions.StorageErrorCode`; gateways never
retry on their own.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

__all__ = ["PersistenceGateway", "StorageInfo"]


@dataclass(frozen=True)
class StorageInfo:
    """Bytes used by stored data and bytes still available."""

    used: int
    available: int


class PersistenceGateway(ABC):
    """Durable key/value storage for JSON-compatible planner snapshots."""

    @abstractmethod
    async def save(self, key: str, data: Any) -> None:
        """Persist ``data`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def load(self, key: str) -> Optional[Any]:
        """Return the value stored under ``key`` or None if absent."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete ``key``; removing an absent key succeeds."""

    @abstractmethod
    async def get_size(self) -> Optional[StorageInfo]:
        """Return usage information, or None when the medium cannot tell."""

    @abstractmethod
    async def has(self, key: str) -> bool:
        ...

    @abstractmethod
    async def keys(self) -> List[str]:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...
