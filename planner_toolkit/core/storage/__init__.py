"""Persistence gateways for planner snapshots."""

from .base import PersistenceGateway, StorageInfo  # noqa: F401
from .memory_gateway import MemoryGateway  # noqa: F401
from .file_gateway import JsonFileGateway  # noqa: F401

__all__: list[str] = [
    "PersistenceGateway",
    "StorageInfo",
    "MemoryGateway",
    "JsonFileGateway",
]
