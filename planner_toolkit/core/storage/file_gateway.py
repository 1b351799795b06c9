from __future__ import annotations

"""File-backed persistence gateway.

Stores each key as ``<namespace>__<key>.json`` inside a directory. Writes go
to a temporary sibling first and are swapped in with ``os.replace`` so that a
failed save never leaves a truncated file behind. Blocking file IO runs on a
worker thread to keep the event loop responsive.

Public API:
- JsonFileGateway(directory, namespace="planner", max_size=None)
- JsonFileGateway.path_for(key) -> Path
"""

import asyncio
import errno
import json
import logging
import os
import shutil
from pathlib import Path
import tempfile
from typing import Any, List, Optional

from planner_toolkit.core.exceptions import PersistenceError, StorageErrorCode
from planner_toolkit.core.storage.base import PersistenceGateway, StorageInfo

__all__ = ["JsonFileGateway"]

logger = logging.getLogger(__name__)

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}
_SUFFIX = ".json"


class JsonFileGateway(PersistenceGateway):
    """Persist JSON snapshots as files under ``directory``.

    Parameters
    ----------
    directory : Path or str
        Storage directory; created on first use.
    namespace : str, default="planner"
        Filename prefix so several planners can share a directory.
    max_size : int, optional
        Quota in bytes for all files of this namespace.

    Raises
    ------
    PersistenceError
        ``NOT_AVAILABLE`` if the directory cannot be created.
    """

    def __init__(self, directory: Path | str, namespace: str = "planner", max_size: Optional[int] = None) -> None:
        self._directory = Path(directory).expanduser()
        self._namespace = namespace
        self._max_size = max_size
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                f"Storage directory '{self._directory}' is not available: {exc}",
                StorageErrorCode.NOT_AVAILABLE,
                cause=exc,
            ) from exc

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        safe = key.replace(os.sep, "_").replace("/", "_")
        return self._directory / f"{self._namespace}__{safe}{_SUFFIX}"

    def _own_files(self) -> List[Path]:
        prefix = f"{self._namespace}__"
        return sorted(p for p in self._directory.glob(f"{prefix}*{_SUFFIX}") if p.is_file())

    def _used_bytes(self) -> int:
        return sum(p.stat().st_size for p in self._own_files())

    # ------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # ------------------------------------------------------------------

    def _write(self, key: str, data: Any) -> None:
        try:
            payload = json.dumps(data, indent=2).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise PersistenceError(
                f"Failed to save data for key '{key}': {exc}", StorageErrorCode.WRITE_ERROR, key, exc
            ) from exc

        path = self.path_for(key)
        if self._max_size is not None:
            existing = path.stat().st_size if path.exists() else 0
            projected = self._used_bytes() - existing + len(payload)
            if projected > self._max_size:
                raise PersistenceError(
                    f"Storage quota exceeded: {projected} bytes > {self._max_size} bytes",
                    StorageErrorCode.QUOTA_EXCEEDED,
                    key,
                )

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp_", dir=self._directory)
        except OSError as exc:
            raise PersistenceError(
                f"Storage directory '{self._directory}' is not available: {exc}",
                StorageErrorCode.NOT_AVAILABLE,
                key,
                exc,
            ) from exc
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except OSError as exc:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            code = StorageErrorCode.QUOTA_EXCEEDED if exc.errno in _QUOTA_ERRNOS else StorageErrorCode.WRITE_ERROR
            raise PersistenceError(f"Failed to save data for key '{key}': {exc}", code, key, exc) from exc
        logger.debug("Saved key=%s bytes=%d path=%s", key, len(payload), path)

    def _read(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(
                f"Failed to load data for key '{key}': {exc}", StorageErrorCode.READ_ERROR, key, exc
            ) from exc
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PersistenceError(
                f"Failed to parse data for key '{key}': {exc}", StorageErrorCode.PARSE_ERROR, key, exc
            ) from exc

    def _delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise PersistenceError(
                f"Failed to remove key '{key}': {exc}", StorageErrorCode.WRITE_ERROR, key, exc
            ) from exc

    def _size(self) -> Optional[StorageInfo]:
        try:
            used = self._used_bytes()
            if self._max_size is not None:
                return StorageInfo(used=used, available=max(0, self._max_size - used))
            return StorageInfo(used=used, available=shutil.disk_usage(self._directory).free)
        except OSError:
            logger.warning("Storage size unavailable for %s", self._directory, exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Gateway API
    # ------------------------------------------------------------------

    async def save(self, key: str, data: Any) -> None:
        await asyncio.to_thread(self._write, key, data)

    async def load(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._read, key)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def get_size(self) -> Optional[StorageInfo]:
        return await asyncio.to_thread(self._size)

    async def has(self, key: str) -> bool:
        return await asyncio.to_thread(self.path_for(key).exists)

    async def keys(self) -> List[str]:
        prefix = f"{self._namespace}__"
        files = await asyncio.to_thread(self._own_files)
        return [p.name[len(prefix):-len(_SUFFIX)] for p in files]

    async def clear(self) -> None:
        for key in await self.keys():
            await self.remove(key)
