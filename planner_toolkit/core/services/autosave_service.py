from __future__ import annotations

"""Debounced, single-flight autosave.

Every committed change calls :meth:`AutosaveScheduler.schedule`. The actual
save runs once the changes have been quiet for ``delay`` seconds; a new
change before then restarts the timer, so bursts of edits coalesce into one
write. At most one save executes at a time: a timer that fires while a save
is running queues exactly one follow-up save, which starts after the current
one settles. :meth:`force_save` bypasses the debounce.

Failures never block editing. Background failures are logged and handed to
the ``on_error`` callback; :meth:`force_save` re-raises them to its caller.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from planner_toolkit.core.exceptions import PersistenceError, StorageErrorCode

__all__ = ["AutosaveScheduler"]

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    """Schedule debounced calls to an async ``save`` callable.

    Parameters
    ----------
    save : callable
        Coroutine function performing one complete save.
    delay : float, default=1.0
        Quiet period in seconds before a scheduled save runs.
    on_error : callable, optional
        Receives the :class:`PersistenceError` of a failed background save.
    enabled : bool, default=True
        When False, :meth:`schedule` only marks the state dirty.
    """

    def __init__(
        self,
        save: Callable[[], Awaitable[None]],
        delay: float = 1.0,
        on_error: Optional[Callable[[PersistenceError], None]] = None,
        enabled: bool = True,
    ) -> None:
        self._save = save
        self._delay = max(0.0, float(delay))
        self._on_error = on_error
        self.enabled: bool = enabled
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()
        self._queued = False
        self._dirty = False

    @property
    def delay(self) -> float:
        return self._delay

    def is_pending(self) -> bool:
        """True while a debounce timer is waiting to fire."""
        return self._timer is not None

    def is_saving(self) -> bool:
        return self._lock is not None and self._lock.locked()

    def has_unsaved_changes(self) -> bool:
        return self._dirty

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self) -> bool:
        """Mark state dirty and (re)start the debounce timer.

        Returns False when autosave is disabled or no event loop is running;
        the change is then saved by the next scheduled or forced save.
        """
        self._dirty = True
        if not self.enabled:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Autosave deferred: no running event loop")
            return False
        if self._timer is not None:
            self._timer.cancel()
        self._loop = loop
        self._timer = loop.call_later(self._delay, self._on_timer)
        return True

    def cancel(self) -> None:
        """Drop a pending debounce timer without saving."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def force_save(self) -> None:
        """Cancel the debounce timer and save immediately.

        Waits for an in-flight save to settle first. Raises PersistenceError.
        """
        self.cancel()
        async with self._current_lock():
            await self._attempt(raise_errors=True)

    async def flush(self) -> None:
        """Run a pending save now and wait until all queued saves settle."""
        self._current_lock()
        if self._timer is not None:
            self.cancel()
            self._enqueue(asyncio.get_running_loop())
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _current_lock(self) -> asyncio.Lock:
        return self._lock_for(asyncio.get_running_loop())

    def _lock_for(self, loop: asyncio.AbstractEventLoop) -> asyncio.Lock:
        """Lock bound to ``loop``; moving to a new loop starts with fresh state."""
        if self._lock is None or self._lock_loop is not loop:
            if self._lock_loop is not None:
                logger.debug("Autosave rebound to a new event loop")
            self._lock = asyncio.Lock()
            self._lock_loop = loop
            self._queued = False
            self._tasks = {task for task in self._tasks if task.get_loop() is loop}
        return self._lock

    def _on_timer(self) -> None:
        self._timer = None
        if self._loop is not None:
            self._enqueue(self._loop)

    def _enqueue(self, loop: asyncio.AbstractEventLoop) -> None:
        self._lock_for(loop)
        # one queued follow-up is enough; it saves the latest state
        if self._queued:
            return
        self._queued = True
        task = loop.create_task(self._background())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _background(self) -> None:
        async with self._current_lock():
            self._queued = False
            await self._attempt(raise_errors=False)

    async def _attempt(self, raise_errors: bool) -> None:
        self._dirty = False
        try:
            await self._save()
        except PersistenceError as exc:
            self._dirty = True
            logger.error("Autosave failed: %s", exc)
            if raise_errors:
                raise
            self._report(exc)
        except Exception as exc:
            self._dirty = True
            logger.exception("Autosave failed unexpectedly")
            wrapped = PersistenceError(f"Autosave failed: {exc}", StorageErrorCode.UNKNOWN, cause=exc)
            if raise_errors:
                raise wrapped from exc
            self._report(wrapped)

    def _report(self, exc: PersistenceError) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("Autosave error callback failed")
