from __future__ import annotations

"""State management service: live planner, history and persistence.

StateService is the single place where the live :class:`Planner` is
replaced. Every committed change goes through :meth:`StateService.apply`,
which mutates a working copy, swaps it in only on success, records a
history entry, publishes ``HISTORY_CHANGED`` and schedules a debounced save.
Undo and redo restore snapshots and schedule a save the same way.

Persistence failures are propagated to the caller as
:class:`~planner_toolkit.core.exceptions.PersistenceError` (and published as
``STATE_ERROR``); the in-memory planner stays authoritative and editing
continues.

Examples
--------
::

    service = StateService(MemoryGateway(), EventBus())
    service.apply(lambda p: p.add_section({"title": "Today"}), "Add section")
    service.undo()
    await service.force_save()
"""

import json
import logging
from typing import Any, Callable, Optional, TypeVar

from planner_toolkit.core.events import EventBus, NotificationType
from planner_toolkit.core.exceptions import PersistenceError, StorageErrorCode, ValidationError
from planner_toolkit.core.models import Planner
from planner_toolkit.core.services.autosave_service import AutosaveScheduler
from planner_toolkit.core.services.history_service import HistoryManager
from planner_toolkit.core.storage.base import PersistenceGateway, StorageInfo

__all__ = ["StateService"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StateService:
    """Own the live planner and coordinate history and autosave.

    Parameters
    ----------
    gateway : PersistenceGateway
        Storage used by load/save.
    bus : EventBus, optional
        Notification channel; a private one is created when omitted.
    storage_key : str, default="planner-state"
        Key under which snapshots are stored.
    max_history : int, default=50
        Bound for the undo and redo stacks.
    autosave : bool, default=True
        Whether committed changes schedule a debounced save.
    autosave_delay : float, default=1.0
        Debounce quiet period in seconds.
    planner : Planner, optional
        Initial planner; an empty one is created when omitted.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        bus: Optional[EventBus] = None,
        *,
        storage_key: str = "planner-state",
        max_history: int = 50,
        autosave: bool = True,
        autosave_delay: float = 1.0,
        planner: Optional[Planner] = None,
    ) -> None:
        self._gateway = gateway
        self._bus = bus or EventBus()
        self._storage_key = storage_key
        self._planner: Planner = planner if planner is not None else Planner()
        self._history = HistoryManager(max_history=max_history)
        self._history.commit(self._planner.to_snapshot(), "Initial state")
        self._autosave = AutosaveScheduler(
            self.save_state, delay=autosave_delay, on_error=self._on_autosave_error, enabled=autosave
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def planner(self) -> Planner:
        """The live planner. Mutate it only through :meth:`apply`."""
        return self._planner

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def autosave(self) -> AutosaveScheduler:
        return self._autosave

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def can_undo(self) -> bool:
        return self._history.can_undo()

    def can_redo(self) -> bool:
        return self._history.can_redo()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply(self, mutate: Callable[[Planner], T], label: str) -> T:
        """Run ``mutate`` on a working copy and commit it as one history step.

        If ``mutate`` raises, the live planner and the history are untouched
        and the exception propagates.
        """
        working = self._planner.copy()
        result = mutate(working)
        self._planner = working
        self._history.commit(working.to_snapshot(), label)
        logger.debug("Committed '%s' (undo depth=%d)", label, len(self._history.undo_labels()))
        self._notify_history("commit", label)
        self._autosave.schedule()
        return result

    def replace(self, planner: Planner, label: str = "Replace planner", add_to_history: bool = True) -> None:
        """Swap in a whole planner (import, reload)."""
        self._planner = planner
        if add_to_history:
            self._history.commit(planner.to_snapshot(), label)
        else:
            self._history.reset(planner.to_snapshot(), label)
        self._notify_history("replace", label)
        self._autosave.schedule()

    def undo(self) -> bool:
        labels = self._history.undo_labels()
        if not self._history.undo():
            return False
        self._restore_current()
        self._notify_history("undo", labels[-1])
        self._autosave.schedule()
        return True

    def redo(self) -> bool:
        labels = self._history.redo_labels()
        if not self._history.redo():
            return False
        self._restore_current()
        self._notify_history("redo", labels[-1])
        self._autosave.schedule()
        return True

    def clear_history(self) -> None:
        self._history.reset(self._planner.to_snapshot(), "Initial state")
        self._notify_history("clear", "")

    def _restore_current(self) -> None:
        snapshot = self._history.current
        if snapshot is not None:
            self._planner = Planner.from_snapshot(snapshot)

    def _notify_history(self, action: str, label: str) -> None:
        self._bus.emit(
            NotificationType.HISTORY_CHANGED,
            action=action,
            label=label,
            can_undo=self._history.can_undo(),
            can_redo=self._history.can_redo(),
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load_state(self) -> Optional[Planner]:
        """Load the stored planner and make it current; None when absent.

        The history restarts from the loaded state. Malformed data raises
        PersistenceError with ``PARSE_ERROR``.
        """
        try:
            snapshot = await self._gateway.load(self._storage_key)
            if snapshot is None:
                return None
            try:
                planner = Planner.from_snapshot(snapshot)
            except ValidationError as exc:
                raise PersistenceError(
                    f"Stored planner is malformed: {exc}", StorageErrorCode.PARSE_ERROR, self._storage_key, exc
                ) from exc
        except PersistenceError as exc:
            logger.error("Load failed key=%s: %s", self._storage_key, exc)
            self._bus.emit(NotificationType.STATE_ERROR, operation="load", code=exc.code.value, error=str(exc))
            raise

        self._planner = planner
        self._history.reset(planner.to_snapshot(), "Loaded state")
        logger.info("Loaded planner id=%s sections=%d", planner.id, planner.get_section_count())
        self._bus.emit(NotificationType.STATE_LOADED, planner_id=planner.id)
        return planner

    async def save_state(self) -> None:
        """Persist the live planner now."""
        snapshot = self._planner.to_snapshot()
        try:
            await self._gateway.save(self._storage_key, snapshot)
        except PersistenceError as exc:
            self._bus.emit(NotificationType.STATE_ERROR, operation="save", code=exc.code.value, error=str(exc))
            raise
        logger.info("Saved planner id=%s key=%s", self._planner.id, self._storage_key)
        self._bus.emit(NotificationType.STATE_SAVED, planner_id=self._planner.id)

    async def force_save(self) -> None:
        """Save immediately, cancelling any pending debounced save."""
        await self._autosave.force_save()

    async def reset_state(self, clear_storage: bool = True) -> None:
        """Start over with an empty planner and empty history."""
        self._autosave.cancel()
        self._planner = Planner()
        self._history.reset(self._planner.to_snapshot(), "Initial state")
        if clear_storage:
            await self._gateway.remove(self._storage_key)
        self._bus.emit(NotificationType.STATE_RESET, planner_id=self._planner.id)

    async def get_storage_info(self) -> Optional[StorageInfo]:
        return await self._gateway.get_size()

    def set_autosave(self, enabled: bool) -> None:
        self._autosave.enabled = enabled
        if not enabled:
            self._autosave.cancel()

    def _on_autosave_error(self, exc: PersistenceError) -> None:
        # already published as STATE_ERROR by save_state
        logger.warning("Background save failed; in-memory planner remains authoritative (%s)", exc.code.value)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_state(self) -> str:
        return json.dumps(self._planner.to_snapshot(), indent=2)

    def import_state(self, text: str, add_to_history: bool = True) -> Planner:
        """Replace the live planner with one parsed from :meth:`export_state` output.

        Raises ValidationError for invalid JSON or invalid planner data.
        """
        try:
            data: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Failed to import state: {exc}", [str(exc)]) from exc
        planner = Planner.from_snapshot(data)
        self.replace(planner, "Imported state", add_to_history)
        return planner
