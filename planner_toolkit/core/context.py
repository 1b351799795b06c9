from __future__ import annotations

"""Planner session wiring.

A :class:`PlannerSession` bundles the collaborators one open planner needs:
the notification bus, the persistence gateway, the state service (live
planner, history, autosave), the editing facade and the drag controller.
Front-ends build one per planner, usually through :meth:`from_config`.
"""

import logging
from typing import Any, Dict, Optional

from planner_toolkit.config import ConfigManager
from planner_toolkit.core.events import EventBus
from planner_toolkit.core.services.drag_service import DragController
from planner_toolkit.core.services.placement_service import autoscroll_velocity
from planner_toolkit.core.services.state_service import StateService
from planner_toolkit.core.services.structure_editing_service import StructureEditingService
from planner_toolkit.core.storage import JsonFileGateway, MemoryGateway, PersistenceGateway

logger = logging.getLogger(__name__)

__all__ = ["PlannerSession", "get_session", "set_session"]


class PlannerSession:
    """Collaborators for one open planner."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        bus: Optional[EventBus] = None,
        *,
        storage_key: str = "planner-state",
        max_history: int = 50,
        autosave: bool = True,
        autosave_delay: float = 1.0,
        scroll_threshold: float = 50.0,
        scroll_speed: float = 5.0,
    ) -> None:
        self.bus = bus or EventBus()
        self.gateway = gateway
        self.state = StateService(
            gateway,
            self.bus,
            storage_key=storage_key,
            max_history=max_history,
            autosave=autosave,
            autosave_delay=autosave_delay,
        )
        self.editing = StructureEditingService(self.state, self.bus)
        self.drag = DragController(self.state, self.bus)
        self.scroll_threshold = scroll_threshold
        self.scroll_speed = scroll_speed

    @classmethod
    def from_config(cls, config: Optional[ConfigManager] = None, gateway: Optional[PersistenceGateway] = None) -> "PlannerSession":
        """Build a session from the ``default_planner.yml`` settings.

        An explicit ``gateway`` takes precedence over the ``storage`` section.
        """
        settings: Dict[str, Any] = (config or ConfigManager()).get_planner_config()
        history = settings.get("history", {})
        autosave = settings.get("autosave", {})
        storage = settings.get("storage", {})
        drag = settings.get("drag", {})
        events = settings.get("events", {})

        if gateway is None:
            gateway = _build_gateway(storage)

        session = cls(
            gateway,
            EventBus(max_history=int(events.get("history_size", 100))),
            storage_key=storage.get("key", "planner-state"),
            max_history=int(history.get("max_steps", 50)),
            autosave=bool(autosave.get("enabled", True)),
            autosave_delay=float(autosave.get("delay", 1.0)),
            scroll_threshold=float(drag.get("scroll_threshold", 50)),
            scroll_speed=float(drag.get("scroll_speed", 5)),
        )
        logger.info(
            "Planner session ready: gateway=%s key=%s history=%d autosave=%s",
            type(gateway).__name__, session.state.storage_key, session.state.history.max_history,
            session.state.autosave.enabled,
        )
        return session

    def scroll_velocity(self, pointer: float, viewport: float) -> float:
        """Autoscroll velocity for the active drag; 0 while idle."""
        if not self.drag.is_dragging():
            return 0.0
        return autoscroll_velocity(pointer, viewport, self.scroll_threshold, self.scroll_speed)

    async def open(self) -> None:
        """Load the stored planner if there is one."""
        await self.state.load_state()

    async def close(self) -> None:
        """Cancel any drag and flush unsaved changes."""
        self.drag.cancel()
        if self.state.autosave.has_unsaved_changes():
            await self.state.force_save()
        else:
            self.state.autosave.cancel()


def _build_gateway(storage: Dict[str, Any]) -> PersistenceGateway:
    backend = storage.get("backend", "file")
    max_size = storage.get("max_size")
    if backend == "memory":
        return MemoryGateway(max_size=max_size)
    if backend != "file":
        raise ValueError(f"Unknown storage backend '{backend}' (expected 'file' or 'memory')")
    return JsonFileGateway(
        storage.get("directory", "~/.planner_toolkit/data"),
        namespace=storage.get("namespace", "planner"),
        max_size=max_size,
    )


_global_session: Optional[PlannerSession] = None


def set_session(session: Optional[PlannerSession]) -> None:
    """Set the process-wide planner session."""
    global _global_session
    _global_session = session


def get_session() -> Optional[PlannerSession]:
    """Get the process-wide planner session."""
    return _global_session
