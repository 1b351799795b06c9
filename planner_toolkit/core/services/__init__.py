from __future__ import annotations

"""High-level planner services: placement, drag, history, state and editing.

Services are plain classes wired together by
:class:`~planner_toolkit.core.context.PlannerSession`.
"""

from .placement_service import (  # noqa: F401
    Anchor,
    Bounds,
    ContainerBounds,
    Placement,
    autoscroll_velocity,
    resolve_anchor,
    resolve_container,
    resolve_placement,
)
from .history_service import HistoryEntry, HistoryManager  # noqa: F401
from .autosave_service import AutosaveScheduler  # noqa: F401
from .state_service import StateService  # noqa: F401
from .structure_editing_service import OperationResult, StructureEditingService  # noqa: F401
from .drag_service import DragController, DragKind, DragPhase, DragState  # noqa: F401

__all__: list[str] = [
    "Anchor",
    "Bounds",
    "ContainerBounds",
    "Placement",
    "autoscroll_velocity",
    "resolve_anchor",
    "resolve_container",
    "resolve_placement",
    "HistoryEntry",
    "HistoryManager",
    "AutosaveScheduler",
    "StateService",
    "OperationResult",
    "StructureEditingService",
    "DragController",
    "DragKind",
    "DragPhase",
    "DragState",
]
