from __future__ import annotations

"""Drag-and-drop state machine for items and sections.

One :class:`DragController` exists per planner session and owns the single
live :class:`DragState`. The state is a tagged value: its ``kind`` is either
``NONE`` (idle), ``ITEM`` or ``SECTION``, so an item drag and a section drag
can never be active together.

Lifecycle::

    IDLE --start--> DRAGGING --retarget--> TARGETING --retarget--> ...
      ^                |                       |
      +----drop/cancel-+-----------------------+

Containers are addressed by id: sections for item drags, column container
ids (see :func:`~planner_toolkit.core.models.planner.column_container_id`)
for section drags. The controller never touches UI elements; the rendering
layer observes the notifications published on the bus.
"""

from dataclasses import dataclass, replace
from enum import Enum
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from planner_toolkit.core.events import EventBus, NotificationType
from planner_toolkit.core.exceptions import ConflictingDragError, PlannerError, UnknownSectionError
from planner_toolkit.core.models.planner import parse_column_container_id
from planner_toolkit.core.services.placement_service import (
    Anchor,
    ContainerBounds,
    Placement,
    resolve_placement,
)
from planner_toolkit.core.services.state_service import StateService
from planner_toolkit.core.services.structure_editing_service import OperationResult

__all__ = ["DragKind", "DragPhase", "DragState", "DragController"]

logger = logging.getLogger(__name__)


class DragKind(str, Enum):
    NONE = "none"
    ITEM = "item"
    SECTION = "section"


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    TARGETING = "targeting"


@dataclass(frozen=True)
class DragState:
    """Snapshot of the live drag.

    Attributes
    ----------
    kind
        ``NONE`` when idle.
    dragged_id
        Item or section being dragged.
    source_container_id
        Section (item drags) or column container (section drags) the drag began in.
    target_container_id, target_anchor
        Last resolved drop position; None until the first retarget.
    """

    kind: DragKind = DragKind.NONE
    dragged_id: Optional[str] = None
    source_container_id: Optional[str] = None
    target_container_id: Optional[str] = None
    target_anchor: Optional[Anchor] = None
    started_at: float = 0.0

    @property
    def is_active(self) -> bool:
        return self.kind is not DragKind.NONE

    @property
    def phase(self) -> DragPhase:
        if not self.is_active:
            return DragPhase.IDLE
        if self.target_container_id is None:
            return DragPhase.DRAGGING
        return DragPhase.TARGETING


IDLE_STATE = DragState()


class DragController:
    """Drive a single item or section drag from start to drop or cancel.

    Parameters
    ----------
    state_service : StateService
        Commits drops to the planner and history.
    bus : EventBus, optional
        Where drag notifications are published; defaults to the state service bus.
    """

    def __init__(self, state_service: StateService, bus: Optional[EventBus] = None) -> None:
        self._state_service = state_service
        self._bus = bus or state_service.bus
        self._state: DragState = IDLE_STATE

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def phase(self) -> DragPhase:
        return self._state.phase

    def is_dragging(self, kind: Optional[DragKind] = None) -> bool:
        if kind is None:
            return self._state.is_active
        return self._state.kind is DragKind(kind)

    def is_dragging_element(self, element_id: str) -> bool:
        return self._state.is_active and self._state.dragged_id == element_id

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, kind: DragKind | str, dragged_id: str, source_container_id: str) -> DragState:
        """Begin a drag.

        Raises ConflictingDragError if a drag of the other kind is active; the
        active drag is left untouched. A second start of the same kind
        cancels the previous drag first (last gesture wins).
        """
        kind = DragKind(kind)
        if kind is DragKind.NONE:
            raise ValueError("Cannot start a drag of kind 'none'")

        if self._state.is_active:
            if self._state.kind is not kind:
                logger.warning(
                    "Drag rejected: %s drag requested while %s drag of %s is active",
                    kind.value, self._state.kind.value, self._state.dragged_id,
                )
                raise ConflictingDragError(self._state.kind.value, kind.value)
            logger.warning(
                "Drag already in progress, cancelling previous %s drag of %s",
                self._state.kind.value, self._state.dragged_id,
            )
            self.cancel()

        self._state = DragState(kind, dragged_id, source_container_id, started_at=time.time())
        logger.debug("Drag start kind=%s id=%s source=%s", kind.value, dragged_id, source_container_id)
        self._bus.emit(
            NotificationType.DRAG_STARTED,
            kind=kind.value,
            dragged_id=dragged_id,
            source_container_id=source_container_id,
        )
        return self._state

    def retarget(self, container_id: str, anchor: Optional[Anchor] = None) -> bool:
        """Update the drop target; True only if it actually changed.

        Ignored while idle. Identical consecutive targets publish nothing.
        """
        if not self._state.is_active:
            return False
        anchor = anchor or Anchor()
        if self._state.target_container_id == container_id and self._state.target_anchor == anchor:
            return False
        self._state = replace(self._state, target_container_id=container_id, target_anchor=anchor)
        self._bus.emit(
            NotificationType.DRAG_MOVED,
            kind=self._state.kind.value,
            dragged_id=self._state.dragged_id,
            source_container_id=self._state.source_container_id,
            target_container_id=container_id,
            before_id=anchor.before_id,
        )
        return True

    def retarget_from_pointer(
        self,
        container_pointer: float,
        pointer: float,
        containers: Sequence[ContainerBounds],
    ) -> Optional[Placement]:
        """Resolve the pointer against container geometry and retarget."""
        if not self._state.is_active:
            return None
        placement = resolve_placement(container_pointer, pointer, containers, self._state.dragged_id)
        if placement is None or placement.container_id is None:
            return None
        self.retarget(placement.container_id, placement.anchor)
        return placement

    def drop(self) -> OperationResult:
        """Commit the drag at its current target and return to idle.

        A drag that never received a target, or whose target is its current
        position, completes without touching the planner or the history.
        """
        state = self._state
        if not state.is_active:
            return OperationResult(False, "No drag in progress.")

        if state.target_container_id is None:
            self._finish(state, moved=False)
            return OperationResult(True, "Dropped without target; nothing moved.", {"moved": False})

        try:
            if state.kind is DragKind.ITEM:
                moved, details = self._drop_item(state)
            else:
                moved, details = self._drop_section(state)
        except PlannerError as exc:
            logger.warning("Drop FAIL kind=%s id=%s: %s", state.kind.value, state.dragged_id, exc)
            self._bus.emit(
                NotificationType.DRAG_CANCELLED,
                kind=state.kind.value,
                dragged_id=state.dragged_id,
                source_container_id=state.source_container_id,
                reason=str(exc),
            )
            self._state = IDLE_STATE
            return OperationResult(False, str(exc), exc.details)

        self._finish(state, moved=moved)
        message = f"Moved {state.kind.value}." if moved else "Dropped at original position; nothing moved."
        return OperationResult(True, message, dict(details, moved=moved))

    def cancel(self) -> bool:
        """Abandon the active drag without committing; False when idle."""
        state = self._state
        if not state.is_active:
            return False
        logger.debug("Drag cancel kind=%s id=%s", state.kind.value, state.dragged_id)
        self._bus.emit(
            NotificationType.DRAG_CANCELLED,
            kind=state.kind.value,
            dragged_id=state.dragged_id,
            source_container_id=state.source_container_id,
        )
        self._state = IDLE_STATE
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finish(self, state: DragState, moved: bool) -> None:
        self._bus.emit(
            NotificationType.DRAG_ENDED,
            kind=state.kind.value,
            dragged_id=state.dragged_id,
            source_container_id=state.source_container_id,
            target_container_id=state.target_container_id or state.source_container_id,
            before_id=state.target_anchor.before_id if state.target_anchor else None,
            moved=moved,
        )
        self._state = IDLE_STATE

    @staticmethod
    def _insert_position(siblings: List[str], anchor: Optional[Anchor]) -> int:
        before_id = anchor.before_id if anchor else None
        if before_id is None:
            return len(siblings)
        if before_id not in siblings:
            logger.debug("Stale drop anchor %s; appending", before_id)
            return len(siblings)
        return siblings.index(before_id)

    def _drop_item(self, state: DragState) -> Tuple[bool, Dict[str, Any]]:
        planner = self._state_service.planner
        item_id = state.dragged_id
        source, current_idx = planner.find_item(item_id)
        target = planner.get_section(state.target_container_id)
        if target is None:
            raise UnknownSectionError(state.target_container_id)
        target.require_list()

        siblings = [item.id for item in target.items if item.id != item_id]
        position = self._insert_position(siblings, state.target_anchor)
        details = {"item_id": item_id, "from_section_id": source.id, "to_section_id": target.id, "position": position}
        if source.id == target.id and position == current_idx:
            return False, details

        text = source.items[current_idx].display_text or item_id
        self._state_service.apply(
            lambda p: p.move_item_between_sections(item_id, source.id, target.id, position),
            f"Move item '{text}'",
        )
        logger.info("Drop OK: item=%s %s -> %s @%d", item_id, source.id, target.id, position)
        self._bus.emit(NotificationType.ITEM_MOVED, **details)
        return True, details

    def _drop_section(self, state: DragState) -> Tuple[bool, Dict[str, Any]]:
        planner = self._state_service.planner
        section_id = state.dragged_id
        section = planner.get_section(section_id)
        if section is None:
            raise UnknownSectionError(section_id)
        column_index = parse_column_container_id(state.target_container_id)

        siblings = [sid for sid in planner.get_column_sections(column_index) if sid != section_id]
        position = self._insert_position(siblings, state.target_anchor)
        current_column = planner.find_section_column(section_id)
        details = {
            "section_id": section_id,
            "from_column": current_column,
            "to_column": column_index,
            "position": position,
        }
        if current_column == column_index and planner.get_column_sections(column_index).index(section_id) == position:
            return False, details

        self._state_service.apply(
            lambda p: p.add_section_to_column(section_id, column_index, position),
            f"Move section '{section.title}'",
        )
        logger.info("Drop OK: section=%s column %d -> %d @%d", section_id, current_column, column_index, position)
        self._bus.emit(NotificationType.SECTION_MOVED, **details)
        return True, details
