from __future__ import annotations

"""Service layer for structural edits on the live planner.

This module provides a UI-agnostic, testable facade over
:class:`~planner_toolkit.core.services.state_service.StateService` for every
direct mutation a user can trigger without dragging: adding, renaming and
removing sections, placing them in columns, managing columns, editing items
and switching orientation.

Scope and guarantees:
- Operates purely in-memory; persistence is left to the state service autosave.
- Invalid operations return OperationResult(success=False, ...) with a clear
  message, never raise. The planner and history are untouched on failure.
- Each successful call commits exactly one labelled history entry.

Examples
--------
Basic usage:

    service = StructureEditingService(state_service)
    result = service.add_section({"title": "Today"}, column_index=0)
    if not result.success:
        print(result.message)
"""

from dataclasses import dataclass
import logging
from typing import Any, Callable, Dict, Optional

from planner_toolkit.core.events import EventBus, NotificationType
from planner_toolkit.core.exceptions import PlannerError
from planner_toolkit.core.models import Planner

__all__ = ["OperationResult", "StructureEditingService"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Result of a structural editing operation.

    Attributes
    ----------
    success
        Whether the operation completed successfully.
    message
        Human-readable summary suitable for logs or UI display.
    details
        Optional structured details for diagnostics or caller logic.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None


class StructureEditingService:
    """Encapsulates direct edit operations on the planner.

    Parameters
    ----------
    state_service : StateService
        Owner of the live planner; every edit goes through its ``apply``.
    bus : EventBus, optional
        Where move notifications are published; defaults to the state service bus.
    """

    def __init__(self, state_service, bus: Optional[EventBus] = None) -> None:
        self._state = state_service
        self._bus = bus or state_service.bus

    @property
    def planner(self) -> Planner:
        return self._state.planner

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def add_section(
        self,
        data: Optional[Dict[str, Any]] = None,
        column_index: Optional[int] = None,
        position: Optional[int] = None,
    ) -> OperationResult:
        """Create a section and, when ``column_index`` is given, place it."""
        title = (data or {}).get("title", "")
        logger.info("Edit: add_section title=%r column=%s", title, column_index)

        def mutate(planner: Planner) -> str:
            section = planner.add_section(data)
            if column_index is not None:
                planner.add_section_to_column(section.id, column_index, position)
            return section.id

        res = self._run("add_section", f"Add section '{title}'", mutate, {"column_index": column_index})
        if res.success:
            return OperationResult(True, "Added section.", {"section_id": res.details["result"], "column_index": column_index})
        return res

    def remove_section(self, section_id: str) -> OperationResult:
        logger.info("Edit: remove_section section=%s", section_id)
        section = self.planner.get_section(section_id)
        if section is None:
            logger.warning("Edit FAIL: remove_section section_not_found section=%s", section_id)
            return OperationResult(False, f"Section not found for id '{section_id}'.", {"section_id": section_id})
        res = self._run(
            "remove_section",
            f"Remove section '{section.title}'",
            lambda p: p.remove_section(section_id),
            {"section_id": section_id},
        )
        return self._with_message(res, "Removed section.")

    def rename_section(self, section_id: str, new_title: str) -> OperationResult:
        logger.info("Edit: rename_section section=%s", section_id)
        res = self._run(
            "rename_section",
            f"Rename section to '{new_title}'",
            lambda p: p.rename_section(section_id, new_title),
            {"section_id": section_id, "title": new_title},
        )
        return self._with_message(res, "Renamed section.")

    def set_freeform_content(self, section_id: str, content: str) -> OperationResult:
        logger.info("Edit: set_freeform_content section=%s length=%d", section_id, len(content or ""))
        res = self._run(
            "set_freeform_content",
            "Edit notes",
            lambda p: p.set_freeform_content(section_id, content),
            {"section_id": section_id},
        )
        return self._with_message(res, "Updated content.")

    def clear_sections(self) -> OperationResult:
        logger.info("Edit: clear_sections count=%d", self.planner.get_section_count())
        res = self._run("clear_sections", "Clear planner", lambda p: p.clear_sections(), {})
        return self._with_message(res, "Cleared all sections.")

    # -------------------------------------------------------------------------
    # Columns
    # -------------------------------------------------------------------------

    def move_section(self, section_id: str, column_index: int, position: Optional[int] = None) -> OperationResult:
        """Place a section in a column at ``position`` (append when None)."""
        logger.info("Edit: move_section section=%s column=%s position=%s", section_id, column_index, position)
        from_column = self.planner.find_section_column(section_id)
        details = {"section_id": section_id, "from_column": from_column, "to_column": column_index, "position": position}
        res = self._run(
            "move_section",
            "Move section",
            lambda p: p.add_section_to_column(section_id, column_index, position),
            details,
        )
        if not res.success:
            return res
        details["position"] = self.planner.get_column_sections(column_index).index(section_id)
        self._bus.emit(NotificationType.SECTION_MOVED, **details)
        return OperationResult(True, "Moved section.", details)

    def move_section_in_column(self, section_id: str, new_position: int) -> OperationResult:
        logger.info("Edit: move_section_in_column section=%s position=%d", section_id, new_position)
        column = self.planner.find_section_column(section_id)
        if column == -1:
            logger.info("Edit noop: move_section_in_column orphaned section=%s", section_id)
            return OperationResult(False, "Section is not placed in any column.", {"section_id": section_id})
        details = {"section_id": section_id, "from_column": column, "to_column": column, "position": new_position}
        res = self._run(
            "move_section_in_column",
            "Reorder section",
            lambda p: p.move_section_in_column(section_id, new_position),
            details,
        )
        if not res.success:
            return res
        self._bus.emit(NotificationType.SECTION_MOVED, **details)
        return OperationResult(True, "Moved section.", details)

    def unplace_section(self, section_id: str) -> OperationResult:
        """Take a section out of every column without deleting it."""
        logger.info("Edit: unplace_section section=%s", section_id)
        if self.planner.find_section_column(section_id) == -1:
            logger.info("Edit noop: unplace_section section=%s", section_id)
            return OperationResult(False, "Section is not placed in any column.", {"section_id": section_id})
        res = self._run(
            "unplace_section",
            "Remove section from column",
            lambda p: p.remove_section_from_columns(section_id),
            {"section_id": section_id},
        )
        return self._with_message(res, "Removed section from its column.")

    def add_column(self) -> OperationResult:
        logger.info("Edit: add_column count=%d", self.planner.get_column_count())
        res = self._run("add_column", "Add column", lambda p: p.add_column(), {})
        if res.success:
            return OperationResult(True, "Added column.", {"column_index": res.details["result"]})
        return res

    def remove_column(self, column_index: int) -> OperationResult:
        """Delete a column; its sections stay in the planner unplaced."""
        logger.info("Edit: remove_column column=%s", column_index)
        res = self._run(
            "remove_column",
            "Remove column",
            lambda p: p.remove_column(column_index),
            {"column_index": column_index},
        )
        if res.success:
            return OperationResult(
                True, "Removed column.", {"column_index": column_index, "orphaned": res.details["result"]}
            )
        return res

    def set_orientation(self, orientation: str) -> OperationResult:
        logger.info("Edit: set_orientation orientation=%s", orientation)
        if self.planner.orientation == orientation:
            logger.info("Edit noop: set_orientation unchanged")
            return OperationResult(True, "Orientation unchanged.", {"orientation": orientation, "changed": False})
        res = self._run(
            "set_orientation",
            f"Switch to {orientation}",
            lambda p: p.set_orientation(orientation),
            {"orientation": orientation},
        )
        if res.success:
            return OperationResult(True, "Changed orientation.", {"orientation": orientation, "changed": True})
        return res

    # -------------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------------

    def add_item(
        self,
        section_id: str,
        data: Optional[Dict[str, Any]] = None,
        position: Optional[int] = None,
    ) -> OperationResult:
        logger.info("Edit: add_item section=%s position=%s", section_id, position)
        res = self._run(
            "add_item",
            "Add item",
            lambda p: p.add_item(section_id, data, position).id,
            {"section_id": section_id, "position": position},
        )
        if res.success:
            return OperationResult(True, "Added item.", {"section_id": section_id, "item_id": res.details["result"]})
        return res

    def remove_item(self, section_id: str, item_id: str) -> OperationResult:
        logger.info("Edit: remove_item section=%s item=%s", section_id, item_id)
        section = self.planner.get_section(section_id)
        if section is None or section.item_index(item_id) == -1:
            logger.warning("Edit FAIL: remove_item item_not_found item=%s", item_id)
            return OperationResult(False, f"Item not found for id '{item_id}'.", {"section_id": section_id, "item_id": item_id})
        res = self._run(
            "remove_item",
            "Remove item",
            lambda p: p.remove_item(section_id, item_id),
            {"section_id": section_id, "item_id": item_id},
        )
        return self._with_message(res, "Removed item.")

    def update_item(
        self,
        section_id: str,
        item_id: str,
        text: Optional[str] = None,
        checked: Optional[bool] = None,
    ) -> OperationResult:
        logger.info("Edit: update_item section=%s item=%s", section_id, item_id)
        res = self._run(
            "update_item",
            "Edit item",
            lambda p: p.update_item(section_id, item_id, text=text, checked=checked),
            {"section_id": section_id, "item_id": item_id},
        )
        return self._with_message(res, "Updated item.")

    def toggle_item(self, section_id: str, item_id: str) -> OperationResult:
        logger.info("Edit: toggle_item section=%s item=%s", section_id, item_id)
        res = self._run(
            "toggle_item",
            "Toggle item",
            lambda p: p.toggle_item(section_id, item_id),
            {"section_id": section_id, "item_id": item_id},
        )
        if res.success:
            checked = res.details["result"]
            return OperationResult(True, "Checked item." if checked else "Unchecked item.",
                                   {"section_id": section_id, "item_id": item_id, "checked": checked})
        return res

    def move_item(
        self,
        item_id: str,
        from_section_id: str,
        to_section_id: str,
        position: Optional[int] = None,
    ) -> OperationResult:
        """Move an item within or between sections (append when ``position`` is None)."""
        logger.info("Edit: move_item item=%s from=%s to=%s position=%s", item_id, from_section_id, to_section_id, position)
        details = {
            "item_id": item_id,
            "from_section_id": from_section_id,
            "to_section_id": to_section_id,
            "position": position,
        }
        res = self._run(
            "move_item",
            "Move item",
            lambda p: p.move_item_between_sections(item_id, from_section_id, to_section_id, position),
            details,
        )
        if not res.success:
            return res
        details["position"] = self.planner.get_section(to_section_id).item_index(item_id)
        self._bus.emit(NotificationType.ITEM_MOVED, **details)
        return OperationResult(True, "Moved item.", details)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        label: str,
        mutate: Callable[[Planner], Any],
        details: Dict[str, Any],
    ) -> OperationResult:
        try:
            result = self._state.apply(mutate, label)
        except PlannerError as exc:
            logger.warning("Edit FAIL: %s error=%s", operation, exc)
            merged = dict(details)
            merged.update(exc.details)
            return OperationResult(False, str(exc), merged)
        logger.info("Edit OK: %s", operation)
        return OperationResult(True, label, dict(details, result=result))

    @staticmethod
    def _with_message(res: OperationResult, message: str) -> OperationResult:
        if not res.success:
            return res
        details = dict(res.details or {})
        details.pop("result", None)
        return OperationResult(True, message, details)
