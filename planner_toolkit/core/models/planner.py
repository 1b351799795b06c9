from __future__ import annotations

"""Planner aggregate: sections, items and their column ordering.

The planner is the single source of truth for ordering. It owns an
unordered id -> :class:`Section` map and ``columns_order``, an ordered list
of columns, each an ordered list of section ids.

Invariants maintained by every operation:

- every id in ``columns_order`` exists in the section map;
- an id appears at most once across all columns;
- ``columns_order`` always holds at least one (possibly empty) column.

Sections absent from every column are *orphaned* but still owned here.
Mutations are synchronous, validate their inputs before touching any state
and raise a :class:`~planner_toolkit.core.exceptions.PlannerError` subclass
on referential or range violations, leaving the planner unchanged.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from planner_toolkit.core.exceptions import (
    IndexOutOfRangeError,
    SectionKindError,
    UnknownColumnError,
    UnknownItemError,
    UnknownSectionError,
    ValidationError,
)
from planner_toolkit.core.models import Item, Section, SectionKind, new_id, now

__all__ = [
    "Planner",
    "FORMAT_VERSION",
    "ORIENTATIONS",
    "column_container_id",
    "parse_column_container_id",
]

logger = logging.getLogger(__name__)

FORMAT_VERSION = "2.0.0"
ORIENTATIONS = ("portrait", "landscape")

MAX_COLUMNS = 10
MAX_SECTIONS_PER_COLUMN = 20
MAX_TOTAL_SECTIONS = 100

_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
_COLUMN_PREFIX = "column-"


def column_container_id(column_index: int) -> str:
    """Return the container id used to address a column during drags."""
    return f"{_COLUMN_PREFIX}{column_index}"


def parse_column_container_id(container_id: str) -> int:
    """Inverse of :func:`column_container_id`; raises UnknownColumnError."""
    if isinstance(container_id, str) and container_id.startswith(_COLUMN_PREFIX):
        raw = container_id[len(_COLUMN_PREFIX):]
        if raw.isdigit():
            return int(raw)
    raise UnknownColumnError(container_id)


class Planner:
    """Root aggregate owning sections, items and column ordering.

    Examples
    --------
    >>> planner = Planner()
    >>> section = planner.add_section({"title": "My Tasks"})
    >>> planner.add_section_to_column(section.id, 0)
    True
    >>> planner.get_column_sections(0) == [section.id]
    True
    """

    def __init__(
        self,
        planner_id: Optional[str] = None,
        sections: Optional[Iterable[Section]] = None,
        columns_order: Optional[List[List[str]]] = None,
        orientation: str = "portrait",
        format_version: str = FORMAT_VERSION,
        created_at: Optional[float] = None,
        updated_at: Optional[float] = None,
    ) -> None:
        self.id: str = planner_id or new_id("planner")
        self._sections: Dict[str, Section] = {}
        for section in sections or []:
            self._sections[section.id] = section
        self._columns_order: List[List[str]] = [list(col) for col in (columns_order or [[]])]
        self.orientation: str = orientation
        self.format_version: str = format_version
        self.created_at: float = created_at if created_at is not None else now()
        self.updated_at: float = updated_at if updated_at is not None else self.created_at
        self.validate()
        self._sync_column_indices()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Check every model constraint; raise ValidationError listing all violations."""
        errors: List[str] = []

        if not isinstance(self.id, str) or not self.id:
            errors.append("Planner ID must be a non-empty string")
        if self.orientation not in ORIENTATIONS:
            errors.append('Planner orientation must be either "portrait" or "landscape"')
        if not isinstance(self.format_version, str) or not _VERSION_PATTERN.match(self.format_version):
            errors.append('Planner version must follow semantic versioning (e.g., "2.0.0")')

        if not self._columns_order:
            errors.append("Planner columns_order cannot be empty")
        if len(self._columns_order) > MAX_COLUMNS:
            errors.append(f"Planner cannot have more than {MAX_COLUMNS} columns")

        seen: Dict[str, int] = {}
        for col_idx, column in enumerate(self._columns_order):
            if len(column) > MAX_SECTIONS_PER_COLUMN:
                errors.append(f"Column {col_idx} cannot have more than {MAX_SECTIONS_PER_COLUMN} sections")
            for pos, section_id in enumerate(column):
                if not isinstance(section_id, str):
                    errors.append(f"Planner columns_order[{col_idx}][{pos}] must be a string")
                    continue
                if section_id not in self._sections:
                    errors.append(f"Column {col_idx} references unknown section '{section_id}'")
                if section_id in seen:
                    errors.append(f"Section '{section_id}' appears more than once in columns_order")
                seen[section_id] = col_idx

        if len(self._sections) > MAX_TOTAL_SECTIONS:
            errors.append(f"Planner cannot have more than {MAX_TOTAL_SECTIONS} sections")

        item_owner: Dict[str, str] = {}
        for section in self._sections.values():
            for item in section.items:
                errors.extend(f"{section.id}/{item.id}: {msg}" for msg in item.validate())
                if item.id in item_owner:
                    errors.append(f"Item '{item.id}' is owned by more than one section")
                item_owner[item.id] = section.id

        if self.updated_at < self.created_at:
            errors.append("Planner updated_at cannot be before created_at")

        if errors:
            raise ValidationError(f"Planner validation failed: {', '.join(errors)}", errors)

    def _touch(self) -> None:
        self.updated_at = now(self.updated_at)

    def _require_section(self, section_id: str) -> Section:
        section = self._sections.get(section_id)
        if section is None:
            raise UnknownSectionError(section_id)
        return section

    # ------------------------------------------------------------------
    # Section management
    # ------------------------------------------------------------------

    def add_section(self, data: Union[Dict[str, Any], Section, None] = None) -> Section:
        """Create a section with a fresh id; it stays orphaned until placed.

        ``data`` may be a mapping of section fields (any ``id`` is ignored) or
        a ready :class:`Section` whose id must not already exist.
        """
        if len(self._sections) >= MAX_TOTAL_SECTIONS:
            raise ValidationError(
                f"Planner cannot have more than {MAX_TOTAL_SECTIONS} sections",
                [f"max_total_sections={MAX_TOTAL_SECTIONS}"],
            )
        if isinstance(data, Section):
            if data.id in self._sections:
                raise ValidationError(f"Section '{data.id}' already exists", [f"duplicate id {data.id}"])
            section = data
        else:
            fields = dict(data or {})
            fields.pop("id", None)
            section = Section.from_dict(fields)
        section.column_index = -1
        self._sections[section.id] = section
        self._touch()
        logger.debug("Section added id=%s kind=%s", section.id, section.kind.value)
        return section

    def remove_section(self, section_id: str) -> Optional[Section]:
        """Remove a section from the map and from every column; None if unknown."""
        section = self._sections.pop(section_id, None)
        if section is None:
            return None
        self._columns_order = [[sid for sid in col if sid != section_id] for col in self._columns_order]
        self._touch()
        return section

    def get_section(self, section_id: str) -> Optional[Section]:
        return self._sections.get(section_id)

    def has_section(self, section_id: str) -> bool:
        return section_id in self._sections

    def get_sections(self) -> List[Section]:
        return list(self._sections.values())

    def get_section_count(self) -> int:
        return len(self._sections)

    def clear_sections(self) -> None:
        self._sections.clear()
        self._columns_order = [[]]
        self._touch()

    def rename_section(self, section_id: str, title: str) -> Section:
        section = self._require_section(section_id)
        section.update(title=title)
        self._touch()
        return section

    def set_freeform_content(self, section_id: str, content: str) -> Section:
        section = self._require_section(section_id)
        section.update(freeform_content=content)
        self._touch()
        return section

    def set_orientation(self, orientation: str) -> None:
        if orientation not in ORIENTATIONS:
            raise ValidationError(
                f"Invalid orientation '{orientation}'",
                ['Planner orientation must be either "portrait" or "landscape"'],
            )
        self.orientation = orientation
        self._touch()

    # ------------------------------------------------------------------
    # Column management
    # ------------------------------------------------------------------

    @property
    def columns_order(self) -> List[List[str]]:
        """Copy of the column ordering; mutate through planner methods only."""
        return [list(col) for col in self._columns_order]

    def add_section_to_column(self, section_id: str, column_index: int, position: Optional[int] = None) -> bool:
        """Place a section in a column, removing it from wherever it was.

        Columns are auto-grown up to ``column_index``. ``position`` is clamped
        to ``[0, len(column)]`` (measured after the section has been lifted
        out), and the section is appended when it is omitted. Placing a
        section twice with identical arguments yields the same order.
        """
        section = self._require_section(section_id)
        if column_index < 0 or column_index >= MAX_COLUMNS:
            raise IndexOutOfRangeError(column_index, 0, MAX_COLUMNS - 1, "column index")
        target_len = 0
        if column_index < len(self._columns_order):
            target_len = sum(1 for sid in self._columns_order[column_index] if sid != section_id)
        if target_len >= MAX_SECTIONS_PER_COLUMN:
            raise ValidationError(
                f"Column {column_index} cannot have more than {MAX_SECTIONS_PER_COLUMN} sections",
                [f"max_sections_per_column={MAX_SECTIONS_PER_COLUMN}"],
            )

        while len(self._columns_order) <= column_index:
            self._columns_order.append([])
        self.remove_section_from_columns(section_id)

        column = self._columns_order[column_index]
        if position is None:
            column.append(section_id)
        else:
            column.insert(max(0, min(position, len(column))), section_id)

        section.column_index = column_index
        self._touch()
        return True

    def move_section_to_column(self, section_id: str, column_index: int, position: Optional[int] = None) -> bool:
        return self.add_section_to_column(section_id, column_index, position)

    def remove_section_from_columns(self, section_id: str) -> bool:
        """Lift a section out of every column; True if it was placed anywhere."""
        removed = False
        for column in self._columns_order:
            if section_id in column:
                column[:] = [sid for sid in column if sid != section_id]
                removed = True
        if removed:
            self._sections[section_id].column_index = -1
            self._touch()
        return removed

    def move_section_in_column(self, section_id: str, new_position: int) -> bool:
        """Reorder a section within its current column; False if it is orphaned."""
        column_index = self.find_section_column(section_id)
        if column_index == -1:
            return False
        column = self._columns_order[column_index]
        if new_position < 0 or new_position >= len(column):
            raise IndexOutOfRangeError(new_position, 0, len(column) - 1, "position")
        column.remove(section_id)
        column.insert(new_position, section_id)
        self._touch()
        return True

    def get_column_sections(self, column_index: int) -> List[str]:
        if column_index < 0 or column_index >= len(self._columns_order):
            return []
        return list(self._columns_order[column_index])

    def get_column_count(self) -> int:
        return len(self._columns_order)

    def add_column(self) -> int:
        if len(self._columns_order) >= MAX_COLUMNS:
            raise ValidationError(
                f"Planner cannot have more than {MAX_COLUMNS} columns",
                [f"max_columns={MAX_COLUMNS}"],
            )
        self._columns_order.append([])
        self._touch()
        return len(self._columns_order) - 1

    def remove_column(self, column_index: int) -> List[str]:
        """Delete a column; its sections become orphaned.

        Returns the ids that were in the column. Removing the last column
        leaves a single empty column behind.
        """
        if column_index < 0 or column_index >= len(self._columns_order):
            raise UnknownColumnError(column_index, len(self._columns_order))
        removed = self._columns_order.pop(column_index)
        if not self._columns_order:
            self._columns_order = [[]]
        self._sync_column_indices()
        self._touch()
        return list(removed)

    def _sync_column_indices(self) -> None:
        placed = {sid: col_idx for col_idx, column in enumerate(self._columns_order) for sid in column}
        for section_id, section in self._sections.items():
            section.column_index = placed.get(section_id, -1)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_section_column(self, section_id: str) -> int:
        for col_idx, column in enumerate(self._columns_order):
            if section_id in column:
                return col_idx
        return -1

    def get_sections_in_column(self, column_index: int) -> List[Section]:
        return [self._sections[sid] for sid in self.get_column_sections(column_index) if sid in self._sections]

    def get_orphaned_sections(self) -> List[Section]:
        placed = {sid for column in self._columns_order for sid in column}
        return [section for sid, section in self._sections.items() if sid not in placed]

    def find_item(self, item_id: str) -> Tuple[Section, int]:
        """Return ``(section, index)`` of the item; raise UnknownItemError."""
        for section in self._sections.values():
            idx = section.item_index(item_id)
            if idx != -1:
                return section, idx
        raise UnknownItemError(item_id)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add_item(
        self,
        section_id: str,
        data: Union[Dict[str, Any], Item, None] = None,
        position: Optional[int] = None,
    ) -> Item:
        section = self._require_section(section_id)
        section.require_list()
        if isinstance(data, Item):
            item = data
            errors = item.validate()
            if errors:
                raise ValidationError(f"Item validation failed: {', '.join(errors)}", errors)
            if any(other.item_index(item.id) != -1 for other in self._sections.values()):
                raise ValidationError(f"Item '{item.id}' already exists", [f"duplicate id {item.id}"])
        else:
            fields = dict(data or {})
            fields.pop("id", None)
            item = Item.from_dict(fields)
        if position is not None and not 0 <= position <= len(section.items):
            raise IndexOutOfRangeError(position, 0, len(section.items), "position")
        if position is None:
            section.items.append(item)
        else:
            section.items.insert(position, item)
        section.touch()
        self._touch()
        return item

    def remove_item(self, section_id: str, item_id: str) -> Optional[Item]:
        section = self._require_section(section_id)
        idx = section.item_index(item_id)
        if idx == -1:
            return None
        item = section.items.pop(idx)
        section.touch()
        self._touch()
        return item

    def update_item(
        self,
        section_id: str,
        item_id: str,
        text: Optional[str] = None,
        checked: Optional[bool] = None,
    ) -> Item:
        section = self._require_section(section_id)
        idx = section.item_index(item_id)
        if idx == -1:
            raise UnknownItemError(item_id, section_id)
        item = section.items[idx]
        item.update(text=text, checked=checked)
        section.touch()
        self._touch()
        return item

    def toggle_item(self, section_id: str, item_id: str) -> bool:
        section = self._require_section(section_id)
        idx = section.item_index(item_id)
        if idx == -1:
            raise UnknownItemError(item_id, section_id)
        checked = section.items[idx].toggle_checked()
        section.touch()
        self._touch()
        return checked

    def move_item_within_section(self, section_id: str, item_id: str, new_index: int) -> Item:
        """Move an item to ``new_index`` (``0 <= new_index < item count``)."""
        section = self._require_section(section_id)
        section.require_list()
        idx = section.item_index(item_id)
        if idx == -1:
            raise UnknownItemError(item_id, section_id)
        if new_index < 0 or new_index > len(section.items) - 1:
            raise IndexOutOfRangeError(new_index, 0, len(section.items) - 1)
        item = section.items.pop(idx)
        section.items.insert(new_index, item)
        section.touch()
        self._touch()
        return item

    def move_item_between_sections(
        self,
        item_id: str,
        from_section_id: str,
        to_section_id: str,
        position: Optional[int] = None,
    ) -> Item:
        """Move an item into another section at ``position`` (append if None).

        When both ids are equal this is a within-section move, with an
        omitted position meaning "last".
        """
        source = self._require_section(from_section_id)
        target = self._require_section(to_section_id)
        source.require_list()
        target.require_list()
        idx = source.item_index(item_id)
        if idx == -1:
            raise UnknownItemError(item_id, from_section_id)

        if from_section_id == to_section_id:
            new_index = len(source.items) - 1 if position is None else position
            return self.move_item_within_section(from_section_id, item_id, new_index)

        if position is not None and not 0 <= position <= len(target.items):
            raise IndexOutOfRangeError(position, 0, len(target.items), "position")

        item = source.items.pop(idx)
        if position is None:
            target.items.append(item)
        else:
            target.items.insert(position, item)
        source.touch()
        target.touch()
        self._touch()
        return item

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_snapshot(self) -> Dict[str, Any]:
        """Return a fully independent, JSON-compatible copy of the planner state."""
        return {
            "planner_id": self.id,
            "sections": {sid: section.to_dict() for sid, section in self._sections.items()},
            "columns_order": [list(col) for col in self._columns_order],
            "orientation": self.orientation,
            "format_version": self.format_version,
            "created_at": self.created_at,
            "last_modified": self.updated_at,
        }

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any]) -> "Planner":
        """Rebuild a planner from :meth:`to_snapshot` output.

        Raises ValidationError for structurally malformed or inconsistent data.
        """
        if not isinstance(snapshot, dict):
            raise ValidationError("Planner snapshot must be a mapping", ["snapshot is not a mapping"])
        try:
            raw_sections = snapshot.get("sections") or {}
            if not isinstance(raw_sections, dict):
                raise ValidationError("Planner sections must be a mapping", ["sections is not a mapping"])
            sections: List[Section] = []
            for key, raw in raw_sections.items():
                section = Section.from_dict(raw)
                if section.id != key:
                    raise ValidationError(
                        f"Section key '{key}' does not match section id '{section.id}'",
                        [f"mismatched section key {key}"],
                    )
                sections.append(section)
            columns = snapshot.get("columns_order")
            if columns is None:
                columns = [[]]
            if not isinstance(columns, list) or not all(isinstance(col, list) for col in columns):
                raise ValidationError("Planner columns_order must be a list of lists", ["bad columns_order"])
            last_modified = snapshot.get("last_modified")
            created_at = snapshot.get("created_at", last_modified)
            return cls(
                planner_id=snapshot.get("planner_id"),
                sections=sections,
                columns_order=columns,
                orientation=snapshot.get("orientation", "portrait"),
                format_version=snapshot.get("format_version", FORMAT_VERSION),
                created_at=created_at,
                updated_at=last_modified,
            )
        except ValidationError:
            raise
        except SectionKindError as exc:
            raise ValidationError(f"Malformed planner snapshot: {exc}", [str(exc)]) from exc
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            raise ValidationError(f"Malformed planner snapshot: {exc}", [str(exc)]) from exc

    def copy(self) -> "Planner":
        """Exact, independent copy (same ids and timestamps)."""
        return Planner.from_snapshot(self.to_snapshot())

    def clone(self) -> "Planner":
        """Copy with fresh planner, section and item ids; ordering is preserved."""
        id_map: Dict[str, str] = {}
        sections: List[Section] = []
        for section in self._sections.values():
            data = section.to_dict()
            data["id"] = id_map.setdefault(section.id, new_id("section"))
            data["items"] = [dict(item, id=new_id("item")) for item in data["items"]]
            sections.append(Section.from_dict(data))
        return Planner(
            sections=sections,
            columns_order=[[id_map[sid] for sid in col] for col in self._columns_order],
            orientation=self.orientation,
            format_version=self.format_version,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Planner):
            return NotImplemented
        return self.to_snapshot() == other.to_snapshot()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Planner(id={self.id!r}, sections={len(self._sections)}, "
            f"columns={len(self._columns_order)}, orientation={self.orientation!r})"
        )

    def __str__(self) -> str:
        return (
            f"Planner ({len(self._sections)} sections, {len(self._columns_order)} columns, "
            f"{self.orientation})"
        )
