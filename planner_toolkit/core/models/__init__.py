from __future__ import annotations

"""Shared data structures used across the planner core.

This package exposes the entities owned by the :class:`Planner` aggregate.
It is intentionally free of UI / I/O code so that the contained objects can
be reused in any context (unit-tests, CLI, GUI, etc.).

Sections and items never hold references to their owners: a section knows
its column only by index and an item knows nothing about its section. All
lookups go through the planner's id-indexed maps.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import time
import uuid

from planner_toolkit.core.exceptions import SectionKindError, ValidationError

__all__ = ["Item", "Section", "SectionKind", "Planner", "new_id", "now"]

ITEM_TEXT_MAX_LENGTH = 500


def new_id(prefix: str) -> str:
    """Return a fresh unique identifier such as ``section-3f2a9c1be0d4``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def now(previous: float = 0.0) -> float:
    """Return the current epoch time, never earlier than ``previous``."""
    return max(time.time(), previous)


class SectionKind(str, Enum):
    """Content kind of a section, fixed at creation."""

    LIST = "list"
    FREEFORM = "freeform"


@dataclass
class Item:
    """A single checkable line of text owned by exactly one list section.

    Attributes
    ----------
    id
        Unique, immutable identifier.
    text
        Item text, at most 500 characters.
    checked
        Completion flag.
    created_at, updated_at
        Epoch seconds; ``updated_at`` never moves backwards.
    """

    id: str = field(default_factory=lambda: new_id("item"))
    text: str = ""
    checked: bool = False
    created_at: float = field(default_factory=time.time)
    updated_at: float = 0.0

    def __post_init__(self) -> None:
        if not self.updated_at:
            self.updated_at = self.created_at

    def validate(self) -> List[str]:
        """Return a list of constraint violations (empty when valid)."""
        errors: List[str] = []
        if not isinstance(self.id, str) or not self.id:
            errors.append("Item ID must be a non-empty string")
        if not isinstance(self.text, str):
            errors.append("Item text must be a string")
        elif len(self.text) > ITEM_TEXT_MAX_LENGTH:
            errors.append(f"Item text must be less than {ITEM_TEXT_MAX_LENGTH} characters")
        if not isinstance(self.checked, bool):
            errors.append("Item checked must be a boolean")
        if self.updated_at < self.created_at:
            errors.append("Item updated_at cannot be before created_at")
        return errors

    def update(self, text: Optional[str] = None, checked: Optional[bool] = None) -> None:
        """Update mutable fields; raise ValidationError and keep state on bad input."""
        new_text = self.text if text is None else text
        new_checked = self.checked if checked is None else checked
        probe = Item(id=self.id, text=new_text, checked=new_checked,
                     created_at=self.created_at, updated_at=self.updated_at)
        errors = probe.validate()
        if errors:
            raise ValidationError(f"Item validation failed: {', '.join(errors)}", errors)
        self.text = new_text
        self.checked = new_checked
        self.updated_at = now(self.updated_at)

    def toggle_checked(self) -> bool:
        self.checked = not self.checked
        self.updated_at = now(self.updated_at)
        return self.checked

    def is_empty(self) -> bool:
        return not self.text.strip()

    @property
    def display_text(self) -> str:
        return self.text.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "checked": self.checked,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        item = cls(
            id=data.get("id") or new_id("item"),
            text=data.get("text", ""),
            checked=data.get("checked", False),
            created_at=data.get("created_at") or time.time(),
            updated_at=data.get("updated_at") or 0.0,
        )
        errors = item.validate()
        if errors:
            raise ValidationError(f"Item validation failed: {', '.join(errors)}", errors)
        return item

    def __str__(self) -> str:
        return f"{'[x]' if self.checked else '[ ]'} {self.text}"


@dataclass
class Section:
    """A titled container of either ordered items or freeform text.

    ``kind`` is decided at creation and never changes. Only list sections
    carry ``items``; only freeform sections carry ``freeform_content``.
    ``column_index`` mirrors the column the section occupies, or -1 while
    it is orphaned.
    """

    id: str = field(default_factory=lambda: new_id("section"))
    title: str = "New Section"
    kind: SectionKind = SectionKind.LIST
    items: List[Item] = field(default_factory=list)
    freeform_content: str = ""
    placeholder: str = "Write something..."
    column_index: int = -1
    created_at: float = field(default_factory=time.time)
    updated_at: float = 0.0

    def __post_init__(self) -> None:
        self.kind = SectionKind(self.kind)
        if not self.updated_at:
            self.updated_at = self.created_at
        if self.kind is SectionKind.FREEFORM and self.items:
            raise SectionKindError(f"Freeform section '{self.id}' cannot hold items")

    @property
    def is_list(self) -> bool:
        return self.kind is SectionKind.LIST

    def require_list(self) -> None:
        if not self.is_list:
            raise SectionKindError(
                f"Section '{self.id}' is a freeform section and cannot hold items",
                {"section_id": self.id, "kind": self.kind.value},
            )

    def item_index(self, item_id: str) -> int:
        """Return the position of ``item_id`` in this section, or -1."""
        for idx, item in enumerate(self.items):
            if item.id == item_id:
                return idx
        return -1

    def touch(self) -> None:
        self.updated_at = now(self.updated_at)

    def update(self, **changes: Any) -> None:
        """Update title, placeholder or freeform content.

        ``kind`` and ``id`` are immutable; any attempt to change them raises.
        """
        if "kind" in changes or "id" in changes:
            raise SectionKindError("Section id and kind are fixed at creation")
        unknown = set(changes) - {"title", "placeholder", "freeform_content"}
        if unknown:
            raise ValueError(f"Unsupported section fields: {sorted(unknown)}")
        if "freeform_content" in changes and self.is_list:
            raise SectionKindError(f"Section '{self.id}' is a list section and has no freeform content")
        for key, value in changes.items():
            setattr(self, key, value)
        self.touch()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "kind": self.kind.value,
            "items": [item.to_dict() for item in self.items],
            "freeform_content": self.freeform_content,
            "placeholder": self.placeholder,
            "column_index": self.column_index,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Section":
        try:
            kind = SectionKind(data.get("kind", SectionKind.LIST.value))
        except ValueError as exc:
            raise ValidationError(f"Section validation failed: {exc}", [str(exc)]) from exc
        return cls(
            id=data.get("id") or new_id("section"),
            title=data.get("title", "New Section"),
            kind=kind,
            items=[Item.from_dict(raw) for raw in data.get("items") or []],
            freeform_content=data.get("freeform_content", ""),
            placeholder=data.get("placeholder", "Write something..."),
            column_index=int(data.get("column_index", -1)),
            created_at=data.get("created_at") or time.time(),
            updated_at=data.get("updated_at") or 0.0,
        )


from .planner import Planner  # noqa: E402
