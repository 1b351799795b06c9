from __future__ import annotations

"""Planner exception classes.

Every failure the core can report derives from :class:`PlannerError` so that
callers can catch the whole family at a service boundary. The hierarchy
mirrors the kinds of failure the core distinguishes:

- referential: an id that does not resolve (section, item, column)
- range: an index or position outside its valid bounds
- conflict: a drag gesture that collides with an active one
- persistence: a failure reported by a storage gateway
"""

from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = [
    "PlannerError",
    "UnknownSectionError",
    "UnknownItemError",
    "UnknownColumnError",
    "IndexOutOfRangeError",
    "SectionKindError",
    "ValidationError",
    "ConflictingDragError",
    "StorageErrorCode",
    "PersistenceError",
]


class PlannerError(Exception):
    """Base exception for all planner errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.details: Dict[str, Any] = dict(details or {})


class UnknownSectionError(PlannerError):
    """Raised when a section id does not exist in the planner."""

    def __init__(self, section_id: str) -> None:
        super().__init__(f"Section '{section_id}' does not exist in planner", {"section_id": section_id})
        self.section_id = section_id


class UnknownItemError(PlannerError):
    """Raised when an item id cannot be found in the expected section(s)."""

    def __init__(self, item_id: str, section_id: Optional[str] = None) -> None:
        if section_id:
            message = f"Item '{item_id}' does not exist in section '{section_id}'"
        else:
            message = f"Item '{item_id}' does not exist in planner"
        super().__init__(message, {"item_id": item_id, "section_id": section_id})
        self.item_id = item_id
        self.section_id = section_id


class UnknownColumnError(PlannerError):
    """Raised when a column index or column container id does not resolve."""

    def __init__(self, column: Any, column_count: Optional[int] = None) -> None:
        if column_count is not None:
            message = f"Column {column!r} does not exist (planner has {column_count} columns)"
        else:
            message = f"Column {column!r} does not exist"
        super().__init__(message, {"column": column, "column_count": column_count})
        self.column = column


class IndexOutOfRangeError(PlannerError):
    """Raised when an index or insert position is outside ``[lower, upper]``."""

    def __init__(self, index: int, lower: int, upper: int, what: str = "index") -> None:
        super().__init__(
            f"Invalid {what}: {index}. Must be between {lower} and {upper}",
            {"index": index, "lower": lower, "upper": upper},
        )
        self.index = index
        self.lower = lower
        self.upper = upper


class SectionKindError(PlannerError):
    """Raised when an operation does not apply to the section's kind.

    Item operations are only valid on list sections; freeform content is only
    valid on freeform sections. The kind itself can never change.
    """


class ValidationError(PlannerError):
    """Raised when planner data violates one or more model constraints."""

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message, {"errors": list(errors or [])})
        self.errors: List[str] = list(errors or [])


class ConflictingDragError(PlannerError):
    """Raised when a drag of one kind starts while a drag of the other kind is active."""

    def __init__(self, active_kind: str, requested_kind: str) -> None:
        super().__init__(
            f"Cannot start a {requested_kind} drag while a {active_kind} drag is active",
            {"active_kind": active_kind, "requested_kind": requested_kind},
        )
        self.active_kind = active_kind
        self.requested_kind = requested_kind


class StorageErrorCode(str, Enum):
    """Failure taxonomy surfaced by persistence gateways."""

    QUOTA_EXCEEDED = "quota_exceeded"
    NOT_AVAILABLE = "not_available"
    PARSE_ERROR = "parse_error"
    WRITE_ERROR = "write_error"
    READ_ERROR = "read_error"
    UNKNOWN = "unknown"


class PersistenceError(PlannerError):
    """Typed failure raised by a :class:`PersistenceGateway`."""

    def __init__(
        self,
        message: str,
        code: StorageErrorCode = StorageErrorCode.UNKNOWN,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, {"code": code.value, "key": key})
        self.code = code
        self.key = key
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.code.value}] {super().__str__()}"
