"""Pure placement helpers for drag-and-drop reordering.

Maps a 1-D pointer position onto a discrete insertion point. Nothing here
keeps state, so every function can run on each pointer-move tick and always
returns the same answer for the same inputs.

Resolution composes in two steps: pick the target container whose midpoint
is nearest to the pointer along the container axis, then pick the anchor
among that container's children along the child axis.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence, Tuple

__all__ = [
    "Bounds",
    "ContainerBounds",
    "Anchor",
    "Placement",
    "resolve_anchor",
    "resolve_container",
    "resolve_placement",
    "autoscroll_velocity",
]

Side = Literal["before", "after", "end"]


@dataclass(frozen=True)
class Bounds:
    """Extent of one element along the resolution axis (``start <= end``)."""

    id: str
    start: float
    end: float

    @property
    def midpoint(self) -> float:
        return self.start + (self.end - self.start) / 2.0


@dataclass(frozen=True)
class ContainerBounds:
    """A drop container (column or section) and its ordered children."""

    id: str
    bounds: Bounds
    children: Tuple[Bounds, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Anchor:
    """Insert before ``before_id``; ``None`` means at the end of the container."""

    before_id: Optional[str] = None

    @property
    def is_end(self) -> bool:
        return self.before_id is None


@dataclass(frozen=True)
class Placement:
    """Resolved insertion point.

    ``reference_id``/``side`` describe the winning sibling as seen by the
    pointer; ``anchor`` is the equivalent before-id form consumed on drop.
    """

    container_id: Optional[str]
    anchor: Anchor
    reference_id: Optional[str] = None
    side: Side = "end"


def resolve_anchor(
    pointer: float,
    candidates: Sequence[Bounds],
    dragged_id: Optional[str] = None,
    container_id: Optional[str] = None,
) -> Placement:
    """Return the insertion point for ``pointer`` among ordered ``candidates``.

    The dragged element is never a candidate. With no candidates left, or a
    pointer beyond the last candidate's trailing edge, the result appends.
    Otherwise the candidate with the nearest midpoint wins (first one on
    ties) and the side is "before" only when the pointer is strictly above
    that midpoint.
    """
    siblings = [c for c in candidates if c.id != dragged_id]
    if not siblings or pointer > siblings[-1].end:
        return Placement(container_id, Anchor())

    best_idx = 0
    best_distance = abs(siblings[0].midpoint - pointer)
    for idx in range(1, len(siblings)):
        distance = abs(siblings[idx].midpoint - pointer)
        if distance < best_distance:
            best_idx, best_distance = idx, distance

    winner = siblings[best_idx]
    if pointer < winner.midpoint:
        return Placement(container_id, Anchor(winner.id), winner.id, "before")

    following = siblings[best_idx + 1].id if best_idx + 1 < len(siblings) else None
    return Placement(container_id, Anchor(following), winner.id, "after")


def resolve_container(pointer: float, containers: Sequence[ContainerBounds]) -> Optional[ContainerBounds]:
    """Pick the container whose midpoint is nearest to ``pointer`` (first on ties)."""
    best: Optional[ContainerBounds] = None
    best_distance = 0.0
    for container in containers:
        distance = abs(container.bounds.midpoint - pointer)
        if best is None or distance < best_distance:
            best, best_distance = container, distance
    return best


def resolve_placement(
    container_pointer: float,
    pointer: float,
    containers: Sequence[ContainerBounds],
    dragged_id: Optional[str] = None,
) -> Optional[Placement]:
    """Resolve the container first, then the anchor within it.

    ``container_pointer`` is the pointer position on the axis the containers
    are laid out along (x for columns); ``pointer`` is the position on the
    children axis (y). Returns None when there are no containers.
    """
    container = resolve_container(container_pointer, containers)
    if container is None:
        return None
    return resolve_anchor(pointer, container.children, dragged_id, container.id)


def autoscroll_velocity(pointer: float, viewport: float, threshold: float = 50.0, speed: float = 5.0) -> float:
    """Signed scroll velocity for a pointer near the viewport edges.

    Negative scrolls up, positive scrolls down, zero inside the safe band.
    Velocity grows linearly from 0 at the threshold to ``speed`` at the edge.
    """
    if viewport <= 0:
        return 0.0
    pointer = max(0.0, min(float(pointer), float(viewport)))
    band = max(1.0, min(float(threshold), viewport / 2.0))
    if pointer < band:
        return -speed * (band - pointer) / band
    if pointer > viewport - band:
        return speed * (pointer - (viewport - band)) / band
    return 0.0
