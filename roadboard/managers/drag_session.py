"""
Drag-and-drop session state for the board.

Tracks one pointer gesture at a time (idle -> dragging -> idle) and turns a
drop on a "<groupingId>-<status>" zone into a status patch for the
MutationLayer.
"""

import asyncio
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from roadboard.constants import get_drag_threshold
from roadboard.logger import get_logger
from roadboard.managers.mutation_layer import MutationLayer
from roadboard.models.base import RoadmapStatus

logger = get_logger(__name__)

# Grouping ids may contain '-', so only the last segment is the status
DROP_ZONE_PATTERN = re.compile(r"^(.+)-(now|next|later)$")


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class DropTarget:
    """The bucket under the pointer when an item is released."""

    grouping_id: str
    status: RoadmapStatus


def drop_zone_id(grouping_id: str, status: RoadmapStatus | str) -> str:
    """Build the drop zone id of a (grouping, status) bucket."""
    return f"{grouping_id}-{RoadmapStatus(status).value}"


def parse_drop_zone(zone_id: Optional[str]) -> Optional[DropTarget]:
    """Resolve a drop zone id, or None if it is not a valid target."""
    if not zone_id:
        return None
    match = DROP_ZONE_PATTERN.match(zone_id)
    if not match:
        return None
    return DropTarget(grouping_id=match.group(1), status=RoadmapStatus(match.group(2)))


class DragSession:
    """
    State of the current pointer gesture.

    A press only becomes a drag once the pointer has moved further than the
    threshold, so a plain click never moves an item.

    Usage:
        session = DragSession(mutations)
        session.press(item_id, 10, 10)
        session.move(40, 12)               # now dragging
        session.hover(drop_zone_id(objective_id, "now"))
        task = session.release()           # patch handed to the MutationLayer
    """

    def __init__(self, mutations: MutationLayer, threshold: Optional[float] = None) -> None:
        """
        Initialize DragSession.

        Args:
            mutations: MutationLayer receiving the status patch on drop.
            threshold: Pointer distance that starts a drag. Defaults to config value.
        """
        self.mutations = mutations
        self.threshold = threshold if threshold is not None else get_drag_threshold()
        self._reset()

    def _reset(self) -> None:
        self.state = DragState.IDLE
        self._pressed_item: Optional[str] = None
        self._origin: Optional[Tuple[float, float]] = None
        self._hovered: Optional[str] = None

    @property
    def active_item_id(self) -> Optional[str]:
        """Id of the item being dragged, for rendering a drag preview."""
        return self._pressed_item if self.state == DragState.DRAGGING else None

    @property
    def hovered_target(self) -> Optional[DropTarget]:
        return parse_drop_zone(self._hovered) if self.state == DragState.DRAGGING else None

    def press(self, item_id: str, x: float, y: float) -> None:
        """Pointer pressed on a draggable item."""
        self._reset()
        self._pressed_item = item_id
        self._origin = (x, y)

    def move(self, x: float, y: float) -> DragState:
        """Pointer moved; starts the drag once past the threshold."""
        if self.state == DragState.IDLE and self._origin is not None:
            distance = math.hypot(x - self._origin[0], y - self._origin[1])
            if distance > self.threshold:
                self.state = DragState.DRAGGING
                logger.debug(f"Drag started for {self._pressed_item}")
        return self.state

    def hover(self, zone_id: Optional[str]) -> None:
        """Pointer is over a drop zone (None when over nothing)."""
        if self.state == DragState.DRAGGING:
            self._hovered = zone_id

    def cancel(self) -> None:
        """Abort the gesture without any effect."""
        self._reset()

    def release(self, zone_id: Optional[str] = None) -> Optional[asyncio.Task]:
        """Pointer released; ends the gesture.

        Args:
            zone_id: Drop zone under the pointer. Defaults to the last hovered zone.

        Returns:
            The MutationLayer task when a status change was sent, else None.
        """
        item_id = self.active_item_id
        target = parse_drop_zone(zone_id if zone_id is not None else self._hovered)
        self._reset()

        if item_id is None or target is None:
            return None
        return self.mutations.apply_optimistic(item_id, {"status": target.status})
