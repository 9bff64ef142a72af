"""
Board projection for Roadboard.

Turns a flat item list into the board layout for one grouping dimension:
groupings in display order, each split into the now/next/later columns.
project_board() is a pure function of its inputs.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from roadboard.constants import (
    UNASSIGNED_ID,
    UNASSIGNED_ORDER_INDEX,
    UNASSIGNED_TITLE,
    get_unassigned_color,
)
from roadboard.models.base import RoadmapStatus
from roadboard.models.grouping import GroupingEntity
from roadboard.models.kinds import GroupingDimension
from roadboard.models.roadmap import Item

Columns = Dict[RoadmapStatus, List[Item]]


@dataclass
class GroupColumns:
    """One grouping row of the board with its three status columns."""

    grouping: GroupingEntity
    columns: Columns

    @property
    def is_unassigned(self) -> bool:
        return self.grouping.id == UNASSIGNED_ID

    @property
    def count(self) -> int:
        return sum(len(items) for items in self.columns.values())


@dataclass
class BoardProjection:
    """Render-ready board for one grouping dimension."""

    dimension: GroupingDimension
    groups: List[GroupColumns]

    def group(self, grouping_id: str) -> Optional[GroupColumns]:
        for group in self.groups:
            if group.grouping.id == grouping_id:
                return group
        return None

    def bucket(self, grouping_id: str, status: RoadmapStatus | str) -> List[Item]:
        """Get the ordered items of one (grouping, status) bucket."""
        group = self.group(grouping_id)
        if group is None:
            return []
        return list(group.columns[RoadmapStatus(status)])

    def locate(self, item_id: str) -> Optional[Tuple[str, RoadmapStatus]]:
        """Find the (grouping id, status) bucket holding an item."""
        for group in self.groups:
            for status, items in group.columns.items():
                if any(item.id == item_id for item in items):
                    return group.grouping.id, status
        return None

    @property
    def unassigned(self) -> Optional[GroupColumns]:
        return self.group(UNASSIGNED_ID)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "dimension": self.dimension.value,
            "groups": [
                {
                    "id": group.grouping.id,
                    "title": group.grouping.title,
                    "color": group.grouping.color,
                    "unassigned": group.is_unassigned,
                    "columns": {
                        status.value: [item.model_dump(mode="json") for item in items]
                        for status, items in group.columns.items()
                    },
                }
                for group in self.groups
            ],
        }


def unassigned_grouping(
    dimension: GroupingDimension,
    roadmap_id: str = "",
    color: Optional[str] = None,
) -> GroupingEntity:
    """Build the synthetic grouping that collects items without one."""
    fields: Dict[str, Any] = {
        "id": UNASSIGNED_ID,
        "roadmap_id": roadmap_id,
        "title": UNASSIGNED_TITLE,
        "color": color or get_unassigned_color(),
        "order_index": UNASSIGNED_ORDER_INDEX,
    }
    if "description" in dimension.model.model_fields:
        fields["description"] = f"Items not assigned to any {dimension.value}"
    return dimension.model(**fields)


def _empty_columns() -> Columns:
    return {status: [] for status in RoadmapStatus}


def _sorted_columns(columns: Columns) -> Columns:
    # sorted() is stable: equal order_index keeps input order
    return {status: sorted(items, key=lambda item: item.order_index) for status, items in columns.items()}


def project_board(
    items: Iterable[Item],
    groupings: Iterable[GroupingEntity],
    dimension: GroupingDimension,
    roadmap_id: Optional[str] = None,
    unassigned_color: Optional[str] = None,
) -> BoardProjection:
    """Group items by one dimension and status.

    Args:
        items: Effective items (pending patches already applied).
        groupings: Groupings of the selected dimension.
        dimension: Which item foreign key to group by.
        roadmap_id: Roadmap id given to the synthetic Unassigned grouping.
        unassigned_color: Color of the synthetic Unassigned grouping.

    Returns:
        Groupings sorted by order_index, followed by Unassigned when at least
        one item has no grouping (or one that does not exist).
    """
    ordered = sorted(groupings, key=lambda grouping: grouping.order_index)
    foreign_key = dimension.foreign_key
    buckets: Dict[str, Columns] = {grouping.id: _empty_columns() for grouping in ordered}
    stray = _empty_columns()

    for item in items:
        grouping_id = getattr(item, foreign_key)
        target = buckets.get(grouping_id, stray) if grouping_id else stray
        target[item.status].append(item)
        if roadmap_id is None:
            roadmap_id = item.roadmap_id

    groups = [GroupColumns(grouping, _sorted_columns(buckets[grouping.id])) for grouping in ordered]
    if any(stray.values()):
        groups.append(GroupColumns(
            unassigned_grouping(dimension, roadmap_id or "", unassigned_color),
            _sorted_columns(stray),
        ))
    return BoardProjection(dimension=dimension, groups=groups)
