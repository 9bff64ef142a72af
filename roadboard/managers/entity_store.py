"""
EntityStore for Roadboard.

In-memory copy of one roadmap and its children as last fetched from (or
confirmed by) the remote store. Records are never edited in place: every
change swaps in a new record and a new list, so anything derived from an
earlier state stays consistent.
"""

from typing import Any, Dict, List, Optional

from roadboard.exceptions import InvalidOperationError
from roadboard.managers.remote_store import RemoteStore
from roadboard.models.files import RoadmapSnapshot
from roadboard.models.grouping import GroupingEntity
from roadboard.models.kinds import GroupingDimension
from roadboard.models.roadmap import Item, Roadmap

_DIMENSION_FIELDS = {
    GroupingDimension.OBJECTIVE: "objectives",
    GroupingDimension.MODULE: "modules",
    GroupingDimension.TEAM: "teams",
}


class EntityStore:
    """
    Holds the base (confirmed) state of a roadmap.

    Usage:
        store = EntityStore()
        await store.load(remote, roadmap_id)

        item = store.get_item(item_id)
        store.put_item(item.apply({"status": "now"}))
    """

    def __init__(self, snapshot: Optional[RoadmapSnapshot] = None) -> None:
        self._snapshot = snapshot

    async def load(self, remote: RemoteStore, roadmap_id: str) -> RoadmapSnapshot:
        """Fetch the roadmap from the remote store and replace the current state."""
        snapshot = await remote.fetch_all(roadmap_id)
        self.replace(snapshot)
        return snapshot

    def replace(self, snapshot: RoadmapSnapshot) -> None:
        """Replace the whole state with a freshly fetched snapshot."""
        self._snapshot = snapshot

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> RoadmapSnapshot:
        if self._snapshot is None:
            raise InvalidOperationError("No roadmap loaded.")
        return self._snapshot

    @property
    def roadmap(self) -> Roadmap:
        return self.snapshot.roadmap

    @property
    def items(self) -> List[Item]:
        return list(self.snapshot.items)

    def _swap(self, **update: Any) -> None:
        self._snapshot = self.snapshot.model_copy(update=update)

    # =========================================================================
    # Items
    # =========================================================================

    def get_item(self, item_id: str) -> Optional[Item]:
        """Get an item by id, or None."""
        for item in self.snapshot.items:
            if item.id == item_id:
                return item
        return None

    def put_item(self, item: Item) -> None:
        """Insert a new item at the end, or replace the item with the same id."""
        items = list(self.snapshot.items)
        for index, existing in enumerate(items):
            if existing.id == item.id:
                items[index] = item
                break
        else:
            items.append(item)
        self._swap(items=items)

    def apply_item_update(self, item_id: str, fields: Dict[str, Any]) -> Optional[Item]:
        """Replace an item with a patched copy.

        Returns:
            The new item, or None if the item is no longer in the store.
        """
        item = self.get_item(item_id)
        if item is None:
            return None
        updated = item.apply(fields)
        self.put_item(updated)
        return updated

    def remove_item(self, item_id: str) -> bool:
        """Remove an item. Returns True if it was present."""
        items = [i for i in self.snapshot.items if i.id != item_id]
        if len(items) == len(self.snapshot.items):
            return False
        self._swap(items=items)
        return True

    # =========================================================================
    # Groupings
    # =========================================================================

    def groupings(self, dimension: GroupingDimension) -> List[GroupingEntity]:
        """Get the groupings of one dimension in store order."""
        return list(self.snapshot.groupings(dimension))

    def get_grouping(self, dimension: GroupingDimension, grouping_id: str) -> Optional[GroupingEntity]:
        """Get a grouping by id, or None."""
        for grouping in self.snapshot.groupings(dimension):
            if grouping.id == grouping_id:
                return grouping
        return None

    def find_grouping_by_title(self, dimension: GroupingDimension, title: str) -> Optional[GroupingEntity]:
        """Find a grouping by case-insensitive exact title, ignoring surrounding whitespace."""
        return find_by_title(self.snapshot.groupings(dimension), title)

    def put_grouping(self, dimension: GroupingDimension, grouping: GroupingEntity) -> None:
        """Insert a new grouping at the end, or replace the one with the same id."""
        groupings = list(self.snapshot.groupings(dimension))
        for index, existing in enumerate(groupings):
            if existing.id == grouping.id:
                groupings[index] = grouping
                break
        else:
            groupings.append(grouping)
        self._swap(**{_DIMENSION_FIELDS[dimension]: groupings})

    def remove_grouping(self, dimension: GroupingDimension, grouping_id: str) -> List[str]:
        """Remove a grouping and unassign its items in that dimension.

        Items are otherwise left exactly as they were.

        Returns:
            Ids of the items that were unassigned.
        """
        groupings = [g for g in self.snapshot.groupings(dimension) if g.id != grouping_id]
        foreign_key = dimension.foreign_key
        unassigned = []
        items = []
        for item in self.snapshot.items:
            if getattr(item, foreign_key) == grouping_id:
                item = item.apply({foreign_key: None})
                unassigned.append(item.id)
            items.append(item)
        self._swap(items=items, **{_DIMENSION_FIELDS[dimension]: groupings})
        return unassigned

    def set_roadmap(self, roadmap: Roadmap) -> None:
        """Replace the roadmap record itself."""
        self._swap(roadmap=roadmap)


def find_by_title(groupings: List[GroupingEntity], title: str) -> Optional[GroupingEntity]:
    """Find the first grouping whose title matches, case-insensitively."""
    wanted = title.strip().lower()
    if not wanted:
        return None
    for grouping in groupings:
        if grouping.title.strip().lower() == wanted:
            return grouping
    return None
