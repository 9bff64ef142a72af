"""
RoadboardCore - Core business logic for one roadmap board.

Orchestrates the managers behind the board:
loads the roadmap into the EntityStore, routes item edits through the
MutationLayer, creates/deletes records through the RemoteStore and derives
board projections. Remote failures are logged and reported as passive
notifications on the EventBus; they never propagate to the caller.
"""

import asyncio
from typing import Any, Dict, Optional

from roadboard.constants import get_csv_has_headers, get_default_color
from roadboard.exceptions import RemoteStoreError, ValidationError
from roadboard.logger import get_logger
from roadboard.managers.csv_importer import ImportContext, ImportPreview, ImportSummary, parse_import
from roadboard.managers.drag_session import DragSession
from roadboard.managers.entity_store import EntityStore
from roadboard.managers.events import Event, EventBus, EventType, GroupingEvent, ItemEvent, get_event_bus
from roadboard.managers.mutation_layer import MutationLayer
from roadboard.managers.projection import BoardProjection, project_board
from roadboard.managers.remote_store import RemoteStore
from roadboard.models.base import RoadmapStatus
from roadboard.models.files import RoadmapSnapshot
from roadboard.models.grouping import GroupingEntity
from roadboard.models.kinds import EntityKind, GroupingDimension
from roadboard.models.roadmap import Item, Roadmap

logger = get_logger(__name__)

ROADMAP_FIELDS = frozenset({"title", "description", "is_public", "share_token"})
GROUPING_FIELDS = frozenset({"title", "color", "description", "order_index"})


class RoadboardCore:
    """
    Core class for operations on one roadmap.

    Orchestrates manager classes:
    - EntityStore: Confirmed state of the roadmap
    - MutationLayer: Optimistic item edits
    - DragSession: Drag-and-drop gestures feeding the MutationLayer
    - project_board: Board layout per grouping dimension
    - csv_importer: Parsing CSV uploads
    - EventBus: Events and passive notifications
    """

    def __init__(
        self,
        remote: RemoteStore,
        roadmap_id: str,
        event_bus: Optional[EventBus] = None,
        drag_threshold: Optional[float] = None,
    ):
        """
        Initialize the RoadboardCore for one roadmap.

        Args:
            remote: RemoteStore holding the authoritative data.
            roadmap_id: Id of the roadmap to work on.
            event_bus: Bus for events and notifications. Defaults to the global bus.
            drag_threshold: Pointer distance that starts a drag. Defaults to config value.
        """
        self.remote = remote
        self.roadmap_id = roadmap_id
        self.event_bus = event_bus if event_bus is not None else get_event_bus()
        self.store = EntityStore()
        self.mutations = MutationLayer(self.store, remote, self.event_bus)
        self.drag = DragSession(self.mutations, drag_threshold)

    async def load(self) -> RoadmapSnapshot:
        """Fetch the roadmap and everything it owns.

        Raises:
            RemoteStoreError: If the roadmap cannot be fetched.
        """
        snapshot = await self.store.load(self.remote, self.roadmap_id)
        logger.info(
            f"Loaded roadmap {self.roadmap_id}: {len(snapshot.items)} items, "
            f"{len(snapshot.objectives)} objectives, {len(snapshot.modules)} modules, {len(snapshot.teams)} teams"
        )
        return snapshot

    @property
    def roadmap(self) -> Roadmap:
        return self.store.roadmap

    def _failed(self, message: str, error: Exception, **data: Any) -> None:
        logger.warning(f"{message}: {error}")
        self.event_bus.notify(message, level="error", error=str(error), **data)

    def _missing(self, message: str, **data: Any) -> None:
        logger.warning(message)
        self.event_bus.notify(message, level="warning", **data)

    def _unknown_grouping(self, fields: Dict[str, Any]) -> bool:
        """Report the first grouping id in fields that is not in this roadmap."""
        for dimension in GroupingDimension:
            grouping_id = fields.get(dimension.foreign_key)
            if grouping_id and self.store.get_grouping(dimension, grouping_id) is None:
                self._missing(f"{dimension.label} '{grouping_id}' not found", grouping_id=grouping_id)
                return True
        return False

    # =========================================================================
    # Board
    # =========================================================================

    def projection(self, dimension: GroupingDimension | str = GroupingDimension.OBJECTIVE) -> BoardProjection:
        """Board layout for a dimension, pending patches included."""
        dimension = GroupingDimension(dimension)
        return project_board(
            self.mutations.effective_items(),
            self.store.groupings(dimension),
            dimension,
            roadmap_id=self.roadmap_id,
        )

    def update_item(self, item_id: str, fields: Dict[str, Any]) -> Optional[asyncio.Task]:
        """Edit an item optimistically (see MutationLayer.apply_optimistic)."""
        if self._unknown_grouping(fields):
            return None
        return self.mutations.apply_optimistic(item_id, fields)

    def move_item(self, item_id: str, status: RoadmapStatus | str) -> Optional[asyncio.Task]:
        """Move an item to another status column."""
        try:
            status = RoadmapStatus(status)
        except ValueError as e:
            raise ValidationError(f"Unknown status '{status}'") from e
        return self.mutations.apply_optimistic(item_id, {"status": status})

    async def drain(self) -> None:
        """Wait for every optimistic update to resolve."""
        await self.mutations.drain()

    # =========================================================================
    # Items
    # =========================================================================

    async def create_item(
        self,
        fields: Dict[str, Any],
        new_objective_title: Optional[str] = None,
    ) -> Optional[Item]:
        """Create an item, optionally in a new objective created first.

        Args:
            fields: Item fields (title and status at least).
            new_objective_title: Create this objective and assign the item to it.

        Returns:
            The created item, or None if the remote store refused it.
        """
        values = dict(fields)
        if self._unknown_grouping(values):
            return None
        if new_objective_title:
            objective = await self.create_grouping(GroupingDimension.OBJECTIVE, new_objective_title)
            if objective is None:
                return None
            values["objective_id"] = objective.id

        values["roadmap_id"] = self.roadmap_id
        values.setdefault("order_index", 0)
        try:
            item = await self.remote.create(EntityKind.ITEM, values)
        except RemoteStoreError as e:
            self._failed("Failed to create item", e, title=values.get("title"))
            return None

        self.store.put_item(item)
        self.event_bus.publish(ItemEvent(
            type=EventType.ITEM_CREATED, item_id=item.id, item_title=item.title, status=item.status.value
        ))
        return item

    async def delete_item(self, item_id: str) -> bool:
        """Delete an item. Returns True when it was deleted."""
        item = self.store.get_item(item_id)
        if item is None:
            self._missing(f"Item '{item_id}' not found", item_id=item_id)
            return False

        try:
            await self.remote.delete(EntityKind.ITEM, item_id)
        except RemoteStoreError as e:
            self._failed("Failed to delete item", e, item_id=item_id)
            return False

        self.store.remove_item(item_id)
        self.mutations.discard(item_id)
        self.event_bus.publish(ItemEvent(
            type=EventType.ITEM_DELETED, item_id=item.id, item_title=item.title, status=item.status.value
        ))
        return True

    # =========================================================================
    # Groupings
    # =========================================================================

    async def create_grouping(
        self,
        dimension: GroupingDimension | str,
        title: str,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[GroupingEntity]:
        """Create an objective, module or team at the end of its dimension."""
        dimension = GroupingDimension(dimension)
        if not title.strip():
            raise ValidationError(f"{dimension.label} title is required.")

        values: Dict[str, Any] = {
            "roadmap_id": self.roadmap_id,
            "title": title.strip(),
            "color": color or get_default_color(),
            "order_index": len(self.store.groupings(dimension)),
        }
        if description and dimension != GroupingDimension.OBJECTIVE:
            values["description"] = description

        try:
            grouping = await self.remote.create(dimension.entity_kind, values)
        except RemoteStoreError as e:
            self._failed(f"Failed to add {dimension.value}", e, title=title)
            return None

        self.store.put_grouping(dimension, grouping)
        self._publish_grouping(EventType.GROUPING_CREATED, dimension, grouping)
        return grouping

    async def update_grouping(
        self,
        dimension: GroupingDimension | str,
        grouping_id: str,
        fields: Dict[str, Any],
    ) -> Optional[GroupingEntity]:
        """Update an objective, module or team."""
        dimension = GroupingDimension(dimension)
        unknown = set(fields) - GROUPING_FIELDS
        if dimension == GroupingDimension.OBJECTIVE and "description" in fields:
            unknown.add("description")
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        if self.store.get_grouping(dimension, grouping_id) is None:
            self._missing(f"{dimension.label} '{grouping_id}' not found", grouping_id=grouping_id)
            return None

        try:
            grouping = await self.remote.update(dimension.entity_kind, grouping_id, fields)
        except RemoteStoreError as e:
            self._failed(f"Failed to update {dimension.value}", e, grouping_id=grouping_id)
            return None

        self.store.put_grouping(dimension, grouping)
        self._publish_grouping(EventType.GROUPING_UPDATED, dimension, grouping)
        return grouping

    async def delete_grouping(self, dimension: GroupingDimension | str, grouping_id: str) -> bool:
        """Delete an objective, module or team; its items become unassigned."""
        dimension = GroupingDimension(dimension)
        grouping = self.store.get_grouping(dimension, grouping_id)
        if grouping is None:
            self._missing(f"{dimension.label} '{grouping_id}' not found", grouping_id=grouping_id)
            return False

        try:
            await self.remote.delete(dimension.entity_kind, grouping_id)
        except RemoteStoreError as e:
            self._failed(f"Failed to delete {dimension.value}", e, grouping_id=grouping_id)
            return False

        unassigned = self.store.remove_grouping(dimension, grouping_id)
        logger.debug(f"Deleted {dimension.value} {grouping_id}, unassigned {len(unassigned)} items")
        self._publish_grouping(EventType.GROUPING_DELETED, dimension, grouping, unassigned=unassigned)
        return True

    def _publish_grouping(
        self,
        event_type: EventType,
        dimension: GroupingDimension,
        grouping: GroupingEntity,
        **data: Any,
    ) -> None:
        self.event_bus.publish(GroupingEvent(
            type=event_type,
            grouping_id=grouping.id,
            dimension=dimension.value,
            title=grouping.title,
            data=data,
        ))

    # =========================================================================
    # Roadmap
    # =========================================================================

    async def update_roadmap(self, fields: Dict[str, Any]) -> Optional[Roadmap]:
        """Update the roadmap's own fields (title, description, sharing)."""
        unknown = set(fields) - ROADMAP_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        try:
            roadmap = await self.remote.update(EntityKind.ROADMAP, self.roadmap_id, fields)
        except RemoteStoreError as e:
            self._failed("Failed to update roadmap", e)
            return None

        self.store.set_roadmap(roadmap)
        self.event_bus.publish(Event(
            type=EventType.ROADMAP_UPDATED, data={"roadmap_id": roadmap.id, "title": roadmap.title}
        ))
        return roadmap

    # =========================================================================
    # Import
    # =========================================================================

    def parse_import(self, content: str, has_headers: Optional[bool] = None) -> ImportPreview:
        """Parse CSV content against this roadmap's groupings.

        Raises:
            ImportParseError: If the file has no data rows.
        """
        if has_headers is None:
            has_headers = get_csv_has_headers()
        return parse_import(content, has_headers, ImportContext.from_snapshot(self.store.snapshot))

    async def commit_import(self, preview: ImportPreview) -> ImportSummary:
        """Create one item per record, issues or not.

        A failed row is reported and skipped; the other rows are still created.
        """
        summary = ImportSummary()
        for record in preview.records:
            item = await self.create_item(record.to_item_fields())
            if item is None:
                summary.failed.append(record.row)
            else:
                summary.created.append(item)

        logger.info(f"Imported {len(summary.created)} items, {len(summary.failed)} failed")
        self.event_bus.publish(Event(
            type=EventType.IMPORT_COMPLETED,
            data={"created": len(summary.created), "failed": list(summary.failed)},
        ))
        if summary.failed:
            self.event_bus.notify(
                f"{len(summary.failed)} of {len(preview.records)} rows could not be imported",
                level="error",
                rows=list(summary.failed),
            )
        return summary
