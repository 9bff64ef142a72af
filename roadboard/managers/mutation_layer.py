"""
Optimistic mutation layer for Roadboard.

Item changes are shown immediately through an overlay of pending patches on
top of the EntityStore, while the remote update is still in flight. Each
pending patch carries the token of the request that installed it; a request
only ever clears the overlay entry bearing its own token, so a late response
can never erase a newer patch for the same item.
"""

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from roadboard.exceptions import InvalidOperationError, RemoteStoreError, ValidationError
from roadboard.logger import get_logger
from roadboard.managers.entity_store import EntityStore
from roadboard.managers.events import EventBus, EventType, ItemEvent, MutationEvent, get_event_bus
from roadboard.managers.remote_store import RemoteStore
from roadboard.models.kinds import EntityKind
from roadboard.models.roadmap import EDITABLE_ITEM_FIELDS, Item

logger = get_logger(__name__)


@dataclass(frozen=True)
class PendingPatch:
    """A not-yet-confirmed item change and the request responsible for it."""

    token: int
    fields: Dict[str, Any]


class MutationLayer:
    """
    Applies item patches optimistically and reconciles them with the remote store.

    Handles:
    - Installing a patch in the overlay synchronously (last intent wins)
    - Skipping patches that would not change the rendered item
    - Sending the remote update as an asyncio task
    - Folding confirmed patches into the EntityStore
    - Rolling back failed patches with a passive notification

    Usage:
        layer = MutationLayer(store, remote)
        task = layer.apply_optimistic(item_id, {"status": "now"})
        layer.effective_item(item_id).status  # already "now"
        await layer.drain()
    """

    def __init__(
        self,
        store: EntityStore,
        remote: RemoteStore,
        event_bus: Optional[EventBus] = None,
    ) -> None:
        """
        Initialize MutationLayer.

        Args:
            store: EntityStore holding the confirmed item records.
            remote: RemoteStore receiving the updates.
            event_bus: Bus for mutation events and notifications. Defaults to the global bus.
        """
        self.store = store
        self.remote = remote
        self.event_bus = event_bus if event_bus is not None else get_event_bus()
        self._overlay: Dict[str, PendingPatch] = {}
        self._tokens = itertools.count(1)
        # Highest request token whose success was folded into the store, per item and field
        self._applied: Dict[str, Dict[str, int]] = {}
        self._inflight: Set[asyncio.Task] = set()

    # =========================================================================
    # Overlay access
    # =========================================================================

    @property
    def pending_count(self) -> int:
        """Number of items with a pending patch."""
        return len(self._overlay)

    @property
    def inflight_count(self) -> int:
        """Number of remote updates not yet resolved."""
        return len(self._inflight)

    def pending(self, item_id: str) -> Optional[PendingPatch]:
        """Get the pending patch for an item, or None."""
        return self._overlay.get(item_id)

    def has_pending(self, item_id: str) -> bool:
        return item_id in self._overlay

    def _overlaid(self, item: Item) -> Item:
        patch = self._overlay.get(item.id)
        return item.apply(patch.fields) if patch else item

    def effective_item(self, item_id: str) -> Optional[Item]:
        """Get an item as it should be rendered (base record plus pending patch)."""
        item = self.store.get_item(item_id)
        return self._overlaid(item) if item is not None else None

    def effective_items(self) -> List[Item]:
        """Get every item as it should be rendered, in store order."""
        return [self._overlaid(item) for item in self.store.items]

    def discard(self, item_id: str) -> None:
        """Drop any pending patch for an item that no longer exists."""
        self._overlay.pop(item_id, None)
        self._applied.pop(item_id, None)

    # =========================================================================
    # Mutations
    # =========================================================================

    def _normalize(self, item: Item, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a patch against an item and return it with coerced values."""
        if not patch:
            raise ValidationError("A patch must contain at least one field.")

        unknown = set(patch) - EDITABLE_ITEM_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        try:
            patched = item.apply(patch)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid item patch: {e}") from e
        return {key: getattr(patched, key) for key in patch}

    def apply_optimistic(self, item_id: str, patch: Dict[str, Any]) -> Optional[asyncio.Task]:
        """Show a patch immediately and send it to the remote store.

        Must be called from code running on the event loop. The overlay is
        updated before this method returns; the remote call runs as a task.

        Args:
            item_id: Id of an item in the EntityStore.
            patch: Non-empty partial set of editable item fields.

        Returns:
            The task resolving the remote update (True on success), or None
            when nothing was sent: unknown item or patch that changes nothing.

        Raises:
            ValidationError: If the patch is empty or invalid.
            InvalidOperationError: If no event loop is running.
        """
        if not patch:
            raise ValidationError("A patch must contain at least one field.")

        item = self.store.get_item(item_id)
        if item is None:
            logger.warning(f"Ignoring patch for unknown item {item_id}")
            self.event_bus.notify(f"Item '{item_id}' not found", level="warning", item_id=item_id)
            return None

        fields = self._normalize(item, patch)
        effective = self._overlaid(item)
        if all(getattr(effective, key) == value for key, value in fields.items()):
            logger.debug(f"Patch for {item_id} changes nothing, skipped")
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise InvalidOperationError("apply_optimistic() needs a running event loop.") from e

        token = next(self._tokens)
        self._overlay[item_id] = PendingPatch(token=token, fields=fields)
        logger.debug(f"Overlay {item_id} <- {fields} (token {token})")
        self.event_bus.publish(MutationEvent(
            type=EventType.MUTATION_APPLIED, item_id=item_id, token=token, fields=fields
        ))

        task = loop.create_task(self._commit(item_id, token, fields))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _commit(self, item_id: str, token: int, fields: Dict[str, Any]) -> bool:
        try:
            record = await self.remote.update(EntityKind.ITEM, item_id, fields)
        except RemoteStoreError as e:
            self._rollback(item_id, token, fields, e)
            return False
        self._confirm(item_id, token, fields, record)
        return True

    def _owns(self, item_id: str, token: int) -> bool:
        patch = self._overlay.get(item_id)
        return patch is not None and patch.token == token

    def _confirm(self, item_id: str, token: int, fields: Dict[str, Any], record: Any) -> None:
        # Store first, overlay second: the rendered item never changes in between
        applied = self._applied.setdefault(item_id, {})
        # A field confirmed by a newer request keeps that value
        fresh = {key: value for key, value in fields.items() if token > applied.get(key, 0)}
        if fresh:
            confirmed = dict(fresh)
            if isinstance(record, Item):
                confirmed["updated_at"] = record.updated_at
            updated = self.store.apply_item_update(item_id, confirmed)
            if updated is not None:
                applied.update(dict.fromkeys(fresh, token))
                self.event_bus.publish(ItemEvent(
                    type=EventType.ITEM_UPDATED,
                    item_id=item_id,
                    item_title=updated.title,
                    status=updated.status.value,
                    data={"fields": sorted(fresh)},
                ))
        else:
            logger.debug(f"Stale confirmation for {item_id} (token {token}) not applied")

        if self._owns(item_id, token):
            del self._overlay[item_id]
        logger.debug(f"Confirmed {item_id} (token {token})")
        self.event_bus.publish(MutationEvent(
            type=EventType.MUTATION_CONFIRMED, item_id=item_id, token=token, fields=fields
        ))

    def _rollback(self, item_id: str, token: int, fields: Dict[str, Any], error: Exception) -> None:
        if self._owns(item_id, token):
            del self._overlay[item_id]
        logger.warning(f"Update of {item_id} failed, rolled back (token {token}): {error}")
        self.event_bus.publish(MutationEvent(
            type=EventType.MUTATION_ROLLED_BACK,
            item_id=item_id,
            token=token,
            fields=fields,
            error=str(error),
        ))
        self.event_bus.notify("Failed to update item", level="error", item_id=item_id, error=str(error))

    async def drain(self) -> None:
        """Wait until every in-flight remote update has resolved."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight))
