"""
Tests for the optimistic MutationLayer.

Remote updates go through ControlledRemoteStore, so each test decides when
(and in which order) responses arrive.
"""
import asyncio

import pytest

from conftest import RecordingListener, settle
from roadboard.exceptions import InvalidOperationError, ValidationError
from roadboard.managers.events import EventType, get_event_bus
from roadboard.managers.mutation_layer import MutationLayer
from roadboard.models.base import RoadmapStatus


class TestApplyOptimistic:
    """Test the synchronous part of apply_optimistic."""

    def test_patch_visible_before_response(self, mutations, controlled_store, entity_store):
        async def scenario():
            task = mutations.apply_optimistic("item-3", {"status": "now"})
            assert task is not None
            assert mutations.effective_item("item-3").status == RoadmapStatus.NOW
            assert entity_store.get_item("item-3").status == RoadmapStatus.LATER
            assert mutations.has_pending("item-3")
            assert mutations.pending("item-3").fields == {"status": RoadmapStatus.NOW}

            await settle()
            assert len(controlled_store.calls) == 1
            assert controlled_store.calls[0].record_id == "item-3"
            controlled_store.calls[0].succeed()
            assert await task is True

        asyncio.run(scenario())

    def test_effective_items_include_overlay(self, mutations):
        async def scenario():
            mutations.apply_optimistic("item-2", {"title": "Billing v2"})
            titles = [item.title for item in mutations.effective_items()]
            assert titles == ["Ship v2", "Billing v2", "Docs cleanup"]
            mutations.discard("item-2")
            await settle()

        asyncio.run(scenario())

    def test_empty_patch_rejected(self, mutations):
        with pytest.raises(ValidationError):
            mutations.apply_optimistic("item-1", {})

    def test_unknown_field_rejected(self, mutations):
        with pytest.raises(ValidationError, match="roadmap_id"):
            mutations.apply_optimistic("item-1", {"roadmap_id": "other"})

    def test_invalid_value_rejected(self, mutations):
        with pytest.raises(ValidationError):
            mutations.apply_optimistic("item-1", {"status": "someday"})
        assert mutations.pending_count == 0

    def test_unknown_item_is_noop_with_notification(self, mutations, controlled_store, notifications):
        assert mutations.apply_optimistic("missing", {"status": "now"}) is None
        assert mutations.pending_count == 0
        assert controlled_store.calls == []
        assert notifications.messages("warning") == ["Item 'missing' not found"]

    def test_needs_running_loop(self, mutations):
        with pytest.raises(InvalidOperationError):
            mutations.apply_optimistic("item-1", {"status": "later"})
        assert mutations.pending_count == 0


class TestNoOpGuard:
    """Test that patches which change nothing are never sent."""

    def test_patch_equal_to_current_value(self, mutations, controlled_store):
        async def scenario():
            assert mutations.apply_optimistic("item-1", {"status": "now"}) is None
            await settle()
            assert controlled_store.calls == []
            assert mutations.pending_count == 0

        asyncio.run(scenario())

    def test_same_patch_twice_sends_once(self, mutations, controlled_store):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "next"})
            second = mutations.apply_optimistic("item-3", {"status": "next"})
            assert first is not None
            assert second is None
            await settle()
            assert len(controlled_store.calls) == 1
            controlled_store.calls[0].succeed()
            await first
            assert mutations.effective_item("item-3").status == RoadmapStatus.NEXT

        asyncio.run(scenario())

    def test_guard_compares_coerced_values(self, mutations):
        async def scenario():
            assert mutations.apply_optimistic("item-1", {"status": RoadmapStatus.NOW, "title": "Ship v2"}) is None

        asyncio.run(scenario())


class TestRoundTrip:
    """Test confirmation and rollback of a single patch."""

    def test_success_folds_patch_into_store(self, mutations, controlled_store, entity_store):
        async def scenario():
            task = mutations.apply_optimistic("item-3", {"status": "now", "tags": ["docs"]})
            await settle()
            controlled_store.calls[0].succeed()
            assert await task is True

            base = entity_store.get_item("item-3")
            assert base.status == RoadmapStatus.NOW
            assert base.tags == ["docs"]
            assert mutations.pending_count == 0
            assert mutations.effective_item("item-3") == base
            snapshot = await controlled_store.fetch_all("roadmap-1")
            remote_item = next(i for i in snapshot.items if i.id == "item-3")
            assert remote_item.status == RoadmapStatus.NOW

        asyncio.run(scenario())

    def test_success_does_not_change_rendered_value(self, mutations, controlled_store):
        seen = []

        async def scenario():
            task = mutations.apply_optimistic("item-2", {"status": "later"})
            seen.append(mutations.effective_item("item-2").status)
            await settle()
            controlled_store.calls[0].succeed()
            await task
            seen.append(mutations.effective_item("item-2").status)

        asyncio.run(scenario())
        assert seen == [RoadmapStatus.LATER, RoadmapStatus.LATER]

    def test_failure_rolls_back(self, mutations, controlled_store, entity_store, notifications):
        async def scenario():
            task = mutations.apply_optimistic("item-1", {"status": "later"})
            await settle()
            controlled_store.calls[0].fail("timeout")
            assert await task is False

            assert mutations.pending_count == 0
            assert mutations.effective_item("item-1").status == RoadmapStatus.NOW
            assert entity_store.get_item("item-1").status == RoadmapStatus.NOW

        asyncio.run(scenario())
        assert notifications.messages("error") == ["Failed to update item"]
        assert notifications.notifications[0].data["item_id"] == "item-1"

    def test_events_in_order(self, mutations, controlled_store):
        listener = RecordingListener(
            EventType.MUTATION_APPLIED, EventType.MUTATION_CONFIRMED, EventType.ITEM_UPDATED
        )
        get_event_bus().subscribe(listener)

        async def scenario():
            task = mutations.apply_optimistic("item-3", {"status": "next"})
            await settle()
            controlled_store.calls[0].succeed()
            await task

        asyncio.run(scenario())
        assert [e.type for e in listener.events] == [
            EventType.MUTATION_APPLIED,
            EventType.ITEM_UPDATED,
            EventType.MUTATION_CONFIRMED,
        ]
        assert listener.events[0].token == listener.events[2].token

    def test_rollback_event(self, mutations, controlled_store):
        listener = RecordingListener(EventType.MUTATION_ROLLED_BACK)
        get_event_bus().subscribe(listener)

        async def scenario():
            task = mutations.apply_optimistic("item-3", {"status": "next"})
            await settle()
            controlled_store.calls[0].fail("HTTP 500")
            await task

        asyncio.run(scenario())
        assert len(listener.events) == 1
        assert listener.events[0].item_id == "item-3"
        assert "HTTP 500" in listener.events[0].error


class TestOutOfOrder:
    """Test two requests for the same item resolving in any order."""

    def test_newer_success_then_older_success(self, mutations, controlled_store, entity_store):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"status": "next"})
            assert mutations.effective_item("item-3").status == RoadmapStatus.NEXT
            await settle()
            call_a, call_b = controlled_store.calls

            call_b.succeed()
            await second
            assert mutations.pending_count == 0
            assert entity_store.get_item("item-3").status == RoadmapStatus.NEXT

            call_a.succeed()
            await first
            # The stale confirmation must not overwrite the newer one
            assert entity_store.get_item("item-3").status == RoadmapStatus.NEXT
            assert mutations.effective_item("item-3").status == RoadmapStatus.NEXT

        asyncio.run(scenario())

    def test_older_success_keeps_newer_overlay(self, mutations, controlled_store, entity_store):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"status": "next"})
            await settle()
            call_a, call_b = controlled_store.calls

            call_a.succeed()
            await first
            assert entity_store.get_item("item-3").status == RoadmapStatus.NOW
            assert mutations.pending("item-3").fields == {"status": RoadmapStatus.NEXT}
            assert mutations.effective_item("item-3").status == RoadmapStatus.NEXT

            call_b.succeed()
            await second
            assert entity_store.get_item("item-3").status == RoadmapStatus.NEXT
            assert mutations.pending_count == 0

        asyncio.run(scenario())

    def test_older_failure_does_not_clear_newer_patch(self, mutations, controlled_store, notifications):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"status": "next"})
            await settle()
            call_a, call_b = controlled_store.calls

            call_a.fail()
            assert await first is False
            assert mutations.effective_item("item-3").status == RoadmapStatus.NEXT

            call_b.succeed()
            assert await second is True
            assert mutations.effective_item("item-3").status == RoadmapStatus.NEXT

        asyncio.run(scenario())
        assert notifications.messages("error") == ["Failed to update item"]

    def test_newer_failure_after_older_success_shows_base(self, mutations, controlled_store):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"status": "next"})
            await settle()
            call_a, call_b = controlled_store.calls

            call_a.succeed()
            await first
            call_b.fail()
            await second
            assert mutations.pending_count == 0
            assert mutations.effective_item("item-3").status == RoadmapStatus.NOW

        asyncio.run(scenario())

    def test_patches_on_different_items_are_independent(self, mutations, controlled_store):
        async def scenario():
            first = mutations.apply_optimistic("item-2", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"status": "now"})
            await settle()
            controlled_store.calls[1].fail()
            await second
            assert mutations.has_pending("item-2")
            controlled_store.calls[0].succeed()
            await first
            assert mutations.effective_item("item-2").status == RoadmapStatus.NOW
            assert mutations.effective_item("item-3").status == RoadmapStatus.LATER

        asyncio.run(scenario())

    @staticmethod
    async def remote_item(controlled_store, item_id):
        snapshot = await controlled_store.fetch_all("roadmap-1")
        return next(i for i in snapshot.items if i.id == item_id)

    def test_different_fields_newer_success_first(self, mutations, controlled_store, entity_store):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"title": "Renamed"})
            await settle()
            call_a, call_b = controlled_store.calls

            call_b.succeed()
            await second
            call_a.succeed()
            await first

            remote = await self.remote_item(controlled_store, "item-3")
            local = mutations.effective_item("item-3")
            assert mutations.pending_count == 0
            assert (local.status, local.title) == (RoadmapStatus.NOW, "Renamed")
            assert (remote.status, remote.title) == (local.status, local.title)
            assert entity_store.get_item("item-3").status == RoadmapStatus.NOW

        asyncio.run(scenario())

    def test_different_fields_older_success_first(self, mutations, controlled_store):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"title": "Renamed"})
            await settle()
            call_a, call_b = controlled_store.calls

            call_a.succeed()
            await first
            assert mutations.has_pending("item-3")
            call_b.succeed()
            await second

            remote = await self.remote_item(controlled_store, "item-3")
            local = mutations.effective_item("item-3")
            assert mutations.pending_count == 0
            assert (local.status, local.title) == (RoadmapStatus.NOW, "Renamed")
            assert (remote.status, remote.title) == (local.status, local.title)

        asyncio.run(scenario())

    def test_different_fields_older_fails_newer_succeeds(self, mutations, controlled_store, notifications):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"title": "Renamed"})
            await settle()
            call_a, call_b = controlled_store.calls

            call_b.succeed()
            await second
            call_a.fail()
            assert await first is False

            remote = await self.remote_item(controlled_store, "item-3")
            local = mutations.effective_item("item-3")
            assert (local.status, local.title) == (RoadmapStatus.LATER, "Renamed")
            assert (remote.status, remote.title) == (local.status, local.title)

        asyncio.run(scenario())
        assert notifications.messages("error") == ["Failed to update item"]

    def test_different_fields_newer_fails_older_succeeds(self, mutations, controlled_store):
        async def scenario():
            first = mutations.apply_optimistic("item-3", {"status": "now"})
            second = mutations.apply_optimistic("item-3", {"title": "Renamed"})
            await settle()
            call_a, call_b = controlled_store.calls

            call_b.fail()
            await second
            call_a.succeed()
            await first

            remote = await self.remote_item(controlled_store, "item-3")
            local = mutations.effective_item("item-3")
            assert mutations.pending_count == 0
            assert (local.status, local.title) == (RoadmapStatus.NOW, "Docs cleanup")
            assert (remote.status, remote.title) == (local.status, local.title)

        asyncio.run(scenario())


class TestDrain:
    """Test waiting for in-flight requests."""

    def test_drain_waits_for_all(self, entity_store, memory_store):
        layer = MutationLayer(entity_store, memory_store)

        async def scenario():
            layer.apply_optimistic("item-1", {"status": "later"})
            layer.apply_optimistic("item-2", {"order_index": 5})
            assert layer.inflight_count == 2
            await layer.drain()
            assert layer.inflight_count == 0
            assert layer.pending_count == 0

        asyncio.run(scenario())
        assert entity_store.get_item("item-1").status == RoadmapStatus.LATER
        assert entity_store.get_item("item-2").order_index == 5

    def test_discard_drops_pending_patch(self, mutations):
        async def scenario():
            mutations.apply_optimistic("item-1", {"title": "Renamed"})
            mutations.discard("item-1")
            assert not mutations.has_pending("item-1")
            assert mutations.effective_item("item-1").title == "Ship v2"

        asyncio.run(scenario())
