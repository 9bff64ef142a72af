"""
Test fixtures for the Roadboard test suite.

Provides:
- Temporary directory fixtures (isolated from any real .roadboard/)
- Mock data builders for creating roadmaps, groupings and items
- A remote store whose updates resolve only when a test says so
- Event bus helpers for asserting on events and notifications
"""

import asyncio
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pytest

from roadboard.constants import reset_config_manager
from roadboard.exceptions import RemoteStoreError
from roadboard.logger import LOGGER_NAME
from roadboard.managers.entity_store import EntityStore
from roadboard.managers.events import (
    Event,
    EventListener,
    EventType,
    NotificationCollector,
    get_event_bus,
)
from roadboard.managers.mutation_layer import MutationLayer
from roadboard.managers.remote_store import MemoryRemoteStore
from roadboard.models.files import RoadmapSnapshot
from roadboard.models.grouping import Module, Objective, Team
from roadboard.models.kinds import EntityKind
from roadboard.models.roadmap import Item, Roadmap

ROADMAP_ID = "roadmap-1"


# =============================================================================
# Global State
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_globals(tmp_path: Path, monkeypatch) -> Generator[None, None, None]:
    """Run every test in an empty directory with a fresh event bus and config."""
    monkeypatch.chdir(tmp_path)
    get_event_bus().clear()
    reset_config_manager()
    yield
    get_event_bus().clear()
    reset_config_manager()
    logging.getLogger(LOGGER_NAME).handlers.clear()


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation."""
    temp_path = Path(tempfile.mkdtemp(prefix="roadboard_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def roadboard_dir(temp_dir: Path) -> Path:
    """Path of a (not yet created) .roadboard/ directory."""
    return temp_dir / ".roadboard"


# =============================================================================
# Mock Data Builders
# =============================================================================


class MockDataBuilder:
    """Helper class for building mock Roadboard records for testing."""

    @staticmethod
    def create_roadmap(title: str = "Test Roadmap", id: str = ROADMAP_ID, **kwargs: Any) -> Roadmap:
        """Create a mock Roadmap for testing."""
        return Roadmap(id=id, title=title, **kwargs)

    @staticmethod
    def create_objective(
        title: str = "Test Objective",
        id: Optional[str] = None,
        order_index: int = 0,
        roadmap_id: str = ROADMAP_ID,
    ) -> Objective:
        """Create a mock Objective for testing."""
        objective = Objective(roadmap_id=roadmap_id, title=title, order_index=order_index)
        if id:
            objective.id = id
        return objective

    @staticmethod
    def create_module(
        title: str = "Test Module",
        id: Optional[str] = None,
        order_index: int = 0,
        roadmap_id: str = ROADMAP_ID,
    ) -> Module:
        """Create a mock Module for testing."""
        module = Module(roadmap_id=roadmap_id, title=title, order_index=order_index)
        if id:
            module.id = id
        return module

    @staticmethod
    def create_team(
        title: str = "Test Team",
        id: Optional[str] = None,
        order_index: int = 0,
        roadmap_id: str = ROADMAP_ID,
    ) -> Team:
        """Create a mock Team for testing."""
        team = Team(roadmap_id=roadmap_id, title=title, order_index=order_index)
        if id:
            team.id = id
        return team

    @staticmethod
    def create_item(
        title: str = "Test Item",
        id: Optional[str] = None,
        status: str = "later",
        order_index: int = 0,
        roadmap_id: str = ROADMAP_ID,
        **kwargs: Any,
    ) -> Item:
        """Create a mock Item for testing."""
        item = Item(roadmap_id=roadmap_id, title=title, status=status, order_index=order_index, **kwargs)
        if id:
            item.id = id
        return item


@pytest.fixture
def mock_data() -> MockDataBuilder:
    """Provide mock data builder for test record creation."""
    return MockDataBuilder()


# =============================================================================
# Roadmap Fixtures
# =============================================================================


@pytest.fixture
def sample_snapshot(mock_data: MockDataBuilder) -> RoadmapSnapshot:
    """Create a sample roadmap for testing.

    Structure:
        Objectives: Growth (0), Retention (1)
        Modules:    API (0), Web (1)
        Teams:      Core (0)
        Items:
            item-1 "Ship v2"        now    Growth / API / Core
            item-2 "Billing revamp" next   Retention / Web
            item-3 "Docs cleanup"   later  (no groupings)
    """
    return RoadmapSnapshot(
        roadmap=mock_data.create_roadmap(),
        objectives=[
            mock_data.create_objective("Growth", id="obj-growth", order_index=0),
            mock_data.create_objective("Retention", id="obj-retention", order_index=1),
        ],
        modules=[
            mock_data.create_module("API", id="mod-api", order_index=0),
            mock_data.create_module("Web", id="mod-web", order_index=1),
        ],
        teams=[mock_data.create_team("Core", id="team-core")],
        items=[
            mock_data.create_item(
                "Ship v2", id="item-1", status="now",
                objective_id="obj-growth", module_id="mod-api", team_id="team-core",
            ),
            mock_data.create_item(
                "Billing revamp", id="item-2", status="next",
                objective_id="obj-retention", module_id="mod-web",
            ),
            mock_data.create_item("Docs cleanup", id="item-3", status="later"),
        ],
    )


@pytest.fixture
def memory_store(sample_snapshot: RoadmapSnapshot) -> MemoryRemoteStore:
    """In-memory remote store holding the sample roadmap."""
    return MemoryRemoteStore.from_snapshot(sample_snapshot)


@pytest.fixture
def entity_store(sample_snapshot: RoadmapSnapshot) -> EntityStore:
    """EntityStore already holding the sample roadmap."""
    return EntityStore(sample_snapshot)


# =============================================================================
# Controlled Remote Store
# =============================================================================


@dataclass
class PendingCall:
    """One update call waiting for the test to resolve it."""

    kind: EntityKind
    record_id: str
    fields: Dict[str, Any]
    future: asyncio.Future = field(repr=False)

    def succeed(self) -> None:
        self.future.set_result(None)

    def fail(self, message: str = "connection reset") -> None:
        self.future.set_exception(RemoteStoreError(message))


class ControlledRemoteStore(MemoryRemoteStore):
    """MemoryRemoteStore whose updates block until resolved by the test.

    Calls can be resolved in any order, which makes out-of-order responses
    reproducible.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls: List[PendingCall] = []

    async def update(self, kind: EntityKind, record_id: str, fields: Dict[str, Any]):
        call = PendingCall(kind, record_id, dict(fields), asyncio.get_running_loop().create_future())
        self.calls.append(call)
        await call.future
        return await super().update(kind, record_id, fields)


@pytest.fixture
def controlled_store(sample_snapshot: RoadmapSnapshot) -> ControlledRemoteStore:
    return ControlledRemoteStore.from_snapshot(sample_snapshot)


@pytest.fixture
def mutations(entity_store: EntityStore, controlled_store: ControlledRemoteStore) -> MutationLayer:
    """MutationLayer over the sample roadmap with a controlled remote store."""
    return MutationLayer(entity_store, controlled_store)


async def settle() -> None:
    """Let scheduled tasks run up to their next await."""
    for _ in range(3):
        await asyncio.sleep(0)


# =============================================================================
# Event Fixtures
# =============================================================================


class RecordingListener(EventListener):
    """Records every event of the given types."""

    def __init__(self, *types: EventType) -> None:
        self.types = list(types) or list(EventType)
        self.events: List[Event] = []

    def handle(self, event: Event) -> None:
        self.events.append(event)

    @property
    def subscribed_events(self) -> List[EventType]:
        return self.types

    def of_type(self, event_type: EventType) -> List[Event]:
        return [e for e in self.events if e.type == event_type]


@pytest.fixture
def notifications() -> NotificationCollector:
    """Collector subscribed to the global event bus."""
    collector = NotificationCollector()
    get_event_bus().subscribe(collector)
    return collector


@pytest.fixture
def recorder() -> RecordingListener:
    """Listener recording every event published on the global bus."""
    listener = RecordingListener()
    get_event_bus().subscribe(listener)
    return listener
