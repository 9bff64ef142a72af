"""
Managers for Roadboard.

This package contains focused manager classes that handle specific aspects of the board:
- EntityStore: Confirmed in-memory state of one roadmap
- MutationLayer: Optimistic item edits with rollback
- project_board: Board layout per grouping dimension
- DragSession: Drag-and-drop gesture state
- csv_importer: CSV tokenizing and row validation
- RemoteStore: Asynchronous CRUD collaborator (memory, file and HTTP flavours)
- StorageManager: Persistence to the .roadboard/ folder
- EventBus: Event-driven architecture for decoupled communication
"""

from roadboard.managers.entity_store import EntityStore
from roadboard.managers.mutation_layer import MutationLayer, PendingPatch
from roadboard.managers.projection import BoardProjection, GroupColumns, project_board
from roadboard.managers.drag_session import DragSession, DragState, DropTarget, drop_zone_id, parse_drop_zone
from roadboard.managers.storage_manager import StorageManager
from roadboard.managers.remote_store import FileRemoteStore, MemoryRemoteStore, RemoteStore
from roadboard.managers.http_store import HttpRemoteStore
from roadboard.managers.events import (
    EventBus,
    Event,
    ItemEvent,
    GroupingEvent,
    MutationEvent,
    NotificationEvent,
    NotificationCollector,
    EventType,
    EventListener,
    get_event_bus,
    publish_event,
    subscribe_listener,
)

__all__ = [
    "EntityStore",
    "MutationLayer",
    "PendingPatch",
    "BoardProjection",
    "GroupColumns",
    "project_board",
    "DragSession",
    "DragState",
    "DropTarget",
    "drop_zone_id",
    "parse_drop_zone",
    "StorageManager",
    "RemoteStore",
    "MemoryRemoteStore",
    "FileRemoteStore",
    "HttpRemoteStore",
    "EventBus",
    "Event",
    "ItemEvent",
    "GroupingEvent",
    "MutationEvent",
    "NotificationEvent",
    "NotificationCollector",
    "EventType",
    "EventListener",
    "get_event_bus",
    "publish_event",
    "subscribe_listener",
]
