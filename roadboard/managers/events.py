"""
Event system for Roadboard.

Allows decoupled communication between components via events and listeners.
Passive user notifications (mutation failures, unknown ids) travel as
NotificationEvents on the same bus.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from roadboard.logger import get_logger

logger = get_logger(__name__)


class EventType(str, Enum):
    """Types of events in Roadboard."""
    ITEM_CREATED = "item.created"
    ITEM_UPDATED = "item.updated"
    ITEM_DELETED = "item.deleted"
    GROUPING_CREATED = "grouping.created"
    GROUPING_UPDATED = "grouping.updated"
    GROUPING_DELETED = "grouping.deleted"
    ROADMAP_UPDATED = "roadmap.updated"
    MUTATION_APPLIED = "mutation.applied"
    MUTATION_CONFIRMED = "mutation.confirmed"
    MUTATION_ROLLED_BACK = "mutation.rolled_back"
    IMPORT_COMPLETED = "import.completed"
    NOTIFICATION = "notification"


@dataclass
class Event:
    """Base event class."""
    type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ItemEvent(Event):
    """Event for item-related actions."""
    item_id: str = ""
    item_title: str = ""
    status: str = ""


@dataclass
class GroupingEvent(Event):
    """Event for objective, module and team changes."""
    grouping_id: str = ""
    dimension: str = ""
    title: str = ""


@dataclass
class MutationEvent(Event):
    """Event for the lifecycle of an optimistic patch."""
    item_id: str = ""
    token: int = 0
    fields: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class NotificationEvent(Event):
    """Passive, non-blocking message meant for the user."""
    level: str = "info"
    message: str = ""


class EventListener(ABC):
    """Base class for event listeners."""

    @abstractmethod
    def handle(self, event: Event) -> None:
        """Handle an event.

        Args:
            event: The event to handle.
        """
        pass

    @property
    @abstractmethod
    def subscribed_events(self) -> List[EventType]:
        """Return list of event types this listener subscribes to."""
        pass


class NotificationCollector(EventListener):
    """Keeps every notification in arrival order."""

    def __init__(self) -> None:
        self.notifications: List[NotificationEvent] = []

    def handle(self, event: Event) -> None:
        if isinstance(event, NotificationEvent):
            self.notifications.append(event)

    @property
    def subscribed_events(self) -> List[EventType]:
        return [EventType.NOTIFICATION]

    def messages(self, level: Optional[str] = None) -> List[str]:
        """Get notification messages, optionally only those of one level."""
        return [n.message for n in self.notifications if level is None or n.level == level]


class EventBus:
    """
    Central event bus for publishing and subscribing to events.

    Singleton pattern for global event access.
    """

    _instance: Optional['EventBus'] = None
    _listeners: Dict[EventType, List[EventListener]]

    def __new__(cls) -> 'EventBus':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._listeners = {}
        return cls._instance

    def subscribe(self, listener: EventListener) -> None:
        """Subscribe a listener to events.

        Args:
            listener: The listener to subscribe.
        """
        for event_type in listener.subscribed_events:
            if event_type not in self._listeners:
                self._listeners[event_type] = []
            self._listeners[event_type].append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        """Unsubscribe a listener from all events.

        Args:
            listener: The listener to unsubscribe.
        """
        for event_type in self._listeners:
            if listener in self._listeners[event_type]:
                self._listeners[event_type].remove(listener)

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribed listeners.

        Args:
            event: The event to publish.
        """
        listeners = list(self._listeners.get(event.type, []))
        for listener in listeners:
            try:
                listener.handle(event)
            except Exception:
                # Log error but don't stop other listeners
                logger.exception(f"Listener {listener.__class__.__name__} failed on {event.type.value}")

    def notify(self, message: str, level: str = "info", **data: Any) -> None:
        """Publish a passive notification."""
        self.publish(NotificationEvent(type=EventType.NOTIFICATION, level=level, message=message, data=data))

    def clear(self) -> None:
        """Clear all listeners (useful for testing)."""
        self._listeners.clear()


# Convenience functions for global event bus access
def get_event_bus() -> EventBus:
    """Get the global event bus instance."""
    return EventBus()


def subscribe_listener(listener: EventListener) -> None:
    """Subscribe a listener to the global event bus."""
    get_event_bus().subscribe(listener)


def publish_event(event: Event) -> None:
    """Publish an event to the global event bus."""
    get_event_bus().publish(event)
