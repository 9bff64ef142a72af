"""
Shared helpers for Roadboard commands.

Commands are synchronous click callbacks; each one runs a single coroutine
against a RoadboardCore bound to the configured remote store.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, List, Optional, TypeVar

import click

from roadboard.core import RoadboardCore
from roadboard.exceptions import ConfigurationError, RoadboardError
from roadboard.managers.events import Event, EventListener, EventType, NotificationEvent, get_event_bus
from roadboard.managers.http_store import HttpRemoteStore
from roadboard.managers.remote_store import FileRemoteStore, RemoteStore
from roadboard.managers.storage_manager import StorageManager
from roadboard.models.grouping import GroupingEntity
from roadboard.models.kinds import GroupingDimension
from roadboard.models.roadmap import Item

T = TypeVar("T")

LEVEL_MARKS = {"info": "ℹ", "warning": "⚠", "error": "✗"}


class EchoNotifier(EventListener):
    """Prints passive notifications to stderr."""

    def handle(self, event: Event) -> None:
        if isinstance(event, NotificationEvent):
            mark = LEVEL_MARKS.get(event.level, "•")
            click.echo(f"  {mark} {event.message}", err=True)

    @property
    def subscribed_events(self) -> List[EventType]:
        return [EventType.NOTIFICATION]


def get_storage() -> StorageManager:
    """StorageManager for the --dir given to the root command."""
    ctx = click.get_current_context()
    return ctx.find_root().obj["storage"]


@asynccontextmanager
async def open_remote(storage: StorageManager) -> AsyncIterator[RemoteStore]:
    """Open the remote store selected in config.json."""
    config = storage.load_config()
    if config.store_backend == "http":
        if not config.store_url:
            raise ConfigurationError("store_backend is 'http' but store_url is not set.")
        async with HttpRemoteStore(config.store_url, config.store_api_key, config.store_timeout) as remote:
            yield remote
    else:
        yield FileRemoteStore(storage)


def resolve_roadmap_id(roadmap_id: Optional[str]) -> str:
    if roadmap_id:
        return roadmap_id
    default = get_storage().load_config().default_roadmap
    if not default:
        raise click.ClickException(
            "No roadmap selected. Run 'roadboard init' or pass --roadmap."
        )
    return default


def run(coro_factory: Callable[[], Awaitable[T]]) -> T:
    """Run a coroutine, echoing notifications and mapping errors to click errors."""
    notifier = EchoNotifier()
    bus = get_event_bus()
    bus.subscribe(notifier)
    try:
        return asyncio.run(coro_factory())
    except RoadboardError as e:
        raise click.ClickException(str(e))
    finally:
        bus.unsubscribe(notifier)


def with_core(roadmap_id: Optional[str], action: Callable[[RoadboardCore], Awaitable[T]]) -> T:
    """Load the roadmap, run action against it, and wait for pending updates."""
    storage = get_storage()
    resolved = resolve_roadmap_id(roadmap_id)
    threshold = storage.load_config().drag_threshold

    async def main() -> T:
        async with open_remote(storage) as remote:
            core = RoadboardCore(remote, resolved, drag_threshold=threshold)
            await core.load()
            try:
                return await action(core)
            finally:
                await core.drain()

    return run(main)


def roadmap_option(func):
    return click.option(
        "--roadmap", "roadmap_id", default=None, help="Roadmap id (defaults to the one set by init)."
    )(func)


def dimension_argument(func):
    return click.argument(
        "dimension", type=click.Choice([d.value for d in GroupingDimension])
    )(func)


def find_grouping(core: RoadboardCore, dimension: GroupingDimension, ref: str) -> Optional[GroupingEntity]:
    """Find a grouping by id, falling back to its title."""
    return core.store.get_grouping(dimension, ref) or core.store.find_grouping_by_title(dimension, ref)


def resolve_grouping_ref(core: RoadboardCore, dimension: GroupingDimension, ref: Optional[str]) -> Optional[str]:
    """Turn a --objective/--module/--team value into an id.

    An empty string means "unassigned"; an unknown reference is an error.
    """
    if ref is None or ref == "":
        return None
    grouping = find_grouping(core, dimension, ref)
    if grouping is None:
        raise click.ClickException(f"{dimension.label} '{ref}' not found.")
    return grouping.id


def format_item(item: Item) -> str:
    tags = f" #{' #'.join(item.tags)}" if item.tags else ""
    return f"{item.title} [{item.category.value}]{tags} ({item.id})"
