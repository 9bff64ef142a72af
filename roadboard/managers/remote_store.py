"""
Remote persistence store for Roadboard.

RemoteStore is the asynchronous CRUD collaborator that holds the
authoritative copy of every roadmap. Two local implementations live here:
MemoryRemoteStore (in-process) and FileRemoteStore (.roadboard/store.json).
The HTTP implementation lives in http_store.py.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from roadboard.exceptions import NotFoundError, RemoteStoreError, StorageError
from roadboard.logger import get_logger
from roadboard.managers.storage_manager import StorageManager
from roadboard.models.base import BaseEntity
from roadboard.models.files import RoadmapSnapshot, StoreFile
from roadboard.models.kinds import EntityKind, GroupingDimension
from roadboard.models.roadmap import Roadmap

logger = get_logger(__name__)

# Fields only the store may set.
SERVER_FIELDS = ("id", "created_at", "updated_at")


class RemoteStore(ABC):
    """
    Asynchronous CRUD interface to the authoritative data store.

    Every failure is raised as RemoteStoreError (NotFoundError for an
    unknown id), including timeouts of the underlying transport.
    """

    @abstractmethod
    async def fetch_all(self, roadmap_id: str) -> RoadmapSnapshot:
        """Fetch a roadmap with all of its objectives, modules, teams and items."""
        pass

    @abstractmethod
    async def list_roadmaps(self) -> List[Roadmap]:
        """List every roadmap the store holds."""
        pass

    @abstractmethod
    async def create(self, kind: EntityKind, fields: Dict[str, Any]) -> BaseEntity:
        """Create a record; the store assigns id and timestamps."""
        pass

    @abstractmethod
    async def update(self, kind: EntityKind, record_id: str, fields: Dict[str, Any]) -> BaseEntity:
        """Apply a partial update and return the updated record."""
        pass

    @abstractmethod
    async def delete(self, kind: EntityKind, record_id: str) -> None:
        """Delete a record.

        Deleting a grouping clears the matching foreign key on its items;
        deleting a roadmap deletes everything it owns.
        """
        pass


class TableStore(RemoteStore):
    """
    RemoteStore over a StoreFile, one list per collection.

    Subclasses decide where the StoreFile comes from and goes to.
    """

    @abstractmethod
    def _load(self) -> StoreFile:
        pass

    @abstractmethod
    def _save(self, data: StoreFile) -> None:
        pass

    @staticmethod
    def _records(data: StoreFile, kind: EntityKind) -> List[BaseEntity]:
        return getattr(data, kind.collection)

    def _find(self, data: StoreFile, kind: EntityKind, record_id: str) -> BaseEntity:
        for record in self._records(data, kind):
            if record.id == record_id:
                return record
        raise NotFoundError(f"{kind.value} '{record_id}' not found")

    async def fetch_all(self, roadmap_id: str) -> RoadmapSnapshot:
        data = self._load()
        roadmap = self._find(data, EntityKind.ROADMAP, roadmap_id)

        def children(records):
            owned = [r for r in records if r.roadmap_id == roadmap_id]
            return [r.model_copy(deep=True) for r in sorted(owned, key=lambda r: r.order_index)]

        logger.debug(f"fetch_all({roadmap_id})")
        return RoadmapSnapshot(
            roadmap=roadmap.model_copy(deep=True),
            objectives=children(data.objectives),
            modules=children(data.modules),
            teams=children(data.teams),
            items=children(data.roadmap_items),
        )

    async def list_roadmaps(self) -> List[Roadmap]:
        return [r.model_copy(deep=True) for r in self._load().roadmaps]

    async def create(self, kind: EntityKind, fields: Dict[str, Any]) -> BaseEntity:
        data = self._load()
        values = {k: v for k, v in fields.items() if k not in SERVER_FIELDS}
        if kind != EntityKind.ROADMAP:
            # Children must belong to an existing roadmap
            self._find(data, EntityKind.ROADMAP, values.get("roadmap_id", ""))

        try:
            record = kind.model.model_validate(values)
        except PydanticValidationError as e:
            raise RemoteStoreError(f"Invalid {kind.value}: {e}")

        self._records(data, kind).append(record)
        self._save(data)
        logger.debug(f"created {kind.value} {record.id}")
        return record.model_copy(deep=True)

    async def update(self, kind: EntityKind, record_id: str, fields: Dict[str, Any]) -> BaseEntity:
        data = self._load()
        record = self._find(data, kind, record_id)
        values = record.model_dump()
        values.update({k: v for k, v in fields.items() if k not in SERVER_FIELDS})
        values["updated_at"] = datetime.now()

        try:
            updated = kind.model.model_validate(values)
        except PydanticValidationError as e:
            raise RemoteStoreError(f"Invalid {kind.value} update: {e}")

        records = self._records(data, kind)
        records[records.index(record)] = updated
        self._save(data)
        logger.debug(f"updated {kind.value} {record_id}: {sorted(fields)}")
        return updated.model_copy(deep=True)

    async def delete(self, kind: EntityKind, record_id: str) -> None:
        data = self._load()
        record = self._find(data, kind, record_id)
        self._records(data, kind).remove(record)

        if kind == EntityKind.ROADMAP:
            for child_kind in (EntityKind.OBJECTIVE, EntityKind.MODULE, EntityKind.TEAM, EntityKind.ITEM):
                records = self._records(data, child_kind)
                records[:] = [r for r in records if r.roadmap_id != record_id]
        elif kind != EntityKind.ITEM:
            foreign_key = GroupingDimension(kind.value).foreign_key
            for item in data.roadmap_items:
                if getattr(item, foreign_key) == record_id:
                    setattr(item, foreign_key, None)
                    item.updated_at = datetime.now()

        self._save(data)
        logger.debug(f"deleted {kind.value} {record_id}")


class MemoryRemoteStore(TableStore):
    """In-process RemoteStore, mainly for tests and demos."""

    def __init__(self, data: Optional[StoreFile] = None) -> None:
        self._data = data if data is not None else StoreFile()

    @classmethod
    def from_snapshot(cls, snapshot: RoadmapSnapshot) -> "MemoryRemoteStore":
        """Build a store holding exactly one roadmap."""
        return cls(StoreFile(
            roadmaps=[snapshot.roadmap],
            objectives=list(snapshot.objectives),
            modules=list(snapshot.modules),
            teams=list(snapshot.teams),
            roadmap_items=list(snapshot.items),
        ).model_copy(deep=True))

    def _load(self) -> StoreFile:
        return self._data

    def _save(self, data: StoreFile) -> None:
        self._data = data


class FileRemoteStore(TableStore):
    """RemoteStore persisted to .roadboard/store.json."""

    def __init__(self, storage: StorageManager) -> None:
        """
        Initialize FileRemoteStore.

        Args:
            storage: StorageManager for loading/saving store.json.
        """
        self.storage = storage

    def _load(self) -> StoreFile:
        try:
            return self.storage.load_store()
        except StorageError as e:
            raise RemoteStoreError(str(e)) from e

    def _save(self, data: StoreFile) -> None:
        try:
            self.storage.save_store(data)
        except StorageError as e:
            raise RemoteStoreError(str(e)) from e
