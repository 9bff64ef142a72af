"""
Entity kinds and grouping dimensions.

EntityKind names every record type the remote store knows about;
GroupingDimension selects which item foreign key the board groups by.
"""

from enum import Enum
from typing import Type

from roadboard.models.base import BaseEntity
from roadboard.models.grouping import GroupingEntity, Module, Objective, Team
from roadboard.models.roadmap import Item, Roadmap


class EntityKind(str, Enum):
    """Record types exchanged with the remote store."""

    ROADMAP = "roadmap"
    OBJECTIVE = "objective"
    MODULE = "module"
    TEAM = "team"
    ITEM = "item"

    @property
    def model(self) -> Type[BaseEntity]:
        """Model class for records of this kind."""
        return _MODELS[self]

    @property
    def collection(self) -> str:
        """Remote collection (table) holding records of this kind."""
        return _COLLECTIONS[self]


_MODELS = {
    EntityKind.ROADMAP: Roadmap,
    EntityKind.OBJECTIVE: Objective,
    EntityKind.MODULE: Module,
    EntityKind.TEAM: Team,
    EntityKind.ITEM: Item,
}

_COLLECTIONS = {
    EntityKind.ROADMAP: "roadmaps",
    EntityKind.OBJECTIVE: "objectives",
    EntityKind.MODULE: "modules",
    EntityKind.TEAM: "teams",
    EntityKind.ITEM: "roadmap_items",
}


class GroupingDimension(str, Enum):
    """The three independent ways of grouping items on the board."""

    OBJECTIVE = "objective"
    MODULE = "module"
    TEAM = "team"

    @property
    def foreign_key(self) -> str:
        """Item field holding the grouping id for this dimension."""
        return f"{self.value}_id"

    @property
    def entity_kind(self) -> EntityKind:
        """Entity kind of the groupings in this dimension."""
        return EntityKind(self.value)

    @property
    def model(self) -> Type[GroupingEntity]:
        """Model class of the groupings in this dimension."""
        return self.entity_kind.model

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Objective'."""
        return self.value.capitalize()
