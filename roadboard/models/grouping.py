"""
Grouping models for Roadboard.

Objectives, modules and teams are three independent ways of grouping the same
items. They share one shape; only modules and teams carry a description.
"""

from typing import Optional

from pydantic import PrivateAttr

from roadboard.constants import DEFAULT_COLOR
from roadboard.models.base import BaseEntity


class GroupingEntity(BaseEntity):
    """
    Base model for objectives, modules and teams.

    order_index defines display order among siblings; values need not be
    contiguous.
    """

    roadmap_id: str
    title: str
    color: str = DEFAULT_COLOR
    order_index: int = 0
    _kind: str = PrivateAttr(default="grouping")

    @property
    def kind(self) -> str:
        """Get the grouping kind."""
        return self._kind


class Objective(GroupingEntity):
    """Objective model - what an item contributes to."""

    _kind: str = PrivateAttr(default="objective")


class Module(GroupingEntity):
    """Module model - which part of the product an item touches."""

    description: Optional[str] = None
    _kind: str = PrivateAttr(default="module")


class Team(GroupingEntity):
    """Team model - who delivers an item."""

    description: Optional[str] = None
    _kind: str = PrivateAttr(default="team")
