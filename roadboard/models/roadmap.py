"""
Roadmap and item models for Roadboard.

Flat structure with id references: every item points at its roadmap and,
optionally, at one objective, one module and one team.
"""

from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from roadboard.models.base import BaseEntity, ItemCategory, RoadmapStatus

# Fields a client may change on an existing item.
EDITABLE_ITEM_FIELDS = frozenset({
    "objective_id",
    "module_id",
    "team_id",
    "title",
    "description",
    "category",
    "tags",
    "status",
    "order_index",
})


class Roadmap(BaseEntity):
    """Roadmap model - root aggregate owning all groupings and items."""

    title: str
    description: Optional[str] = None
    owner: str = ""
    is_public: bool = False
    share_token: Optional[str] = None


class Item(BaseEntity):
    """Item model - a unit of work placed in one status column.

    tags behaves as a set: duplicates are dropped, first occurrence wins.
    """

    roadmap_id: str
    objective_id: Optional[str] = None
    module_id: Optional[str] = None
    team_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    category: ItemCategory = ItemCategory.BUSINESS
    tags: List[str] = Field(default_factory=list)
    status: RoadmapStatus = RoadmapStatus.LATER
    order_index: int = 0

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: Any) -> List[str]:
        """Treat a missing tag list as empty and de-duplicate the rest."""
        if v is None:
            return []
        seen: List[str] = []
        for tag in v:
            if tag not in seen:
                seen.append(tag)
        return seen

    def apply(self, fields: Dict[str, Any]) -> "Item":
        """Return a validated copy of this item with fields overlaid.

        Args:
            fields: Partial field set to apply.

        Returns:
            A new Item; this instance is left untouched.

        Raises:
            pydantic.ValidationError: If a value is not valid for its field.
        """
        data = self.model_dump()
        data.update(fields)
        return type(self).model_validate(data)
