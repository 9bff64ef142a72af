"""
File and snapshot models for Roadboard.

Models representing the structure of JSON files in the .roadboard/ directory
and the result of fetching a whole roadmap from the remote store.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from roadboard.constants import (
    DEFAULT_COLOR,
    DEFAULT_CSV_HAS_HEADERS,
    DEFAULT_DRAG_THRESHOLD,
    DEFAULT_LOG_LEVEL,
    DEFAULT_STORE_BACKEND,
    DEFAULT_STORE_TIMEOUT,
    DEFAULT_UNASSIGNED_COLOR,
    LOG_LEVELS,
    STORE_BACKENDS,
)

from .grouping import GroupingEntity, Module, Objective, Team
from .kinds import GroupingDimension
from .roadmap import Item, Roadmap


class RoadmapSnapshot(BaseModel):
    """One roadmap with all of its children, as returned by fetch-all."""

    roadmap: Roadmap
    objectives: List[Objective] = Field(default_factory=list)
    modules: List[Module] = Field(default_factory=list)
    teams: List[Team] = Field(default_factory=list)
    items: List[Item] = Field(default_factory=list)

    def groupings(self, dimension: GroupingDimension) -> List[GroupingEntity]:
        """Get the grouping entities of one dimension."""
        if dimension == GroupingDimension.OBJECTIVE:
            return self.objectives
        if dimension == GroupingDimension.MODULE:
            return self.modules
        return self.teams


class StoreFile(BaseModel):
    """Model for store.json file.

    Flat lists of every record with roadmap_id references, one list per
    remote collection.
    """

    roadmaps: List[Roadmap] = Field(default_factory=list)
    objectives: List[Objective] = Field(default_factory=list)
    modules: List[Module] = Field(default_factory=list)
    teams: List[Team] = Field(default_factory=list)
    roadmap_items: List[Item] = Field(default_factory=list)


class ConfigFile(BaseModel):
    """Model for config.json file.

    Project settings and configuration.
    """

    schema_version: str = "0.1.0"
    default_roadmap: Optional[str] = None

    # Remote store settings
    store_backend: str = DEFAULT_STORE_BACKEND
    store_url: Optional[str] = None
    store_api_key: Optional[str] = None
    store_timeout: float = DEFAULT_STORE_TIMEOUT

    # Board settings
    drag_threshold: float = DEFAULT_DRAG_THRESHOLD
    csv_has_headers: bool = DEFAULT_CSV_HAS_HEADERS
    default_color: str = DEFAULT_COLOR
    unassigned_color: str = DEFAULT_UNASSIGNED_COLOR

    # Logging settings
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        if v not in STORE_BACKENDS:
            raise ValueError(f"store_backend must be one of: {', '.join(STORE_BACKENDS)}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("drag_threshold", "store_timeout")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v
