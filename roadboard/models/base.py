"""
Base entity model for Roadboard.

Common base for roadmaps, groupings and items, plus the fixed status and
category vocabularies.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RoadmapStatus(str, Enum):
    """Time horizon of an item; the board's columns in display order."""

    NOW = "now"
    NEXT = "next"
    LATER = "later"


class ItemCategory(str, Enum):
    """Valid category values for items."""

    TECH = "tech"
    BUSINESS = "business"
    MIXED = "mixed"


class BaseEntity(BaseModel):
    """
    Base model for all records held by the remote store.

    Common fields:
    - id: Opaque unique identifier (assigned by the store on create)
    - timestamps: created_at, updated_at

    Assignments are validated, so an invalid status or category can never be
    stored on a model instance.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
