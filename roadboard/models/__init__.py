"""
Data models for Roadboard.

Import models explicitly from their modules:
    from roadboard.models.base import RoadmapStatus, ItemCategory
    from roadboard.models.roadmap import Roadmap, Item
    from roadboard.models.grouping import Objective, Module, Team
    from roadboard.models.kinds import EntityKind, GroupingDimension
    from roadboard.models.files import RoadmapSnapshot, StoreFile, ConfigFile
"""
