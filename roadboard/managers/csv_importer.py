"""
CSV import for Roadboard.

Reads semicolon-separated files with one item per row. Columns are
positional: title, description, status, category, objective, module, team,
tags. Every cell is validated on its own by the COLUMN_RULES table; problems
become issues on the row's record and never stop the import. Only a file
without any (data) row is rejected outright.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from roadboard.constants import (
    CATEGORY_ALIASES,
    CSV_DELIMITER,
    CSV_QUOTE,
    CSV_TAG_SEPARATORS,
    DEFAULT_CATEGORY,
    DEFAULT_STATUS,
    IMPORT_EMPTY_FILE,
    IMPORT_NO_DATA_ROWS,
    IMPORT_NOT_CSV,
    ISSUE_MISSING_TITLE,
    ISSUE_UNKNOWN_CATEGORY,
    ISSUE_UNKNOWN_STATUS,
    ISSUE_UNMATCHED_GROUPING,
    MISSING_TITLE,
    STATUSES,
)
from roadboard.exceptions import ImportParseError, ValidationError
from roadboard.logger import get_logger
from roadboard.managers.entity_store import find_by_title
from roadboard.models.base import ItemCategory, RoadmapStatus
from roadboard.models.files import RoadmapSnapshot
from roadboard.models.grouping import GroupingEntity
from roadboard.models.kinds import GroupingDimension
from roadboard.models.roadmap import Item

logger = get_logger(__name__)


class ImportRecord(BaseModel):
    """One data row, validated and defaulted, with its advisory issues."""

    row: int
    title: str
    description: Optional[str] = None
    status: RoadmapStatus = RoadmapStatus.LATER
    category: ItemCategory = ItemCategory.BUSINESS
    objective_id: Optional[str] = None
    module_id: Optional[str] = None
    team_id: Optional[str] = None
    tags: Optional[List[str]] = None
    issues: List[str] = Field(default_factory=list)

    def to_item_fields(self) -> Dict[str, Any]:
        """Fields for creating the item; issues are not part of it.

        Missing tags are left out so the store applies its own default.
        """
        exclude = {"row", "issues"}
        if self.tags is None:
            exclude.add("tags")
        return self.model_dump(exclude=exclude)


class ImportPreview(BaseModel):
    """All records of one file, in file order."""

    records: List[ImportRecord] = Field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return sum(len(record.issues) for record in self.records)

    @property
    def records_with_issues(self) -> List[ImportRecord]:
        return [record for record in self.records if record.issues]


@dataclass
class ImportSummary:
    """Outcome of committing an ImportPreview."""

    created: List[Item] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)


@dataclass
class ImportContext:
    """Existing groupings that free-text cells are matched against."""

    groupings: Dict[GroupingDimension, Sequence[GroupingEntity]] = field(default_factory=dict)

    @classmethod
    def from_snapshot(cls, snapshot: RoadmapSnapshot) -> "ImportContext":
        return cls({dimension: snapshot.groupings(dimension) for dimension in GroupingDimension})

    def lookup(self, dimension: GroupingDimension, title: str) -> Optional[GroupingEntity]:
        return find_by_title(list(self.groupings.get(dimension, ())), title)


# =============================================================================
# Tokenizer
# =============================================================================


def _split_line(line: str) -> List[str]:
    """Split one line on unquoted delimiters; fields are trimmed."""
    fields = []
    current: List[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == CSV_QUOTE:
            if in_quotes and line[i + 1:i + 2] == CSV_QUOTE:
                current.append(CSV_QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == CSV_DELIMITER and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current).strip())
    return fields


def tokenize(content: str) -> List[List[str]]:
    """Split file content into rows of fields.

    A newline always ends a row, even inside quotes. Blank lines are skipped.

    Examples:
        >>> tokenize('a;"b;c"\\n\\nd')
        [['a', 'b;c'], ['d']]
    """
    if content.startswith("\ufeff"):
        content = content[1:]
    rows = []
    for line in content.split("\n"):
        line = line.strip()
        if not line:
            continue
        rows.append(_split_line(line))
    return rows


# =============================================================================
# Column rules
# =============================================================================

Validator = Callable[[str, ImportContext], Tuple[Any, Optional[str]]]


@dataclass(frozen=True)
class ColumnRule:
    """How one CSV column becomes one record field."""

    index: int
    field: str
    validate: Validator


def _title(cell: str, ctx: ImportContext) -> Tuple[Any, Optional[str]]:
    title = cell.strip()
    if not title:
        return MISSING_TITLE, ISSUE_MISSING_TITLE
    return title, None


def _description(cell: str, ctx: ImportContext) -> Tuple[Any, Optional[str]]:
    return cell.strip() or None, None


def _status(cell: str, ctx: ImportContext) -> Tuple[Any, Optional[str]]:
    value = cell.strip().lower()
    if value in STATUSES:
        return value, None
    if not value:
        return DEFAULT_STATUS, None
    return DEFAULT_STATUS, ISSUE_UNKNOWN_STATUS.format(value=value, default=DEFAULT_STATUS)


def _category(cell: str, ctx: ImportContext) -> Tuple[Any, Optional[str]]:
    value = cell.strip().lower()
    if value in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[value], None
    if not value:
        # An empty cell is not worth an issue; an unknown value is
        return DEFAULT_CATEGORY, None
    return DEFAULT_CATEGORY, ISSUE_UNKNOWN_CATEGORY.format(value=value, default=DEFAULT_CATEGORY)


def _grouping(dimension: GroupingDimension) -> Validator:
    def validate(cell: str, ctx: ImportContext) -> Tuple[Any, Optional[str]]:
        name = cell.strip()
        if not name:
            return None, None
        found = ctx.lookup(dimension, name)
        if found is None:
            return None, ISSUE_UNMATCHED_GROUPING.format(label=dimension.label, value=name)
        return found.id, None
    return validate


def _tags(cell: str, ctx: ImportContext) -> Tuple[Any, Optional[str]]:
    tags = [tag.strip() for tag in re.split(CSV_TAG_SEPARATORS, cell)]
    return [tag for tag in tags if tag] or None, None


COLUMN_RULES = (
    ColumnRule(0, "title", _title),
    ColumnRule(1, "description", _description),
    ColumnRule(2, "status", _status),
    ColumnRule(3, "category", _category),
    ColumnRule(4, "objective_id", _grouping(GroupingDimension.OBJECTIVE)),
    ColumnRule(5, "module_id", _grouping(GroupingDimension.MODULE)),
    ColumnRule(6, "team_id", _grouping(GroupingDimension.TEAM)),
    ColumnRule(7, "tags", _tags),
)


def validate_row(cells: Sequence[str], ctx: ImportContext, row: int) -> ImportRecord:
    """Apply every column rule to one row. Missing trailing cells read as empty."""
    values: Dict[str, Any] = {"row": row}
    issues = []
    for rule in COLUMN_RULES:
        cell = cells[rule.index] if rule.index < len(cells) else ""
        value, issue = rule.validate(cell, ctx)
        values[rule.field] = value
        if issue:
            issues.append(issue)
    return ImportRecord(issues=issues, **values)


# =============================================================================
# Entry points
# =============================================================================


def parse_import(
    content: str,
    has_headers: bool,
    ctx: Optional[ImportContext] = None,
) -> ImportPreview:
    """Parse a whole file into records.

    Args:
        content: File content.
        has_headers: Whether the first row is a header to skip.
        ctx: Existing groupings for name lookups. Without it every
            objective/module/team name is reported as not found.

    Returns:
        One record per data row, in file order.

    Raises:
        ImportParseError: If the file has no rows, or no rows after the header.
    """
    rows = tokenize(content)
    if not rows:
        raise ImportParseError(IMPORT_EMPTY_FILE)

    data_rows = rows[1:] if has_headers else rows
    if not data_rows:
        raise ImportParseError(IMPORT_NO_DATA_ROWS)

    ctx = ctx if ctx is not None else ImportContext()
    records = [validate_row(cells, ctx, index) for index, cells in enumerate(data_rows, start=1)]
    preview = ImportPreview(records=records)
    logger.debug(f"Parsed {len(records)} import rows with {preview.issue_count} issues")
    return preview


def read_import_file(path: Path) -> str:
    """Read an uploaded CSV file.

    Raises:
        ValidationError: If the file is not a .csv file or cannot be read.
    """
    if path.suffix.lower() != ".csv":
        raise ValidationError(IMPORT_NOT_CSV)
    try:
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ValidationError(f"Error reading CSV file: {e}") from e
