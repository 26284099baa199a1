"""
Import pipeline models.

Everything here is transient: it lives for one import session and is never
persisted.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from models.base import BaseSchema
from models.schema_field import SchemaField


class MatchType(str, Enum):
    """Why an import row was flagged as a duplicate."""
    EMAIL_MATCH = "email_match"
    FIELD_MATCH = "field_match"


class DuplicateStrategy(str, Enum):
    """What to do with rows that match an existing record."""
    UPDATE = "update"
    SKIP = "skip"


class ImportAction(str, Enum):
    """Per-row outcome decided before writing."""
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class TabularData(BaseModel):
    """
    Uniform table shape produced by every tabular source.

    Rows are not guaranteed to have len(headers) cells; use cell() to read
    them padded.
    """

    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)

    def cell(self, row_index: int, column_index: int) -> str:
        """Value at (row, column), or "" when the row is short."""
        row = self.rows[row_index]
        if column_index < len(row):
            return row[column_index]
        return ""

    def normalized_row(self, row_index: int) -> list[str]:
        """Row padded or truncated to the header width."""
        width = len(self.headers)
        row = self.rows[row_index][:width]
        return row + [""] * (width - len(row))

    @property
    def row_count(self) -> int:
        return len(self.rows)


class TableCandidate(BaseModel):
    """One table found on a scraped page."""

    table_index: int = Field(..., ge=0)
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)

    def to_tabular_data(self) -> TabularData:
        return TabularData(headers=list(self.headers), rows=[list(r) for r in self.rows])


class ColumnMapping(BaseSchema):
    """Mapping of one source column to a schema field (None = unmapped)."""

    source_column_index: int = Field(..., ge=0)
    source_column_name: str
    target_field: Optional[SchemaField] = None

    @property
    def is_mapped(self) -> bool:
        return self.target_field is not None


class MatchingFieldDetail(BaseModel):
    """Side-by-side values of one field that matched."""

    field_api_name: str
    field_name: str
    import_value: str
    existing_value: str


class DuplicateMatch(BaseModel):
    """An import row that likely refers to an already-stored record."""

    import_row_index: int = Field(..., ge=0)
    existing_record_id: str
    match_type: MatchType
    matching_fields: list[MatchingFieldDetail] = Field(default_factory=list)


class ImportStrategy(BaseSchema):
    """User-chosen duplicate handling."""

    match_field_api_name: Optional[str] = None
    on_duplicate: DuplicateStrategy = DuplicateStrategy.UPDATE


class ImportDecision(BaseModel):
    """What the applier will do with one import row."""

    row_index: int = Field(..., ge=0)
    action: ImportAction
    target_record_id: Optional[str] = None
    field_values: dict[str, str] = Field(default_factory=dict)


class ImportResult(BaseModel):
    """Outcome of applying a set of decisions."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed_row_index: Optional[int] = None
    error: Optional[str] = None
    record_ids: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if every decision was applied."""
        return self.failed_row_index is None

    @property
    def processed(self) -> int:
        return self.created + self.updated + self.skipped
