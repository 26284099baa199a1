"""
Import session state and API request/response models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from models.base import BaseSchema
from models.schema_field import FieldDataType
from models.import_data import (
    TabularData,
    TableCandidate,
    ColumnMapping,
    DuplicateMatch,
    ImportStrategy,
    DuplicateStrategy,
)


class ImportSource(str, Enum):
    """Where the session's rows came from."""
    TEXT = "text"
    URL = "url"
    FILE = "file"


class ImportSession(BaseModel):
    """
    One user's in-progress import.

    Held in memory by ImportSessionStore; dropped on expiry, discard or
    a fully successful apply.
    """

    id: str
    object_type_id: str
    source: ImportSource
    created_at: datetime
    data: Optional[TabularData] = None
    tables: list[TableCandidate] = Field(default_factory=list)
    selected_table_index: Optional[int] = None
    mappings: list[ColumnMapping] = Field(default_factory=list)
    duplicates: list[DuplicateMatch] = Field(default_factory=list)
    duplicate_check_completed: bool = False
    strategy: ImportStrategy = Field(default_factory=ImportStrategy)

    @property
    def awaiting_table_selection(self) -> bool:
        return self.data is None and len(self.tables) > 1

    def reset_duplicates(self) -> None:
        """Mapping changed; previous duplicate results no longer apply."""
        self.duplicates = []
        self.duplicate_check_completed = False


# ===================
# REQUESTS
# ===================

class TextImportRequest(BaseSchema):
    """Start a session from pasted CSV/TSV text."""
    object_type_id: str = Field(..., min_length=1)
    text: str = Field(..., description="Pasted comma or tab separated text")
    quote_aware: bool = Field(False, description="Honour quoted cells containing the delimiter")


class UrlImportRequest(BaseSchema):
    """Start a session from the tables found at a URL."""
    object_type_id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class TableSelectionRequest(BaseSchema):
    table_index: int = Field(..., ge=0)


class MappingUpdateRequest(BaseSchema):
    """New target for one column; null clears the mapping."""
    field_id: Optional[str] = None


class FieldForColumnRequest(BaseSchema):
    """
    Create a field for an unmapped column.

    Omitted values are derived from the column header and its sample values.
    """
    column_index: int = Field(..., ge=0)
    name: Optional[str] = Field(None, max_length=200)
    api_name: Optional[str] = Field(None, max_length=100)
    data_type: Optional[FieldDataType] = None
    is_required: bool = False


class DuplicateCheckRequest(BaseSchema):
    match_field_api_name: Optional[str] = None


class ApplyImportRequest(BaseSchema):
    on_duplicate: DuplicateStrategy = DuplicateStrategy.UPDATE
    selected_rows: Optional[list[int]] = Field(
        None,
        description="Row indices to import; all rows when omitted"
    )


# ===================
# RESPONSES
# ===================

class ImportSessionResponse(BaseModel):
    """Session view returned by the API."""
    id: str
    object_type_id: str
    source: ImportSource
    created_at: datetime
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)
    row_count: int = 0
    tables: list[TableCandidate] = Field(default_factory=list)
    selected_table_index: Optional[int] = None
    mappings: list[ColumnMapping] = Field(default_factory=list)
    unmapped_columns: list[int] = Field(default_factory=list)
    unmapped_required_fields: list[str] = Field(default_factory=list)
    duplicates: list[DuplicateMatch] = Field(default_factory=list)
    duplicate_check_completed: bool = False

    @classmethod
    def from_session(
        cls,
        session: ImportSession,
        unmapped_columns: list[int],
        unmapped_required_fields: list[str],
    ) -> "ImportSessionResponse":
        data = session.data
        return cls(
            id=session.id,
            object_type_id=session.object_type_id,
            source=session.source,
            created_at=session.created_at,
            headers=data.headers if data else [],
            rows=data.rows if data else [],
            row_count=data.row_count if data else 0,
            tables=session.tables,
            selected_table_index=session.selected_table_index,
            mappings=session.mappings,
            unmapped_columns=unmapped_columns,
            unmapped_required_fields=unmapped_required_fields,
            duplicates=session.duplicates,
            duplicate_check_completed=session.duplicate_check_completed,
        )


class TypeSuggestion(BaseModel):
    """Guessed data type for an unmapped column."""
    column_index: int
    column_name: str
    suggested_name: str
    suggested_api_name: str
    data_type: FieldDataType
    sample_values: list[str] = Field(default_factory=list)


class DuplicateCheckResponse(BaseModel):
    duplicates: list[DuplicateMatch] = Field(default_factory=list)
    duplicate_row_count: int = 0
    existing_record_count: int = 0