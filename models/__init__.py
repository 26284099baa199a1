"""
Pydantic models for validation and serialization.
"""

from models.base import BaseSchema
from models.schema_field import (
    FieldDataType,
    SchemaField,
    FieldCreate,
)
from models.import_data import (
    MatchType,
    DuplicateStrategy,
    ImportAction,
    TabularData,
    TableCandidate,
    ColumnMapping,
    MatchingFieldDetail,
    DuplicateMatch,
    ImportStrategy,
    ImportDecision,
    ImportResult,
)
from models.import_session import (
    ImportSource,
    ImportSession,
    TextImportRequest,
    UrlImportRequest,
    TableSelectionRequest,
    MappingUpdateRequest,
    FieldForColumnRequest,
    DuplicateCheckRequest,
    ApplyImportRequest,
    ImportSessionResponse,
    TypeSuggestion,
    DuplicateCheckResponse,
)

__all__ = [
    # Base
    "BaseSchema",

    # Schema fields
    "FieldDataType",
    "SchemaField",
    "FieldCreate",

    # Import pipeline
    "MatchType",
    "DuplicateStrategy",
    "ImportAction",
    "TabularData",
    "TableCandidate",
    "ColumnMapping",
    "MatchingFieldDetail",
    "DuplicateMatch",
    "ImportStrategy",
    "ImportDecision",
    "ImportResult",

    # Sessions
    "ImportSource",
    "ImportSession",
    "TextImportRequest",
    "UrlImportRequest",
    "TableSelectionRequest",
    "MappingUpdateRequest",
    "FieldForColumnRequest",
    "DuplicateCheckRequest",
    "ApplyImportRequest",
    "ImportSessionResponse",
    "TypeSuggestion",
    "DuplicateCheckResponse",
]
