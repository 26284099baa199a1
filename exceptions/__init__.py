"""
Custom exceptions module.

Services raise these; routes turn them into JSON error responses.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    ExternalServiceError,
    DatabaseError,

    # Import input
    ImportParseError,
    TableSelectionError,
    TableScrapeError,

    # Import sessions
    ImportSessionNotFoundError,

    # Schema fields
    FieldNotFoundError,
    FieldApiNameExistsError,
    FieldAlreadyMappedError,

    # Records
    RecordNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "ExternalServiceError",
    "DatabaseError",

    # Import input
    "ImportParseError",
    "TableSelectionError",
    "TableScrapeError",

    # Import sessions
    "ImportSessionNotFoundError",

    # Schema fields
    "FieldNotFoundError",
    "FieldApiNameExistsError",
    "FieldAlreadyMappedError",

    # Records
    "RecordNotFoundError",
]
