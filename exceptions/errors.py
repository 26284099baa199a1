"""
Custom exception classes for the import service.

Every error carries a code, an HTTP status and details for the API response.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.
    
    All custom exceptions inherit from this.
    
    Attributes:
        code: Error code (e.g., "FIELD_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """
    
    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)
    
    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""
    
    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""
    
    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""
    
    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""
    
    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""
    
    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""
    
    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# IMPORT INPUT ERRORS
# ===================

class ImportParseError(ValidationError):
    """Pasted text or fetched table produced no rows to import."""

    def __init__(
        self,
        message: str = "No data found to import",
        details: Optional[dict] = None
    ):
        super().__init__(
            code="IMPORT_NO_DATA",
            message=message,
            details=details
        )


class TableSelectionError(ValidationError):
    """Selected table index does not exist among the fetched tables."""

    def __init__(self, table_index: int, available_indices: list[int]):
        super().__init__(
            code="IMPORT_INVALID_TABLE",
            message=f"Table {table_index} does not exist",
            details={
                "table_index": table_index,
                "table_count": len(available_indices),
                "available_indices": available_indices
            }
        )


class TableScrapeError(ExternalServiceError):
    """URL table extraction failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="table_scraper",
            message=message,
            details=details
        )


# ===================
# IMPORT SESSION ERRORS
# ===================

class ImportSessionNotFoundError(NotFoundError):
    """Import session missing or expired."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Import session",
            identifier=session_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


# ===================
# SCHEMA FIELD ERRORS
# ===================

class FieldNotFoundError(NotFoundError):
    """Schema field not found."""

    def __init__(self, field_id: str):
        super().__init__(
            resource="Field",
            identifier=field_id,
            code="FIELD_NOT_FOUND"
        )


class FieldApiNameExistsError(DuplicateError):
    """Object type already has a field with this api name."""

    def __init__(self, api_name: str):
        super().__init__(
            resource="Field",
            field="api_name",
            value=api_name
        )


class FieldAlreadyMappedError(ConflictError):
    """Field is already the target of another source column."""

    def __init__(self, field_api_name: str, column_index: int, mapped_column_index: int):
        super().__init__(
            code="FIELD_ALREADY_MAPPED",
            message=f"Field '{field_api_name}' is already mapped to column {mapped_column_index}",
            details={
                "field_api_name": field_api_name,
                "column_index": column_index,
                "mapped_column_index": mapped_column_index,
            }
        )


# ===================
# RECORD ERRORS
# ===================

class RecordNotFoundError(NotFoundError):
    """Object record not found."""

    def __init__(self, record_id: str):
        super().__init__(
            resource="Record",
            identifier=record_id,
            code="RECORD_NOT_FOUND"
        )
