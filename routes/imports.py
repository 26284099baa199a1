"""
Import API routes.

One import session per user flow:
    POST /sessions (text) | /sessions/from-url | /sessions/upload
    → PATCH mappings / POST fields → POST duplicates → POST apply
"""

from typing import Optional
from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
import structlog

from models.schema_field import SchemaField
from models.import_data import ImportResult
from models.import_session import (
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
from services.import_session_service import get_import_session_service
from services.schema_catalog_service import get_schema_catalog_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/imports", tags=["Imports"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# SESSIONS
# ===================

@router.post("/sessions", response_model=ImportSessionResponse, status_code=201)
async def start_text_import(data: TextImportRequest):
    """
    Start an import from pasted CSV or tab separated text.

    Columns are auto-mapped to fields with the same name or api name.
    """
    try:
        service = get_import_session_service()
        session = service.start_from_text(data.object_type_id, data.text, quote_aware=data.quote_aware)
        return service.describe(session)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/from-url", response_model=ImportSessionResponse, status_code=201)
async def start_url_import(data: UrlImportRequest):
    """
    Start an import from the HTML tables found at a URL.

    If the page has more than one table, select one with POST /sessions/{id}/table.
    """
    try:
        service = get_import_session_service()
        session = service.start_from_url(data.object_type_id, data.url)
        return service.describe(session)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/upload", response_model=ImportSessionResponse, status_code=201)
async def start_file_import(
    object_type_id: str = Form(...),
    quote_aware: bool = Form(False),
    file: UploadFile = File(...),
):
    """
    Start an import from an uploaded CSV/TSV or Excel file.

    Each Excel sheet is offered as a table.
    """
    try:
        content = await file.read()
        service = get_import_session_service()
        session = service.start_from_upload(object_type_id, content, file.filename, quote_aware=quote_aware)
        return service.describe(session)
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}", response_model=ImportSessionResponse)
async def get_import_session(session_id: str):
    """Get a session's data, mappings and duplicate results."""
    try:
        service = get_import_session_service()
        return service.describe(service.get_session(session_id))
    except Exception as e:
        return handle_error(e)


@router.delete("/sessions/{session_id}", status_code=204)
async def discard_import_session(session_id: str):
    """Abandon an import."""
    try:
        get_import_session_service().discard_session(session_id)
        return Response(status_code=204)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/table", response_model=ImportSessionResponse)
async def select_import_table(session_id: str, data: TableSelectionRequest):
    """Choose which fetched table to import."""
    try:
        service = get_import_session_service()
        session = service.select_table(session_id, data.table_index)
        return service.describe(session)
    except Exception as e:
        return handle_error(e)


# ===================
# MAPPING
# ===================

@router.patch("/sessions/{session_id}/mappings/{column_index}", response_model=ImportSessionResponse)
async def update_column_mapping(session_id: str, column_index: int, data: MappingUpdateRequest):
    """
    Map a column to a field, or unmap it with field_id null.

    Returns 409 if another column already maps to the field.
    """
    try:
        service = get_import_session_service()
        session = service.update_mapping(session_id, column_index, data.field_id)
        return service.describe(session)
    except Exception as e:
        return handle_error(e)


@router.get("/sessions/{session_id}/type-suggestions", response_model=list[TypeSuggestion])
async def get_type_suggestions(session_id: str):
    """Suggested field definitions for unmapped columns."""
    try:
        return get_import_session_service().suggest_types(session_id)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/fields", response_model=SchemaField, status_code=201)
async def create_field_for_column(session_id: str, data: FieldForColumnRequest):
    """Create a field for an unmapped column and map the column to it."""
    try:
        return get_import_session_service().create_field_for_column(session_id, data)
    except Exception as e:
        return handle_error(e)


# ===================
# DUPLICATES & APPLY
# ===================

@router.post("/sessions/{session_id}/duplicates", response_model=DuplicateCheckResponse)
async def check_duplicates(session_id: str, data: Optional[DuplicateCheckRequest] = None):
    """Find rows that match records already stored for the object type."""
    try:
        match_field = data.match_field_api_name if data else None
        return get_import_session_service().check_duplicates(session_id, match_field)
    except Exception as e:
        return handle_error(e)


@router.post("/sessions/{session_id}/apply", response_model=ImportResult)
async def apply_import(session_id: str, data: ApplyImportRequest):
    """
    Create, update or skip each row.

    Stops at the first failing row; rows written before it stay written.
    """
    try:
        return get_import_session_service().apply_import(
            session_id,
            on_duplicate=data.on_duplicate,
            selected_rows=data.selected_rows,
        )
    except Exception as e:
        return handle_error(e)


# ===================
# CATALOG
# ===================

@router.get("/object-types/{object_type_id}/fields", response_model=list[SchemaField])
async def list_object_fields(object_type_id: str):
    """Fields columns can be mapped to."""
    try:
        return get_schema_catalog_service().list_fields(object_type_id)
    except Exception as e:
        return handle_error(e)
