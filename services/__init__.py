"""
Business logic services.

The pure pipeline steps (column_mapper, type_guesser, duplicate_detector,
import_applier) take and return plain models; the Supabase-backed services
and the session service wrap them.
"""

from services.schema_catalog_service import SchemaCatalogService, get_schema_catalog_service
from services.record_store_service import RecordStoreService, get_record_store_service
from services.import_session_store import ImportSessionStore
from services.import_session_service import ImportSessionService, get_import_session_service

__all__ = [
    "SchemaCatalogService",
    "get_schema_catalog_service",
    "RecordStoreService",
    "get_record_store_service",
    "ImportSessionStore",
    "ImportSessionService",
    "get_import_session_service",
]
