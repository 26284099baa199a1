"""
Import session service.

Drives one import from raw input to written records:

    load (text / URL / file) → [select table] → map columns
    → [create fields] → check duplicates → apply

Each step reads the session from the store, changes it and saves it back.
Calls to Supabase happen synchronously inside the step that needs them;
concurrent steps on the same session are not serialised (last save wins).
"""

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional
import structlog

from config import settings
from models.schema_field import SchemaField, FieldCreate
from models.import_data import (
    TableCandidate,
    ImportStrategy,
    DuplicateStrategy,
    ImportResult,
)
from models.import_session import (
    ImportSource,
    ImportSession,
    ImportSessionResponse,
    FieldForColumnRequest,
    TypeSuggestion,
    DuplicateCheckResponse,
)
from parsers.tabular_parser import parse_import_text, select_table as pick_table, auto_select_table
from parsers.spreadsheet_parser import read_upload
from integrations.table_scraper import fetch_tables_from_url
from services import column_mapper
from services.type_guesser import get_sample_values, guess_data_type, suggest_field_types
from services.duplicate_detector import find_duplicates_for_mappings
from services.import_applier import decide_actions, apply_decisions
from services.import_session_store import ImportSessionStore
from services.schema_catalog_service import SchemaCatalogService, get_schema_catalog_service
from services.record_store_service import RecordStoreService, get_record_store_service
from exceptions import (
    ImportParseError,
    ImportSessionNotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class ImportSessionService:
    """
    Orchestrates import sessions.

    Collaborators are injectable; by default the Supabase-backed catalog and
    record store are used.
    """

    def __init__(
        self,
        catalog: Optional[SchemaCatalogService] = None,
        record_store: Optional[RecordStoreService] = None,
        store: Optional[ImportSessionStore] = None,
        fetch_tables: Callable[[str], list[TableCandidate]] = fetch_tables_from_url,
        max_samples: Optional[int] = None,
    ):
        self.catalog = catalog or get_schema_catalog_service()
        self.record_store = record_store or get_record_store_service()
        # An empty store is falsy (__len__), so compare with None
        self.store = store if store is not None else ImportSessionStore(settings.import_session_ttl_minutes)
        self.fetch_tables = fetch_tables
        self.max_samples = max_samples or settings.type_guess_max_samples

    # ===================
    # LOADING
    # ===================

    def start_from_text(self, object_type_id: str, text: str, quote_aware: bool = False) -> ImportSession:
        """
        Start a session from pasted CSV/TSV text.

        Raises:
            ImportParseError: If the text has no non-empty lines
            DatabaseError: If the field catalog cannot be read
        """
        data = parse_import_text(text, quote_aware=quote_aware)
        if data is None:
            logger.info("import_text_empty", object_type_id=object_type_id)
            raise ImportParseError()

        session = self._new_session(object_type_id, ImportSource.TEXT)
        session.data = data
        session.mappings = column_mapper.initial_mappings(data, self.catalog.list_fields(object_type_id))
        self.store.save(session)

        logger.info(
            "import_session_started",
            session_id=session.id,
            source=session.source.value,
            columns=len(data.headers),
            rows=data.row_count
        )
        return session

    def start_from_url(self, object_type_id: str, url: str) -> ImportSession:
        """
        Start a session from the tables found at a URL.

        A single table is selected automatically; with several, the session
        waits for select_table().

        Raises:
            ValidationError: If the URL is invalid
            TableScrapeError: If scraping fails
            ImportParseError: If the page has no tables
        """
        candidates = self.fetch_tables(url)
        return self._start_from_candidates(
            object_type_id,
            candidates,
            ImportSource.URL,
            "No tables found on the page",
        )

    def start_from_upload(
        self,
        object_type_id: str,
        content: bytes,
        filename: Optional[str],
        quote_aware: bool = False
    ) -> ImportSession:
        """
        Start a session from an uploaded CSV/TSV or Excel file.

        Excel sheets are treated like scraped tables.
        """
        candidates = read_upload(content, filename, quote_aware=quote_aware)
        return self._start_from_candidates(
            object_type_id,
            candidates,
            ImportSource.FILE,
            "No data found in file",
        )

    def select_table(self, session_id: str, table_index: int) -> ImportSession:
        """
        Choose which fetched table to import.

        Resets mappings and duplicate results.

        Raises:
            ImportSessionNotFoundError: If the session is missing or expired
            TableSelectionError: If no fetched table carries table_index
        """
        session = self.get_session(session_id)
        data = pick_table(session.tables, table_index)

        session.data = data
        session.selected_table_index = table_index
        session.mappings = column_mapper.initial_mappings(data, self.catalog.list_fields(session.object_type_id))
        session.reset_duplicates()
        self.store.save(session)

        logger.info("import_table_selected", session_id=session_id, table_index=table_index)
        return session

    # ===================
    # SESSION ACCESS
    # ===================

    def get_session(self, session_id: str) -> ImportSession:
        """
        Raises:
            ImportSessionNotFoundError: If the session is missing or expired
        """
        session = self.store.get(session_id)
        if session is None:
            raise ImportSessionNotFoundError(session_id)
        return session

    def discard_session(self, session_id: str) -> None:
        """Abandon a session."""
        self.get_session(session_id)
        self.store.delete(session_id)
        logger.info("import_session_discarded", session_id=session_id)

    def describe(self, session: ImportSession) -> ImportSessionResponse:
        """API view of a session including mapping warnings."""
        required = []
        if session.mappings:
            fields = self.catalog.list_fields(session.object_type_id)
            required = [f.name for f in column_mapper.unmapped_required_fields(session.mappings, fields)]

        return ImportSessionResponse.from_session(
            session,
            unmapped_columns=column_mapper.unmapped_column_indices(session.mappings),
            unmapped_required_fields=required,
        )

    # ===================
    # MAPPING
    # ===================

    def update_mapping(self, session_id: str, column_index: int, field_id: Optional[str]) -> ImportSession:
        """
        Map a column to a field, or clear it with field_id=None.

        Raises:
            ImportSessionNotFoundError, ValidationError, FieldNotFoundError,
            FieldAlreadyMappedError
        """
        session = self.get_session(session_id)
        self._require_data(session)

        fields = self.catalog.list_fields(session.object_type_id)
        session.mappings = column_mapper.update_mapping(session.mappings, column_index, field_id, fields)
        session.reset_duplicates()
        self.store.save(session)
        return session

    def suggest_types(self, session_id: str) -> list[TypeSuggestion]:
        """Guessed field definitions for every unmapped column."""
        session = self.get_session(session_id)
        data = self._require_data(session)

        suggestions = suggest_field_types(data, session.mappings, self.max_samples)
        return [
            TypeSuggestion(
                column_index=index,
                column_name=data.headers[index],
                suggested_name=data.headers[index],
                suggested_api_name=column_mapper.suggest_api_name(data.headers[index]),
                data_type=data_type,
                sample_values=samples,
            )
            for index, (data_type, samples) in suggestions.items()
        ]

    def create_field_for_column(self, session_id: str, request: FieldForColumnRequest) -> SchemaField:
        """
        Create a catalog field for a column and map the column to it.

        Name defaults to the header, api name to its normalised form and type
        to the guessed type.

        Raises:
            ImportSessionNotFoundError, ValidationError,
            FieldApiNameExistsError, DatabaseError
        """
        session = self.get_session(session_id)
        data = self._require_data(session)

        index = request.column_index
        if index >= len(data.headers):
            raise ValidationError(
                code="INVALID_COLUMN_INDEX",
                message=f"Column {index} does not exist",
                details={"column_index": index, "column_count": len(data.headers)}
            )

        header = data.headers[index]
        name = request.name or header
        api_name = request.api_name or column_mapper.suggest_api_name(name)
        data_type = request.data_type or guess_data_type(
            header, get_sample_values(data, index, self.max_samples)
        )

        if not name or not api_name:
            raise ValidationError(
                code="FIELD_NAME_REQUIRED",
                message="Field name cannot be empty",
                details={"column_index": index}
            )

        field = self.catalog.create_field(
            session.object_type_id,
            FieldCreate(name=name, api_name=api_name, data_type=data_type, is_required=request.is_required),
        )

        fields = self.catalog.list_fields(session.object_type_id)
        if all(f.id != field.id for f in fields):
            fields.append(field)

        session.mappings = column_mapper.update_mapping(session.mappings, index, field.id, fields)
        session.reset_duplicates()
        self.store.save(session)

        logger.info(
            "field_created_for_column",
            session_id=session_id,
            column_index=index,
            api_name=field.api_name,
            data_type=field.data_type.value
        )
        return field

    # ===================
    # DUPLICATES
    # ===================

    def check_duplicates(self, session_id: str, match_field_api_name: Optional[str] = None) -> DuplicateCheckResponse:
        """
        Compare the session's rows with the object type's stored records.

        Raises:
            ImportSessionNotFoundError, ValidationError, DatabaseError
        """
        session = self.get_session(session_id)
        data = self._require_data(session)

        mapped_api_names = {m.target_field.api_name for m in session.mappings if m.target_field}
        if match_field_api_name and match_field_api_name not in mapped_api_names:
            raise ValidationError(
                code="MATCH_FIELD_NOT_MAPPED",
                message=f"Match field '{match_field_api_name}' is not mapped to any column",
                details={"match_field_api_name": match_field_api_name}
            )

        fields = self.catalog.list_fields(session.object_type_id)
        existing = self.record_store.list_records(session.object_type_id)

        duplicates = find_duplicates_for_mappings(
            data.rows,
            session.mappings,
            existing,
            fields,
            match_field_api_name=match_field_api_name,
        )

        session.duplicates = duplicates
        session.duplicate_check_completed = True
        session.strategy = ImportStrategy(
            match_field_api_name=match_field_api_name,
            on_duplicate=session.strategy.on_duplicate,
        )
        self.store.save(session)

        return DuplicateCheckResponse(
            duplicates=duplicates,
            duplicate_row_count=len({d.import_row_index for d in duplicates}),
            existing_record_count=len(existing),
        )

    # ===================
    # APPLY
    # ===================

    def apply_import(
        self,
        session_id: str,
        on_duplicate: DuplicateStrategy = DuplicateStrategy.UPDATE,
        selected_rows: Optional[list[int]] = None,
    ) -> ImportResult:
        """
        Write the session's rows.

        Runs the duplicate check first if the current mapping has not been
        checked. The session is dropped after a run with no failure.

        Raises:
            ImportSessionNotFoundError, ValidationError, DatabaseError
        """
        session = self.get_session(session_id)
        data = self._require_data(session)

        if not any(m.is_mapped for m in session.mappings):
            raise ValidationError(
                code="NO_FIELD_MAPPINGS",
                message="No valid field mappings found"
            )

        if not session.duplicate_check_completed:
            self.check_duplicates(session_id, session.strategy.match_field_api_name)
            session = self.get_session(session_id)

        session.strategy = ImportStrategy(
            match_field_api_name=session.strategy.match_field_api_name,
            on_duplicate=on_duplicate,
        )

        warnings = self._mapping_warnings(session)

        decisions = decide_actions(data, session.mappings, session.duplicates, session.strategy, selected_rows)
        result = apply_decisions(session.object_type_id, decisions, self.record_store)
        result.warnings = warnings

        if result.success:
            self.store.delete(session_id)
        else:
            # Rows written before the failure are now stored records
            session.reset_duplicates()
            self.store.save(session)

        logger.info(
            "import_session_applied",
            session_id=session_id,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            success=result.success
        )
        return result

    # ===================
    # HELPERS
    # ===================

    def _new_session(self, object_type_id: str, source: ImportSource) -> ImportSession:
        return ImportSession(
            id=str(uuid.uuid4()),
            object_type_id=object_type_id,
            source=source,
            created_at=datetime.now(timezone.utc),
        )

    def _start_from_candidates(
        self,
        object_type_id: str,
        candidates: list[TableCandidate],
        source: ImportSource,
        empty_message: str,
    ) -> ImportSession:
        if not candidates:
            logger.info("import_no_tables", object_type_id=object_type_id, source=source.value)
            raise ImportParseError(message=empty_message)

        session = self._new_session(object_type_id, source)
        session.tables = candidates

        data = auto_select_table(candidates)
        if data is not None:
            session.data = data
            session.selected_table_index = candidates[0].table_index
            session.mappings = column_mapper.initial_mappings(data, self.catalog.list_fields(object_type_id))

        self.store.save(session)

        logger.info(
            "import_session_started",
            session_id=session.id,
            source=source.value,
            tables=len(candidates),
            auto_selected=data is not None
        )
        return session

    def _require_data(self, session: ImportSession):
        if session.data is None:
            raise ValidationError(
                code="IMPORT_TABLE_NOT_SELECTED",
                message="Select a table before continuing",
                details={"table_count": len(session.tables)}
            )
        return session.data

    def _mapping_warnings(self, session: ImportSession) -> list[str]:
        fields = self.catalog.list_fields(session.object_type_id)
        warnings = [
            f"Required field '{f.name}' is not mapped"
            for f in column_mapper.unmapped_required_fields(session.mappings, fields)
        ]
        for api_name, columns in column_mapper.duplicate_targets(session.mappings).items():
            warnings.append(f"Field '{api_name}' is mapped to columns {columns}")
        return warnings


# Singleton instance
_import_session_service: Optional[ImportSessionService] = None


def get_import_session_service() -> ImportSessionService:
    """Get or create ImportSessionService instance."""
    global _import_session_service
    if _import_session_service is None:
        _import_session_service = ImportSessionService()
    return _import_session_service
