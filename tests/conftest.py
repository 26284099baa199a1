"""
Shared test fixtures.

Provides an in-memory Supabase stand-in that understands the query
builder calls the services use (eq, in_, order, range, insert, update,
delete), plus sample catalog fields and an API client wired to it.
"""

import os
import sys
from pathlib import Path

# Add project directory to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

# Settings are loaded at import time and require these
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")

import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Generator

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Mock query builder with chainable methods.

    Filters are applied when execute() runs; writes change the owning
    table's rows so later queries see them.
    """

    def __init__(self, table: "MockSupabaseTable", operation: str = "select", payload=None):
        self._table = table
        self._operation = operation
        self._payload = payload
        self._filters = []
        self._is_single = False

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        wanted = list(values)
        self._filters.append(lambda row: row.get(column) in wanted)
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        return self

    def limit(self, count):
        return self

    def _matches(self, row: dict) -> bool:
        return all(f(row) for f in self._filters)

    def execute(self) -> MockSupabaseResponse:
        client = self._table.client
        client.operations.append((self._table.name, self._operation, self._payload))

        error = client.errors.get((self._table.name, self._operation)) or client.errors.get((self._table.name, None))
        if error is not None:
            raise error

        if self._operation == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for item in items:
                row = dict(item)
                row.setdefault("id", client.next_id())
                row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                self._table.rows.append(row)
                inserted.append(dict(row))
            return MockSupabaseResponse(data=inserted)

        if self._operation == "update":
            updated = []
            for row in self._table.rows:
                if self._matches(row):
                    row.update(self._payload)
                    updated.append(dict(row))
            return MockSupabaseResponse(data=updated)

        if self._operation == "delete":
            removed = [row for row in self._table.rows if self._matches(row)]
            self._table.rows[:] = [row for row in self._table.rows if not self._matches(row)]
            return MockSupabaseResponse(data=removed)

        data = [dict(row) for row in self._table.rows if self._matches(row)]
        if self._is_single:
            return MockSupabaseResponse(data=data[0] if data else None, count=1 if data else 0)
        return MockSupabaseResponse(data=data, count=self._table.count)


class MockSupabaseTable:
    """Mock Supabase table holding its rows in a list."""

    def __init__(self, client: "MockSupabaseClient", name: str, rows: list = None, count: int = None):
        self.client = client
        self.name = name
        self.rows = rows if rows is not None else []
        self.count = count

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", data)

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}
        self._id_counter = 0
        self.operations: list[tuple] = []
        self.errors: dict[tuple, Exception] = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure rows for a table."""
        self._tables[table_name] = MockSupabaseTable(self, table_name, [dict(r) for r in data], count)

    def set_table_error(self, table_name: str, error: Exception, operation: str = None):
        """Make queries on a table raise; optionally only one operation."""
        self.errors[(table_name, operation)] = error

    def rows(self, table_name: str) -> list:
        """Current rows of a table."""
        return self.table(table_name).rows

    def operations_on(self, table_name: str, operation: str = None) -> list:
        """Logged (table, operation, payload) entries for a table."""
        return [
            op for op in self.operations
            if op[0] == table_name and (operation is None or op[1] == operation)
        ]

    def next_id(self) -> str:
        self._id_counter += 1
        return f"mock-id-{self._id_counter}"

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable(self, name)
        return self._tables[name]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("object_fields", [
                {"id": "f-1", "name": "Email", "api_name": "email", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("object_fields", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.schema_catalog_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.record_store_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


OBJECT_TYPE_ID = "type-contact"


@pytest.fixture
def object_type_id() -> str:
    return OBJECT_TYPE_ID


@pytest.fixture
def sample_field_rows() -> list:
    """object_fields rows of a contact-like object type."""
    return [
        {"id": "f-name", "name": "Name", "api_name": "name", "data_type": "text",
         "is_required": True, "object_type_id": OBJECT_TYPE_ID, "display_order": 1},
        {"id": "f-email", "name": "Email", "api_name": "email", "data_type": "email",
         "is_required": False, "object_type_id": OBJECT_TYPE_ID, "display_order": 2},
        {"id": "f-phone", "name": "Phone", "api_name": "phone", "data_type": "phone",
         "is_required": False, "object_type_id": OBJECT_TYPE_ID, "display_order": 3},
        {"id": "f-company", "name": "Company", "api_name": "company", "data_type": "text",
         "is_required": False, "object_type_id": OBJECT_TYPE_ID, "display_order": 4},
    ]


@pytest.fixture
def sample_fields(sample_field_rows) -> list:
    """SchemaFields of a contact-like object type."""
    from models.schema_field import SchemaField
    return [SchemaField(**row) for row in sample_field_rows]


@pytest.fixture
def seeded_supabase(mock_supabase, sample_field_rows) -> "MockSupabaseClient":
    """
    Mock client with the sample fields and two stored records.

    rec-1: Ann Lee / ann@x.com / 555-0100
    rec-2: Bob Ray / bob@y.com / 555-0200
    """
    mock_supabase.set_table_data("object_fields", sample_field_rows)
    mock_supabase.set_table_data("object_records", [
        {"id": "rec-1", "object_type_id": OBJECT_TYPE_ID},
        {"id": "rec-2", "object_type_id": OBJECT_TYPE_ID},
    ])
    mock_supabase.set_table_data("object_field_values", [
        {"record_id": "rec-1", "field_api_name": "name", "value": "Ann Lee"},
        {"record_id": "rec-1", "field_api_name": "email", "value": "ann@x.com"},
        {"record_id": "rec-1", "field_api_name": "phone", "value": "555-0100"},
        {"record_id": "rec-2", "field_api_name": "name", "value": "Bob Ray"},
        {"record_id": "rec-2", "field_api_name": "email", "value": "bob@y.com"},
        {"record_id": "rec-2", "field_api_name": "phone", "value": "555-0200"},
    ])
    return mock_supabase


@pytest.fixture
def import_service(seeded_supabase):
    """
    ImportSessionService over the seeded mock client.

    URL fetching is replaced by a stub; set service.fetch_tables in a test
    to return candidates.
    """
    from services.import_session_service import ImportSessionService
    from services.import_session_store import ImportSessionStore
    from services.schema_catalog_service import SchemaCatalogService
    from services.record_store_service import RecordStoreService

    return ImportSessionService(
        catalog=SchemaCatalogService(seeded_supabase),
        record_store=RecordStoreService(seeded_supabase),
        store=ImportSessionStore(ttl_minutes=30),
        fetch_tables=lambda url: [],
        max_samples=20,
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(seeded_supabase, import_service):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, seeded_supabase):
            response = test_client_with_mock_db.post("/api/imports/sessions", json={...})
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("config.database.get_supabase_client", return_value=seeded_supabase):
        with patch("routes.imports.get_import_session_service", return_value=import_service):
            with patch("routes.imports.get_schema_catalog_service", return_value=import_service.catalog):
                yield TestClient(app)
