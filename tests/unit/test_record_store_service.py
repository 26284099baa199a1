"""
Unit tests for RecordStoreService.
"""

import pytest

from services.record_store_service import RecordStoreService
from exceptions import DatabaseError, RecordNotFoundError


class TestListRecords:
    """Tests for RecordStoreService.list_records()"""

    def test_flattens_field_values(self, seeded_supabase):
        service = RecordStoreService(seeded_supabase)

        result = service.list_records("type-contact")

        assert result == [
            {"id": "rec-1", "name": "Ann Lee", "email": "ann@x.com", "phone": "555-0100"},
            {"id": "rec-2", "name": "Bob Ray", "email": "bob@y.com", "phone": "555-0200"},
        ]

    def test_only_records_of_object_type(self, seeded_supabase):
        seeded_supabase.rows("object_records").append({"id": "rec-9", "object_type_id": "type-other"})
        service = RecordStoreService(seeded_supabase)

        result = service.list_records("type-contact")

        assert [r["id"] for r in result] == ["rec-1", "rec-2"]

    def test_record_without_values(self, mock_supabase):
        mock_supabase.set_table_data("object_records", [{"id": "rec-1", "object_type_id": "type-1"}])
        service = RecordStoreService(mock_supabase)

        assert service.list_records("type-1") == [{"id": "rec-1"}]

    def test_empty_type_skips_value_query(self, mock_supabase):
        service = RecordStoreService(mock_supabase)

        assert service.list_records("type-1") == []
        assert mock_supabase.operations_on("object_field_values") == []

    def test_failure_raises_database_error(self, seeded_supabase):
        seeded_supabase.set_table_error("object_field_values", Exception("timeout"))
        service = RecordStoreService(seeded_supabase)

        with pytest.raises(DatabaseError):
            service.list_records("type-contact")


class TestGetRecord:

    def test_found(self, seeded_supabase):
        service = RecordStoreService(seeded_supabase)

        result = service.get_record("rec-2")

        assert result["email"] == "bob@y.com"

    def test_not_found(self, seeded_supabase):
        service = RecordStoreService(seeded_supabase)

        with pytest.raises(RecordNotFoundError):
            service.get_record("rec-404")


class TestCreateRecord:
    """Tests for RecordStoreService.create_record()"""

    def test_creates_record_and_values(self, mock_db, mock_supabase):
        service = RecordStoreService()

        record = service.create_record("type-1", {"name": "Ann", "age": 30, "note": None})

        assert record["object_type_id"] == "type-1"
        values = mock_supabase.rows("object_field_values")
        assert {(v["field_api_name"], v["value"]) for v in values} == {("name", "Ann"), ("age", "30")}
        assert all(v["record_id"] == record["id"] for v in values)

    def test_owner_recorded(self, mock_supabase):
        service = RecordStoreService(mock_supabase)

        record = service.create_record("type-1", {"name": "Ann"}, owner_id="user-1")

        assert record["owner_id"] == "user-1"
        assert record["created_by"] == "user-1"

    def test_round_trip_through_list(self, mock_supabase):
        service = RecordStoreService(mock_supabase)

        record = service.create_record("type-1", {"name": "Ann"})

        assert service.list_records("type-1") == [{"id": record["id"], "name": "Ann"}]

    def test_insert_failure_raises_database_error(self, mock_supabase):
        mock_supabase.set_table_error("object_records", Exception("denied"), operation="insert")
        service = RecordStoreService(mock_supabase)

        with pytest.raises(DatabaseError) as exc_info:
            service.create_record("type-1", {"name": "Ann"})

        assert exc_info.value.details["operation"] == "insert"


class TestUpdateRecord:
    """Tests for RecordStoreService.update_record()"""

    def test_replaces_values(self, seeded_supabase):
        service = RecordStoreService(seeded_supabase)

        service.update_record("rec-1", {"name": "Ann Smith", "email": "ann@x.com"})

        assert service.get_record("rec-1") == {"id": "rec-1", "name": "Ann Smith", "email": "ann@x.com"}

    def test_other_records_untouched(self, seeded_supabase):
        service = RecordStoreService(seeded_supabase)

        service.update_record("rec-1", {"name": "Ann Smith"})

        assert service.get_record("rec-2")["name"] == "Bob Ray"

    def test_touches_updated_at(self, seeded_supabase):
        service = RecordStoreService(seeded_supabase)

        service.update_record("rec-1", {"name": "Ann Smith"}, owner_id="user-2")

        record_row = next(r for r in seeded_supabase.rows("object_records") if r["id"] == "rec-1")
        assert "updated_at" in record_row
        assert record_row["last_modified_by"] == "user-2"

    def test_failure_raises_database_error(self, seeded_supabase):
        seeded_supabase.set_table_error("object_field_values", Exception("denied"), operation="delete")
        service = RecordStoreService(seeded_supabase)

        with pytest.raises(DatabaseError):
            service.update_record("rec-1", {"name": "Ann Smith"})
