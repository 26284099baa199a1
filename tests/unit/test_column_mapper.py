"""
Unit tests for column mapping.

Run: pytest tests/unit/test_column_mapper.py -v
"""

import pytest

from services import column_mapper
from exceptions import FieldNotFoundError, FieldAlreadyMappedError, ValidationError
from tests.factories import make_table, map_columns


class TestFindMatchingField:
    """Tests for find_matching_field()"""

    def test_matches_name_case_insensitive(self, sample_fields):
        result = column_mapper.find_matching_field("EMAIL", sample_fields)

        assert result.api_name == "email"

    def test_matches_api_name(self, sample_fields):
        result = column_mapper.find_matching_field("company", sample_fields)

        assert result.id == "f-company"

    def test_no_partial_match(self, sample_fields):
        assert column_mapper.find_matching_field("Email Address", sample_fields) is None

    def test_first_field_in_catalog_order_wins(self):
        from tests.factories import SchemaFieldFactory
        first = SchemaFieldFactory.create(name="Code", api_name="code_a")
        second = SchemaFieldFactory.create(name="Other", api_name="code")

        result = column_mapper.find_matching_field("code", [first, second])

        assert result.id == first.id


class TestInitialMappings:
    """Tests for initial_mappings()"""

    def test_one_mapping_per_header(self, sample_fields):
        data = make_table(["Name", "Email", "Notes"], ["Ann", "ann@x.com", "hi"])

        result = column_mapper.initial_mappings(data, sample_fields)

        assert [m.source_column_index for m in result] == [0, 1, 2]
        assert [m.source_column_name for m in result] == ["Name", "Email", "Notes"]
        assert result[0].target_field.id == "f-name"
        assert result[1].target_field.id == "f-email"
        assert result[2].target_field is None

    def test_no_fields_leaves_everything_unmapped(self):
        data = make_table(["Name", "Email"])

        result = column_mapper.initial_mappings(data, [])

        assert not any(m.is_mapped for m in result)

    def test_repeated_header_maps_first_column_only(self, sample_fields):
        data = make_table(["Email", "Email", "Name"], ["ann@x.com", "zzz@q.com", "Nobody"])

        result = column_mapper.initial_mappings(data, sample_fields)

        assert result[0].target_field.id == "f-email"
        assert result[1].target_field is None
        assert column_mapper.duplicate_targets(result) == {}

    def test_name_and_api_name_headers_share_one_field(self, sample_fields):
        """'Company' and 'company' both match one field; the first column keeps it."""
        data = make_table(["company", "Company"])

        result = column_mapper.initial_mappings(data, sample_fields)

        assert [m.is_mapped for m in result] == [True, False]


class TestUpdateMapping:
    """Tests for update_mapping()"""

    @pytest.fixture
    def mappings(self, sample_fields):
        data = make_table(["Name", "Email", "Mail 2"], ["Ann", "a@x.com", "b@x.com"])
        return column_mapper.initial_mappings(data, sample_fields)

    def test_maps_column_to_field(self, mappings, sample_fields):
        result = column_mapper.update_mapping(mappings, 2, "f-phone", sample_fields)

        assert result[2].target_field.api_name == "phone"

    def test_only_target_column_changes(self, mappings, sample_fields):
        result = column_mapper.update_mapping(mappings, 2, "f-phone", sample_fields)

        assert result[0] == mappings[0]
        assert result[1] == mappings[1]

    def test_returns_new_list(self, mappings, sample_fields):
        result = column_mapper.update_mapping(mappings, 2, "f-phone", sample_fields)

        assert result is not mappings
        assert mappings[2].target_field is None

    def test_unmap_with_none(self, mappings, sample_fields):
        result = column_mapper.update_mapping(mappings, 1, None, sample_fields)

        assert result[1].target_field is None

    def test_remap_same_column_to_same_field(self, mappings, sample_fields):
        """Re-selecting a column's own field is not a conflict."""
        result = column_mapper.update_mapping(mappings, 1, "f-email", sample_fields)

        assert result[1].target_field.id == "f-email"

    def test_field_mapped_elsewhere_raises(self, mappings, sample_fields):
        with pytest.raises(FieldAlreadyMappedError) as exc_info:
            column_mapper.update_mapping(mappings, 2, "f-email", sample_fields)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["mapped_column_index"] == 1

    def test_unknown_field_raises(self, mappings, sample_fields):
        with pytest.raises(FieldNotFoundError):
            column_mapper.update_mapping(mappings, 0, "f-missing", sample_fields)

    @pytest.mark.parametrize("column_index", [-1, 3])
    def test_invalid_column_raises(self, mappings, sample_fields, column_index):
        with pytest.raises(ValidationError) as exc_info:
            column_mapper.update_mapping(mappings, column_index, "f-phone", sample_fields)

        assert exc_info.value.code == "INVALID_COLUMN_INDEX"


class TestMappingQueries:
    """Tests for the read-only helpers."""

    def test_unmapped_column_indices(self, sample_fields):
        data = make_table(["Name", "X", "Email", "Y"])
        mappings = column_mapper.initial_mappings(data, sample_fields)

        assert column_mapper.unmapped_column_indices(mappings) == [1, 3]

    def test_unmapped_required_fields(self, sample_fields):
        data = make_table(["Email"])
        mappings = column_mapper.initial_mappings(data, sample_fields)

        result = column_mapper.unmapped_required_fields(mappings, sample_fields)

        assert [f.api_name for f in result] == ["name"]

    def test_duplicate_targets(self, sample_fields):
        email = sample_fields[1]
        data = make_table(["Email", "Work Email", "Name"])
        mappings = map_columns(data, {"Email": email, "Work Email": email, "Name": sample_fields[0]})

        assert column_mapper.duplicate_targets(mappings) == {"email": [0, 1]}

    def test_header_to_api_name(self, sample_fields):
        data = make_table(["Name", "Other", "Email"])
        mappings = column_mapper.initial_mappings(data, sample_fields)

        assert column_mapper.header_to_api_name(mappings) == {"Name": "name", "Email": "email"}

    @pytest.mark.parametrize("header,expected", [
        ("First Name", "first_name"),
        ("  Annual   Revenue ", "annual_revenue"),
        ("E-Mail", "e-mail"),
        ("", ""),
    ])
    def test_suggest_api_name(self, header, expected):
        assert column_mapper.suggest_api_name(header) == expected


class TestBuildFieldValues:
    """Tests for build_field_values()"""

    def test_mapped_columns_only(self, sample_fields):
        data = make_table(["Name", "Notes", "Email"], ["Ann", "skip me", "ann@x.com"])
        mappings = column_mapper.initial_mappings(data, sample_fields)

        result = column_mapper.build_field_values(data.rows[0], mappings)

        assert result == {"name": "Ann", "email": "ann@x.com"}

    def test_short_row_yields_empty_string(self, sample_fields):
        data = make_table(["Name", "Email"], ["Ann"])
        mappings = column_mapper.initial_mappings(data, sample_fields)

        result = column_mapper.build_field_values(data.rows[0], mappings)

        assert result == {"name": "Ann", "email": ""}


class TestAutoMatchDeterminism:

    def test_header_matches_name_or_api_name(self):
        from tests.factories import SchemaFieldFactory
        name_field = SchemaFieldFactory.create(name="Name", api_name="full_name")
        email_field = SchemaFieldFactory.create(name="Email Address", api_name="email")
        data = make_table(["Email", "name"])

        result = column_mapper.initial_mappings(data, [name_field, email_field])

        assert result[0].target_field.id == email_field.id
        assert result[1].target_field.id == name_field.id
