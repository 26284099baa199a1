"""
Unit tests for data type guessing.
"""

import pytest

from models.schema_field import FieldDataType
from services.type_guesser import guess_data_type, get_sample_values, suggest_field_types
from services.column_mapper import initial_mappings
from tests.factories import make_table


# ===================
# NAME RULES
# ===================

class TestGuessByName:
    """Column names decide before values are looked at."""

    @pytest.mark.parametrize("name,expected", [
        ("Email", FieldDataType.EMAIL),
        ("Work E-mail or email", FieldDataType.EMAIL),
        ("Phone Number", FieldDataType.PHONE),
        ("Start Date", FieldDataType.DATE),
        ("Website", FieldDataType.URL),
        ("Profile URL", FieldDataType.URL),
        ("Description", FieldDataType.TEXTAREA),
        ("Notes", FieldDataType.TEXTAREA),
    ])
    def test_name_rules(self, name, expected):
        assert guess_data_type(name, []) == expected

    def test_name_beats_values(self):
        """A phone column of digits is still a phone."""
        assert guess_data_type("Phone", ["5550100", "5550200"]) == FieldDataType.PHONE

    def test_contact_email_with_numeric_samples(self):
        assert guess_data_type("Contact Email", ["123", "456"]) == FieldDataType.EMAIL

    def test_rule_order_email_before_date(self):
        assert guess_data_type("email date", []) == FieldDataType.EMAIL


# ===================
# VALUE RULES
# ===================

class TestGuessByValues:
    """Value checks when the name says nothing."""

    def test_all_numeric(self):
        assert guess_data_type("Amount", ["1", "2.5", "-3", "1e3"]) == FieldDataType.NUMBER

    def test_one_non_numeric_is_not_number(self):
        assert guess_data_type("Amount", ["1", "2", "n/a"]) != FieldDataType.NUMBER

    def test_infinity_is_not_number(self):
        assert guess_data_type("Amount", ["1", "inf"]) == FieldDataType.TEXT

    def test_any_email_value(self):
        result = guess_data_type("Contact", ["someone", "ann@x.com", "bob"])

        assert result == FieldDataType.EMAIL

    def test_any_url_value(self):
        result = guess_data_type("Homepage", ["none", "https://example.com"])

        assert result == FieldDataType.URL

    def test_url_needs_scheme(self):
        assert guess_data_type("Homepage", ["example.com"]) == FieldDataType.TEXT

    def test_picklist_few_distinct_values(self):
        samples = ["Open", "Closed", "Open", "Open", "Closed", "Pending"]

        assert guess_data_type("Status", samples) == FieldDataType.PICKLIST

    def test_picklist_needs_five_samples(self):
        assert guess_data_type("Status", ["Open", "Open", "Closed", "Open"]) == FieldDataType.TEXT

    def test_picklist_distinct_ratio(self):
        """Three distinct out of five exceeds half the samples."""
        assert guess_data_type("Status", ["a", "b", "c", "a", "b"]) == FieldDataType.TEXT

    def test_picklist_distinct_cap(self):
        """Eleven distinct values is too many even in a large sample."""
        samples = [f"v{i % 11}" for i in range(40)]

        assert guess_data_type("Category", samples) == FieldDataType.TEXT

    def test_no_samples_is_text(self):
        assert guess_data_type("Anything", []) == FieldDataType.TEXT

    def test_empty_name(self):
        assert guess_data_type("", ["1", "2"]) == FieldDataType.NUMBER


# ===================
# SAMPLING
# ===================

class TestGetSampleValues:
    """Tests for get_sample_values()"""

    def test_skips_blank_and_missing_cells(self):
        data = make_table(["A", "B"], ["1", "x"], ["", "y"], ["  ", "z"], ["4"])

        assert get_sample_values(data, 0) == ["1", "4"]
        assert get_sample_values(data, 1) == ["x", "y", "z"]

    def test_slices_before_dropping_blanks(self):
        """Blank cells inside the first N rows reduce the sample."""
        data = make_table(["A"], [""], ["1"], ["2"], ["3"])

        assert get_sample_values(data, 0, max_samples=2) == ["1"]

    def test_no_data(self):
        assert get_sample_values(None, 0) == []


class TestSuggestFieldTypes:
    """Tests for suggest_field_types()"""

    def test_only_unmapped_columns(self, sample_fields):
        data = make_table(
            ["Name", "Revenue", "Website"],
            ["Ann", "100", "https://a.com"],
            ["Bob", "250", "https://b.com"],
        )
        mappings = initial_mappings(data, sample_fields)

        result = suggest_field_types(data, mappings)

        assert set(result.keys()) == {1, 2}
        assert result[1] == (FieldDataType.NUMBER, ["100", "250"])
        assert result[2][0] == FieldDataType.URL
