"""
Tabular input parsers.

Every import source ends up as TabularData (or TableCandidates to choose from).
"""

from parsers.tabular_parser import (
    remove_square_brackets,
    detect_delimiter,
    parse_import_text,
    tables_to_candidates,
    select_table,
    auto_select_table,
)
from parsers.spreadsheet_parser import (
    read_workbook_tables,
    read_upload,
)

__all__ = [
    "remove_square_brackets",
    "detect_delimiter",
    "parse_import_text",
    "tables_to_candidates",
    "select_table",
    "auto_select_table",
    "read_workbook_tables",
    "read_upload",
]
