"""
Pasted-text and scraped-table parser.

Turns comma or tab separated text, or the table list returned by the URL
scraper, into TabularData.

The default text parser is a plain split on the detected delimiter: a cell
containing the delimiter shifts the rest of its row. Pass quote_aware=True
to tokenize with the csv module instead.
"""

import csv
import io
import re
from typing import Any, Optional
import structlog

from models.import_data import TabularData, TableCandidate
from exceptions import TableSelectionError

logger = structlog.get_logger(__name__)

COMMA = ","
TAB = "\t"

_LINE_SPLIT = re.compile(r"\r?\n")


def remove_square_brackets(text: str) -> str:
    """
    Strip one pair of wrapping square brackets.

    "[Name]" → "Name", "[[x]]" → "[x]", "Name" → "Name".
    """
    if not text:
        return text
    if text.startswith("[") and text.endswith("]"):
        return text[1:-1]
    return text


def detect_delimiter(first_line: str) -> str:
    """Comma if the first line has a comma and no tab, otherwise tab."""
    if COMMA in first_line and TAB not in first_line:
        return COMMA
    return TAB


def _clean_cell(cell: str) -> str:
    return remove_square_brackets(cell.strip())


def parse_import_text(text: str, quote_aware: bool = False) -> Optional[TabularData]:
    """
    Parse pasted CSV/TSV text.

    Args:
        text: Raw pasted text; first non-empty line is the header
        quote_aware: Use a csv tokenizer so quoted cells may contain the delimiter

    Returns:
        TabularData, or None if the text has no non-empty lines
    """
    if not text or not text.strip():
        return None

    lines = [line for line in _LINE_SPLIT.split(text) if line.strip()]
    if not lines:
        return None

    delimiter = detect_delimiter(lines[0])

    if quote_aware:
        records = [
            record for record in csv.reader(io.StringIO(text), delimiter=delimiter)
            if any(cell.strip() for cell in record)
        ]
    else:
        records = [line.split(delimiter) for line in lines]

    headers = [_clean_cell(h) for h in records[0]]
    rows = [[_clean_cell(cell) for cell in record] for record in records[1:]]

    logger.debug(
        "import_text_parsed",
        delimiter="comma" if delimiter == COMMA else "tab",
        columns=len(headers),
        rows=len(rows),
        quote_aware=quote_aware
    )

    return TabularData(headers=headers, rows=rows)


# ===================
# SCRAPED TABLES
# ===================

def tables_to_candidates(tables: list[dict[str, Any]]) -> list[TableCandidate]:
    """
    Convert scraper output into TableCandidates.

    Each entry is {"tableIndex"?, "headers": [...], "rows": [[...]]}. Cells are
    stringified and cleaned the same way as pasted text.
    """
    candidates = []
    for position, table in enumerate(tables or []):
        index = table.get("tableIndex", table.get("table_index", position))
        headers = [_clean_cell(str(h)) for h in table.get("headers") or []]
        rows = [
            [_clean_cell("" if cell is None else str(cell)) for cell in row]
            for row in table.get("rows") or []
        ]
        candidates.append(TableCandidate(table_index=index, headers=headers, rows=rows))
    return candidates


def select_table(candidates: list[TableCandidate], table_index: int) -> TabularData:
    """
    Pick the candidate whose table_index matches.

    Scraped indices can have gaps (empty tables are dropped upstream), so this
    is the index the candidate carries, not its position in the list.

    Raises:
        TableSelectionError: If no candidate has that index
    """
    for candidate in candidates:
        if candidate.table_index == table_index:
            return candidate.to_tabular_data()
    raise TableSelectionError(table_index, [c.table_index for c in candidates])


def auto_select_table(candidates: list[TableCandidate]) -> Optional[TabularData]:
    """Return the only candidate's data, or None when the caller must choose."""
    if len(candidates) == 1:
        return candidates[0].to_tabular_data()
    return None
