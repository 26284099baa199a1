"""
Spreadsheet reader for uploaded import files.

Each sheet of an Excel workbook becomes one TableCandidate, the same shape
the URL scraper returns, so the session picks a sheet exactly like it picks
a scraped table. CSV/TSV files go through the pasted-text parser.
"""

from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
import structlog

import pandas as pd

from models.import_data import TableCandidate
from parsers.tabular_parser import parse_import_text, remove_square_brackets
from exceptions import ImportParseError

logger = structlog.get_logger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xlsm", ".xls")
TEXT_EXTENSIONS = (".csv", ".tsv", ".txt")


def is_excel_filename(filename: Optional[str]) -> bool:
    return bool(filename) and filename.lower().endswith(EXCEL_EXTENSIONS)


def _cell_to_text(value) -> str:
    """Render one cell as the string the import pipeline expects."""
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    if value is pd.NaT:
        return ""
    if isinstance(value, (datetime, pd.Timestamp)):
        if value.hour == 0 and value.minute == 0 and value.second == 0:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return remove_square_brackets(str(value).strip())


def _frame_to_candidate(df: pd.DataFrame, index: int) -> Optional[TableCandidate]:
    """Convert a sheet to a candidate, dropping fully blank rows."""
    df = df.dropna(how="all")
    headers = [
        _cell_to_text(col) if not str(col).startswith("Unnamed:") else f"Column {pos + 1}"
        for pos, col in enumerate(df.columns)
    ]
    if not headers:
        return None

    rows = [[_cell_to_text(v) for v in values] for values in df.itertuples(index=False, name=None)]
    return TableCandidate(table_index=index, headers=headers, rows=rows)


def read_workbook_tables(file: Union[str, Path, BytesIO]) -> list[TableCandidate]:
    """
    Read every sheet of an Excel workbook.

    Args:
        file: File path or in-memory bytes

    Returns:
        One TableCandidate per non-empty sheet, in workbook order

    Raises:
        ImportParseError: If the workbook cannot be read
    """
    logger.info("reading_workbook", file_type=type(file).__name__)

    try:
        sheets = pd.read_excel(file, sheet_name=None, dtype=object)
    except Exception as e:
        logger.error("workbook_read_failed", error=str(e))
        raise ImportParseError(
            message="Failed to read spreadsheet",
            details={"original_error": str(e)}
        )

    candidates = []
    for df in sheets.values():
        candidate = _frame_to_candidate(df, len(candidates))
        if candidate is not None:
            candidates.append(candidate)

    logger.info("workbook_read", sheets=len(sheets), tables=len(candidates))
    return candidates


def read_upload(content: bytes, filename: Optional[str], quote_aware: bool = False) -> list[TableCandidate]:
    """
    Read an uploaded file into table candidates.

    Excel files yield one candidate per sheet; text files yield at most one.

    Raises:
        ImportParseError: If an Excel file cannot be read
    """
    if is_excel_filename(filename):
        return read_workbook_tables(BytesIO(content))

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Spreadsheet exports from older Excel versions
        text = content.decode("latin-1")

    data = parse_import_text(text, quote_aware=quote_aware)
    if data is None:
        return []
    return [TableCandidate(table_index=0, headers=data.headers, rows=data.rows)]
