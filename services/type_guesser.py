"""
Data type guessing for fields created from import columns.

The column name is checked first; only when it says nothing are the column's
values inspected. Samples are a prefix of the rows, so a sorted or grouped
file can bias the guess.
"""

import math
import re
from typing import Optional
import structlog

from models.schema_field import FieldDataType
from models.import_data import TabularData, ColumnMapping
from utils.text_utils import is_blank

logger = structlog.get_logger(__name__)

DEFAULT_MAX_SAMPLES = 20

PICKLIST_MIN_SAMPLES = 5
PICKLIST_MAX_DISTINCT = 10
PICKLIST_MAX_DISTINCT_RATIO = 0.5

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
URL_PATTERN = re.compile(r"^https?://")

# (substrings, type) checked in order against the lowercased column name
NAME_RULES: list[tuple[tuple[str, ...], FieldDataType]] = [
    (("email",), FieldDataType.EMAIL),
    (("phone",), FieldDataType.PHONE),
    (("date",), FieldDataType.DATE),
    (("url", "website"), FieldDataType.URL),
    (("description", "note"), FieldDataType.TEXTAREA),
]


def _is_finite_number(value: str) -> bool:
    text = value.strip()
    if not text:
        return False
    try:
        number = float(text)
    except ValueError:
        return False
    return math.isfinite(number)


def _is_picklist(samples: list[str]) -> bool:
    if len(samples) < PICKLIST_MIN_SAMPLES:
        return False
    limit = min(PICKLIST_MAX_DISTINCT, len(samples) * PICKLIST_MAX_DISTINCT_RATIO)
    return len(set(samples)) <= limit


def guess_data_type(column_name: str, sample_values: list[str]) -> FieldDataType:
    """
    Best-guess data type for a new field.

    Args:
        column_name: Source column header
        sample_values: Non-empty values from the column

    Returns:
        FieldDataType; TEXT when nothing more specific applies
    """
    name = (column_name or "").lower()

    for needles, data_type in NAME_RULES:
        if any(needle in name for needle in needles):
            return data_type

    if sample_values:
        if all(_is_finite_number(v) for v in sample_values):
            return FieldDataType.NUMBER

        if any(EMAIL_PATTERN.match(v) for v in sample_values):
            return FieldDataType.EMAIL

        if any(URL_PATTERN.match(v) for v in sample_values):
            return FieldDataType.URL

        if _is_picklist(sample_values):
            return FieldDataType.PICKLIST

    return FieldDataType.TEXT


def get_sample_values(
    data: Optional[TabularData],
    column_index: int,
    max_samples: int = DEFAULT_MAX_SAMPLES,
) -> list[str]:
    """
    Non-blank values of one column taken from the first max_samples rows.

    Blank cells are dropped after slicing, so fewer than max_samples values
    may come back.
    """
    if data is None:
        return []

    samples = []
    for row in data.rows[:max_samples]:
        value = row[column_index] if column_index < len(row) else None
        if not is_blank(value):
            samples.append(value)
    return samples


def suggest_field_types(
    data: TabularData,
    mappings: list[ColumnMapping],
    max_samples: int = DEFAULT_MAX_SAMPLES,
) -> dict[int, tuple[FieldDataType, list[str]]]:
    """
    Guess a type for every unmapped column.

    Returns:
        {column index: (guessed type, samples used)}
    """
    suggestions = {}
    for mapping in mappings:
        if mapping.target_field is not None:
            continue
        samples = get_sample_values(data, mapping.source_column_index, max_samples)
        suggestions[mapping.source_column_index] = (
            guess_data_type(mapping.source_column_name, samples),
            samples,
        )

    logger.debug("field_types_suggested", columns=len(suggestions))
    return suggestions
