"""
Duplicate detection for import rows.

Every import row is compared with every existing record (rows × records).
A pair is a duplicate when at least two mapped fields are equal, or when an
email field is equal: email equality identifies a record on its own, any
other single field does not.

Comparison is exact after str() and lower(); no phone or whitespace
canonicalisation.
"""

from collections import defaultdict
from typing import Any, Optional
import structlog

from models.schema_field import FieldDataType
from models.import_data import ColumnMapping, DuplicateMatch, MatchingFieldDetail, MatchType
from services.column_mapper import build_field_values
from utils.text_utils import comparable, is_blank

logger = structlog.get_logger(__name__)

MIN_MATCHING_FIELDS = 2
RECORD_ID_KEY = "id"


def _field_attr(field: Any, name: str, default=None):
    """Read a field attribute from a SchemaField or a plain dict."""
    if isinstance(field, dict):
        return field.get(name, default)
    return getattr(field, name, default)


def _field_index(fields: list[Any]) -> dict[str, dict[str, Any]]:
    """{api name: {"name": ..., "type": ...}} for SchemaFields or dicts."""
    index = {}
    for field in fields:
        api_name = _field_attr(field, "api_name")
        if api_name is None:
            continue
        data_type = _field_attr(field, "data_type") or _field_attr(field, "type")
        index[api_name] = {
            "name": _field_attr(field, "name") or api_name,
            "type": getattr(data_type, "value", data_type),
        }
    return index


def _is_email(field_info: Optional[dict[str, Any]]) -> bool:
    return bool(field_info) and field_info["type"] == FieldDataType.EMAIL.value


def build_import_record(row: list[str], headers: list[str], mapping: dict[str, str]) -> dict[str, str]:
    """Flat {api name: value} for one row using a header → api name mapping."""
    record = {}
    for index, header in enumerate(headers):
        api_name = mapping.get(header)
        if api_name:
            record[api_name] = row[index] if index < len(row) else ""
    return record


def find_duplicates(
    source_rows: list[list[str]],
    headers: list[str],
    mapping: dict[str, str],
    existing_records: list[dict[str, Any]],
    fields: list[Any],
    match_field_api_name: Optional[str] = None,
) -> list[DuplicateMatch]:
    """
    Find import rows that likely refer to stored records.

    Headers are assumed unique; with repeated header text every column of
    that name takes the mapping. Use find_duplicates_for_mappings when the
    mapping is per column.

    Args:
        source_rows: Import rows
        headers: Import headers, aligned with row cells
        mapping: {header: field api name} for mapped columns
        existing_records: Flat {api name: value} maps, each with an "id"
        fields: SchemaFields or {"api_name", "name", "type"} dicts
        match_field_api_name: If set, the pair must match on this field, and a
            match on it is sufficient evidence by itself

    Returns:
        One DuplicateMatch per (row, record) pair judged a duplicate, in row
        then record order. A row may match several records.
    """
    import_records = [build_import_record(row, headers, mapping) for row in source_rows]
    return _match_records(import_records, existing_records, fields, match_field_api_name)


def find_duplicates_for_mappings(
    source_rows: list[list[str]],
    mappings: list[ColumnMapping],
    existing_records: list[dict[str, Any]],
    fields: list[Any],
    match_field_api_name: Optional[str] = None,
) -> list[DuplicateMatch]:
    """
    find_duplicates keyed by column index.

    Each row is read with build_field_values, the same record the applier
    writes, so a column that is unmapped never takes part even when its
    header repeats a mapped one.
    """
    import_records = [build_field_values(row, mappings) for row in source_rows]
    return _match_records(import_records, existing_records, fields, match_field_api_name)


def _match_records(
    import_records: list[dict[str, str]],
    existing_records: list[dict[str, Any]],
    fields: list[Any],
    match_field_api_name: Optional[str],
) -> list[DuplicateMatch]:
    field_info = _field_index(fields)
    matches: list[DuplicateMatch] = []

    for row_index, import_record in enumerate(import_records):
        potential_fields = [
            api_name for api_name, value in import_record.items()
            if not is_blank(value)
        ]
        if not potential_fields:
            continue

        for existing in existing_records:
            matching: list[MatchingFieldDetail] = []
            email_matched = False

            for api_name in potential_fields:
                existing_value = existing.get(api_name)
                if existing_value is None:
                    continue
                if comparable(import_record[api_name]) != comparable(existing_value):
                    continue

                info = field_info.get(api_name)
                matching.append(MatchingFieldDetail(
                    field_api_name=api_name,
                    field_name=info["name"] if info else api_name,
                    import_value=import_record[api_name],
                    existing_value=str(existing_value),
                ))
                if _is_email(info):
                    email_matched = True

            if not matching:
                continue

            matched_names = {m.field_api_name for m in matching}
            if match_field_api_name:
                if match_field_api_name not in matched_names:
                    continue
                is_duplicate = True
            else:
                is_duplicate = len(matching) >= MIN_MATCHING_FIELDS or email_matched

            if not is_duplicate:
                continue

            matches.append(DuplicateMatch(
                import_row_index=row_index,
                existing_record_id=str(existing.get(RECORD_ID_KEY)),
                match_type=MatchType.EMAIL_MATCH if email_matched else MatchType.FIELD_MATCH,
                matching_fields=matching,
            ))

    logger.info(
        "duplicate_check_complete",
        rows=len(import_records),
        existing_records=len(existing_records),
        matches=len(matches),
        duplicate_rows=len({m.import_row_index for m in matches}),
        match_field=match_field_api_name
    )

    return matches


def group_by_row(matches: list[DuplicateMatch]) -> dict[int, list[DuplicateMatch]]:
    """{import row index: its matches}, preserving detection order."""
    grouped: dict[int, list[DuplicateMatch]] = defaultdict(list)
    for match in matches:
        grouped[match.import_row_index].append(match)
    return dict(grouped)


def primary_match(matches: list[DuplicateMatch]) -> Optional[DuplicateMatch]:
    """
    The match an "update" should target when a row matches several records.

    Most matching fields wins; ties go to the lowest existing record id.
    """
    if not matches:
        return None
    return min(matches, key=lambda m: (-len(m.matching_fields), _id_sort_key(m.existing_record_id)))


def _id_sort_key(record_id: str) -> tuple:
    # Numeric ids compare as numbers, everything else (UUIDs) as text
    if record_id.isascii() and record_id.isdigit():
        return (0, int(record_id), "")
    return (1, 0, record_id)
