"""
Column mapping between import columns and schema fields.

Mappings are plain lists of ColumnMapping, one per source column, in column
order. All functions return new lists; callers own the state.
"""

from collections import defaultdict
from typing import Optional
import structlog

from models.schema_field import SchemaField
from models.import_data import TabularData, ColumnMapping
from exceptions import FieldNotFoundError, FieldAlreadyMappedError, ValidationError
from utils.text_utils import to_api_name

logger = structlog.get_logger(__name__)


def find_matching_field(header: str, fields: list[SchemaField]) -> Optional[SchemaField]:
    """
    Field whose name or api name equals the header, ignoring case.

    First match in catalog order wins; no partial matching.
    """
    wanted = header.lower()
    for field in fields:
        if field.name.lower() == wanted or field.api_name.lower() == wanted:
            return field
    return None


def initial_mappings(data: TabularData, fields: list[SchemaField]) -> list[ColumnMapping]:
    """
    Auto-map every header of freshly loaded data.

    A field is given to the first column that matches it; a later column with
    the same header stays unmapped, as update_mapping would require.

    Args:
        data: Parsed import data
        fields: Catalog fields of the target object type

    Returns:
        One mapping per header; unmatched headers are unmapped
    """
    mappings = []
    claimed: set[str] = set()
    for index, header in enumerate(data.headers):
        field = find_matching_field(header, fields)
        if field is not None and field.id in claimed:
            field = None
        if field is not None:
            claimed.add(field.id)
        mappings.append(ColumnMapping(
            source_column_index=index,
            source_column_name=header,
            target_field=field,
        ))

    logger.info(
        "initial_mappings_created",
        columns=len(mappings),
        mapped=len(claimed)
    )

    return mappings


def update_mapping(
    mappings: list[ColumnMapping],
    column_index: int,
    field_id: Optional[str],
    fields: list[SchemaField],
) -> list[ColumnMapping]:
    """
    Point one column at a different field, or clear it.

    Args:
        mappings: Current mappings
        column_index: Position of the column to change
        field_id: New target field id, or None to unmap
        fields: Catalog fields to resolve field_id against

    Returns:
        New mapping list with only that column changed

    Raises:
        ValidationError: If column_index is out of range
        FieldNotFoundError: If field_id is not in the catalog
        FieldAlreadyMappedError: If another column already targets the field
    """
    if column_index < 0 or column_index >= len(mappings):
        raise ValidationError(
            code="INVALID_COLUMN_INDEX",
            message=f"Column {column_index} does not exist",
            details={"column_index": column_index, "column_count": len(mappings)}
        )

    target = None
    if field_id is not None:
        target = next((f for f in fields if f.id == field_id), None)
        if target is None:
            raise FieldNotFoundError(field_id)

        for index, mapping in enumerate(mappings):
            if index != column_index and mapping.target_field and mapping.target_field.id == field_id:
                raise FieldAlreadyMappedError(target.api_name, column_index, index)

    logger.debug(
        "mapping_updated",
        column_index=column_index,
        field_api_name=target.api_name if target else None
    )

    return [
        mapping.model_copy(update={"target_field": target}) if index == column_index else mapping
        for index, mapping in enumerate(mappings)
    ]


def unmapped_column_indices(mappings: list[ColumnMapping]) -> list[int]:
    """Indices of columns with no target field."""
    return [m.source_column_index for m in mappings if m.target_field is None]


def duplicate_targets(mappings: list[ColumnMapping]) -> dict[str, list[int]]:
    """
    Fields targeted by more than one column.

    update_mapping never produces these, but mappings built elsewhere can.

    Returns:
        {field api name: [column indices]} for every doubly-mapped field
    """
    columns_by_field: dict[str, list[int]] = defaultdict(list)
    for mapping in mappings:
        if mapping.target_field:
            columns_by_field[mapping.target_field.api_name].append(mapping.source_column_index)
    return {api: cols for api, cols in columns_by_field.items() if len(cols) > 1}


def unmapped_required_fields(mappings: list[ColumnMapping], fields: list[SchemaField]) -> list[SchemaField]:
    """Required catalog fields that no column targets."""
    mapped_ids = {m.target_field.id for m in mappings if m.target_field}
    return [f for f in fields if f.is_required and f.id not in mapped_ids]


def suggest_api_name(column_name: str) -> str:
    """Api name pre-filled when creating a field for a column."""
    return to_api_name(column_name)


def header_to_api_name(mappings: list[ColumnMapping]) -> dict[str, str]:
    """{source header: target api name} for mapped columns."""
    return {
        m.source_column_name: m.target_field.api_name
        for m in mappings
        if m.target_field
    }


def build_field_values(row: list[str], mappings: list[ColumnMapping]) -> dict[str, str]:
    """
    Flat {api name: value} record for one import row.

    Missing cells become "".
    """
    values = {}
    for mapping in mappings:
        if mapping.target_field is None:
            continue
        index = mapping.source_column_index
        values[mapping.target_field.api_name] = row[index] if index < len(row) else ""
    return values
