"""
Import applier.

Turns mapped rows plus duplicate results into per-row decisions, then writes
them through the record store one at a time. A failed write stops the run;
rows written before it stay written.
"""

from typing import Any, Optional, Protocol
import structlog

from models.import_data import (
    TabularData,
    ColumnMapping,
    DuplicateMatch,
    ImportStrategy,
    DuplicateStrategy,
    ImportAction,
    ImportDecision,
    ImportResult,
)
from services.column_mapper import build_field_values
from services.duplicate_detector import group_by_row, primary_match

logger = structlog.get_logger(__name__)


class RecordWriter(Protocol):
    """Write side of the record store used by apply_decisions."""

    def create_record(self, object_type_id: str, field_values: dict[str, Any]) -> dict[str, Any]:
        ...

    def update_record(self, record_id: str, field_values: dict[str, Any]) -> None:
        ...


def decide_actions(
    data: TabularData,
    mappings: list[ColumnMapping],
    duplicates: list[DuplicateMatch],
    strategy: ImportStrategy,
    selected_rows: Optional[list[int]] = None,
) -> list[ImportDecision]:
    """
    Decide create/update/skip for each import row.

    - No duplicate match → create
    - Match and strategy skip → skip
    - Match and strategy update → update the primary match

    Args:
        data: Import data
        mappings: Column mappings
        duplicates: Output of find_duplicates for this data
        strategy: Duplicate handling chosen by the user
        selected_rows: Row indices to import, in the order given; all rows if None

    Returns:
        One decision per selected row
    """
    matches_by_row = group_by_row(duplicates)
    row_indices = range(data.row_count) if selected_rows is None else selected_rows

    decisions = []
    for row_index in row_indices:
        if row_index < 0 or row_index >= data.row_count:
            logger.warning("selected_row_out_of_range", row_index=row_index)
            continue

        field_values = build_field_values(data.rows[row_index], mappings)
        row_matches = matches_by_row.get(row_index)

        if not row_matches:
            decisions.append(ImportDecision(
                row_index=row_index,
                action=ImportAction.CREATE,
                field_values=field_values,
            ))
        elif strategy.on_duplicate == DuplicateStrategy.SKIP:
            decisions.append(ImportDecision(
                row_index=row_index,
                action=ImportAction.SKIP,
                target_record_id=row_matches[0].existing_record_id,
                field_values=field_values,
            ))
        else:
            target = primary_match(row_matches)
            decisions.append(ImportDecision(
                row_index=row_index,
                action=ImportAction.UPDATE,
                target_record_id=target.existing_record_id,
                field_values=field_values,
            ))

    logger.info(
        "import_actions_decided",
        rows=len(decisions),
        create=sum(1 for d in decisions if d.action == ImportAction.CREATE),
        update=sum(1 for d in decisions if d.action == ImportAction.UPDATE),
        skip=sum(1 for d in decisions if d.action == ImportAction.SKIP),
        on_duplicate=strategy.on_duplicate.value
    )

    return decisions


def apply_decisions(
    object_type_id: str,
    decisions: list[ImportDecision],
    writer: RecordWriter,
) -> ImportResult:
    """
    Write decisions in order, one store call per create/update.

    Skips never touch the store. The first failing write ends the run and is
    reported in the result; nothing is retried or rolled back.

    Args:
        object_type_id: Object type the records belong to
        decisions: Output of decide_actions
        writer: Record store

    Returns:
        ImportResult with counts and, on failure, the failing row
    """
    result = ImportResult()

    for decision in decisions:
        try:
            if decision.action == ImportAction.SKIP:
                result.skipped += 1
            elif decision.action == ImportAction.UPDATE:
                writer.update_record(decision.target_record_id, decision.field_values)
                result.updated += 1
                result.record_ids.append(decision.target_record_id)
            else:
                record = writer.create_record(object_type_id, decision.field_values)
                result.created += 1
                result.record_ids.append(str(record["id"]))
        except Exception as e:
            logger.error(
                "import_row_failed",
                object_type_id=object_type_id,
                row_index=decision.row_index,
                action=decision.action.value,
                error=str(e)
            )
            result.failed_row_index = decision.row_index
            result.error = getattr(e, "message", None) or str(e)
            break

    logger.info(
        "import_applied",
        object_type_id=object_type_id,
        created=result.created,
        updated=result.updated,
        skipped=result.skipped,
        failed_row_index=result.failed_row_index
    )

    return result
