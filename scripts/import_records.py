"""
Import records from a CSV/TSV or Excel file into an object type.

Runs the same pipeline as the API: auto-map columns by name, check for
duplicates against stored records, then create/update/skip each row.

Usage:
    # Preview mapping and duplicates without writing
    python scripts/import_records.py <object_type_id> contacts.csv --dry-run

    # Import, skipping rows that match existing records
    python scripts/import_records.py <object_type_id> contacts.xlsx \
        --sheet 1 --on-duplicate skip

    # Use a specific field as the record key
    python scripts/import_records.py <object_type_id> contacts.csv \
        --match-field customer_number
"""

import argparse
import os
import sys
from pathlib import Path

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from config import get_admin_client, get_supabase_client
from models.import_data import ImportStrategy, DuplicateStrategy, ImportAction
from parsers.spreadsheet_parser import read_upload
from parsers.tabular_parser import select_table
from services import column_mapper
from services.duplicate_detector import find_duplicates_for_mappings
from services.import_applier import decide_actions, apply_decisions
from services.schema_catalog_service import SchemaCatalogService
from services.record_store_service import RecordStoreService
from exceptions import AppError


def print_mappings(mappings) -> None:
    print("\nColumn mapping:")
    for m in mappings:
        target = f"{m.target_field.name} ({m.target_field.api_name})" if m.target_field else "-- not mapped --"
        print(f"  [{m.source_column_index}] {m.source_column_name:<30} -> {target}")


def print_duplicates(duplicates) -> None:
    if not duplicates:
        print("\nNo duplicates found")
        return

    print(f"\n{len(duplicates)} duplicate match(es):")
    for d in duplicates:
        fields = ", ".join(f"{f.field_name}={f.import_value!r}" for f in d.matching_fields)
        print(f"  row {d.import_row_index + 1} ~ record {d.existing_record_id} [{d.match_type.value}] {fields}")


def run(args) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"ERROR: File not found: {path}")
        return 1

    client = get_admin_client() or get_supabase_client()
    catalog = SchemaCatalogService(client)
    store = RecordStoreService(client)

    candidates = read_upload(path.read_bytes(), path.name, quote_aware=args.quote_aware)
    if not candidates:
        print("ERROR: No data found in file")
        return 1

    data = select_table(candidates, args.sheet)
    print(f"Loaded {data.row_count} rows, {len(data.headers)} columns from {path.name}")

    fields = catalog.list_fields(args.object_type_id)
    mappings = column_mapper.initial_mappings(data, fields)
    print_mappings(mappings)

    if not any(m.is_mapped for m in mappings):
        print("\nERROR: No columns match a field of this object type")
        return 1

    for f in column_mapper.unmapped_required_fields(mappings, fields):
        print(f"WARNING: required field '{f.name}' is not mapped")

    existing = store.list_records(args.object_type_id)
    duplicates = find_duplicates_for_mappings(
        data.rows,
        mappings,
        existing,
        fields,
        match_field_api_name=args.match_field,
    )
    print(f"\nCompared against {len(existing)} existing records")
    print_duplicates(duplicates)

    strategy = ImportStrategy(
        match_field_api_name=args.match_field,
        on_duplicate=DuplicateStrategy(args.on_duplicate),
    )
    decisions = decide_actions(data, mappings, duplicates, strategy)

    counts = {action: sum(1 for d in decisions if d.action == action) for action in ImportAction}
    print(
        f"\nPlan: {counts[ImportAction.CREATE]} create, "
        f"{counts[ImportAction.UPDATE]} update, {counts[ImportAction.SKIP]} skip"
    )

    if args.dry_run:
        print("\nDry run, nothing written")
        return 0

    result = apply_decisions(args.object_type_id, decisions, store)
    print(f"\nCreated {result.created}, updated {result.updated}, skipped {result.skipped}")

    if not result.success:
        print(f"ERROR: stopped at row {result.failed_row_index + 1}: {result.error}")
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Import records from a CSV/TSV or Excel file into an object type."
    )
    parser.add_argument("object_type_id", help="Target object type UUID")
    parser.add_argument("file", help="CSV, TSV, TXT or Excel file")
    parser.add_argument(
        "--sheet",
        type=int,
        default=0,
        help="Table index of the sheet to import; non-empty sheets count from 0 (default: 0)",
    )
    parser.add_argument(
        "--on-duplicate",
        choices=[s.value for s in DuplicateStrategy],
        default=DuplicateStrategy.UPDATE.value,
        help="What to do with rows matching an existing record (default: update)",
    )
    parser.add_argument(
        "--match-field",
        default=None,
        help="Field api name that identifies a record on its own",
    )
    parser.add_argument(
        "--quote-aware",
        action="store_true",
        help="Allow quoted cells to contain the delimiter",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show mapping, duplicates and plan without writing",
    )

    args = parser.parse_args()

    try:
        sys.exit(run(args))
    except AppError as e:
        print(f"ERROR: {e.message}")
        if e.details:
            print(f"       {e.details}")
        sys.exit(1)


if __name__ == "__main__":
    main()
