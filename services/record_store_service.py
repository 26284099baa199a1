"""
Record store service.

Records are stored entity/attribute/value style: one object_records row per
record and one object_field_values row per (record, field api name). Values
are stored as text.
"""

from datetime import datetime, timezone
from typing import Any, Optional
import structlog
from supabase import Client

from config import get_supabase_client
from exceptions import DatabaseError, RecordNotFoundError

logger = structlog.get_logger(__name__)

# PostgREST returns at most this many rows per request
PAGE_SIZE = 1000
# Record ids per IN filter, keeps request URLs short
ID_BATCH_SIZE = 200


class RecordStoreService:
    """
    Record persistence for user-defined object types.

    Exposes records as flat {"id": ..., api_name: value} maps.
    """

    def __init__(self, client: Optional[Client] = None):
        self.db = client or get_supabase_client()
        self.records_table = "object_records"
        self.values_table = "object_field_values"

    # ===================
    # READ OPERATIONS
    # ===================

    def list_records(self, object_type_id: str) -> list[dict[str, Any]]:
        """
        Get every record of an object type as a flat field-value map.

        Args:
            object_type_id: Object type UUID

        Returns:
            List of {"id": record id, <api name>: value, ...}

        Raises:
            DatabaseError: If a query fails
        """
        logger.debug("listing_records", object_type_id=object_type_id)

        try:
            record_rows = self._fetch_all(
                lambda: self.db.table(self.records_table)
                .select("id")
                .eq("object_type_id", object_type_id)
                .order("created_at")
            )

            records: dict[str, dict[str, Any]] = {
                str(row["id"]): {"id": str(row["id"])} for row in record_rows
            }

            ids = list(records.keys())
            for start in range(0, len(ids), ID_BATCH_SIZE):
                batch = ids[start:start + ID_BATCH_SIZE]
                value_rows = self._fetch_all(
                    lambda: self.db.table(self.values_table)
                    .select("record_id, field_api_name, value")
                    .in_("record_id", batch)
                )
                for value_row in value_rows:
                    record = records.get(str(value_row["record_id"]))
                    if record is not None:
                        record[value_row["field_api_name"]] = value_row.get("value")

        except Exception as e:
            logger.error("list_records_failed", object_type_id=object_type_id, error=str(e))
            raise DatabaseError("select", str(e))

        logger.info("records_retrieved", object_type_id=object_type_id, count=len(records))

        return list(records.values())

    def get_record(self, record_id: str) -> dict[str, Any]:
        """
        Get one record as a flat field-value map.

        Raises:
            RecordNotFoundError: If the record doesn't exist
            DatabaseError: If a query fails
        """
        try:
            result = (
                self.db.table(self.records_table)
                .select("id")
                .eq("id", record_id)
                .execute()
            )
            if not result.data:
                raise RecordNotFoundError(record_id)

            values = (
                self.db.table(self.values_table)
                .select("field_api_name, value")
                .eq("record_id", record_id)
                .execute()
            )
        except RecordNotFoundError:
            raise
        except Exception as e:
            logger.error("get_record_failed", record_id=record_id, error=str(e))
            raise DatabaseError("select", str(e))

        record = {"id": str(record_id)}
        for row in values.data or []:
            record[row["field_api_name"]] = row.get("value")
        return record

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create_record(
        self,
        object_type_id: str,
        field_values: dict[str, Any],
        owner_id: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Create a record and its field values.

        None values are not stored.

        Args:
            object_type_id: Object type UUID
            field_values: {api name: value}
            owner_id: Owning user, when known

        Returns:
            Created object_records row

        Raises:
            DatabaseError: If an insert fails
        """
        record_data = {"object_type_id": object_type_id}
        if owner_id:
            record_data.update({
                "owner_id": owner_id,
                "created_by": owner_id,
                "last_modified_by": owner_id,
            })

        try:
            result = (
                self.db.table(self.records_table)
                .insert(record_data)
                .execute()
            )
            record = result.data[0]

            value_rows = self._value_rows(str(record["id"]), field_values)
            if value_rows:
                self.db.table(self.values_table).insert(value_rows).execute()

        except Exception as e:
            logger.error("create_record_failed", object_type_id=object_type_id, error=str(e))
            raise DatabaseError("insert", str(e))

        logger.info(
            "record_created",
            record_id=record["id"],
            object_type_id=object_type_id,
            fields=len(field_values)
        )

        return record

    def update_record(
        self,
        record_id: str,
        field_values: dict[str, Any],
        owner_id: Optional[str] = None
    ) -> None:
        """
        Replace a record's field values.

        Existing values are deleted and the given ones inserted, so fields
        absent from field_values are cleared.

        Raises:
            DatabaseError: If any step fails
        """
        record_update: dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if owner_id:
            record_update["last_modified_by"] = owner_id

        try:
            (
                self.db.table(self.records_table)
                .update(record_update)
                .eq("id", record_id)
                .execute()
            )

            (
                self.db.table(self.values_table)
                .delete()
                .eq("record_id", record_id)
                .execute()
            )

            value_rows = self._value_rows(str(record_id), field_values)
            if value_rows:
                self.db.table(self.values_table).insert(value_rows).execute()

        except Exception as e:
            logger.error("update_record_failed", record_id=record_id, error=str(e))
            raise DatabaseError("update", str(e))

        logger.info("record_updated", record_id=record_id, fields=len(field_values))

    # ===================
    # HELPERS
    # ===================

    def _value_rows(self, record_id: str, field_values: dict[str, Any]) -> list[dict[str, str]]:
        return [
            {"record_id": record_id, "field_api_name": api_name, "value": str(value)}
            for api_name, value in field_values.items()
            if value is not None
        ]

    def _fetch_all(self, build_query) -> list[dict]:
        """Run a query page by page until a short page comes back."""
        rows: list[dict] = []
        start = 0
        while True:
            result = build_query().range(start, start + PAGE_SIZE - 1).execute()
            page = result.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                return rows
            start += PAGE_SIZE


# Singleton instance
_record_store_service: Optional[RecordStoreService] = None


def get_record_store_service() -> RecordStoreService:
    """Get or create RecordStoreService instance."""
    global _record_store_service
    if _record_store_service is None:
        _record_store_service = RecordStoreService()
    return _record_store_service
