"""
Schema catalog service.

Reads the fields defined on an object type and creates new ones for import
columns that have no target yet.
"""

from typing import Optional
import structlog
from supabase import Client

from config import get_supabase_client
from models.schema_field import SchemaField, FieldCreate
from exceptions import DatabaseError, FieldNotFoundError, FieldApiNameExistsError

logger = structlog.get_logger(__name__)


class SchemaCatalogService:
    """
    Field catalog for user-defined object types.

    Backed by the object_fields table.
    """

    def __init__(self, client: Optional[Client] = None):
        self.db = client or get_supabase_client()
        self.table = "object_fields"

    def list_fields(self, object_type_id: str) -> list[SchemaField]:
        """
        Get all fields of an object type in display order.

        Args:
            object_type_id: Object type UUID

        Returns:
            List of SchemaField (empty if the type has no fields)

        Raises:
            DatabaseError: If the query fails
        """
        logger.debug("listing_fields", object_type_id=object_type_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("object_type_id", object_type_id)
                .order("display_order")
                .execute()
            )
        except Exception as e:
            logger.error("list_fields_failed", object_type_id=object_type_id, error=str(e))
            raise DatabaseError("select", str(e))

        fields = [self._row_to_field(row) for row in result.data or []]

        logger.info("fields_retrieved", object_type_id=object_type_id, count=len(fields))

        return fields

    def get_field(self, field_id: str) -> SchemaField:
        """
        Get a single field by ID.

        Raises:
            FieldNotFoundError: If the field doesn't exist
            DatabaseError: If the query fails
        """
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", field_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_field_failed", field_id=field_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise FieldNotFoundError(field_id)

        return self._row_to_field(result.data[0])

    def create_field(self, object_type_id: str, data: FieldCreate) -> SchemaField:
        """
        Create a field on an object type.

        The new field is appended after the existing ones in display order.

        Args:
            object_type_id: Object type UUID
            data: Field definition

        Returns:
            Created SchemaField

        Raises:
            FieldApiNameExistsError: If the object type already has this api name
            DatabaseError: If the insert fails
        """
        existing = self.list_fields(object_type_id)

        if any(f.api_name.lower() == data.api_name.lower() for f in existing):
            logger.warning(
                "field_api_name_exists",
                object_type_id=object_type_id,
                api_name=data.api_name
            )
            raise FieldApiNameExistsError(data.api_name)

        display_order = max((f.display_order or 0 for f in existing), default=0) + 1

        logger.info(
            "creating_field",
            object_type_id=object_type_id,
            api_name=data.api_name,
            data_type=data.data_type.value
        )

        try:
            result = (
                self.db.table(self.table)
                .insert({
                    "object_type_id": object_type_id,
                    "name": data.name,
                    "api_name": data.api_name,
                    "data_type": data.data_type.value,
                    "is_required": data.is_required,
                    "display_order": display_order,
                })
                .execute()
            )
        except Exception as e:
            logger.error(
                "create_field_failed",
                object_type_id=object_type_id,
                api_name=data.api_name,
                error=str(e)
            )
            raise DatabaseError("insert", str(e))

        field = self._row_to_field(result.data[0])

        logger.info("field_created", field_id=field.id, api_name=field.api_name)

        return field

    def _row_to_field(self, row: dict) -> SchemaField:
        """Convert database row to SchemaField."""
        return SchemaField(
            id=str(row["id"]),
            name=row["name"],
            api_name=row["api_name"],
            data_type=row.get("data_type") or "text",
            is_required=bool(row.get("is_required", False)),
            object_type_id=row.get("object_type_id"),
            display_order=row.get("display_order"),
        )


# Singleton instance
_schema_catalog_service: Optional[SchemaCatalogService] = None


def get_schema_catalog_service() -> SchemaCatalogService:
    """Get or create SchemaCatalogService instance."""
    global _schema_catalog_service
    if _schema_catalog_service is None:
        _schema_catalog_service = SchemaCatalogService()
    return _schema_catalog_service
