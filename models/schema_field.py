"""
Schema field models.

A schema field is a typed slot on a user-defined object type. Fields are
owned by the schema catalog (`object_fields` table); the import pipeline
reads them and, on request, creates new ones.
"""

from enum import Enum
from typing import Optional
from pydantic import Field, field_validator

from models.base import BaseSchema


class FieldDataType(str, Enum):
    """Data types supported by the schema catalog."""
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CURRENCY = "currency"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    PICKLIST = "picklist"
    LOOKUP = "lookup"
    AUTO_NUMBER = "auto_number"


class SchemaField(BaseSchema):
    """Field as read from the catalog."""

    id: str = Field(..., description="Field UUID")
    name: str = Field(..., description="Display name")
    api_name: str = Field(..., description="Key used in record field values")
    data_type: FieldDataType = Field(FieldDataType.TEXT, description="Declared data type")
    is_required: bool = Field(False, description="Whether records must carry a value")
    object_type_id: Optional[str] = Field(None, description="Owning object type")
    display_order: Optional[int] = Field(None, description="Position in layouts")

    @field_validator("data_type", mode="before")
    @classmethod
    def unknown_type_as_text(cls, v):
        """Catalog rows with a type this service does not know are treated as text."""
        if isinstance(v, str) and v not in FieldDataType._value2member_map_:
            return FieldDataType.TEXT
        return v


class FieldCreate(BaseSchema):
    """
    Create a new field on an object type.

    Required: name, api_name
    Optional: data_type (defaults to text), is_required
    """

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    api_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Key used in record field values",
        examples=["company_name", "email"]
    )
    data_type: FieldDataType = Field(FieldDataType.TEXT, description="Data type")
    is_required: bool = Field(False, description="Whether records must carry a value")
