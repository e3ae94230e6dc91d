"""Common Pydantic schemas shared across the API."""

from datetime import datetime
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ORMModel(BaseModel):
    """Base for response schemas read straight off ORM rows."""

    model_config = ConfigDict(from_attributes=True)


class TimestampMixin(BaseModel):
    """Mixin for timestamp fields."""

    created_at: datetime = Field(description="Timestamp when the resource was created")
    updated_at: datetime = Field(description="Timestamp when the resource was last updated")


class PartialUpdate(BaseModel):
    """
    Base for partial updates.

    Omitted fields are left alone; fields named in ``non_nullable`` map onto
    NOT NULL columns and may not be sent as an explicit null.
    """

    non_nullable: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            nulls = [name for name in cls.non_nullable if name in data and data[name] is None]
            if nulls:
                raise ValueError(f"{', '.join(nulls)} cannot be null")
        return data


class IdList(BaseModel):
    """Non-empty list of record ids."""

    ids: list[int] = Field(min_length=1, description="Record ids")


def serialize(schema: type[BaseModel], obj: Any) -> dict[str, Any]:
    """Validate an ORM row (or Identity) through ``schema`` into JSON-safe data."""
    return schema.model_validate(obj).model_dump(mode="json")


def serialize_many(schema: type[BaseModel], objs: list[Any]) -> list[dict[str, Any]]:
    return [serialize(schema, obj) for obj in objs]


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    count: Optional[int] = None,
) -> dict[str, Any]:
    """Uniform success envelope: ``{"success": true, "data", "message"?, "count"?}``."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    return body
