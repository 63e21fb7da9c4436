"""Shared schema pieces — response envelope and wire formatting.

Responses use camelCase keys and ISO-8601 UTC timestamps ending in "Z".
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel


def to_iso(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    if value.tzinfo is None:
        # SQLite hands back naive datetimes; they are stored as UTC
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    """Read schema base: built from ORM objects, dumped with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_serializer("*", when_used="always", check_fields=False)
    def _serialize_datetimes(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return to_iso(value)
        return value

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def ok(data: Any = None, **extra: Any) -> dict[str, Any]:
    """Success envelope: ``{"success": true, "data": ..., **extra}``."""
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body
