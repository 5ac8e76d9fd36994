"""Shared base model for records persisted as camelCase JSON."""

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, model_serializer
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)


class WireModel(BaseModel):
    """Base for entities stored in the JSON documents.

    Attributes are snake_case in Python and camelCase on disk. Optional
    fields that are unset (``None``) are left out of the dumped document,
    so a record written and read back compares equal to the original.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_serializer(mode="wrap")
    def _omit_none_fields(self, handler: Any) -> dict[str, Any]:
        data = handler(self)
        for name, field in type(self).model_fields.items():
            if getattr(self, name) is None:
                data.pop(name, None)
                if field.alias:
                    data.pop(field.alias, None)
        return data

    def to_document(self) -> dict[str, Any]:
        """Dump to the JSON-compatible, camelCase form used on disk."""
        return self.model_dump(mode="json", by_alias=True)
