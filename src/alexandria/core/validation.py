"""Record validation.

Pure functions that check a collection or membership and return the
validated model. Rules live on the entity models; these helpers normalize
the input (model or raw mapping) and translate pydantic failures into
:class:`~alexandria.errors.ValidationError`.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from alexandria.entities import Collection, CollectionMembership
from alexandria.errors import ValidationError


def _validate(model: type[BaseModel], record: BaseModel | Mapping[str, Any]) -> Any:
    # Re-validating a dump catches instances that were mutated after creation
    if isinstance(record, BaseModel):
        record = record.model_dump(by_alias=True)

    try:
        return model.model_validate(record)
    except PydanticValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
            }
            for error in e.errors()
        ]
        summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
        raise ValidationError(f"Invalid {model.__name__}: {summary}", errors=errors) from e


def validate_collection(collection: Collection | Mapping[str, Any]) -> Collection:
    """Validate a collection record.

    Args:
        collection: Collection model or camelCase/snake_case mapping

    Returns:
        The validated collection

    Raises:
        ValidationError: If the name is empty, the id is malformed, or
            updated_at is earlier than created_at
    """
    return _validate(Collection, collection)


def validate_membership(membership: CollectionMembership | Mapping[str, Any]) -> CollectionMembership:
    """Validate a membership record.

    Raises:
        ValidationError: If repository_id or collection_id is empty
    """
    return _validate(CollectionMembership, membership)
