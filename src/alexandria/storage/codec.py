"""Encoding and decoding of the versioned JSON documents.

A document is an envelope ``{"version": "1.0", "<items>": [...]}`` where the
items key tells which kind it is. Versions are dotted integers compared
numerically. Documents from older versions are upgraded through
``MIGRATIONS`` (one step per source version) and stamped with the current
version; documents from newer versions are refused.
"""

import json
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from alexandria.entities import (
    CURRENT_VERSION,
    CollectionMembershipsData,
    CollectionsData,
    Envelope,
)
from alexandria.errors import ConflictError, ParseError, VersionError

ENVELOPE_TYPES: tuple[type[CollectionsData] | type[CollectionMembershipsData], ...] = (
    CollectionsData,
    CollectionMembershipsData,
)

# source version -> function returning the raw document at the next version
MIGRATIONS: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {}


def parse_version(version: Any, source: str = "<document>", storage_type: str = "json") -> tuple[int, ...]:
    """Parse a dotted version string into a comparable tuple.

    Trailing zero parts are dropped, so "1", "1.0" and "1.0.0" compare equal.
    """
    if not isinstance(version, str) or not version.strip():
        raise ParseError(f"{source}: version must be a non-empty string", storage_type=storage_type)
    try:
        parts = [int(part) for part in version.strip().split(".")]
    except ValueError as e:
        raise ParseError(
            f"{source}: malformed version '{version}'",
            storage_type=storage_type,
            original_error=e,
        ) from e

    while len(parts) > 1 and parts[-1] == 0:
        parts.pop()
    return tuple(parts)


def check_version(version: Any, source: str = "<document>", storage_type: str = "json") -> tuple[int, ...]:
    """Parse ``version`` and refuse anything newer than CURRENT_VERSION.

    Raises:
        ParseError: If the version is malformed
        VersionError: If the version is newer than supported
    """
    parsed = parse_version(version, source, storage_type)
    if parsed > parse_version(CURRENT_VERSION):
        raise VersionError(
            f"{source}: version {version} is newer than supported version {CURRENT_VERSION}",
            storage_type=storage_type,
            version=version,
            supported=CURRENT_VERSION,
        )
    return parsed


def _migrate(raw: dict[str, Any], source: str, storage_type: str) -> dict[str, Any]:
    current = parse_version(CURRENT_VERSION)
    version = check_version(raw.get("version"), source, storage_type)

    while version < current:
        step = MIGRATIONS.get(raw["version"])
        if step is None:
            # No structural change between this version and the current one
            break
        raw = step(raw)
        version = parse_version(raw.get("version"), source, storage_type)

    return {**raw, "version": CURRENT_VERSION}


def _envelope_type(raw: dict[str, Any], source: str, storage_type: str) -> type[Any]:
    matches = [kind for kind in ENVELOPE_TYPES if kind.items_key in raw]
    if len(matches) != 1:
        keys = ", ".join(kind.items_key for kind in ENVELOPE_TYPES)
        raise ParseError(
            f"{source}: expected exactly one of the keys {keys}",
            storage_type=storage_type,
        )
    return matches[0]


def find_duplicate(data: Envelope) -> Any:
    """Return the first repeated collection id or membership pair, else None."""
    seen: set[Any] = set()
    if isinstance(data, CollectionsData):
        keys = [collection.id for collection in data.collections]
    else:
        keys = [membership.key for membership in data.memberships]

    for key in keys:
        if key in seen:
            return key
        seen.add(key)
    return None


def decode_document(text: str, source: str = "<document>", storage_type: str = "json") -> Envelope:
    """Decode and validate a document.

    Raises:
        ParseError: If the text is not a valid envelope
        VersionError: If the document is newer than supported
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"{source}: invalid JSON: {e}", storage_type=storage_type, original_error=e) from e

    if not isinstance(raw, dict):
        raise ParseError(f"{source}: document must be a JSON object", storage_type=storage_type)

    kind = _envelope_type(raw, source, storage_type)
    raw = _migrate(raw, source, storage_type)

    try:
        data = kind.model_validate(raw)
    except PydanticValidationError as e:
        raise ParseError(
            f"{source}: invalid {kind.__name__}: {e.error_count()} error(s)",
            storage_type=storage_type,
            original_error=e,
        ) from e

    duplicate = find_duplicate(data)
    if duplicate is not None:
        raise ParseError(f"{source}: duplicate entry {duplicate!r}", storage_type=storage_type)
    return data


def encode_document(
    data: Envelope,
    indent: int = 2,
    source: str = "<document>",
    storage_type: str = "json",
) -> str:
    """Serialize an envelope to the on-disk JSON text.

    Refuses anything ``decode_document`` would refuse to read back.

    Raises:
        ParseError: If the version is malformed
        VersionError: If the version is newer than supported
        ConflictError: If a collection id or membership pair repeats
    """
    check_version(data.version, source, storage_type)

    duplicate = find_duplicate(data)
    if duplicate is not None:
        raise ConflictError(f"{source}: duplicate entry {duplicate!r}")

    return json.dumps(data.to_document(), indent=indent or None, ensure_ascii=False) + "\n"
