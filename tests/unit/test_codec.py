"""Tests for document encoding and decoding."""

import json

import pytest

from alexandria.entities import (
    CURRENT_VERSION,
    Collection,
    CollectionMembership,
    CollectionMembershipsData,
    CollectionsData,
    MembershipMetadata,
)
from alexandria.errors import ConflictError, ParseError, VersionError
from alexandria.storage.codec import decode_document, encode_document, parse_version


def test_encode_uses_camel_case_keys():
    """Test that encoded documents match the on-disk layout."""
    data = CollectionsData(
        collections=[Collection(id="c1", name="Active", is_default=True, created_at=1, updated_at=2)]
    )

    raw = json.loads(encode_document(data))

    assert raw == {
        "version": CURRENT_VERSION,
        "collections": [
            {"id": "c1", "name": "Active", "isDefault": True, "createdAt": 1, "updatedAt": 2}
        ],
    }


def test_decode_detects_memberships_document():
    """Test that the items key selects the envelope type."""
    text = json.dumps(
        {
            "version": "1.0",
            "memberships": [
                {"repositoryId": "octo/cat", "collectionId": "c1", "addedAt": 100,
                 "metadata": {"pinned": True, "notes": "look at issues"}}
            ],
        }
    )

    data = decode_document(text)

    assert isinstance(data, CollectionMembershipsData)
    assert data.memberships[0].metadata.notes == "look at issues"


def test_round_trip_preserves_metadata():
    """Test that open-ended metadata survives encoding."""
    memberships = CollectionMembershipsData(
        memberships=[
            CollectionMembership(
                repository_id="octo/cat",
                collection_id="c1",
                added_at=5,
                metadata=MembershipMetadata(pinned=False, tags=["a", "b"], extra={"n": None}),
            )
        ]
    )
    collections = CollectionsData(
        collections=[
            Collection(id="c1", name="A", created_at=1, updated_at=1, metadata={"color": "red", "rank": 2.5})
        ]
    )

    assert decode_document(encode_document(memberships)) == memberships
    assert decode_document(encode_document(collections)) == collections


@pytest.mark.parametrize(
    "text",
    [
        "{not json",
        "[]",
        json.dumps({"version": "1.0"}),
        json.dumps({"version": "1.0", "collections": [], "memberships": []}),
        json.dumps({"collections": []}),
        json.dumps({"version": "one", "collections": []}),
        json.dumps({"version": 1, "collections": []}),
        json.dumps({"version": "1.0", "collections": [{"id": "c1", "name": ""}]}),
        json.dumps({"version": "1.0", "collections": "nope"}),
    ],
)
def test_decode_rejects_malformed_documents(text):
    """Test that malformed content raises ParseError."""
    with pytest.raises(ParseError):
        decode_document(text)


def test_decode_rejects_duplicate_memberships():
    """Test that a document with a repeated pair is refused."""
    entry = {"repositoryId": "octo/cat", "collectionId": "c1", "addedAt": 1}
    text = json.dumps({"version": "1.0", "memberships": [entry, entry]})

    with pytest.raises(ParseError, match="duplicate"):
        decode_document(text)


def test_decode_rejects_newer_version():
    """Test that documents from a newer release are refused."""
    text = json.dumps({"version": "2.0", "collections": []})

    with pytest.raises(VersionError) as exc_info:
        decode_document(text)

    assert exc_info.value.version == "2.0"
    assert exc_info.value.supported == CURRENT_VERSION


def test_decode_stamps_older_version():
    """Test that older documents load and carry the current version."""
    data = decode_document(json.dumps({"version": "0.9", "collections": []}))

    assert data.version == CURRENT_VERSION


def test_parse_version_compares_numerically():
    assert parse_version("1.10") > parse_version("1.9")


def test_trailing_zero_versions_are_equal():
    """Test that 1.0.0 is read as the current version, not a newer one."""
    assert parse_version("1.0.0") == parse_version("1.0") == parse_version("1")

    data = decode_document(json.dumps({"version": "1.0.0", "collections": []}))
    assert data.version == CURRENT_VERSION


def test_encode_rejects_newer_version():
    with pytest.raises(VersionError):
        encode_document(CollectionsData(version="2.0"))


def test_encode_rejects_duplicate_collection_ids():
    data = CollectionsData(
        collections=[
            Collection(id="c1", name="A", created_at=1, updated_at=1),
            Collection(id="c1", name="B", created_at=1, updated_at=1),
        ]
    )

    with pytest.raises(ConflictError, match="duplicate entry 'c1'"):
        encode_document(data)
