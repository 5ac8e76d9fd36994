"""Unit tests for CollectionManager."""

import shutil
import tempfile
from pathlib import Path

import pytest

from alexandria.core.collections import CollectionManager
from alexandria.core.query import CollectionIndex
from alexandria.entities import Collection, CollectionMembership, MembershipMetadata
from alexandria.errors import ConflictError, NotFoundError, StorageIOError, ValidationError
from alexandria.storage.base import StorageConfig
from alexandria.storage.json_file import JsonFileStore
from alexandria.storage.memory import InMemoryDocumentStore


class TestCollectionManager:
    """Test CollectionManager functionality."""

    @pytest.fixture(params=["memory", "json"])
    def manager(self, request):
        """Create a manager over each store backend."""
        if request.param == "memory":
            yield CollectionManager(
                InMemoryDocumentStore(StorageConfig(store_type="memory")),
                "collections.json",
                "collection-memberships.json",
            )
            return

        temp_path = Path(tempfile.mkdtemp())
        yield CollectionManager(
            JsonFileStore(StorageConfig(lock_timeout=0.5)),
            temp_path / "collections.json",
            temp_path / "collection-memberships.json",
        )
        shutil.rmtree(temp_path)

    @pytest.fixture
    def c1(self, manager):
        return manager.add_collection(Collection(id="c1", name="Active", created_at=1, updated_at=1))

    def test_empty_store(self, manager):
        """Test that missing documents read as an empty store."""
        assert manager.list_collections() == []
        assert manager.list_memberships() == []
        assert manager.get_collection("c1") is None

    def test_add_collection(self, manager, c1):
        assert manager.list_collections() == [c1]
        assert manager.get_collection("c1") == c1

    def test_add_duplicate_collection(self, manager, c1):
        with pytest.raises(ConflictError, match="already exists"):
            manager.add_collection(Collection(id="c1", name="Other", created_at=1, updated_at=1))

        assert manager.list_collections() == [c1]

    def test_add_invalid_collection(self, manager):
        with pytest.raises(ValidationError):
            manager.add_collection({"id": "c1", "name": "", "createdAt": 1, "updatedAt": 1})

        assert manager.list_collections() == []

    def test_new_default_clears_previous(self, manager):
        """Test that at most one collection is default."""
        manager.add_collection(Collection(id="c1", name="A", is_default=True, created_at=1, updated_at=1))
        manager.add_collection(Collection(id="c2", name="B", is_default=True, created_at=1, updated_at=1))

        defaults = [c.id for c in manager.list_collections() if c.is_default]
        assert defaults == ["c2"]
        assert manager.get_collection("c1").updated_at > 1

    def test_set_default_collection(self, manager, c1):
        manager.add_collection(Collection(id="c2", name="B", is_default=True, created_at=1, updated_at=1))

        result = manager.set_default_collection("c1")

        assert result.is_default is True
        assert [c.id for c in manager.list_collections() if c.is_default] == ["c1"]

    def test_set_default_unknown_collection(self, manager):
        with pytest.raises(NotFoundError):
            manager.set_default_collection("missing")

    def test_update_collection(self, manager, c1):
        updated = manager.update_collection("c1", name="Renamed", icon="star")

        assert updated.name == "Renamed"
        assert updated.icon == "star"
        assert updated.created_at == 1
        assert updated.updated_at > c1.updated_at
        assert manager.get_collection("c1") == updated

    def test_update_collection_rejects_immutable_fields(self, manager, c1):
        with pytest.raises(ValidationError, match="created_at, id"):
            manager.update_collection("c1", id="c9", created_at=5)

    def test_update_collection_rejects_empty_name(self, manager, c1):
        with pytest.raises(ValidationError):
            manager.update_collection("c1", name="")

        assert manager.get_collection("c1") == c1

    def test_update_unknown_collection(self, manager):
        with pytest.raises(NotFoundError):
            manager.update_collection("missing", name="x")

    def test_remove_collection_cascades_memberships(self, manager, c1):
        manager.add_collection(Collection(id="c2", name="B", created_at=1, updated_at=1))
        manager.add_membership(CollectionMembership(repository_id="octo/cat", collection_id="c1", added_at=1))
        manager.add_membership(CollectionMembership(repository_id="octo/cat", collection_id="c2", added_at=1))

        assert manager.remove_collection("c1") is True

        assert [c.id for c in manager.list_collections()] == ["c2"]
        assert [m.collection_id for m in manager.list_memberships()] == ["c2"]
        assert manager.remove_collection("c1") is False

    def test_ensure_default_collection(self, manager):
        created = manager.ensure_default_collection("Inbox")

        assert created.is_default is True
        assert created.name == "Inbox"
        assert manager.ensure_default_collection("Other") == created
        assert len(manager.list_collections()) == 1

    def test_add_membership(self, manager, c1):
        membership = manager.add_membership(
            CollectionMembership(repository_id="octo/cat", collection_id="c1", added_at=100)
        )

        assert manager.list_memberships() == [membership]

    def test_add_duplicate_membership(self, manager, c1):
        """Test that the (repository, collection) pair is unique."""
        manager.add_membership(CollectionMembership(repository_id="octo/cat", collection_id="c1", added_at=100))

        with pytest.raises(ConflictError, match="already in collection"):
            manager.add_membership(
                CollectionMembership(repository_id="octo/cat", collection_id="c1", added_at=200)
            )

        assert len(manager.list_memberships()) == 1

    def test_add_membership_unknown_collection(self, manager):
        with pytest.raises(NotFoundError, match="Collection 'c1' not found"):
            manager.add_membership(CollectionMembership(repository_id="octo/cat", collection_id="c1"))

        assert manager.list_memberships() == []

    def test_add_invalid_membership(self, manager, c1):
        with pytest.raises(ValidationError):
            manager.add_membership({"repositoryId": "", "collectionId": "c1", "addedAt": 1})

    def test_remove_membership_twice(self, manager, c1):
        """Test that a second removal reports not-found and changes nothing."""
        manager.add_membership(CollectionMembership(repository_id="octo/cat", collection_id="c1", added_at=1))
        manager.add_membership(CollectionMembership(repository_id="octo/dog", collection_id="c1", added_at=2))

        assert manager.remove_membership("octo/cat", "c1") is True
        after_first = manager.list_memberships()

        assert manager.remove_membership("octo/cat", "c1") is False
        assert manager.list_memberships() == after_first
        assert [m.repository_id for m in after_first] == ["octo/dog"]

    def test_update_membership_metadata(self, manager, c1):
        manager.add_membership(
            CollectionMembership(
                repository_id="octo/cat",
                collection_id="c1",
                added_at=1,
                metadata=MembershipMetadata(notes="keep", stars_at_add=40),
            )
        )

        updated = manager.update_membership_metadata("octo/cat", "c1", pinned=True)

        assert updated.is_pinned is True
        assert updated.metadata.notes == "keep"
        assert updated.metadata.model_extra == {"stars_at_add": 40}
        assert manager.list_memberships() == [updated]

    def test_update_missing_membership(self, manager, c1):
        with pytest.raises(NotFoundError):
            manager.update_membership_metadata("octo/cat", "c1", pinned=True)


class TestCollectionManagerWriteFailures:
    """Test that failed writes leave the store loadable and consistent."""

    @pytest.fixture
    def store(self):
        return InMemoryDocumentStore(StorageConfig(store_type="memory"))

    @pytest.fixture
    def manager(self, store):
        manager = CollectionManager(store, "collections.json", "collection-memberships.json")
        manager.add_collection(Collection(id="c1", name="Active", created_at=1, updated_at=1))
        manager.add_membership(CollectionMembership(repository_id="octo/cat", collection_id="c1", added_at=1))
        return manager

    def _fail_writes_to(self, monkeypatch, store, failing_path):
        original = store.write_text

        def write_text(path, text):
            if str(path) == failing_path:
                raise StorageIOError(f"Failed to write {path}", storage_type="memory")
            original(path, text)

        monkeypatch.setattr(store, "write_text", write_text)

    def test_remove_collection_memberships_write_fails(self, manager, store, monkeypatch):
        """Test that memberships survive when only the collection was removed."""
        self._fail_writes_to(monkeypatch, store, "collection-memberships.json")

        with pytest.raises(StorageIOError):
            manager.remove_collection("c1")

        assert manager.list_collections() == []
        assert [m.key for m in manager.list_memberships()] == [("octo/cat", "c1")]

        index = CollectionIndex(store, "collections.json", "collection-memberships.json").load()
        assert index.collections_for("octo/cat") == set()

    def test_remove_collection_collections_write_fails(self, manager, store, monkeypatch):
        """Test that nothing changes when the first write fails."""
        self._fail_writes_to(monkeypatch, store, "collections.json")

        with pytest.raises(StorageIOError):
            manager.remove_collection("c1")

        assert [c.id for c in manager.list_collections()] == ["c1"]
        assert [m.key for m in manager.list_memberships()] == [("octo/cat", "c1")]
