"""Storage layer: versioned document stores."""

from alexandria.storage.base import DocumentStore, StorageConfig


def create_document_store(config: StorageConfig) -> DocumentStore:
    """Factory function to create document stores based on configuration.

    Args:
        config: Storage configuration with store_type

    Returns:
        Document store instance

    Raises:
        ValueError: If store_type is unknown

    Example:
        config = StorageConfig(store_type="json")
        store = create_document_store(config)
        data = store.load_collections("~/.alexandria/collections.json")
    """
    store_type = config.store_type.lower()

    if store_type == "json":
        from alexandria.storage.json_file import JsonFileStore

        return JsonFileStore(config)

    elif store_type == "memory":
        from alexandria.storage.memory import InMemoryDocumentStore

        return InMemoryDocumentStore(config)

    else:
        raise ValueError(
            f"Unknown document store type: '{store_type}'. "
            f"Supported types: json, memory"
        )


__all__ = [
    "DocumentStore",
    "StorageConfig",
    "create_document_store",
]
