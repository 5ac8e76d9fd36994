"""Store initialization service.

Provides helper functions for wiring the storage components from config.
"""

from pathlib import Path

from alexandria.config.loader import get_default_config_path, load_config
from alexandria.config.schema import AppConfig
from alexandria.core.collections import CollectionManager
from alexandria.core.query import CollectionIndex
from alexandria.observability.logging import configure_from_config
from alexandria.storage import create_document_store


def initialize_collections(
    config: AppConfig | None = None,
    config_path: str | Path | None = None,
) -> tuple[CollectionManager, CollectionIndex]:
    """Configure logging and build the collection manager and a loaded index.

    Args:
        config: Application configuration; loaded from a file if omitted
        config_path: TOML config file; the default search path is used if omitted

    Returns:
        Tuple of (manager, index)
    """
    if config is None:
        config = load_config(config_path=Path(config_path) if config_path else get_default_config_path())

    configure_from_config(config.logging, json_logs=config.json_logs)

    store = create_document_store(config.storage)
    manager = CollectionManager(store, config.collections_path, config.memberships_path)
    index = CollectionIndex(store, config.collections_path, config.memberships_path).load()

    return manager, index
