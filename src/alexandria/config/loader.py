"""Read AppConfig from a TOML file, a .env file and the environment.

A config file may hold ``[profiles.<name>]`` tables; the selected profile is
merged over the top-level settings table by table. String values may refer to
environment variables as ``${NAME}`` or ``${NAME:-fallback}``.
"""

import os
import re
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from alexandria.config.schema import AppConfig
from alexandria.observability.logging import get_logger

logger = get_logger(__name__)

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+?)\s*(?::-(?P<fallback>[^}]*))?\}")

CONFIG_SEARCH_PATHS = (
    Path("alexandria.toml"),
    Path("~/.alexandria/config.toml"),
)


def _expand_reference(match: re.Match[str]) -> str:
    name = match.group("name").strip()
    value = os.getenv(name)
    if value is not None:
        return value
    if match.group("fallback") is not None:
        return match.group("fallback")

    # Left verbatim so the unresolved reference is visible in the result
    logger.warning("config_env_reference_unset", name=name)
    return match.group(0)


def expand_env_references(value: Any) -> Any:
    """Replace ``${NAME}`` references in every string of a TOML value."""
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(_expand_reference, value)
    if isinstance(value, list):
        return [expand_env_references(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env_references(item) for key, item in value.items()}
    return value


def _merge_tables(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_tables(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_path: Optional[Path] = None,
    profile: Optional[str] = None,
    env_file: Optional[Path] = None,
) -> AppConfig:
    """Build the application config.

    ALEXANDRIA_* environment variables (including ones set by ``env_file``)
    win over the config file, which wins over built-in defaults. A missing
    config file or env file is skipped.

    Args:
        config_path: TOML config file
        profile: Name of a ``[profiles.<name>]`` table to apply
        env_file: .env file to export before reading the environment
    """
    if env_file and env_file.exists():
        load_dotenv(env_file)
        logger.info("config_env_file_read", path=str(env_file))

    settings: dict[str, Any] = {}
    if config_path and config_path.exists():
        with open(config_path, "rb") as f:
            settings = tomllib.load(f)

        profiles = settings.pop("profiles", {})
        if profile:
            if profile in profiles:
                settings = _merge_tables(settings, profiles[profile])
            else:
                logger.warning("config_profile_missing", profile=profile, path=str(config_path))

        settings = expand_env_references(settings)
        logger.info("config_file_read", path=str(config_path), profile=profile)

    config = AppConfig(**settings)
    logger.debug(
        "config_loaded",
        data_dir=str(config.data_dir),
        store_type=config.storage.store_type,
        log_level=config.logging.level.value,
    )
    return config


def get_default_config_path() -> Path:
    """First existing entry of CONFIG_SEARCH_PATHS, else ./alexandria.toml."""
    for candidate in CONFIG_SEARCH_PATHS:
        path = candidate.expanduser()
        if path.exists():
            return path
    return CONFIG_SEARCH_PATHS[0]
