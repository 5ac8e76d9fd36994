"""Configuration schema using Pydantic.

Why this exists:
- Type-safe configuration with validation
- Environment variable support
- Clear documentation of all settings

How to extend:
1. Add new fields to existing config classes
2. Create new config classes for new components
3. Document the setting in the example config.toml
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from alexandria.storage.base import StorageConfig


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    enable_file: bool = False
    log_dir: Optional[Path] = None
    max_days: int = Field(default=30, gt=0)

    def model_post_init(self, __context: Any) -> None:
        """Expand ~ in paths."""
        if self.log_dir:
            self.log_dir = self.log_dir.expanduser()


class AppConfig(BaseSettings):
    """Main application configuration.

    Loads from:
    1. Config file (TOML)
    2. Environment variables (prefixed with ALEXANDRIA_)
    3. .env file
    """

    model_config = SettingsConfigDict(
        env_prefix="ALEXANDRIA_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    json_logs: bool = False
    data_dir: Path = Field(default=Path.home() / ".alexandria")
    default_collection_name: str = "Default"

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Let environment variables take priority over config file values."""
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def model_post_init(self, __context: Any) -> None:
        """Expand ~ in data_dir."""
        self.data_dir = self.data_dir.expanduser()
        if self.logging.log_dir is None:
            self.logging.log_dir = self.data_dir / "logs"

    @property
    def collections_path(self) -> Path:
        return self.data_dir / self.storage.collections_file

    @property
    def memberships_path(self) -> Path:
        return self.data_dir / self.storage.memberships_file
