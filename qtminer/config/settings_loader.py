"""
settings_loader.py

Settings of the QT miner: radius and ordering defaults, database URL,
output directory for saved clusterings and logging.

The YAML file may reference the environment as ${NAME} or ${NAME:fallback};
the result is validated by the pydantic models below and cached by
ConfigManager. Without any file the model defaults apply.
"""

import os
import re
import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from qtminer.core.cluster_set import ClusterOrdering
from qtminer.utils.error_handling import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models (Pydantic)
# =============================================================================

class ServiceSettings(BaseModel):
    """General service settings."""
    name: str = Field(default="qtminer", description="Service name")
    version: str = Field(default="1.0.0", description="Service version")
    environment: str = Field(default="development", description="Environment (development, production)")


class ClusteringSettings(BaseModel):
    """QT clustering settings."""
    default_radius: Optional[float] = Field(default=None, gt=0.0, description="Radius used when none is given")
    ordering: ClusterOrdering = Field(
        default=ClusterOrdering.CENTROID,
        description="Cluster identity in result sets (centroid or size)",
    )
    progress_log_interval: int = Field(default=100, ge=1, description="Log distance matrix progress every N rows")


class DatabaseSettings(BaseModel):
    """Relational source of the datasets."""
    url: str = Field(default="sqlite:///data/qtminer.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL statements")
    connect_retries: int = Field(default=3, ge=1, description="Connection attempts before giving up")
    retry_delay: float = Field(default=0.5, ge=0.0, description="Initial delay between connection attempts")

    @field_validator("url")
    @classmethod
    def url_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("database url must not be empty")
        return value


class StorageSettings(BaseModel):
    """Saved clustering configuration."""
    output_dir: str = Field(default="data/clusters", description="Directory for saved clusterings")
    file_extension: str = Field(default=".dmp", description="Extension of saved clusterings")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field(default="WARNING", description="Log level")
    format: str = Field(default="console", description="Log format (json or console)")
    file: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("level")
    @classmethod
    def known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{value}'")
        return value

    @field_validator("format")
    @classmethod
    def known_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError(f"unknown log format '{value}'")
        return value


class Settings(BaseModel):
    """Root configuration model."""
    service: ServiceSettings = Field(default_factory=ServiceSettings)
    clustering: ClusteringSettings = Field(default_factory=ClusteringSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# =============================================================================
# Configuration Manager (Singleton)
# =============================================================================

DEFAULT_CONFIG_PATH = "config/settings.yaml"

# ${NAME} or ${NAME:fallback}
_ENV_REFERENCE = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


class ConfigManager:
    """
    Process-wide holder of the validated settings.

    The first ``load_config`` call decides the settings; later calls return
    the cached object until ``reload_config`` is used.
    """

    _instance: Optional['ConfigManager'] = None
    _settings: Optional[Settings] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def load_config(cls, config_path: Optional[str] = None) -> Settings:
        """
        Load, substitute and validate the YAML settings.

        Without ``config_path`` the file named by ``CONFIG_PATH`` (or
        ``config/settings.yaml``) is used if present, else the built-in
        defaults.

        Raises:
            ConfigurationError: If an explicit file is missing, the YAML is
                malformed or a value fails validation
        """
        if cls._settings is not None:
            return cls._settings

        if config_path is not None:
            path = Path(config_path)
            if not path.is_file():
                raise ConfigurationError(
                    f"Configuration file not found: {config_path}",
                    error_code="CONFIG_NOT_FOUND",
                )
        else:
            path = cls._default_path()
            if path is None:
                logger.info("No configuration file found, using defaults")
                cls._settings = Settings()
                return cls._settings

        cls._settings = cls._parse(path)
        return cls._settings

    @staticmethod
    def _default_path() -> Optional[Path]:
        for candidate in (os.getenv("CONFIG_PATH"), DEFAULT_CONFIG_PATH):
            if candidate and Path(candidate).is_file():
                return Path(candidate)
        return None

    @classmethod
    def _parse(cls, path: Path) -> Settings:
        logger.info(f"Loading configuration from: {path}")
        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            logger.error(f"Malformed YAML in {path}: {e}")
            raise ConfigurationError(f"Invalid YAML configuration: {e}", error_code="CONFIG_YAML") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"Top level of {path} must be a mapping", error_code="CONFIG_YAML")

        try:
            settings = Settings(**cls._substitute_env_vars(raw))
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise ConfigurationError(f"Invalid configuration: {e}", error_code="CONFIG_INVALID") from e

        logger.info("Configuration loaded and validated successfully")
        return settings

    @classmethod
    def get_settings(cls) -> Settings:
        if cls._settings is None:
            cls.load_config()
        return cls._settings

    @classmethod
    def _substitute_env_vars(cls, config: Any) -> Any:
        """Replace ``${NAME}`` / ``${NAME:fallback}`` in every string value."""
        if isinstance(config, dict):
            return {key: cls._substitute_env_vars(value) for key, value in config.items()}
        if isinstance(config, list):
            return [cls._substitute_env_vars(value) for value in config]
        if isinstance(config, str):
            return _ENV_REFERENCE.sub(lambda m: os.getenv(m.group(1), m.group(2) or ""), config)
        return config

    @classmethod
    def reload_config(cls, config_path: Optional[str] = None) -> Settings:
        """Forget the cached settings and load them again."""
        cls._settings = None
        return cls.load_config(config_path)


def get_settings() -> Settings:
    """Shortcut for ``ConfigManager.get_settings()``."""
    return ConfigManager.get_settings()
