"""Configuration management for scoped-schemas.

Settings come from, in increasing priority:
1. Defaults on ScopedSchemasConfig
2. SCOPED_SCHEMAS_* environment variables
3. The JSON config file managed by ConfigManager
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scoped_schemas.schema.resolver import DEFAULT_IGNORE_PATTERNS, DEFAULT_SUFFIXES

DEFAULT_EXTERNAL_PREFIX = "http://localhost:8080/schema/"
CONFIG_FILE_NAME = "config.json"


class ScopeConfig(BaseModel):
    """Roots of one configured scope."""

    content_roots: List[Path] = Field(
        default_factory=list,
        description="Directories whose documents belong to this scope",
    )
    dependency_roots: List[Path] = Field(
        default_factory=list,
        description="Directories or files searched for schemas, in priority order",
    )


class ScopedSchemasConfig(BaseSettings):
    """Settings for schema resolution."""

    external_prefix: str = Field(
        default=DEFAULT_EXTERNAL_PREFIX,
        description="Prefix of externally advertised schema locations",
    )

    schema_suffixes: List[str] = Field(
        default_factory=lambda: list(DEFAULT_SUFFIXES),
        description="File suffixes treated as schema sources",
    )

    ignore_patterns: List[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS),
        description="Gitignore-style patterns skipped while enumerating roots",
    )

    log_level: str = "INFO"

    scopes: Dict[str, ScopeConfig] = Field(
        default_factory=dict,
        description="Mapping of scope names to their roots",
    )

    model_config = SettingsConfigDict(
        env_prefix="SCOPED_SCHEMAS_",
        extra="ignore",
    )

    @field_validator("external_prefix")
    @classmethod
    def validate_external_prefix(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("external_prefix must not be blank")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        return value.upper()


class ConfigManager:
    """Load and save the JSON config file."""

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        if config_dir is None:
            env_dir = os.environ.get("SCOPED_SCHEMAS_CONFIG_DIR")
            config_dir = Path(env_dir) if env_dir else Path.home() / ".scoped-schemas"
        self.config_dir = Path(config_dir)
        self.config_file = self.config_dir / CONFIG_FILE_NAME

    def load_config(self) -> ScopedSchemasConfig:
        """Load config from file, falling back to defaults and environment.

        Raises:
            ValueError: If the config file exists but is not valid JSON.
        """
        if not self.config_file.exists():
            return ScopedSchemasConfig()

        try:
            data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid config file {self.config_file}: {e}")
            raise ValueError(f"Invalid config file {self.config_file}: {e}") from e

        return ScopedSchemasConfig(**data)

    def save_config(self, config: ScopedSchemasConfig) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(config.model_dump_json(indent=2), encoding="utf-8")

    def add_scope(
        self,
        name: str,
        content_roots: List[Path],
        dependency_roots: List[Path],
    ) -> ScopedSchemasConfig:
        """Add or replace a scope and persist the config."""
        config = self.load_config()
        config.scopes[name] = ScopeConfig(
            content_roots=content_roots, dependency_roots=dependency_roots
        )
        self.save_config(config)
        return config


def get_config() -> ScopedSchemasConfig:
    return ConfigManager().load_config()
