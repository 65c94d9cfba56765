"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from learnquest.errors import CatalogError
from learnquest.models.catalog import Catalog


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'storage' in data:
            flattened['data_dir'] = data['storage'].get('data_dir')
        if 'engine' in data:
            flattened['catalog_path'] = data['engine'].get('catalog_path')
            flattened['timezone'] = data['engine'].get('timezone')
        if 'logging' in data:
            flattened['log_format'] = data['logging'].get('format')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_prefix="LEARNQUEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Engine
    catalog_path: Path | None = Field(default=None)
    timezone: str | None = Field(default=None, description="IANA name; None uses local time")

    # Storage
    data_dir: Path | None = Field(default=None)

    # Logging: "console" or "json"
    log_format: str = Field(default="console")

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def store_dir(self) -> Path:
        d = self.data_dir or self.project_root / "data" / "progress"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def resolved_catalog_path(self) -> Path:
        return self.catalog_path or self.project_root / "config" / "catalog.yaml"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (LEARNQUEST_* environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


def load_catalog(path: Path | None = None) -> Catalog:
    """Load the versioned badge/achievement/mission catalog from YAML.

    Raises:
        CatalogError: If the file is missing or does not describe a valid catalog.
    """
    catalog_path = path or _find_project_root() / "config" / "catalog.yaml"
    if not catalog_path.exists():
        raise CatalogError(f"Catalog file not found: {catalog_path}")
    with open(catalog_path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    try:
        return Catalog.model_validate(data.get('catalog', {}))
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog {catalog_path}: {e}") from e


@functools.lru_cache
def get_catalog() -> Catalog:
    """Catalog singleton, loaded once at startup from the configured path."""
    return load_catalog(get_settings().resolved_catalog_path)
