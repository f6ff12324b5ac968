"""Configuration loading with pydantic-settings.

Sources, highest precedence first:
1. Direct kwargs
2. Environment variables (PATHSENSE__SECTION__KEY)
3. Data-dir config (<data_dir>/config.yaml)
4. Global config (~/.config/pathsense/config.yaml)
5. Built-in defaults
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from pathsense.config.constants import CONFIG_FILENAME, DATA_DIR_NAME, STORE_FILENAME
from pathsense.config.models import (
    IndexingConfig,
    LoggingConfig,
    ModelConfig,
    PathSenseConfig,
    SearchConfig,
    StoreConfig,
    TimeoutsConfig,
)
from pathsense.core.errors import ConfigError

GLOBAL_CONFIG_PATH = Path("~/.config/pathsense/config.yaml").expanduser()


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open() as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from pre-loaded YAML config."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based YAML source (thread-safe)."""

    class PathSenseSettings(BaseSettings):
        """Root config. Env vars: PATHSENSE__LOGGING__LEVEL, PATHSENSE__MODEL__ENABLED, etc."""

        model_config = SettingsConfigDict(
            env_prefix="PATHSENSE__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        logging: LoggingConfig = LoggingConfig()
        model: ModelConfig = ModelConfig()
        indexing: IndexingConfig = IndexingConfig()
        search: SearchConfig = SearchConfig()
        timeouts: TimeoutsConfig = TimeoutsConfig()
        store: StoreConfig = StoreConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > yaml files
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return PathSenseSettings


PathSenseSettings = _make_settings_class({})


def resolve_data_dir(data_dir: Path | None = None) -> Path:
    """Data directory: explicit arg > PATHSENSE_HOME > ~/.pathsense."""
    if data_dir is not None:
        return data_dir.expanduser()
    env_home = os.environ.get("PATHSENSE_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / DATA_DIR_NAME


def load_config(data_dir: Path | None = None, **kwargs: Any) -> PathSenseConfig:
    """Load config: defaults < global yaml < data-dir yaml < env vars < kwargs.

    Args:
        data_dir: Directory holding config.yaml and the embedding store.
        **kwargs: Override values (highest precedence), by section.

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On invalid YAML syntax or validation errors.
    """
    local_config = _load_yaml(resolve_data_dir(data_dir) / CONFIG_FILENAME)
    global_config = _load_yaml(GLOBAL_CONFIG_PATH)
    yaml_config = _deep_merge(global_config, local_config)

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
    return PathSenseConfig.model_validate(settings.model_dump())


def get_store_path(config: PathSenseConfig, data_dir: Path | None = None) -> Path:
    """SQLite path for the embedding store, respecting config.store.path."""
    if config.store.path:
        return Path(config.store.path).expanduser()
    return resolve_data_dir(data_dir) / STORE_FILENAME
