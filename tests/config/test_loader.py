"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence
- resolve_data_dir() and get_store_path()
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from pathsense.config.loader import (
    GLOBAL_CONFIG_PATH,
    _deep_merge,
    _load_yaml,
    get_store_path,
    load_config,
    resolve_data_dir,
)
from pathsense.config.models import SearchConfig
from pathsense.core.errors import ConfigError, ErrorCode


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        """Returns empty dict when file doesn't exist."""
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        """Loads valid YAML content."""
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("indexing:\n  batch_size: 16\n")

        assert _load_yaml(yaml_file) == {"indexing": {"batch_size": 16}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        """Returns empty dict for empty file."""
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid YAML syntax."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("search:\n  top_k:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_override_wins(self) -> None:
        """Override values replace base values."""
        assert _deep_merge({"a": 1}, {"a": 2}) == {"a": 2}

    def test_nested_merge(self) -> None:
        """Nested dicts merge key by key."""
        base = {"search": {"top_k": 20, "rank_locally": False}}
        override = {"search": {"top_k": 5}}

        assert _deep_merge(base, override) == {"search": {"top_k": 5, "rank_locally": False}}

    def test_does_not_mutate_base(self) -> None:
        """Base dict is left untouched."""
        base = {"search": {"top_k": 20}}
        _deep_merge(base, {"search": {"top_k": 5}})
        assert base == {"search": {"top_k": 20}}


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_returns_default_config_when_no_files(self, tmp_path: Path) -> None:
        """Defaults apply when no config files exist."""
        with patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
            config = load_config(tmp_path)

        assert config.model.enabled is True
        assert config.indexing.batch_size == 10
        assert config.search.top_k == 20
        assert config.timeouts.init_sec == 600
        assert config.timeouts.rank_sec == 30

    def test_loads_data_dir_config(self, tmp_path: Path) -> None:
        """Data-dir config.yaml is applied."""
        (tmp_path / "config.yaml").write_text("indexing:\n  batch_size: 32\n")

        with patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
            config = load_config(tmp_path)

        assert config.indexing.batch_size == 32

    def test_data_dir_config_overrides_global(self, tmp_path: Path) -> None:
        """Data-dir YAML wins over the global YAML, key by key."""
        global_file = tmp_path / "global.yaml"
        global_file.write_text("search:\n  top_k: 50\n  rank_locally: true\n")
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "config.yaml").write_text("search:\n  top_k: 7\n")

        with patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", global_file):
            config = load_config(data_dir)

        assert config.search.top_k == 7
        assert config.search.rank_locally is True

    def test_env_vars_override_yaml(self, tmp_path: Path) -> None:
        """Environment variables override YAML config."""
        (tmp_path / "config.yaml").write_text("model:\n  enabled: true\n")

        with (
            patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"),
            patch.dict(os.environ, {"PATHSENSE__MODEL__ENABLED": "false"}),
        ):
            config = load_config(tmp_path)

        assert config.model.enabled is False

    def test_kwargs_override_all(self, tmp_path: Path) -> None:
        """Keyword arguments override everything."""
        with (
            patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"),
            patch.dict(os.environ, {"PATHSENSE__SEARCH__TOP_K": "40"}),
        ):
            config = load_config(tmp_path, search=SearchConfig(top_k=3))

        assert config.search.top_k == 3

    def test_raises_config_error_for_invalid_value(self, tmp_path: Path) -> None:
        """Raises ConfigError for out-of-range values."""
        (tmp_path / "config.yaml").write_text("indexing:\n  batch_size: 0\n")

        with (
            patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"),
            pytest.raises(ConfigError) as exc_info,
        ):
            load_config(tmp_path)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert "batch_size" in exc_info.value.message


class TestPaths:
    """Tests for data dir and store path resolution."""

    def test_explicit_data_dir_wins(self, tmp_path: Path) -> None:
        """An explicit argument beats PATHSENSE_HOME."""
        with patch.dict(os.environ, {"PATHSENSE_HOME": str(tmp_path / "env")}):
            assert resolve_data_dir(tmp_path / "arg") == tmp_path / "arg"

    def test_env_home_used_without_argument(self, tmp_path: Path) -> None:
        """PATHSENSE_HOME is used when no argument is given."""
        with patch.dict(os.environ, {"PATHSENSE_HOME": str(tmp_path / "env")}):
            assert resolve_data_dir() == tmp_path / "env"

    def test_default_store_path_under_data_dir(self, tmp_path: Path) -> None:
        """Store defaults to <data_dir>/embeddings.db."""
        with patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
            config = load_config(tmp_path)

        assert get_store_path(config, tmp_path) == tmp_path / "embeddings.db"

    def test_respects_custom_store_path(self, tmp_path: Path) -> None:
        """store.path in config overrides the default location."""
        custom = tmp_path / "custom" / "vectors.db"
        (tmp_path / "config.yaml").write_text(f"store:\n  path: {custom}\n")

        with patch("pathsense.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "none.yaml"):
            config = load_config(tmp_path)

        assert get_store_path(config, tmp_path) == custom

    def test_global_config_path_in_user_config_dir(self) -> None:
        """Global config lives under ~/.config/pathsense."""
        assert isinstance(GLOBAL_CONFIG_PATH, Path)
        assert "pathsense" in str(GLOBAL_CONFIG_PATH)
