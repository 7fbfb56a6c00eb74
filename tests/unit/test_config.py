"""Unit tests for index settings and configuration snapshots."""

import dataclasses

from pydantic import ValidationError
import pytest

from record_index import ConfigurationError, IndexConfig, IndexSettings, memory_index


class TestIndexSettings:
    def test_defaults_match_config_defaults(self):
        assert IndexSettings().snapshot() == IndexConfig()

    def test_default_values(self):
        config = IndexConfig.from_settings()
        assert config.optimize_frequency == 1
        assert config.merge_factor == 10
        assert config.compound_file is True
        assert config.optimize_max_segments == 1
        assert config.content_enabled is True

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("RECORD_INDEX_OPTIMIZE_FREQUENCY", "5")
        monkeypatch.setenv("RECORD_INDEX_CONTENT_ENABLED", "false")
        monkeypatch.setenv("RECORD_INDEX_COMPOUND_FILE", "0")

        config = IndexConfig.from_settings()

        assert config.optimize_frequency == 5
        assert config.content_enabled is False
        assert config.compound_file is False

    def test_invalid_environment_value_rejected(self, monkeypatch):
        monkeypatch.setenv("RECORD_INDEX_OPTIMIZE_FREQUENCY", "0")
        with pytest.raises(ValidationError):
            IndexSettings()

    def test_env_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("RECORD_INDEX_MERGE_FACTOR=4\n", encoding="utf-8")
        assert IndexSettings().merge_factor == 4


class TestIndexConfig:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"optimize_frequency": 0},
            {"merge_factor": 1},
            {"optimize_max_segments": 0},
            {"ram_buffer_size_mb": 0},
        ],
    )
    def test_out_of_range_values_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            IndexConfig(**overrides)

    def test_config_is_frozen(self):
        config = IndexConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.optimize_frequency = 3  # type: ignore[misc]

    def test_handle_snapshots_settings_at_creation(self, monkeypatch):
        monkeypatch.setenv("RECORD_INDEX_OPTIMIZE_FREQUENCY", "3")
        first = memory_index()
        monkeypatch.setenv("RECORD_INDEX_OPTIMIZE_FREQUENCY", "7")
        second = memory_index()

        assert first.config.optimize_frequency == 3
        assert second.config.optimize_frequency == 7

    def test_explicit_config_ignores_environment(self, monkeypatch):
        monkeypatch.setenv("RECORD_INDEX_OPTIMIZE_FREQUENCY", "9")
        handle = memory_index(IndexConfig(optimize_frequency=2))
        assert handle.config.optimize_frequency == 2
