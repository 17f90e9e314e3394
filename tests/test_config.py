"""Tests for settings and the YAML settings file."""

import os
from unittest.mock import patch

import pytest
import yaml

from supersync.config import (
    CONFIG_FILE,
    DEFAULT_SETTINGS,
    FileSettingsProvider,
    StaticSettingsProvider,
    SyncSettings,
    apply_env_overrides,
    find_config,
    get_nested,
    load_config,
    parse_bool,
    save_config,
    set_nested,
)
from supersync.exceptions import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    """Create a temporary settings file."""
    config_path = tmp_path / CONFIG_FILE
    with open(config_path, "w") as f:
        yaml.safe_dump({"enabled": False, "confirmBeforeUpdate": True}, f)
    return config_path


class TestSyncSettings:
    """Tests for SyncSettings dataclass."""

    def test_default_values(self):
        assert DEFAULT_SETTINGS.enabled is True
        assert DEFAULT_SETTINGS.confirm_before_update is False

    def test_rejects_non_bool(self):
        with pytest.raises(ConfigurationError, match="enabled must be a boolean"):
            SyncSettings(enabled="yes")

    def test_with_overrides(self):
        settings = SyncSettings().with_overrides(confirm_before_update=True)
        assert settings == SyncSettings(enabled=True, confirm_before_update=True)

    def test_from_dict_merges_defaults(self):
        assert SyncSettings.from_dict({"confirmBeforeUpdate": True}) == SyncSettings(
            enabled=True, confirm_before_update=True
        )

    def test_from_dict_accepts_snake_case_and_strings(self):
        settings = SyncSettings.from_dict({"confirm_before_update": "on", "enabled": "false"})
        assert settings == SyncSettings(enabled=False, confirm_before_update=True)

    def test_from_dict_ignores_unknown_keys(self):
        assert SyncSettings.from_dict({"theme": "dark"}) == DEFAULT_SETTINGS

    def test_from_dict_rejects_bad_values(self):
        with pytest.raises(ConfigurationError):
            SyncSettings.from_dict({"enabled": "maybe"})

    def test_to_dict_uses_camel_case(self):
        assert SyncSettings().to_dict() == {"enabled": True, "confirmBeforeUpdate": False}


class TestParseBool:
    """Tests for parse_bool."""

    @pytest.mark.parametrize("raw", [True, "true", "Yes", "1", " on "])
    def test_truthy(self, raw):
        assert parse_bool(raw, "x") is True

    @pytest.mark.parametrize("raw", [False, "false", "NO", "0", "off"])
    def test_falsy(self, raw):
        assert parse_bool(raw, "x") is False

    @pytest.mark.parametrize("raw", [None, 1, "sure"])
    def test_invalid(self, raw):
        with pytest.raises(ConfigurationError):
            parse_bool(raw, "x")


class TestConfigFile:
    """Tests for find/load/save."""

    def test_finds_config_in_parent_dir(self, tmp_path, config_file):
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)
        assert find_config(child) == config_file

    def test_find_defaults_to_cwd(self, tmp_path, config_file):
        with patch("supersync.config.Path.cwd", return_value=tmp_path):
            assert find_config() == config_file

    def test_load_missing_file(self, tmp_path):
        assert load_config(tmp_path / "missing.yaml") == {}

    def test_load_invalid_yaml(self, tmp_path):
        bad = tmp_path / CONFIG_FILE
        bad.write_text("invalid: yaml: content: [")
        assert load_config(bad) == {}

    def test_load_empty_file(self, tmp_path):
        empty = tmp_path / CONFIG_FILE
        empty.touch()
        assert load_config(empty) == {}

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / CONFIG_FILE
        assert save_config({"enabled": True, "confirmBeforeUpdate": False}, path) is True
        assert load_config(path) == {"enabled": True, "confirmBeforeUpdate": False}

    def test_save_failure_returns_false(self, tmp_path):
        assert save_config({"enabled": True}, tmp_path / "no" / "such" / CONFIG_FILE) is False


class TestNested:
    """Tests for dotted-key helpers."""

    def test_get_nested(self):
        config = {"a": {"b": 1}}
        assert get_nested(config, "a.b") == 1
        assert get_nested(config, "a.c") is None
        assert get_nested(config, "x.y") is None

    def test_set_nested_preserves_siblings(self):
        config = {"a": {"b": 1, "c": 2}}
        set_nested(config, "a.b", 5)
        assert config == {"a": {"b": 5, "c": 2}}

    def test_set_nested_creates_levels(self):
        config = {}
        set_nested(config, "a.b.c", True)
        assert config == {"a": {"b": {"c": True}}}


class TestProviders:
    """Tests for settings providers."""

    def test_file_provider_reads_file(self, config_file):
        settings = FileSettingsProvider(config_file).get_settings()
        assert settings == SyncSettings(enabled=False, confirm_before_update=True)

    def test_file_provider_rereads_on_each_call(self, config_file):
        provider = FileSettingsProvider(config_file)
        assert provider.get_settings().enabled is False
        save_config({"enabled": True}, config_file)
        assert provider.get_settings().enabled is True

    def test_file_provider_defaults_without_file(self, tmp_path):
        with patch("supersync.config.Path.cwd", return_value=tmp_path):
            assert FileSettingsProvider().get_settings() == DEFAULT_SETTINGS

    def test_env_overrides(self, config_file):
        with patch.dict(os.environ, {"SUPERSYNC_ENABLED": "1"}):
            settings = FileSettingsProvider(config_file).get_settings()
        assert settings.enabled is True
        assert settings.confirm_before_update is True

    def test_env_overrides_can_be_disabled(self, config_file):
        with patch.dict(os.environ, {"SUPERSYNC_ENABLED": "1"}):
            settings = FileSettingsProvider(config_file, use_env=False).get_settings()
        assert settings.enabled is False

    def test_apply_env_overrides_without_env(self):
        assert apply_env_overrides(DEFAULT_SETTINGS) is DEFAULT_SETTINGS

    def test_save_settings_keeps_other_keys(self, tmp_path):
        path = tmp_path / CONFIG_FILE
        save_config({"note": "keep me", "enabled": True}, path)
        provider = FileSettingsProvider(path)

        assert provider.save_settings(SyncSettings(confirm_before_update=True)) is True
        assert load_config(path) == {
            "note": "keep me",
            "enabled": True,
            "confirmBeforeUpdate": True,
        }

    def test_static_provider(self):
        settings = SyncSettings(enabled=False)
        assert StaticSettingsProvider(settings).get_settings() is settings
