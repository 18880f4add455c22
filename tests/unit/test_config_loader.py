"""
Unit tests for the settings loader.
"""

import pytest
import yaml
from pydantic import ValidationError

from reasoning_graph.config import load_settings, resolve_settings_path
from reasoning_graph.config.loader import DEFAULT_SETTINGS_PATH, SETTINGS_ENV_VAR


class TestLoadSettings:
    """Test load_settings."""

    def test_packaged_defaults_load(self):
        settings = load_settings(str(DEFAULT_SETTINGS_PATH))

        assert settings.analytics.cache_capacity == 128
        assert settings.gaps.max_gaps == 1000
        assert settings.budget.ema_alpha == pytest.approx(0.3)

    def test_partial_file_falls_back_to_defaults(self, tmp_path):
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"gaps": {"max_gaps": 5}}))

        settings = load_settings(str(config_file))

        assert settings.gaps.max_gaps == 5
        assert settings.gaps.max_placeholders == 500
        assert settings.analytics.pagerank_damping == pytest.approx(0.85)

    def test_empty_file_is_all_defaults(self, tmp_path):
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("")

        settings = load_settings(str(config_file))

        assert settings.budget.default_estimate_cost == 100.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Missing config file"):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_non_mapping_root_rejected(self, tmp_path):
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="Expected object"):
            load_settings(str(config_file))

    def test_invalid_value_fails_fast(self, tmp_path):
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"analytics": {"pagerank_damping": 1.5}}))

        with pytest.raises(ValidationError):
            load_settings(str(config_file))


class TestResolveSettingsPath:
    """Test settings path resolution order."""

    def test_explicit_path_wins(self, monkeypatch):
        monkeypatch.setenv(SETTINGS_ENV_VAR, "/from/env.yaml")
        assert resolve_settings_path("/explicit.yaml") == "/explicit.yaml"

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv(SETTINGS_ENV_VAR, "/from/env.yaml")
        assert resolve_settings_path() == "/from/env.yaml"

    def test_packaged_default(self, monkeypatch, tmp_path):
        monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)
        assert resolve_settings_path() == str(DEFAULT_SETTINGS_PATH)
