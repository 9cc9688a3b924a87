"""Tests for config loading."""

from pathlib import Path

import pytest

from cli.config import find_config, get_paths, load_config_model
from cli.config_models import FocusConfig


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        config = load_config_model(tmp_path / "missing.yaml")
        assert config.engine.debounce_seconds == 0.3
        assert config.engine.max_alternatives == 2
        assert config.cache.advanced_ttl == 300
        assert config.cache.basic_ttl == 60
        assert config.paths.feedback_db == Path("~/.focus/feedback.db").expanduser()

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "focus.yaml"
        path.write_text(
            "engine:\n  debounce_seconds: 0.1\n"
            "cache:\n  max_entries: 10\n"
            "logging:\n  level: debug\n  json: true\n"
            f"paths:\n  feedback_db: {tmp_path / 'fb.db'}\n"
        )
        config = load_config_model(path)
        assert config.engine.debounce_seconds == 0.1
        assert config.cache.max_entries == 10
        assert config.logging.level == "DEBUG"
        assert config.logging.json_mode is True
        assert get_paths(config)["feedback_db"] == tmp_path / "fb.db"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "focus.yaml"
        path.write_text("engine: [unclosed")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config_model(path)

    def test_validation_failure(self, tmp_path):
        path = tmp_path / "focus.yaml"
        path.write_text("cache:\n  advanced_ttl: -5\n")
        with pytest.raises(ValueError, match="Config validation failed"):
            load_config_model(path)

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            FocusConfig.from_dict({"logging": {"level": "LOUD"}})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "focus.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_config_model(path)

    def test_round_trip_uses_alias(self):
        data = FocusConfig().to_dict()
        assert "json" in data["logging"]


def test_find_config_prefers_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
    assert find_config() is None
    (tmp_path / "focus.yaml").write_text("{}")
    assert find_config() == tmp_path / "focus.yaml"
