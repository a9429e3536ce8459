"""Unit tests for Config module."""

import json

import pytest

from ruletree import config as config_module
from ruletree.config import Config


def test_config_defaults():
    """Test that Config returns the shipped defaults."""
    config = Config()

    assert config.get("known_types") == [
        "TYPE_A_RULE", "TYPE_B_RULE", "TYPE_C_RULE", "TYPE_D_RULE", "TYPE_E_RULE",
    ]
    assert config.get("field_options") == ["assigen", "comment", "user", "status", "priority"]
    assert config.get("field_lookup_latency_seconds") == pytest.approx(0.3)
    assert config["confirm_reset_message"] == "Reset all changes?"


def test_unknown_key_uses_default():
    assert Config().get("no_such_key", 42) == 42
    assert Config().get("no_such_key") is None


def test_returned_lists_are_copies():
    config = Config()
    config.get("known_types").append("MUTATED")
    assert "MUTATED" not in config.get("known_types")


def test_overrides_and_delete():
    config = Config({"known_types": ["ONLY"]})
    assert config.get("known_types") == ["ONLY"]

    config["field_lookup_latency_seconds"] = 1
    assert config.get("field_lookup_latency_seconds") == 1.0

    config.delete("known_types")
    assert len(config.get("known_types")) == 5


def test_set_checks_type():
    config = Config()
    with pytest.raises(TypeError, match="known_types"):
        config.set("known_types", "TYPE_A_RULE")


def test_defaults_file_comment_keys_skipped():
    assert "_comment" not in config_module.DEFAULTS


def test_missing_defaults_file_falls_back(monkeypatch, tmp_path, caplog):
    monkeypatch.setattr(config_module, "__file__", str(tmp_path / "config.py"))
    defaults = config_module._load_defaults_from_file()
    assert defaults == config_module._FALLBACK_DEFAULTS
    assert "using built-in defaults" in caplog.text


def test_invalid_defaults_file_falls_back(monkeypatch, tmp_path, caplog):
    (tmp_path / config_module.DEFAULTS_FILE_NAME).write_text("{not json", encoding="utf-8")
    monkeypatch.setattr(config_module, "__file__", str(tmp_path / "config.py"))
    defaults = config_module._load_defaults_from_file()
    assert defaults["known_types"] == config_module._FALLBACK_DEFAULTS["known_types"]
    assert "Ignoring defaults file" in caplog.text


def test_defaults_file_overrides_fallback(monkeypatch, tmp_path):
    (tmp_path / config_module.DEFAULTS_FILE_NAME).write_text(
        json.dumps({"known_types": ["X"], "_comment": "ignored"}), encoding="utf-8"
    )
    monkeypatch.setattr(config_module, "__file__", str(tmp_path / "config.py"))
    defaults = config_module._load_defaults_from_file()
    assert defaults["known_types"] == ["X"]
    assert defaults["field_options"] == config_module._FALLBACK_DEFAULTS["field_options"]
    assert "_comment" not in defaults


def test_defaults_file_values_checked_per_key(monkeypatch, tmp_path, caplog):
    (tmp_path / config_module.DEFAULTS_FILE_NAME).write_text(
        json.dumps({
            "known_types": "TYPE_A_RULE",
            "field_lookup_latency_seconds": 2,
            "stale_key": True,
        }),
        encoding="utf-8",
    )
    monkeypatch.setattr(config_module, "__file__", str(tmp_path / "config.py"))
    defaults = config_module._load_defaults_from_file()

    assert defaults["known_types"] == config_module._FALLBACK_DEFAULTS["known_types"]
    assert defaults["field_lookup_latency_seconds"] == 2.0
    assert "stale_key" not in defaults
    assert "Config key 'known_types' expects list" in caplog.text


def test_set_rejects_bool_for_float():
    with pytest.raises(TypeError, match="field_lookup_latency_seconds"):
        Config().set("field_lookup_latency_seconds", True)
