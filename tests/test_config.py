"""Tests for the configuration manager."""

import json

import pytest

from regmaster.constants import DEFAULT_REGISTRY_CONFIG
from regmaster.managers.config_manager import ConfigError, ConfigManager, generate_validation_structure


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REGMASTER_URL", "REGMASTER_USERNAME", "REGMASTER_PASSWORD", "REGMASTER_PASSWORD_ALICE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_manager(tmp_path):
    return ConfigManager(tmp_path / "conf")


def write_config(manager, data):
    manager.config_dir.mkdir(parents=True, exist_ok=True)
    manager.config_file.write_text(json.dumps(data), encoding="utf-8")


def test_missing_file_yields_defaults(config_manager):
    config = config_manager.load_config()

    assert config == DEFAULT_REGISTRY_CONFIG
    assert config is not DEFAULT_REGISTRY_CONFIG
    assert not config_manager.exists()


def test_update_saves_and_reloads(config_manager):
    config_manager.load_config()
    config_manager.update_config({"registry": {"url": "https://registry.example.com", "username": "alice"}})

    reloaded = ConfigManager(config_manager.config_dir).load_config()

    assert reloaded["registry"]["url"] == "https://registry.example.com"
    assert reloaded["registry"]["username"] == "alice"
    assert reloaded["registry"]["timeout"] == 30
    assert reloaded["cache"] == DEFAULT_REGISTRY_CONFIG["cache"]


def test_partial_file_is_completed_with_defaults(config_manager):
    write_config(config_manager, {"registry": {"url": "http://10.0.0.1:5000"}})

    config = config_manager.load_config()

    assert config["registry"]["url"] == "http://10.0.0.1:5000"
    assert config["registry"]["api_prefix"] == ""
    assert config["cache"]["tags"] == 120


def test_invalid_url_rejected(config_manager):
    config_manager.load_config()

    with pytest.raises(ConfigError, match="http"):
        config_manager.update_config({"registry": {"url": "registry.example.com"}})
    assert not config_manager.exists()


def test_wrong_type_rejected(config_manager):
    write_config(config_manager, {"cache": {"tags": "soon"}})

    with pytest.raises(ConfigError, match="tags"):
        config_manager.load_config()


def test_unreadable_file(config_manager):
    config_manager.config_dir.mkdir(parents=True)
    config_manager.config_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError):
        config_manager.load_config()


def test_environment_overrides(config_manager, monkeypatch):
    config_manager.load_config()
    monkeypatch.setenv("REGMASTER_URL", "https://env.example.com")
    monkeypatch.setenv("REGMASTER_USERNAME", "alice")

    assert config_manager.get_registry_url() == "https://env.example.com"
    assert config_manager.get_username() == "alice"


def test_password_lookup(config_manager, monkeypatch):
    assert config_manager.get_password(None) is None
    assert config_manager.get_password("alice") is None

    monkeypatch.setenv("REGMASTER_PASSWORD", "shared")
    assert config_manager.get_password("alice") == "shared"

    monkeypatch.setenv("REGMASTER_PASSWORD_ALICE", "secret")
    assert config_manager.get_password("alice") == "secret"


def test_empty_username_means_anonymous(config_manager):
    config_manager.load_config()
    assert config_manager.get_username() is None


def test_validation_structure_mirrors_template():
    structure = generate_validation_structure({"a": {"b": 1, "c": None}, "d": [], "e": "x"})
    assert structure == {"a": {"b": int, "c": str}, "d": list, "e": str}
