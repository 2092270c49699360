"""Tests for configuration loading."""

import pytest
import yaml

from ddl2data.utils.config import CONFIG_ENV_VAR, Config, get_config, load_config, set_config


@pytest.fixture(autouse=True)
def reset_global_config():
    set_config(None)
    yield
    set_config(None)


def test_defaults():
    config = Config()

    assert config.get("generation.max_attempts") == 2
    assert config.get("jobs.max_concurrent") == 3
    assert config.get("agent.enabled") is False
    assert config.get("generation.missing", "fallback") == "fallback"


def test_dot_set_creates_sections():
    config = Config()
    config.set("storage.output_dir", "/tmp/out")
    config.set("extra.nested.value", 5)

    assert config.get("storage.output_dir") == "/tmp/out"
    assert config.get("extra.nested.value") == 5


def test_section_is_a_copy():
    config = Config()
    section = config.section("generation")
    section["max_attempts"] = 9

    assert config.get("generation.max_attempts") == 2
    assert config.section("nope") == {}


def test_yaml_merges_over_defaults(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump({"generation": {"max_attempts": 4}, "agent": {"provider": "ollama"}}))

    config = Config.from_yaml(path)

    assert config.get("generation.max_attempts") == 4
    assert config.get("generation.chunk_size") == 25
    assert config.get("agent.provider") == "ollama"


def test_missing_yaml_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        Config.from_yaml(tmp_path / "absent.yml")


def test_save_and_load_sets_global(tmp_path):
    config = Config()
    config.set("jobs.max_concurrent", 7)
    config.save(tmp_path / "saved.yml")

    loaded = load_config(tmp_path / "saved.yml")

    assert loaded.get("jobs.max_concurrent") == 7
    assert get_config() is loaded


def test_env_var_config(tmp_path, monkeypatch):
    path = tmp_path / "env.yml"
    path.write_text(yaml.safe_dump({"jobs": {"retention_seconds": 10}}))
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    assert get_config().get("jobs.retention_seconds") == 10


def test_env_var_pointing_nowhere_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "missing.yml"))
    monkeypatch.chdir(tmp_path)

    assert get_config().get("jobs.retention_seconds") == 3600
