"""Tests for config loading."""

from __future__ import annotations

from claude_client.config.loader import Config, _deep_merge, _load_yaml, get_config


def test_load_yaml_missing(tmp_path):
    assert _load_yaml(tmp_path / "nonexistent.yaml") == {}


def test_load_yaml_exists(tmp_path):
    path = tmp_path / "test.yaml"
    path.write_text("api:\n  base_url: https://proxy.local\n")
    data = _load_yaml(path)
    assert data["api"]["base_url"] == "https://proxy.local"


def test_default_config():
    config = get_config()
    assert config.api.base_url == "https://api.anthropic.com"
    assert config.api.version == "2023-06-01"
    assert config.api.api_key is None
    assert config.generation.stream is True
    assert config.logging.level == "INFO"


def test_config_load_from_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "generation:\n  model: claude-2.1\n  max_tokens: 300\nlogging:\n  use_json: true\n"
    )
    config = Config.load(config_path=path)
    assert config.generation.model == "claude-2.1"
    assert config.generation.max_tokens == 300
    assert config.logging.use_json is True


def test_api_key_from_env(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
    assert Config.load().api.api_key == "sk-ant-env"


def test_api_key_in_yaml_is_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  api_key: sk-ant-committed\n")
    assert Config.load(config_path=path).api.api_key is None


def test_api_key_env_name_is_configurable(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  api_key_env: TEAM_CLAUDE_KEY\n")
    monkeypatch.setenv("TEAM_CLAUDE_KEY", "sk-team")
    assert Config.load(config_path=path).api.api_key == "sk-team"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_BASE_URL", "https://gateway.local")
    monkeypatch.setenv("CLAUDE_MODEL", "claude-opus-4-1")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    config = Config.load()
    assert config.api.base_url == "https://gateway.local"
    assert config.generation.model == "claude-opus-4-1"
    assert config.logging.level == "DEBUG"


def test_env_overlay(tmp_path, monkeypatch):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "staging.yaml").write_text("api:\n  timeout: 30\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CLAUDE_CLIENT_ENV", "staging")
    config = Config.load()
    assert config.api.timeout == 30
    assert config.api.base_url == "https://api.anthropic.com"


def test_deep_merge():
    base = {"a": 1, "b": {"x": 10, "y": 20}}
    override = {"b": {"y": 22, "z": 30}, "c": 3}
    out = _deep_merge(base, override)
    assert out == {"a": 1, "b": {"x": 10, "y": 22, "z": 30}, "c": 3}
    assert base["b"] == {"x": 10, "y": 20}
