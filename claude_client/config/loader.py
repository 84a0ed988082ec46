"""Load configuration from YAML and environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default config lives next to this module
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ANTHROPIC_", extra="ignore")
    api_key: Optional[str] = None
    api_key_env: str = "ANTHROPIC_API_KEY"
    base_url: str = "https://api.anthropic.com"
    version: str = "2023-06-01"
    timeout: float = 600.0


class GenerationSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GENERATION_", extra="ignore")
    model: str = "claude-sonnet-4-5"
    max_tokens: int = 1024
    temperature: float = 0.7
    stream: bool = True


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")
    level: str = "INFO"
    use_json: bool = False


class Config(BaseSettings):
    """Client config: YAML + env. The API key comes from env or the caller only."""

    model_config = SettingsConfigDict(env_nested_delimiter="__", extra="ignore")

    api: ApiSettings = Field(default_factory=ApiSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "Config":
        path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
        yaml_data = _load_yaml(path)
        overlay = os.getenv("CLAUDE_CLIENT_ENV", "")
        if overlay:
            yaml_data = _deep_merge(yaml_data, _load_yaml(Path(f"config/{overlay}.yaml")))
        api = yaml_data.setdefault("api", {})
        api.pop("api_key", None)
        api_key = os.getenv(api.get("api_key_env") or "ANTHROPIC_API_KEY")
        if api_key:
            api["api_key"] = api_key
        base_url = os.getenv("ANTHROPIC_BASE_URL")
        if base_url:
            api["base_url"] = base_url
        model = os.getenv("CLAUDE_MODEL")
        if model:
            yaml_data.setdefault("generation", {})["model"] = model
        level = os.getenv("LOG_LEVEL")
        if level:
            yaml_data.setdefault("logging", {})["level"] = level
        return cls(**yaml_data)


def get_config(config_path: str | Path | None = None) -> Config:
    return Config.load(config_path)
