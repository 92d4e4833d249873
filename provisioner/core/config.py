"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

US_REGIONS: tuple[str, ...] = ("us-east-1", "us-east-2", "us-west-1", "us-west-2")

# Environment variable → (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "GRAFANA_URL": ("grafana", "url"),
    "GRAFANA_API_KEY": ("grafana", "api_key"),
    "TEMPLATES_PATH": ("templates", "path"),
    "OUTPUT_PATH": ("output", "path"),
    "AWS_DEFAULT_REGION": ("aws", "default_region"),
}


class GrafanaConfig(BaseModel):
    """Grafana HTTP API configuration."""

    url: str = "http://localhost:3000"
    api_key: SecretStr = SecretStr("")
    timeout_secs: float = 10.0


class TemplatesConfig(BaseModel):
    """Alert template library location."""

    path: str = "templates/aws"


class OutputConfig(BaseModel):
    """Where generated artifacts are written."""

    path: str = "output"


class AwsConfig(BaseModel):
    """AWS discovery defaults."""

    default_region: str = "us-east-1"
    regions: list[str] = list(US_REGIONS)
    snapshot_path: str = "discovery/snapshot.json"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    grafana: GrafanaConfig = GrafanaConfig()
    templates: TemplatesConfig = TemplatesConfig()
    output: OutputConfig = OutputConfig()
    aws: AwsConfig = AwsConfig()
    logging: LoggingConfig = LoggingConfig()


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay environment variables on top of the parsed YAML mapping."""
    for env_name, (section, field) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        current = data.get(section)
        merged = dict(current) if isinstance(current, dict) else {}
        merged[field] = value
        data[section] = merged
    return data


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Environment variables (``GRAFANA_URL``, ``GRAFANA_API_KEY``,
    ``TEMPLATES_PATH``, ``OUTPUT_PATH``, ``AWS_DEFAULT_REGION``) take
    precedence over values from the file.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**_apply_env_overrides(data))
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None


def validate_settings(settings: Settings) -> list[str]:
    """Return human-readable configuration errors (empty when valid)."""
    errors: list[str] = []
    url = settings.grafana.url

    if not url:
        errors.append("GRAFANA_URL is required")
        return errors

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        errors.append(f"Invalid GRAFANA_URL: {url}")

    if not settings.aws.regions:
        errors.append("At least one AWS region must be configured")

    return errors
