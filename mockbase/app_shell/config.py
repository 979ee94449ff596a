"""
Configuration for the mock backend.

Settings come from an optional YAML file, then MOCKBASE_* environment
variables (MOCKBASE_LATENCY_MS=250, MOCKBASE_SECURE_BACKEND=memory, ...),
then pydantic validation. An invalid configuration is the one hard failure:
load_settings raises ConfigError.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from cryptography.fernet import Fernet
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mockbase.adapters.storage.encrypted import DEFAULT_OBFUSCATION_SECRET

ENV_PREFIX = "MOCKBASE_"
DEFAULT_CONFIG_FILE = "mockbase.yaml"


class ConfigError(ValueError):
    """Configuration file or environment could not be turned into settings."""


class BackendSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    storage_dir: str = ".mockbase"
    secure_backend: Literal["auto", "keyring", "encrypted", "memory"] = "auto"
    plain_backend: Literal["file", "memory"] = "file"
    keyring_service: str = "mockbase"
    encryption_key: str | None = None
    obfuscation_secret: str = DEFAULT_OBFUSCATION_SECRET
    latency_ms: int = Field(default=0, ge=0)
    require_email_confirmation: bool = False
    min_password_length: int = Field(default=1, ge=0)
    dev_mode: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("encryption_key")
    @classmethod
    def _check_fernet_key(cls, value: str | None) -> str | None:
        if value:
            try:
                Fernet(value.encode("utf-8"))
            except ValueError as e:
                raise ValueError("encryption_key is not a valid Fernet key") from e
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


_YAML_FENCE = re.compile(
    r"^[ \t]*```yaml[^\n]*\n(.*?)(?:^[ \t]*```|\Z)", re.DOTALL | re.MULTILINE
)


def _strip_yaml_fence(content: str) -> str:
    """Return the first ```yaml block if there is one, else the whole text."""
    match = _YAML_FENCE.search(content)
    return match.group(1) if match else content


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(_strip_yaml_fence(content))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in config file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    fields = BackendSettings.model_fields
    overrides = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX) :].lower()
        if name in fields:
            overrides[name] = value
    return overrides


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BackendSettings:
    """
    Load settings from YAML plus environment.

    Args:
        path: Config file. When None, ./mockbase.yaml is used if it exists.
            An explicit path that does not exist is an error.
        environ: Environment mapping (os.environ by default)

    Raises:
        ConfigError: unreadable file, bad YAML or failed validation
    """
    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found at: {config_path}")
        data = _read_yaml(config_path)
    elif Path(DEFAULT_CONFIG_FILE).exists():
        data = _read_yaml(Path(DEFAULT_CONFIG_FILE))

    data.update(_env_overrides(os.environ if environ is None else environ))

    try:
        return BackendSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Settings validation failed:\n{e}") from e


def configure_logging(settings: BackendSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
