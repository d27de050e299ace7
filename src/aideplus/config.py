"""Configuration loader with YAML parsing, env-var interpolation, and Pydantic validation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from aideplus.errors import ConfigError

DEFAULT_WELCOME_MESSAGE = (
    "Bonjour ! Je suis votre assistant AIDE+. Je peux vous aider à comprendre "
    "les aides sociales en France, vérifier votre éligibilité et vous guider "
    "dans vos démarches. Que souhaitez-vous savoir ?"
)

_ENV_VAR_PATTERN = re.compile(r"\$\{(\w+)\}")


class ApiConfig(BaseModel):
    base_url: str = "http://localhost:5000"
    prefix: str = "/api/v1"
    timeout: float = 60.0

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AuthConfig(BaseModel):
    access_token: Optional[str] = None  # usually "${AIDEPLUS_ACCESS_TOKEN}"

    @field_validator("access_token")
    @classmethod
    def _drop_unresolved(cls, value: Optional[str]) -> Optional[str]:
        # An unset ${VAR} survives interpolation verbatim
        if value is None or not value.strip() or _ENV_VAR_PATTERN.fullmatch(value.strip()):
            return None
        return value.strip()


class ChatConfig(BaseModel):
    welcome_message: str = DEFAULT_WELCOME_MESSAGE
    error_message: str = "Désolé, une erreur est survenue. Veuillez réessayer."
    send_failed_message: str = "Impossible d'envoyer le message."
    max_message_length: int = Field(default=4000, gt=0)
    history_page_size: int = Field(default=50, gt=0, le=100)


class AppConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"
    api: ApiConfig = Field(default_factory=ApiConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)


def _interpolate_env_vars(text: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""

    def _replace(match: re.Match) -> str:
        value = os.environ.get(match.group(1))
        if value is None:
            return match.group(0)
        return value

    return _ENV_VAR_PATTERN.sub(_replace, text)


def load_config(config_path: str | Path = "config.yaml", env_path: str | Path = ".env") -> AppConfig:
    """Load and validate configuration from YAML file with env-var interpolation."""
    env_file = Path(env_path)
    if env_file.exists():
        load_dotenv(env_file)

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    interpolated = _interpolate_env_vars(config_file.read_text(encoding="utf-8"))
    try:
        data = yaml.safe_load(interpolated) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {config_file} must be a mapping")

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
