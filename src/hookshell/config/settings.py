"""Configuration management for hookshell.

Loads settings from an optional YAML configuration file, environment
variables (``HOOKSHELL_`` prefix, ``__`` for nested sections) and
command-line overrides, then validates everything with Pydantic models.
Any validation failure surfaces as a ConfigError so startup can abort
before the listening socket is bound.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/hookshell.yaml")
DEFAULT_ALLOW_REGEX = r"^[ a-zA-Z0-9/-]*$"


class ConfigError(Exception):
    """Raised when the configuration or route table is unusable."""


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=4870, ge=1, le=65535)
    allow_post: bool = Field(default=True, description="Accept POST in addition to GET")


class AccessConfig(BaseModel):
    enabled: bool = Field(default=True, description="Filter callers by address")
    allowed_ips: list[str] = Field(default_factory=lambda: ["127.0.0.1"])

    @field_validator("allowed_ips")
    @classmethod
    def _strip_addresses(cls, value: list[str]) -> list[str]:
        return [ip.strip() for ip in value if ip.strip()]


class RoutesConfig(BaseModel):
    file: Path | None = Field(default=None, description="CSV file of path,command rows")
    static_command: str | None = Field(
        default=None, description="Single command served at static_path; overrides file"
    )
    static_path: str = Field(default="/do")
    strict: bool = Field(default=False, description="Malformed rows abort startup")


class RateLimitConfig(BaseModel):
    max_requests: int = Field(default=10, ge=0, description="Per path per minute, 0 = unlimited")
    shared_window: bool = Field(
        default=False, description="One window deadline for all paths (legacy behaviour)"
    )


class ParamsConfig(BaseModel):
    enabled: bool = Field(default=False, description="Replace $name tokens with request values")
    allow_regex: str = Field(default=DEFAULT_ALLOW_REGEX)
    stop_on_error: bool = Field(default=True, description="Reject the request on a bad parameter")
    body_param: str = Field(default="$body", description="Name the POST body is exposed as")

    @field_validator("allow_regex")
    @classmethod
    def _compile_regex(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid allow regex {value!r}: {e}") from e
        return value

    @field_validator("body_param")
    @classmethod
    def _dollar_prefixed(cls, value: str) -> str:
        if not value.startswith("$") or len(value) < 2:
            raise ValueError("body_param must be a $-prefixed name")
        return value


class ExecutionConfig(BaseModel):
    shell: str = Field(default="bash")
    timeout: float | None = Field(default=None, gt=0, description="Seconds before the command is killed")
    pipe_body: bool = Field(default=False, description="Stream POST body to the command's stdin")
    combine_output: bool = Field(default=False, description="Merge stderr into stdout")
    max_concurrency: int = Field(default=0, ge=0, description="Concurrent commands, 0 = unbounded")


class ResponseConfig(BaseModel):
    verbose: bool = Field(default=False, description="Return command output instead of OK/ERR")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the hookshell gateway.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "HOOKSHELL_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    server: ServerConfig = Field(default_factory=ServerConfig)
    access: AccessConfig = Field(default_factory=AccessConfig)
    routes: RoutesConfig = Field(default_factory=RoutesConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    params: ParamsConfig = Field(default_factory=ParamsConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    response: ResponseConfig = Field(default_factory=ResponseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(
    config_path: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from YAML + environment + explicit overrides.

    Priority: overrides > YAML file > env vars > defaults. Explicitly
    passed values win over the environment in pydantic-settings, so the
    CLI flags folded into ``overrides`` always take effect.

    Raises:
        ConfigError: If the YAML file is unreadable or any value fails
            validation.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if path.exists():
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
        logger.info("Loaded configuration from %s", path)
    elif config_path:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _merge(data, overrides or {})

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(_describe(e)) from e


def _merge(base: dict[str, Any], extra: dict[str, Any]) -> None:
    """Recursively merge ``extra`` into ``base`` in place."""
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "invalid configuration: " + "; ".join(parts)
