"""Configuration management for hookshell.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable and command-line overrides.
"""

from hookshell.config.settings import ConfigError, Settings, load_settings

__all__ = ["ConfigError", "Settings", "load_settings"]
