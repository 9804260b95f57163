"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from hookshell.config.settings import (
    DEFAULT_ALLOW_REGEX,
    ConfigError,
    ExecutionConfig,
    ParamsConfig,
    Settings,
    load_settings,
)


class TestSettings:
    def test_default_settings(self) -> None:
        """Default Settings should be valid."""
        settings = Settings()
        assert settings.server.port == 4870
        assert settings.server.host == "127.0.0.1"
        assert settings.access.enabled is True
        assert settings.access.allowed_ips == ["127.0.0.1"]
        assert settings.rate_limit.max_requests == 10
        assert settings.params.enabled is False
        assert settings.params.allow_regex == DEFAULT_ALLOW_REGEX
        assert settings.response.verbose is False

    def test_params_defaults(self) -> None:
        config = ParamsConfig()
        assert config.stop_on_error is True
        assert config.body_param == "$body"

    def test_execution_defaults(self) -> None:
        config = ExecutionConfig()
        assert config.shell == "bash"
        assert config.timeout is None
        assert config.max_concurrency == 0

    def test_allowed_ips_are_stripped(self) -> None:
        settings = Settings(access={"allowed_ips": [" 1.1.1.1 ", "", "2.2.2.2"]})
        assert settings.access.allowed_ips == ["1.1.1.1", "2.2.2.2"]


class TestLoadSettings:
    def test_load_settings_missing_file(self, tmp_path: Path) -> None:
        """load_settings with missing file should return defaults."""
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 4870

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "hookshell.yaml"
        path.write_text(
            "server:\n  port: 9000\n"
            "rate_limit:\n  max_requests: 0\n"
            "params:\n  enabled: true\n"
        )
        settings = load_settings(path)
        assert settings.server.port == 9000
        assert settings.rate_limit.max_requests == 0
        assert settings.params.enabled is True

    def test_overrides_merge_with_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "hookshell.yaml"
        path.write_text("server:\n  port: 9000\n  host: 0.0.0.0\n")
        settings = load_settings(path, {"server": {"port": 9100}})
        assert settings.server.port == 9100
        assert settings.server.host == "0.0.0.0"

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOOKSHELL_SERVER__PORT", "5555")
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 5555

    def test_invalid_regex(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="params.allow_regex"):
            load_settings(tmp_path / "none.yaml", {"params": {"allow_regex": "[unclosed"}})

    def test_body_param_needs_dollar(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="body_param"):
            load_settings(tmp_path / "none.yaml", {"params": {"body_param": "body"}})

    def test_negative_rate_limit(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="max_requests"):
            load_settings(tmp_path / "none.yaml", {"rate_limit": {"max_requests": -1}})

    def test_yaml_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("server: [unterminated\n")
        with pytest.raises(ConfigError, match="cannot read"):
            load_settings(path)

    def test_yaml_beats_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOOKSHELL_RATE_LIMIT__MAX_REQUESTS", "20")
        monkeypatch.setenv("HOOKSHELL_SERVER__PORT", "5555")
        path = tmp_path / "hookshell.yaml"
        path.write_text("rate_limit:\n  max_requests: 3\n")
        settings = load_settings(path)
        assert settings.rate_limit.max_requests == 3
        # Sections the file leaves out still come from the environment
        assert settings.server.port == 5555
