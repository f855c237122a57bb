"""Unit tests for core settings module."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def isolate_settings():
    """Isolate each test by clearing Settings cache."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.unit
def test_settings_defaults() -> None:
    """Test that Settings model fields have correct default values defined."""
    assert Settings.model_fields["PROJECT_NAME"].default == "Debug Attach Service"
    assert Settings.model_fields["ENV"].default == "dev"
    assert Settings.model_fields["LOG_LEVEL"].default == "INFO"
    assert Settings.model_fields["SERVICE_LOG_NAME"].default == "attach.service"


@pytest.mark.unit
def test_settings_server_defaults() -> None:
    """Test TCP listener default values."""
    assert Settings.model_fields["ATTACH_HOST"].default == "127.0.0.1"
    assert Settings.model_fields["ATTACH_PORT"].default == 47632
    assert Settings.model_fields["ATTACH_MAX_REQUEST_BYTES"].default == 65536
    assert Settings.model_fields["ATTACH_READ_TIMEOUT_S"].default == 0


@pytest.mark.unit
def test_settings_locator_defaults() -> None:
    """Test process locator default values."""
    assert Settings.model_fields["LOCATOR_ENGINE_PATTERN"].default == "godot"
    assert Settings.model_fields["LOCATOR_RUNTIME_HOST_NAMES"].default == "dotnet"
    assert Settings.model_fields["LOCATOR_ENGINE_WINDOW_S"].default == 15.0
    assert Settings.model_fields["LOCATOR_HOST_WINDOW_S"].default == 20.0
    assert Settings.model_fields["LOCATOR_AUTO_RETRIES"].default == 10
    assert Settings.model_fields["LOCATOR_PID_RETRIES"].default == 5
    assert Settings.model_fields["LOCATOR_RETRY_DELAY_MS"].default == 500
    assert Settings.model_fields["LOCATOR_EXCLUDE_EDITOR"].default is True


@pytest.mark.unit
def test_settings_driver_defaults() -> None:
    """Test attach driver timing defaults."""
    assert Settings.model_fields["DRIVER_POLL_INTERVAL_MS"].default == 500
    assert Settings.model_fields["DRIVER_MAX_WAIT_MS"].default == 20000
    assert Settings.model_fields["DRIVER_MIN_WAIT_FRESH_MS"].default == 6000
    assert Settings.model_fields["DRIVER_MIN_WAIT_RUNNING_MS"].default == 5000
    assert Settings.model_fields["DRIVER_KEYSTROKE_ENABLED"].default is True
    assert Settings.model_fields["DRIVER_KEYSTROKE_ATTEMPTS"].default == 3
    assert Settings.model_fields["DRIVER_KEYSTROKE_DELAY_MS"].default == 500


@pytest.mark.unit
def test_settings_from_env_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that environment variables override defaults."""
    monkeypatch.setenv("ATTACH_PORT", "50000")
    monkeypatch.setenv("LOCATOR_ENGINE_PATTERN", "unity")
    monkeypatch.setenv("LOCATOR_RETRY_DELAY_MS", "100")
    monkeypatch.setenv("ATTACH_PROJECT_ROOT", "/games/mygame")

    settings = Settings()

    assert settings.ATTACH_PORT == 50000
    assert settings.LOCATOR_ENGINE_PATTERN == "unity"
    assert settings.LOCATOR_RETRY_DELAY_MS == 100
    assert settings.ATTACH_PROJECT_ROOT == "/games/mygame"


@pytest.mark.unit
def test_settings_case_insensitive(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that environment variables are case-insensitive."""
    monkeypatch.setenv("log_level", "WARNING")
    monkeypatch.setenv("attach_port", "47000")

    settings = Settings()

    assert settings.LOG_LEVEL == "WARNING"
    assert settings.ATTACH_PORT == 47000


@pytest.mark.unit
def test_settings_boolean_values(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test boolean field parsing from environment."""
    monkeypatch.setenv("LOCATOR_EXCLUDE_EDITOR", "false")
    monkeypatch.setenv("DRIVER_KEYSTROKE_ENABLED", "0")
    monkeypatch.setenv("ATTACH_SYNTHESIZE_SOLUTION", "true")

    settings = Settings()

    assert settings.LOCATOR_EXCLUDE_EDITOR is False
    assert settings.DRIVER_KEYSTROKE_ENABLED is False
    assert settings.ATTACH_SYNTHESIZE_SOLUTION is True


@pytest.mark.unit
def test_runtime_host_names_split_and_normalized() -> None:
    """Comma separated host names become a clean lowercase list."""
    settings = Settings(LOCATOR_RUNTIME_HOST_NAMES=" dotnet , Mono,, ")

    assert settings.runtime_host_names == ["dotnet", "mono"]


@pytest.mark.unit
def test_poll_interval_must_be_positive() -> None:
    """A zero poll interval would spin forever and is rejected."""
    with pytest.raises(ValidationError):
        Settings(DRIVER_POLL_INTERVAL_MS=0)


@pytest.mark.unit
def test_get_settings_caching() -> None:
    """Test that get_settings caches the result."""
    settings1 = get_settings()
    settings2 = get_settings()

    assert isinstance(settings1, Settings)
    assert settings1 is settings2


@pytest.mark.unit
def test_get_settings_cache_clear(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test clearing the settings cache."""
    settings1 = get_settings()

    get_settings.cache_clear()
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    settings2 = get_settings()

    assert settings1 is not settings2
    assert settings2.LOG_LEVEL == "ERROR"


@pytest.mark.unit
def test_settings_extra_fields_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that extra environment variables are ignored."""
    monkeypatch.setenv("UNKNOWN_FIELD", "some_value")

    settings = Settings()
    assert settings is not None


@pytest.mark.unit
def test_settings_model_config() -> None:
    """Test that settings model_config is properly configured."""
    config = Settings.model_config

    assert config.get("case_sensitive") is False
    assert config.get("extra") == "ignore"


@pytest.mark.unit
@pytest.mark.parametrize("host", ["127.0.0.1", "127.0.0.2", "::1", "localhost", "LOCALHOST"])
def test_loopback_hosts_accepted(host: str) -> None:
    assert Settings(ATTACH_HOST=host).ATTACH_HOST == host


@pytest.mark.unit
@pytest.mark.parametrize("host", ["0.0.0.0", "::", "192.168.1.10", "example.com"])
def test_non_loopback_host_rejected(host: str) -> None:
    with pytest.raises(ValidationError, match="loopback"):
        Settings(ATTACH_HOST=host)


@pytest.mark.unit
def test_non_loopback_host_rejected_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ATTACH_HOST", "0.0.0.0")

    with pytest.raises(ValidationError):
        Settings()
