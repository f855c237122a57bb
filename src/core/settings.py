from __future__ import annotations

import ipaddress
import os
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_loopback_host(host: str) -> bool:
    """True for "localhost" or any loopback IP literal (127.0.0.0/8, ::1)."""
    if host.strip().lower() == "localhost":
        return True
    try:
        return ipaddress.ip_address(host.strip()).is_loopback
    except ValueError:
        return False


class Settings(BaseSettings):
    """
    Central application configuration.

    All values can be overridden via environment variables (or a .env file at project root).
    """

    # General project information
    PROJECT_NAME: str = "Debug Attach Service"

    ENV: str = Field(default="dev", description="Environment name (dev|staging|prod)")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    SERVICE_LOG_NAME: str = Field(default="attach.service", description="Python Logger name for the service.")

    # -------------------
    # TCP listener
    # -------------------
    ATTACH_HOST: str = Field(default="127.0.0.1", description="Bind address, must be a loopback address")
    ATTACH_PORT: int = Field(default=47632, description="TCP port for attach requests")
    ATTACH_MAX_REQUEST_BYTES: int = Field(default=65536, description="Upper bound for one request line")
    ATTACH_READ_TIMEOUT_S: float = Field(
        default=0, description="Seconds to wait for the request line (0 = wait for the client)"
    )

    # -------------------
    # Process locator
    # -------------------
    LOCATOR_ENGINE_PATTERN: str = Field(default="godot", description="Case-insensitive engine process name pattern")
    LOCATOR_RUNTIME_HOST_NAMES: str = Field(
        default="dotnet", description="Comma-separated runtime host process names"
    )
    LOCATOR_ENGINE_WINDOW_S: float = Field(default=15.0, description="Recency window for engine processes")
    LOCATOR_HOST_WINDOW_S: float = Field(default=20.0, description="Recency window for runtime host processes")
    LOCATOR_AUTO_RETRIES: int = Field(default=10, description="Auto-detect scan attempts")
    LOCATOR_PID_RETRIES: int = Field(default=5, description="Liveness re-checks for an explicit PID")
    LOCATOR_RETRY_DELAY_MS: int = Field(default=500)
    LOCATOR_EXCLUDE_EDITOR: bool = Field(
        default=True, description="Skip engine processes launched with the editor flag"
    )

    # -------------------
    # IDE / workspace resolution
    # -------------------
    ATTACH_PROJECT_ROOT: str | None = Field(
        default=None, description="Project directory scanned when a request carries no workspace path"
    )
    ATTACH_SYNTHESIZE_SOLUTION: bool = Field(
        default=False, description="Create a .sln from a lone .csproj using the dotnet CLI"
    )
    RESOLVER_PARENT_DEPTH: int = Field(default=4, description="Directories walked up from a PATH launcher")
    DOTNET_PATH: str = Field(default="dotnet")

    # -------------------
    # Attach driver
    # -------------------
    DRIVER_POLL_INTERVAL_MS: int = Field(default=500, gt=0)
    DRIVER_MAX_WAIT_MS: int = Field(default=20000, description="Ceiling for the IDE readiness poll")
    DRIVER_MIN_WAIT_FRESH_MS: int = Field(default=6000, description="Readiness floor when the IDE was not running")
    DRIVER_MIN_WAIT_RUNNING_MS: int = Field(default=5000, description="Readiness floor when the IDE reloads")
    DRIVER_KEYSTROKE_ENABLED: bool = Field(default=True, description="Send the start-debugging key to the IDE")
    DRIVER_KEYSTROKE_ATTEMPTS: int = Field(default=3)
    DRIVER_KEYSTROKE_DELAY_MS: int = Field(default=500)
    DRIVER_CLI_WAIT_S: float = Field(default=5.0, description="Wait for a CLI attach command to return")

    # -------------
    # Pydantic cfg
    # -------------
    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(__file__), "../../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("ATTACH_HOST")
    @classmethod
    def _loopback_only(cls, v: str) -> str:
        if not is_loopback_host(v):
            raise ValueError(f"ATTACH_HOST must be a loopback address, got {v!r}")
        return v.strip()

    @property
    def runtime_host_names(self) -> list[str]:
        return [name.strip().lower() for name in self.LOCATOR_RUNTIME_HOST_NAMES.split(",") if name.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached accessor so we don't parse .env multiple times.
    """
    return Settings()
