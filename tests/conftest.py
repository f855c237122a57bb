"""
Pytest configuration and shared fixtures for debug attach service tests.

This file provides:
- Custom markers
- Settings tuned so retry and poll loops finish in milliseconds
- Fake process tables, workspaces and IDE executables on disk
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from attach.process_locator import ProcessCandidate
from core.settings import Settings

# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with every delay shrunk so loops run instantly."""
    return Settings(
        LOCATOR_RETRY_DELAY_MS=1,
        DRIVER_POLL_INTERVAL_MS=1,
        DRIVER_MAX_WAIT_MS=20,
        DRIVER_MIN_WAIT_FRESH_MS=6,
        DRIVER_MIN_WAIT_RUNNING_MS=5,
        DRIVER_KEYSTROKE_ENABLED=False,
        DRIVER_KEYSTROKE_DELAY_MS=0,
        DRIVER_CLI_WAIT_S=1.0,
        ATTACH_PROJECT_ROOT=None,
        ATTACH_SYNTHESIZE_SOLUTION=False,
    )


# =============================================================================
# Filesystem Fixtures
# =============================================================================


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    """A Godot C# project directory with a solution file."""
    project = tmp_path / "MyGame"
    project.mkdir()
    (project / "MyGame.sln").write_text("Microsoft Visual Studio Solution File\n", encoding="utf-8")
    (project / "MyGame.csproj").write_text("<Project Sdk=\"Godot.NET.Sdk/4.2.0\" />\n", encoding="utf-8")
    return project


@pytest.fixture
def fake_ide(tmp_path: Path) -> Path:
    """An empty file standing in for an IDE executable."""
    ide_dir = tmp_path / "Microsoft VS Code"
    ide_dir.mkdir()
    exe = ide_dir / "Code.exe"
    exe.write_bytes(b"")
    return exe


# =============================================================================
# Process Table Fixtures
# =============================================================================


@pytest.fixture
def make_candidate() -> Callable[..., ProcessCandidate]:
    """Factory for process rows; ``age`` is seconds before now (None = unknown start time)."""

    def _make(pid: int, name: str, age: float | None = 1.0, cmdline: tuple[str, ...] = ()) -> ProcessCandidate:
        start_time = None if age is None else time.time() - age
        return ProcessCandidate(pid=pid, name=name, start_time=start_time, cmdline=cmdline)

    return _make


@pytest.fixture
def no_sleep() -> Callable[[float], Any]:
    """Async sleep replacement that records nothing and yields once."""

    async def _sleep(_: float) -> None:
        await asyncio.sleep(0)

    return _sleep
