"""Unit tests for the Rider CLI attach driver."""

from __future__ import annotations

import subprocess
from unittest.mock import Mock

import pytest

from attach.driver.base import AttachFailure
from attach.driver.rider import CliAttachDriver


@pytest.fixture
def rider_exe(tmp_path):
    exe = tmp_path / "JetBrains Rider" / "bin" / "rider64.exe"
    exe.parent.mkdir(parents=True)
    exe.write_bytes(b"")
    return exe


def _process(stdout: bytes = b"", stderr: bytes = b"", timeout: bool = False) -> Mock:
    proc = Mock()
    if timeout:
        proc.communicate.side_effect = subprocess.TimeoutExpired(cmd="rider", timeout=1.0)
    else:
        proc.communicate.return_value = (stdout, stderr)
    return proc


@pytest.mark.unit
def test_attach_runs_attach_to_process(fast_settings, rider_exe, workspace_dir) -> None:
    runner = Mock(return_value=_process())
    driver = CliAttachDriver(settings=fast_settings, runner=runner)

    outcome = driver.attach(4242, str(rider_exe), str(workspace_dir))

    assert outcome.ok is True
    runner.assert_called_once_with(
        [str(rider_exe), "attach-to-process", "netcore", "4242", str(workspace_dir / "MyGame.sln")]
    )
    runner.return_value.communicate.assert_called_once_with(timeout=fast_settings.DRIVER_CLI_WAIT_S)


@pytest.mark.unit
def test_solution_file_used_as_is(fast_settings, rider_exe, workspace_dir) -> None:
    runner = Mock(return_value=_process())
    driver = CliAttachDriver(settings=fast_settings, runner=runner)
    solution = workspace_dir / "MyGame.sln"

    driver.attach(1, str(rider_exe), str(solution))

    assert runner.call_args[0][0][-1] == str(solution)


@pytest.mark.unit
def test_directory_without_solution_fails(fast_settings, rider_exe, tmp_path) -> None:
    runner = Mock()
    driver = CliAttachDriver(settings=fast_settings, runner=runner)

    outcome = driver.attach(1, str(rider_exe), str(tmp_path))

    assert outcome.failure is AttachFailure.WORKSPACE_NOT_FOUND
    assert outcome.detail == f"Solution file not found at: {tmp_path}"
    runner.assert_not_called()


@pytest.mark.unit
def test_missing_rider_fails(fast_settings, tmp_path, workspace_dir) -> None:
    runner = Mock()
    driver = CliAttachDriver(settings=fast_settings, runner=runner)

    outcome = driver.attach(1, str(tmp_path / "rider64.exe"), str(workspace_dir))

    assert outcome.failure is AttachFailure.IDE_EXECUTABLE_NOT_FOUND
    assert outcome.detail.startswith("IDE executable not found at:")
    runner.assert_not_called()


@pytest.mark.unit
def test_slow_rider_still_counts_as_initiated(fast_settings, rider_exe, workspace_dir) -> None:
    driver = CliAttachDriver(settings=fast_settings, runner=Mock(return_value=_process(timeout=True)))

    assert driver.attach(1, str(rider_exe), str(workspace_dir)).ok is True


@pytest.mark.unit
def test_stderr_output_is_not_fatal(fast_settings, rider_exe, workspace_dir) -> None:
    proc = _process(stdout=b"Attaching...\n", stderr=b"WARN: indexing\n")
    driver = CliAttachDriver(settings=fast_settings, runner=Mock(return_value=proc))

    assert driver.attach(1, str(rider_exe), str(workspace_dir)).ok is True


@pytest.mark.unit
def test_spawn_failure_becomes_exception_outcome(fast_settings, rider_exe, workspace_dir) -> None:
    driver = CliAttachDriver(settings=fast_settings, runner=Mock(side_effect=OSError("exec format error")))

    outcome = driver.attach(1, str(rider_exe), str(workspace_dir))

    assert outcome.failure is AttachFailure.EXCEPTION
    assert outcome.detail == "Exception: exec format error"


@pytest.mark.unit
def test_display_name(fast_settings) -> None:
    assert CliAttachDriver(settings=fast_settings).display_name == "Rider"
