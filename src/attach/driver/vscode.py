"""
Attach driver for VS Code and compatible editors (Cursor, AntiGravity).

The editor attaches by reading ``.vscode/launch.json``; this driver writes
that file, opens the workspace in the editor, waits for the editor process
and then presses F5 in its window.
"""

from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import psutil

from attach.driver.automation import KeystrokeSender, default_keystroke_sender
from attach.driver.base import AttachDriver, AttachFailure, AttachOutcome
from attach.editors import VSCODE, EditorProfile
from attach.launch_config import write_launch_config
from attach.process_locator import ProcessCandidate, snapshot_processes
from core.logging import logger_driver as logger
from core.settings import Settings


def spawn_detached(args: Sequence[str]) -> None:
    """Start a process without waiting for it or inheriting our stdio."""
    kwargs: dict[str, Any] = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if os.name == "nt":
        kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0
        )
    else:
        kwargs["start_new_session"] = True
    subprocess.Popen(list(args), **kwargs)


class ConfigFileAttachDriver(AttachDriver):
    def __init__(
        self,
        profile: EditorProfile = VSCODE,
        settings: Settings | None = None,
        *,
        keystroke_sender: KeystrokeSender | None = None,
        launcher: Callable[[Sequence[str]], None] = spawn_detached,
        process_lister: Callable[[], list[ProcessCandidate]] = snapshot_processes,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(profile, settings)
        self.keystroke_sender = keystroke_sender or default_keystroke_sender(self.settings)
        self._launcher = launcher
        self._process_lister = process_lister
        self._sleep = sleep

    def attach(self, pid: int, ide_path: str, workspace_path: str) -> AttachOutcome:
        try:
            invalid = self._check_ide_path(ide_path)
            if invalid is not None:
                return invalid

            if not workspace_path or not os.path.exists(workspace_path):
                return AttachOutcome.fail(
                    AttachFailure.WORKSPACE_NOT_FOUND, f"Workspace path not found: {workspace_path}"
                )

            # A solution file stands for the directory it lives in
            workspace_dir = Path(workspace_path)
            if workspace_dir.is_file():
                workspace_dir = workspace_dir.parent
            logger.info(f"Workspace path: {workspace_dir}")

            config_path = write_launch_config(workspace_dir, pid)
            logger.info(f"Created launch.json at: {config_path}")

            existing_pids = {c.pid for c in self._ide_processes()}

            args = [ide_path, str(workspace_dir), "--reuse-window"]
            logger.info(f"Opening workspace: {' '.join(args)}")
            self._launcher(args)

            ide_pid = self._wait_for_ide(existing_pids)
            if ide_pid is None:
                logger.error(f"{self.display_name} process not found after waiting")
                return AttachOutcome.success(
                    f"{self.display_name} process not found after waiting; "
                    f"press F5 in {self.display_name} to start debugging manually"
                )

            self._trigger_start_debugging(ide_pid)
            return AttachOutcome.success()
        except Exception as e:
            logger.exception(f"{self.display_name} attach failed")
            return AttachOutcome.fail(AttachFailure.EXCEPTION, f"Exception: {e}")

    def _ide_processes(self) -> list[ProcessCandidate]:
        try:
            return [c for c in self._process_lister() if self.profile.matches_process(c.name)]
        except (psutil.Error, OSError) as e:
            logger.warning(f"Could not list {self.display_name} processes: {e}")
            return []

    def _wait_for_ide(self, existing_pids: set[int]) -> int | None:
        """
        Poll until an editor process exists and the minimum settle time has passed.

        A process that was not running before the launch is preferred; otherwise
        an existing window that reloaded the workspace is used.
        """
        s = self.settings
        was_running = bool(existing_pids)
        interval_ms = s.DRIVER_POLL_INTERVAL_MS
        min_wait_ms = s.DRIVER_MIN_WAIT_RUNNING_MS if was_running else s.DRIVER_MIN_WAIT_FRESH_MS
        logger.info(f"Waiting for {self.display_name} to be ready...")

        waited_ms = 0
        ide_pid: int | None = None
        while waited_ms < s.DRIVER_MAX_WAIT_MS:
            self._sleep(interval_ms / 1000.0)
            waited_ms += interval_ms

            processes = self._ide_processes()
            if not processes:
                continue

            fresh = [c for c in processes if c.pid not in existing_pids]
            ide_pid = (fresh or processes)[0].pid

            if waited_ms >= min_wait_ms:
                logger.info(
                    f"{self.display_name} ready after {waited_ms}ms "
                    f"(PID: {ide_pid}, was running: {was_running})"
                )
                break

        return ide_pid

    def _trigger_start_debugging(self, ide_pid: int) -> None:
        sender = self.keystroke_sender
        if not sender.available:
            sender.send_start_debugging(ide_pid, self.display_name)
            return

        attempts = max(1, self.settings.DRIVER_KEYSTROKE_ATTEMPTS)
        delay_s = self.settings.DRIVER_KEYSTROKE_DELAY_MS / 1000.0
        for attempt in range(1, attempts + 1):
            try:
                sender.send_start_debugging(ide_pid, self.display_name)
            except Exception as e:
                logger.warning(f"Start-debugging keystroke {attempt}/{attempts} failed: {e}")
            if attempt < attempts:
                self._sleep(delay_s)
