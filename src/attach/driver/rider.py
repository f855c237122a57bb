"""
Attach driver for JetBrains Rider.

Rider has a native command for this:
``rider attach-to-process netcore <pid> <solution>``.
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from attach.driver.base import AttachDriver, AttachFailure, AttachOutcome
from attach.editors import RIDER, EditorProfile
from core.logging import logger_driver as logger
from core.settings import Settings

DEBUGGER_KEY = "netcore"


def _spawn_piped(args: Sequence[str]) -> subprocess.Popen:
    return subprocess.Popen(list(args), stdout=subprocess.PIPE, stderr=subprocess.PIPE, stdin=subprocess.DEVNULL)


class CliAttachDriver(AttachDriver):
    def __init__(
        self,
        profile: EditorProfile = RIDER,
        settings: Settings | None = None,
        *,
        runner: Callable[[Sequence[str]], subprocess.Popen] = _spawn_piped,
    ) -> None:
        super().__init__(profile, settings)
        self._runner = runner

    @staticmethod
    def _solution_file(workspace_path: str) -> Path | None:
        if not workspace_path:
            return None
        path = Path(workspace_path)
        if path.is_file():
            return path
        if path.is_dir():
            solutions = sorted(path.glob("*.sln"))
            return solutions[0] if solutions else None
        return None

    def build_command(self, ide_path: str, pid: int, solution: Path) -> list[str]:
        return [ide_path, "attach-to-process", DEBUGGER_KEY, str(pid), str(solution)]

    def attach(self, pid: int, ide_path: str, workspace_path: str) -> AttachOutcome:
        try:
            invalid = self._check_ide_path(ide_path)
            if invalid is not None:
                return invalid

            solution = self._solution_file(workspace_path)
            if solution is None:
                return AttachOutcome.fail(
                    AttachFailure.WORKSPACE_NOT_FOUND, f"Solution file not found at: {workspace_path}"
                )

            args = self.build_command(ide_path, pid, solution)
            logger.info(f"Executing: {' '.join(args)}")
            process = self._runner(args)

            try:
                stdout, stderr = process.communicate(timeout=self.settings.DRIVER_CLI_WAIT_S)
            except subprocess.TimeoutExpired:
                # Rider keeps the launcher alive while it opens the solution
                logger.info(f"{self.display_name} is still processing the attach command")
                return AttachOutcome.success()

            if stderr:
                # Not fatal, Rider may still have attached
                logger.warning(f"{self.display_name} stderr: {stderr.decode('utf-8', errors='replace').strip()}")
            if stdout:
                logger.info(f"{self.display_name} stdout: {stdout.decode('utf-8', errors='replace').strip()}")

            logger.info(f"Attach command sent to {self.display_name}")
            return AttachOutcome.success()
        except Exception as e:
            logger.exception(f"{self.display_name} attach failed")
            return AttachOutcome.fail(AttachFailure.EXCEPTION, f"Exception: {e}")
