"""
Synthetic "start debugging" input for IDE windows.

This is best effort by nature: the window may not own input focus yet, the
platform may not allow synthetic input at all. Callers log failures and move on.
"""

from __future__ import annotations

import subprocess
import sys
from abc import ABC, abstractmethod

from core.logging import logger_driver as logger
from core.settings import Settings, get_settings

START_DEBUGGING_KEY = "{F5}"


class KeystrokeSender(ABC):
    """Brings a process' window to the foreground and sends the start-debugging key."""

    available: bool = True

    @abstractmethod
    def send_start_debugging(self, pid: int, display_name: str) -> bool:
        """Return True if the key was dispatched (not whether debugging started)."""


class NullKeystrokeSender(KeystrokeSender):
    available = False

    def send_start_debugging(self, pid: int, display_name: str) -> bool:
        logger.info("Automatic F5 keypress not supported on this platform.")
        logger.info(f"Please press F5 in {display_name} manually to start debugging.")
        return False


class PowerShellKeystrokeSender(KeystrokeSender):
    """Windows: ``AppActivate`` the IDE by PID, wait, then ``SendKeys`` F5."""

    def __init__(self, executable: str = "powershell", timeout_s: float = 10.0, settle_ms: int = 1000) -> None:
        self.executable = executable
        self.timeout_s = timeout_s
        self.settle_ms = settle_ms

    def build_command(self, pid: int) -> list[str]:
        script = (
            "Add-Type -AssemblyName Microsoft.VisualBasic; "
            f"[Microsoft.VisualBasic.Interaction]::AppActivate({int(pid)}); "
            f"Start-Sleep -Milliseconds {self.settle_ms}; "
            "Add-Type -AssemblyName System.Windows.Forms; "
            f"[System.Windows.Forms.SendKeys]::SendWait('{START_DEBUGGING_KEY}')"
        )
        return [self.executable, "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script]

    def send_start_debugging(self, pid: int, display_name: str) -> bool:
        logger.info(f"Sending F5 keypress to {display_name} (PID {pid})...")
        creationflags = getattr(subprocess, "CREATE_NO_WINDOW", 0)
        try:
            proc = subprocess.run(
                self.build_command(pid),
                capture_output=True,
                timeout=self.timeout_s,
                creationflags=creationflags,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Could not send F5 keystroke: {e}")
            return False

        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            logger.warning(f"F5 keystroke script exited with {proc.returncode}: {stderr}")
            return False

        logger.info(f"F5 keypress sent to {display_name}.")
        return True


def default_keystroke_sender(settings: Settings | None = None) -> KeystrokeSender:
    s = settings or get_settings()
    if s.DRIVER_KEYSTROKE_ENABLED and sys.platform == "win32":
        return PowerShellKeystrokeSender()
    return NullKeystrokeSender()
