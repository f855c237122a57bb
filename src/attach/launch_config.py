"""
The ``.vscode/launch.json`` that config-file editors read to attach the
.NET debugger. Its shape is consumed by the C# extension and must not drift.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

CONFIG_DIR_NAME = ".vscode"
CONFIG_FILE_NAME = "launch.json"
LAUNCH_CONFIG_VERSION = "0.2.0"
ATTACH_CONFIGURATION_NAME = ".NET Attach (Godot)"


def build_launch_config(pid: int) -> dict[str, Any]:
    return {
        "version": LAUNCH_CONFIG_VERSION,
        "configurations": [
            {
                "name": ATTACH_CONFIGURATION_NAME,
                "type": "coreclr",
                "request": "attach",
                "processId": str(pid),
            }
        ],
    }


def launch_config_path(workspace_dir: str | Path) -> Path:
    return Path(workspace_dir) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def write_launch_config(workspace_dir: str | Path, pid: int) -> Path:
    """Create ``<workspace>/.vscode/`` if needed and overwrite ``launch.json`` for ``pid``."""
    path = launch_config_path(workspace_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(build_launch_config(pid), indent=2) + "\n", encoding="utf-8")
    return path
