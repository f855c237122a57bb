"""Unit tests for launch.json generation."""

from __future__ import annotations

import json

import pytest

from attach.launch_config import build_launch_config, launch_config_path, write_launch_config


@pytest.mark.unit
def test_build_launch_config_shape() -> None:
    config = build_launch_config(4242)

    assert config == {
        "version": "0.2.0",
        "configurations": [
            {
                "name": ".NET Attach (Godot)",
                "type": "coreclr",
                "request": "attach",
                "processId": "4242",
            }
        ],
    }


@pytest.mark.unit
def test_write_creates_config_dir(tmp_path) -> None:
    path = write_launch_config(tmp_path, 17)

    assert path == tmp_path / ".vscode" / "launch.json"
    assert path == launch_config_path(tmp_path)
    assert json.loads(path.read_text(encoding="utf-8"))["configurations"][0]["processId"] == "17"


@pytest.mark.unit
def test_write_overwrites_previous_config(tmp_path) -> None:
    (tmp_path / ".vscode").mkdir()
    (tmp_path / ".vscode" / "launch.json").write_text('{"configurations": [{"name": "old"}, {"name": "older"}]}')

    write_launch_config(tmp_path, 1)
    path = write_launch_config(tmp_path, 2)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert len(data["configurations"]) == 1
    assert data["configurations"][0]["processId"] == "2"


@pytest.mark.unit
def test_written_file_is_indented_with_trailing_newline(tmp_path) -> None:
    text = write_launch_config(str(tmp_path), 5).read_text(encoding="utf-8")

    assert text.endswith("}\n")
    assert '\n  "version": "0.2.0"' in text
