"""
Editor profiles.

VS Code, Cursor and AntiGravity share one attach recipe and differ only in
process name, display name, launcher script and install locations, so they
are data rather than separate classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath

from core.logging import logger_service as logger

# (environment variable or None for an absolute path, *path parts)
InstallCandidate = tuple[str | None, ...]


class EditorFamily(str, Enum):
    CONFIG_FILE = "config-file"
    CLI_ATTACH = "cli-attach"


@dataclass(frozen=True)
class EditorProfile:
    identity: str
    display_name: str
    family: EditorFamily
    process_names: tuple[str, ...]
    launcher_names: tuple[str, ...]
    executable_names: tuple[str, ...]
    install_candidates: tuple[InstallCandidate, ...] = ()
    # Directories searched recursively for one of executable_names
    search_roots: tuple[InstallCandidate, ...] = ()
    aliases: tuple[str, ...] = field(default_factory=tuple)

    def matches_process(self, name: str) -> bool:
        name = name.lower()
        if name.endswith(".exe"):
            name = name[:-4]
        return name in {p.lower() for p in self.process_names}


VSCODE = EditorProfile(
    identity="vscode",
    display_name="VS Code",
    family=EditorFamily.CONFIG_FILE,
    process_names=("Code",),
    launcher_names=("code.cmd", "code"),
    executable_names=("Code.exe", "code"),
    install_candidates=(
        ("LOCALAPPDATA", "Programs", "Microsoft VS Code", "Code.exe"),
        ("PROGRAMFILES", "Microsoft VS Code", "Code.exe"),
        ("PROGRAMFILES(X86)", "Microsoft VS Code", "Code.exe"),
        (None, "/Applications/Visual Studio Code.app/Contents/Resources/app/bin/code"),
        (None, "/usr/share/code/code"),
        (None, "/usr/bin/code"),
        (None, "/snap/bin/code"),
    ),
    aliases=("code", "vs code", "visualstudiocode"),
)

CURSOR = EditorProfile(
    identity="cursor",
    display_name="Cursor",
    family=EditorFamily.CONFIG_FILE,
    process_names=("Cursor",),
    launcher_names=("cursor.cmd", "cursor"),
    executable_names=("Cursor.exe", "cursor"),
    install_candidates=(
        ("LOCALAPPDATA", "Programs", "cursor", "Cursor.exe"),
        ("LOCALAPPDATA", "Programs", "Cursor", "Cursor.exe"),
        ("PROGRAMFILES", "Cursor", "Cursor.exe"),
        (None, "/Applications/Cursor.app/Contents/Resources/app/bin/cursor"),
        (None, "/usr/share/cursor/cursor"),
        (None, "/usr/bin/cursor"),
    ),
)

ANTIGRAVITY = EditorProfile(
    identity="antigravity",
    display_name="AntiGravity",
    family=EditorFamily.CONFIG_FILE,
    process_names=("Antigravity",),
    launcher_names=("antigravity.cmd", "antigravity"),
    executable_names=("Antigravity.exe", "antigravity"),
    install_candidates=(
        ("LOCALAPPDATA", "Programs", "AntiGravity", "Antigravity.exe"),
        ("LOCALAPPDATA", "Programs", "antigravity", "Antigravity.exe"),
        ("PROGRAMFILES", "AntiGravity", "Antigravity.exe"),
        (None, "/Applications/Antigravity.app/Contents/Resources/app/bin/antigravity"),
        (None, "/usr/share/antigravity/antigravity"),
        (None, "/usr/bin/antigravity"),
    ),
)

RIDER = EditorProfile(
    identity="rider",
    display_name="Rider",
    family=EditorFamily.CLI_ATTACH,
    process_names=("rider64", "rider"),
    launcher_names=("rider.cmd", "rider"),
    executable_names=("rider64.exe", "rider.sh", "rider"),
    install_candidates=(
        (None, "/Applications/Rider.app/Contents/MacOS/rider"),
        (None, "/snap/bin/rider"),
    ),
    search_roots=(
        ("LOCALAPPDATA", "JetBrains", "Toolbox", "apps", "Rider"),
        ("PROGRAMFILES", "JetBrains"),
        ("PROGRAMFILES(X86)", "JetBrains"),
    ),
    aliases=("jetbrains-rider",),
)

PROFILES: dict[str, EditorProfile] = {p.identity: p for p in (VSCODE, CURSOR, ANTIGRAVITY, RIDER)}


def get_profile(editor: str | None) -> EditorProfile:
    """Map an editor identity (case-insensitive) to its profile; unknown identities fall back to VS Code."""
    key = (editor or "").strip().lower()
    if key in PROFILES:
        return PROFILES[key]
    for profile in PROFILES.values():
        if key in profile.aliases:
            return profile

    logger.warning(f"Unknown editor '{editor}', defaulting to {VSCODE.display_name}")
    return VSCODE


def profile_for_executable(path: str, default: EditorProfile = VSCODE) -> EditorProfile:
    """Guess the config-file profile from an executable's file name (``Cursor.exe`` -> Cursor)."""
    stem = PurePath(path.replace("\\", "/")).stem.lower()
    for profile in (CURSOR, ANTIGRAVITY, VSCODE):
        if stem in {n.lower() for n in profile.process_names}:
            return profile
    return default
