"""
Find the IDE executable and the workspace/solution for an attach request.

Nothing here is fatal: every lookup returns an empty string when it comes up
empty and the caller decides whether that ends the request.
"""

from __future__ import annotations

import os
import shlex
import subprocess
from collections.abc import Mapping
from pathlib import Path

from attach.editors import EditorProfile, InstallCandidate, get_profile
from core.logging import logger_service as logger
from core.settings import Settings, get_settings

SOLUTION_GLOB = "*.sln"
PROJECT_GLOB = "*.csproj"


class IdeResolver:
    def __init__(self, settings: Settings | None = None, *, environ: Mapping[str, str] | None = None) -> None:
        self.settings = settings or get_settings()
        self.environ = os.environ if environ is None else environ

    # ------------------------------------------------------------------
    # IDE executable
    # ------------------------------------------------------------------

    def resolve_path(self, editor: str | None, explicit_path: str | None = None) -> str:
        """
        Return the IDE executable path for ``editor`` or "" if it cannot be found.

        An explicit path that exists is returned verbatim without probing.
        """
        if explicit_path and os.path.isfile(explicit_path):
            return explicit_path

        profile = get_profile(editor)
        logger.info(f"Auto-detecting {profile.display_name} installation...")

        path = (
            self._from_install_candidates(profile)
            or self._from_search_roots(profile)
            or self._from_path_launcher(profile)
        )
        if path:
            logger.info(f"Auto-detected IDE path: {path}")
        else:
            logger.warning(f"Could not find {profile.display_name} on this machine")
        return path

    def _expand(self, candidate: InstallCandidate) -> Path | None:
        env_var, *parts = candidate
        if env_var is None:
            return Path(*parts)  # type: ignore[arg-type]
        base = self.environ.get(env_var, "")
        if not base:
            return None
        return Path(base, *parts)  # type: ignore[arg-type]

    def _from_install_candidates(self, profile: EditorProfile) -> str:
        for candidate in profile.install_candidates:
            path = self._expand(candidate)
            if path is not None and path.is_file():
                return str(path)
        return ""

    def _from_search_roots(self, profile: EditorProfile) -> str:
        for root in profile.search_roots:
            base = self._expand(root)
            if base is None or not base.is_dir():
                continue
            for exe_name in profile.executable_names:
                try:
                    matches = sorted(p for p in base.rglob(exe_name) if p.is_file())
                except OSError as e:
                    logger.debug(f"Skipping {base}: {e}")
                    break
                if matches:
                    return str(matches[0])
        return ""

    def _from_path_launcher(self, profile: EditorProfile) -> str:
        """
        Look for the launcher script on PATH and walk up to the real executable.

        Editors install a thin launcher in ``<install>/bin`` while the binary
        lives one or more levels above it.
        """
        depth = self.settings.RESOLVER_PARENT_DEPTH
        for raw_dir in self.environ.get("PATH", "").split(os.pathsep):
            directory = raw_dir.strip().strip('"')
            if not directory:
                continue
            for launcher_name in profile.launcher_names:
                launcher = Path(directory, launcher_name)
                try:
                    if not launcher.is_file():
                        continue
                    launcher = launcher.resolve()
                except OSError:
                    continue

                found = self._walk_up_for_executable(launcher, profile, depth)
                if found:
                    return found
        return ""

    @staticmethod
    def _walk_up_for_executable(launcher: Path, profile: EditorProfile, depth: int) -> str:
        current: Path | None = launcher.parent
        for _ in range(depth):
            if current is None:
                break
            for exe_name in profile.executable_names:
                candidate = current / exe_name
                if candidate.is_file() and candidate != launcher:
                    return str(candidate)
            current = current.parent if current.parent != current else None
        return ""

    # ------------------------------------------------------------------
    # Workspace / solution
    # ------------------------------------------------------------------

    def resolve_workspace(
        self,
        workspace_path: str | None = None,
        project_root: str | None = None,
        synthesize: bool | None = None,
    ) -> str:
        """
        Return the workspace (solution file or project directory) or "".

        A supplied path that exists wins. Otherwise the project root is scanned
        for a ``.sln``; if only a ``.csproj`` is present a solution can be
        generated in the background with the dotnet CLI.
        """
        if workspace_path:
            if os.path.exists(workspace_path):
                return workspace_path
            logger.warning(f"Workspace path does not exist: {workspace_path}")

        root_str = project_root or self.settings.ATTACH_PROJECT_ROOT
        if not root_str:
            return workspace_path or ""
        root = Path(root_str)
        if not root.is_dir():
            logger.warning(f"Project root is not a directory: {root}")
            return workspace_path or ""

        solutions = sorted(root.glob(SOLUTION_GLOB))
        if solutions:
            logger.info(f"Found solution file: {solutions[0]}")
            return str(solutions[0])

        if synthesize is None:
            synthesize = self.settings.ATTACH_SYNTHESIZE_SOLUTION
        projects = sorted(root.glob(PROJECT_GLOB))
        if projects and synthesize:
            self.synthesize_solution(root, projects[0])

        return str(root)

    def synthesize_solution(self, root: Path, project: Path) -> bool:
        """
        Fire-and-forget ``dotnet new sln`` followed by ``dotnet sln add``.

        Returns whether the build tool could be started; its outcome is not awaited.
        """
        dotnet = self.settings.DOTNET_PATH
        name = project.stem
        script = [
            [dotnet, "new", "sln", "--name", name, "--output", str(root)],
            [dotnet, "sln", str(root / f"{name}.sln"), "add", str(project)],
        ]
        logger.info(f"No solution found, generating {name}.sln from {project.name}")
        try:
            if os.name == "nt":
                command = " && ".join(subprocess.list2cmdline(step) for step in script)
                subprocess.Popen(
                    command,
                    cwd=root,
                    shell=True,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            else:
                command = " && ".join(shlex.join(step) for step in script)
                subprocess.Popen(
                    ["/bin/sh", "-c", command],
                    cwd=root,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=True,
                )
        except OSError as e:
            logger.warning(f"Could not start '{dotnet}' to generate a solution: {e}")
            return False
        return True
