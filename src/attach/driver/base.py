from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from attach.editors import EditorProfile
from core.settings import Settings, get_settings


class AttachFailure(str, Enum):
    IDE_EXECUTABLE_NOT_FOUND = "IDE_EXECUTABLE_NOT_FOUND"
    WORKSPACE_NOT_FOUND = "WORKSPACE_NOT_FOUND"
    EXCEPTION = "EXCEPTION"


@dataclass(frozen=True)
class ResolvedAttachTarget:
    """Everything a driver needs; built once per request before the driver runs."""

    pid: int
    editor_path: str
    workspace_path: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AttachOutcome:
    """
    Result of one attach attempt.

    ``ok`` means the attach was initiated, not that a debugger is attached.
    ``detail`` carries either the failure message or an advisory for the user.
    """

    ok: bool
    detail: str | None = None
    failure: AttachFailure | None = None

    @classmethod
    def success(cls, detail: str | None = None) -> AttachOutcome:
        return cls(ok=True, detail=detail)

    @classmethod
    def fail(cls, failure: AttachFailure, detail: str) -> AttachOutcome:
        return cls(ok=False, detail=detail, failure=failure)


class AttachDriver(ABC):
    """
    Drives one IDE family into a debugging-attach state.

    Implementations never raise: unexpected faults come back as an
    ``EXCEPTION`` outcome. They do not retry either; retries belong to the
    process locator and the orchestrator.
    """

    def __init__(self, profile: EditorProfile, settings: Settings | None = None) -> None:
        self.profile = profile
        self.settings = settings or get_settings()

    @property
    def display_name(self) -> str:
        return self.profile.display_name

    @abstractmethod
    def attach(self, pid: int, ide_path: str, workspace_path: str) -> AttachOutcome:
        """Attach the IDE debugger to ``pid`` using the given executable and workspace."""

    def attach_target(self, target: ResolvedAttachTarget) -> AttachOutcome:
        return self.attach(target.pid, target.editor_path, target.workspace_path)

    @staticmethod
    def _check_ide_path(ide_path: str) -> AttachOutcome | None:
        if not ide_path or not os.path.isfile(ide_path):
            return AttachOutcome.fail(
                AttachFailure.IDE_EXECUTABLE_NOT_FOUND, f"IDE executable not found at: {ide_path}"
            )
        return None
