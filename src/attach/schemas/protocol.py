"""
Wire models for the attach protocol.

One JSON object per line, UTF-8, request then response. Field names on the
wire are camelCase; the Python attributes are snake_case.
"""

from __future__ import annotations

import datetime
import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import InvalidRequestError, NullRequestError

REQUEST_TYPE = "debug-attach-request"
DEFAULT_ENGINE = "godot"
DEFAULT_EDITOR = "vscode"


class ErrorCode(str, Enum):
    INVALID_JSON = "INVALID_JSON"
    NULL_REQUEST = "NULL_REQUEST"
    PROCESS_NOT_FOUND = "PROCESS_NOT_FOUND"
    IDE_NOT_FOUND = "IDE_NOT_FOUND"
    ATTACH_FAILED = "ATTACH_FAILED"


def _empty_to_none(v: Any) -> Any:
    # Plugins send "" for unset paths
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class AttachRequest(BaseModel):
    """
    A one-shot request to attach a debugger to a running game process.

    ``pid`` of 0 (or any non-positive value) asks the service to auto-detect
    the game process.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    type: str = Field(default=REQUEST_TYPE, description="Informational message type.")
    pid: int = Field(default=0, description="Target process id; 0 = auto-detect.")
    engine: str = Field(default=DEFAULT_ENGINE, description="Engine identifier of the target process.")
    editor: str = Field(default=DEFAULT_EDITOR, description="Editor identity (vscode, cursor, antigravity, rider).")
    editor_path: str | None = Field(default=None, alias="editorPath", description="IDE executable path.")
    workspace_path: str | None = Field(default=None, alias="workspacePath", description="Workspace or solution.")
    timestamp: datetime.datetime = Field(default_factory=_utcnow, description="When the client issued the request.")

    @field_validator("editor", mode="before")
    @classmethod
    def _normalize_editor(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_EDITOR
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("editor_path", "workspace_path", mode="before")
    @classmethod
    def _blank_paths(cls, v: Any) -> Any:
        return _empty_to_none(v)

    @property
    def auto_detect(self) -> bool:
        return self.pid <= 0

    def to_wire(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8") + b"\n"


class AttachResponse(BaseModel):
    """Exactly one of these is written back for every accepted connection."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(..., description="Whether the attach attempt was initiated.")
    message: str | None = Field(default=None, description="Human readable status.")
    error_code: ErrorCode | None = Field(default=None, alias="errorCode", description="Failure category.")

    @classmethod
    def ok(cls, message: str | None = None) -> AttachResponse:
        return cls(success=True, message=message)

    @classmethod
    def fail(cls, error_code: ErrorCode | str, message: str) -> AttachResponse:
        return cls(success=False, message=message, error_code=ErrorCode(error_code))

    def to_wire(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8") + b"\n"


def decode_request(line: bytes | str) -> AttachRequest:
    """
    Decode one request line.

    Raises:
        NullRequestError: the line is empty or the literal ``null``
        InvalidRequestError: the line is not a JSON object matching AttachRequest
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidRequestError(details="Request is not valid UTF-8", original_exception=e) from e

    if not line.strip():
        raise NullRequestError()

    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise InvalidRequestError(details=str(e), original_exception=e) from e

    if payload is None:
        raise NullRequestError()
    if not isinstance(payload, dict):
        raise InvalidRequestError(details=f"Expected a JSON object, got {type(payload).__name__}")

    try:
        return AttachRequest.model_validate(payload)
    except PydanticValidationError as e:
        raise InvalidRequestError(details=str(e), original_exception=e) from e


def decode_response(line: bytes | str) -> AttachResponse:
    try:
        return AttachResponse.model_validate_json(line)
    except PydanticValidationError as e:
        raise InvalidRequestError("Invalid response format", details=str(e), original_exception=e) from e
