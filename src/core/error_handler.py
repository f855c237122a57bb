"""
Per-connection context and the mapping from errors to wire responses.

A connection gets one ``ErrorContext`` when it is accepted. Everything learned
about the request afterwards is attached to it, so that any log line written
for that connection can carry the same ``request_id`` and request fields.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from attach.schemas.protocol import AttachRequest, AttachResponse, ErrorCode
from core.exceptions import AttachServiceError

REQUEST_ID_PREFIX = "req_"


def _new_request_id() -> str:
    return REQUEST_ID_PREFIX + uuid.uuid4().hex[:12]


def _flatten(prefix: str, value: Any, into: dict[str, Any]) -> None:
    # One level only: {"request": {"pid": 1}} -> request_pid=1
    if isinstance(value, dict):
        for sub_key, sub_value in value.items():
            into[f"{prefix}_{sub_key}"] = sub_value
    else:
        into[prefix] = value


class ErrorContext:
    """
    What is known about one connection, for logging.

    Builder methods return ``self`` so calls can be chained::

        ctx = ErrorContext.create(peer="127.0.0.1:53122").add_request(request)
        logger.warning("Attach failed", extra=ctx.to_log_dict())
    """

    def __init__(self, request_id: str, peer: str) -> None:
        self.request_id = request_id
        self.peer = peer
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.data: dict[str, Any] = {}

    @classmethod
    def create(cls, request_id: str | None = None, peer: str = "") -> ErrorContext:
        return cls(request_id=request_id or _new_request_id(), peer=peer)

    def add_request(self, request: AttachRequest) -> ErrorContext:
        """Attach the decoded request, using snake_case field names."""
        return self.add_custom("request", request.model_dump(by_alias=False, exclude={"type"}))

    def add_params(self, params: dict[str, Any]) -> ErrorContext:
        """Attach resolved attach parameters (pid, IDE path, workspace)."""
        return self.add_custom("params", params)

    def add_custom(self, key: str, value: Any) -> ErrorContext:
        self.data[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"request_id": self.request_id, "peer": self.peer, "timestamp": self.timestamp, **self.data}

    def to_log_dict(self) -> dict[str, Any]:
        """Flat view for ``extra=``; nested dicts become ``<key>_<sub_key>`` fields."""
        flat: dict[str, Any] = {"request_id": self.request_id, "peer": self.peer}
        for key, value in self.data.items():
            _flatten(key, value, flat)
        return flat


def build_error_response(error: AttachServiceError) -> AttachResponse:
    """
    Failure response for a service error.

    Error codes the protocol does not define (client-side or startup codes)
    are reported as ``ATTACH_FAILED``.
    """
    try:
        code = ErrorCode(error.error_code)
    except ValueError:
        code = ErrorCode.ATTACH_FAILED
    return AttachResponse.fail(code, error.message)


def build_unexpected_error_response(error: BaseException) -> AttachResponse:
    """Failure response for an exception nothing anticipated. The traceback stays in the logs."""
    return AttachResponse.fail(ErrorCode.ATTACH_FAILED, f"Unexpected error: {type(error).__name__}: {error}")
