"""
Exception hierarchy for the Debug Attach Service.

Every failure reported to a client is raised as one of these and turned into
an ``AttachResponse`` at the connection boundary (see ``core.error_handler``).
A class-level ``code`` is the value sent over the wire as ``errorCode``.
"""

from __future__ import annotations

import re
from typing import Any, ClassVar

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class AttachServiceError(Exception):
    """
    Base class for all service errors.

    Attributes:
        message: Human-readable message, safe to send to the client
        error_code: Machine-readable category (class ``code`` unless overridden)
        details: Diagnostic detail for logs, e.g. a decoder error
        context: Request facts at the time of failure (pid, editor, paths)
        original_exception: The wrapped lower-level exception, if any
    """

    code: ClassVar[str | None] = None
    default_message: ClassVar[str] = "Debug attach service error"

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        details: str | None = None,
        context: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        # "ServiceUnavailableError" -> "SERVICE_UNAVAILABLE_ERROR"
        self.error_code = error_code or self.code or _CAMEL_BOUNDARY.sub("_", type(self).__name__).upper()
        self.details = details
        self.context = context or {}
        self.original_exception = original_exception

    def to_dict(self) -> dict[str, Any]:
        """Log-friendly view of the error. Empty parts are left out."""
        data: dict[str, Any] = {"error_code": self.error_code, "message": self.message}
        if self.details:
            data["details"] = self.details
        if self.context:
            data["context"] = dict(self.context)
        cause = self.original_exception
        if cause is not None:
            data["original_exception"] = {
                "type": type(cause).__name__,
                "module": type(cause).__module__,
                "message": str(cause),
            }
        return data


# ---------------------------------------------------------------------------
# Protocol: the request line itself is unusable. Terminal, never retried.
# ---------------------------------------------------------------------------


class ProtocolError(AttachServiceError):
    pass


class InvalidRequestError(ProtocolError):
    """Malformed JSON, a non-object payload, or a schema violation."""

    code = "INVALID_JSON"
    default_message = "Invalid JSON format"


class NullRequestError(ProtocolError):
    """Empty request line or a literal JSON ``null``."""

    code = "NULL_REQUEST"
    default_message = "Request is null"


# ---------------------------------------------------------------------------
# Resolution: raised once the bounded retries are spent.
# ---------------------------------------------------------------------------


class ResolutionError(AttachServiceError):
    pass


class ProcessNotFoundError(ResolutionError):
    code = "PROCESS_NOT_FOUND"
    default_message = "Target process not found"


class IdeNotFoundError(ResolutionError):
    code = "IDE_NOT_FOUND"
    default_message = "IDE executable not found"


class AttachFailedError(AttachServiceError):
    """The attach driver reported a failure."""

    code = "ATTACH_FAILED"
    default_message = "Attach failed"


# ---------------------------------------------------------------------------
# Startup: fatal, the process exits with status 1.
# ---------------------------------------------------------------------------


class ServiceStartupError(AttachServiceError):
    pass


class PortInUseError(ServiceStartupError):
    """The listening port is already bound, usually by another service instance."""

    code = "PORT_IN_USE"

    def __init__(self, host: str, port: int, original_exception: Exception | None = None) -> None:
        super().__init__(
            f"Port {port} is already in use. Another instance may be running.",
            context={"host": host, "port": port},
            original_exception=original_exception,
        )


class ServiceUnavailableError(AttachServiceError):
    """Client side: the service could not be reached or hung up without answering."""
