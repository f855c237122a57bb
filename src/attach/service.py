"""
The attach pipeline run for every decoded request:
locate the process, resolve IDE and workspace, run the driver, build the response.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum

from attach.driver.base import AttachDriver, AttachOutcome, ResolvedAttachTarget
from attach.driver_factory import create_driver
from attach.ide_resolver import IdeResolver
from attach.process_locator import ProcessLocator
from attach.schemas.protocol import AttachRequest, AttachResponse
from core.error_handler import ErrorContext, build_error_response
from core.exceptions import AttachFailedError, AttachServiceError, IdeNotFoundError
from core.logging import logger_service as logger
from core.settings import Settings, get_settings

SUCCESS_MESSAGE = "Attach initiated successfully"

DriverFactory = Callable[[str, str, Settings], AttachDriver]


class ConnectionState(str, Enum):
    ACCEPTED = "Accepted"
    READING = "Reading"
    DECODED = "Decoded"
    DECODE_FAILED = "DecodeFailed"
    RESOLVING = "Resolving"
    ATTACHING = "Attaching"
    RESPONDED = "Responded"
    CLOSED = "Closed"


def log_state(ctx: ErrorContext, state: ConnectionState) -> None:
    logger.debug(f"Connection state: {state.value}", extra=ctx.to_log_dict())


def outcome_to_response(outcome: AttachOutcome) -> AttachResponse:
    if outcome.ok:
        return AttachResponse.ok(outcome.detail or SUCCESS_MESSAGE)
    error = AttachFailedError(
        outcome.detail or "Attach failed",
        details=outcome.failure.value if outcome.failure else None,
    )
    return build_error_response(error)


class AttachOrchestrator:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        locator: ProcessLocator | None = None,
        resolver: IdeResolver | None = None,
        driver_factory: DriverFactory = create_driver,
    ) -> None:
        self.settings = settings or get_settings()
        self.locator = locator or ProcessLocator(self.settings)
        self.resolver = resolver or IdeResolver(self.settings)
        self._driver_factory = driver_factory

    async def resolve_target(self, request: AttachRequest) -> ResolvedAttachTarget:
        """
        Raises:
            ProcessNotFoundError: no target process within the retry budget
            IdeNotFoundError: no editor path supplied and none found on disk
        """
        pid = await self.locator.locate(request.pid)
        logger.info(f"Found process with PID {pid}")

        # A supplied path is handed to the driver as is; it reports a missing file itself
        editor_path = request.editor_path
        if not editor_path:
            logger.info(f"Editor path not provided, auto-detecting for {request.editor}...")
            editor_path = await asyncio.to_thread(self.resolver.resolve_path, request.editor)
            if not editor_path:
                raise IdeNotFoundError(
                    f"Failed to auto-detect IDE path for {request.editor}",
                    context={"editor": request.editor},
                )

        workspace_path = await asyncio.to_thread(self.resolver.resolve_workspace, request.workspace_path)
        return ResolvedAttachTarget(pid=pid, editor_path=editor_path, workspace_path=workspace_path)

    async def process(self, request: AttachRequest, ctx: ErrorContext | None = None) -> AttachResponse:
        """Run the pipeline for one request. Service errors become failure responses."""
        ctx = ctx or ErrorContext.create()
        logger.info(f"Processing attach request for PID {request.pid}, Editor: {request.editor}")

        log_state(ctx, ConnectionState.RESOLVING)
        try:
            target = await self.resolve_target(request)
        except AttachServiceError as e:
            logger.warning(f"{e.message}", extra={**ctx.to_log_dict(), "error": e.to_dict()})
            return build_error_response(e)
        ctx.add_params(target.to_dict())

        log_state(ctx, ConnectionState.ATTACHING)
        driver = self._driver_factory(request.editor, target.editor_path, self.settings)
        outcome = await asyncio.to_thread(driver.attach_target, target)

        if outcome.ok:
            logger.info(f"Attach initiated for PID {target.pid} in {driver.display_name}", extra=ctx.to_log_dict())
        else:
            failure = outcome.failure.value if outcome.failure else None
            logger.error(f"Attach failed: {outcome.detail}", extra={**ctx.to_log_dict(), "failure": failure})
        return outcome_to_response(outcome)
