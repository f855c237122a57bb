"""
Loopback TCP listener for attach requests.

One JSON line in, one JSON line out, then the connection is closed. Every
connection is its own task, so a slow attach never delays the next client.
"""

from __future__ import annotations

import asyncio
import errno

from attach.schemas.protocol import AttachResponse, decode_request
from attach.service import AttachOrchestrator, ConnectionState, log_state
from core.error_handler import ErrorContext, build_error_response, build_unexpected_error_response
from core.exceptions import (
    InvalidRequestError,
    NullRequestError,
    PortInUseError,
    ProtocolError,
    ServiceStartupError,
)
from core.logging import logger_service as logger
from core.settings import Settings, get_settings, is_loopback_host

# EADDRINUSE as reported by winsock
_WSAEADDRINUSE = 10048


class AttachServer:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        host: str | None = None,
        port: int | None = None,
        orchestrator: AttachOrchestrator | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.host = host or self.settings.ATTACH_HOST
        self.port = self.settings.ATTACH_PORT if port is None else port
        self.orchestrator = orchestrator or AttachOrchestrator(self.settings)

        self._server: asyncio.Server | None = None
        self._handlers: set[asyncio.Task] = set()

    @property
    def bound_port(self) -> int | None:
        """Actual port once listening (useful when constructed with port 0)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    @property
    def in_flight(self) -> int:
        return len(self._handlers)

    async def start(self) -> None:
        """
        Bind the listening socket.

        Raises:
            PortInUseError: another process already listens on the port
            ServiceStartupError: a non-loopback host, or any other bind failure
        """
        if not is_loopback_host(self.host):
            raise ServiceStartupError(
                f"Refusing to listen on non-loopback address {self.host}",
                context={"host": self.host, "port": self.port},
            )
        try:
            self._server = await asyncio.start_server(
                self._handle_client,
                self.host,
                self.port,
                limit=self.settings.ATTACH_MAX_REQUEST_BYTES,
            )
        except OSError as e:
            if e.errno in (errno.EADDRINUSE, _WSAEADDRINUSE) or getattr(e, "winerror", None) == _WSAEADDRINUSE:
                logger.error(f"Port {self.port} is already in use. Another instance may be running.")
                raise PortInUseError(self.host, self.port, original_exception=e) from e
            raise ServiceStartupError(
                f"Could not listen on {self.host}:{self.port}: {e}",
                context={"host": self.host, "port": self.port},
                original_exception=e,
            ) from e

        logger.info(f"TCP Server listening on {self.host}:{self.bound_port}")

    async def serve_forever(self, stop_event: asyncio.Event) -> None:
        """Accept connections until ``stop_event`` is set, then shut down cooperatively."""
        if self._server is None:
            await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop accepting, then let in-flight connections finish."""
        if self._server is None:
            return
        server, self._server = self._server, None
        server.close()

        pending = list(self._handlers)
        if pending:
            logger.info(f"Waiting for {len(pending)} in-flight request(s) to finish...")
            await asyncio.gather(*pending, return_exceptions=True)
        await server.wait_closed()
        logger.info("TCP Server stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._handlers.add(task)
            task.add_done_callback(self._handlers.discard)

        peer = writer.get_extra_info("peername")
        ctx = ErrorContext.create(peer=f"{peer[0]}:{peer[1]}" if peer else "")
        log_state(ctx, ConnectionState.ACCEPTED)

        try:
            response = await self._respond(reader, ctx)
            writer.write(response.to_wire())
            await writer.drain()
            log_state(ctx, ConnectionState.RESPONDED)
        except (ConnectionError, OSError) as e:
            logger.info(f"Client went away before the response was written: {e}", extra=ctx.to_log_dict())
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass
            log_state(ctx, ConnectionState.CLOSED)

    async def _read_line(self, reader: asyncio.StreamReader) -> bytes:
        timeout = self.settings.ATTACH_READ_TIMEOUT_S
        if timeout and timeout > 0:
            return await asyncio.wait_for(reader.readline(), timeout=timeout)
        return await reader.readline()

    async def _respond(self, reader: asyncio.StreamReader, ctx: ErrorContext) -> AttachResponse:
        log_state(ctx, ConnectionState.READING)
        try:
            line = await self._read_line(reader)
        except ValueError as e:
            # StreamReader limit exceeded
            log_state(ctx, ConnectionState.DECODE_FAILED)
            return build_error_response(InvalidRequestError("Request too large", original_exception=e))
        except asyncio.TimeoutError:
            log_state(ctx, ConnectionState.DECODE_FAILED)
            logger.info("No request received before the read timeout", extra=ctx.to_log_dict())
            return build_error_response(NullRequestError("No request received"))

        try:
            request = decode_request(line)
        except ProtocolError as e:
            log_state(ctx, ConnectionState.DECODE_FAILED)
            logger.warning(f"{e.message}: {e.details or 'empty payload'}", extra=ctx.to_log_dict())
            return build_error_response(e)

        log_state(ctx, ConnectionState.DECODED)
        ctx.add_request(request)
        logger.info("Received attach request", extra=ctx.to_log_dict())

        try:
            return await self.orchestrator.process(request, ctx)
        except Exception as e:
            logger.exception("Error handling client", extra={"context": ctx.to_dict()})
            return build_unexpected_error_response(e)
