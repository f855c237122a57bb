from __future__ import annotations

import argparse
import asyncio
import importlib.metadata as md
import signal
import sys
from collections.abc import Sequence

from attach.server import AttachServer
from core.exceptions import ServiceStartupError
from core.logging import logger_service as logger
from core.settings import Settings, get_settings

PROG = "debug-attach-service"


def _version() -> str:
    try:
        return md.version("debug-attach-service")
    except md.PackageNotFoundError:
        return "0.0.0"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Attach an IDE debugger to a running game process on request.",
        epilog="Listens on 127.0.0.1 for one-line JSON attach requests.",
    )
    # Parsed by hand so a bad value falls back to the default instead of aborting
    parser.add_argument("-p", "--port", nargs="?", default=None, metavar="PORT", help="TCP port to listen on")
    return parser


def parse_port(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        port = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid port '{raw}', using {default}")
        return default
    if not 0 < port < 65536:
        logger.warning(f"Ignoring out of range port {port}, using {default}")
        return default
    return port


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def _request_stop(*_: object) -> None:
        logger.info("Shutdown requested...")
        loop.call_soon_threadsafe(stop_event.set)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            signal.signal(sig, _request_stop)


async def run_service(
    settings: Settings,
    port: int,
    stop_event: asyncio.Event | None = None,
    *,
    server: AttachServer | None = None,
) -> None:
    """Serve until ``stop_event`` is set. Startup failures propagate as ServiceStartupError."""
    if stop_event is None:
        stop_event = asyncio.Event()
        _install_signal_handlers(stop_event)

    server = server or AttachServer(settings, port=port)
    await server.start()
    logger.info("Waiting for attach requests. Press Ctrl+C to stop.")
    await server.serve_forever(stop_event)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args, unknown = parser.parse_known_args(list(sys.argv[1:] if argv is None else argv))
    if unknown:
        logger.debug(f"Ignoring unrecognized arguments: {' '.join(unknown)}")

    settings = get_settings()
    port = parse_port(args.port, settings.ATTACH_PORT)

    logger.info(f"{settings.PROJECT_NAME} v{_version()}")
    logger.info(f"Listening on {settings.ATTACH_HOST}:{port}")

    try:
        asyncio.run(run_service(settings, port))
    except ServiceStartupError as e:
        logger.error(f"Fatal error: {e.message}")
        return 1

    logger.info("Service stopped.")
    return 0
