"""
Client for the attach service, used by game-side tooling or by hand:

    debug-attach-client --pid 4242 --editor rider --workspace C:/Games/MyGame
"""

from __future__ import annotations

import argparse
import socket
import sys
from collections.abc import Sequence

from attach.schemas.protocol import DEFAULT_EDITOR, AttachRequest, AttachResponse, decode_response
from core.exceptions import ProtocolError, ServiceUnavailableError
from core.logging import logger_service as logger
from core.settings import get_settings

DEFAULT_TIMEOUT_S = 90.0


def send_attach_request(
    request: AttachRequest,
    host: str | None = None,
    port: int | None = None,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> AttachResponse:
    """
    Send one request and block until the service answers.

    Raises:
        ServiceUnavailableError: the service is not listening, or hung up without answering
        InvalidRequestError: the service answered with something that is not a response
    """
    settings = get_settings()
    host = host or settings.ATTACH_HOST
    port = port or settings.ATTACH_PORT

    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.sendall(request.to_wire())
            with sock.makefile("rb") as rfile:
                line = rfile.readline()
    except OSError as e:
        raise ServiceUnavailableError(
            f"Could not reach attach service at {host}:{port}: {e}",
            context={"host": host, "port": port},
            original_exception=e,
        ) from e

    if not line:
        raise ServiceUnavailableError(
            "Attach service closed the connection without a response",
            context={"host": host, "port": port},
        )
    return decode_response(line)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="debug-attach-client", description="Ask the attach service to attach.")
    parser.add_argument("--pid", type=int, default=0, help="Target process id (0 auto-detects)")
    parser.add_argument("--editor", default=DEFAULT_EDITOR, help="vscode, cursor, antigravity or rider")
    parser.add_argument("--editor-path", default=None, help="IDE executable (auto-detected when omitted)")
    parser.add_argument("--workspace", default=None, help="Solution file or project directory")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S, help="Seconds to wait for the answer")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    request = AttachRequest(
        pid=args.pid,
        editor=args.editor,
        editor_path=args.editor_path,
        workspace_path=args.workspace,
    )

    try:
        response = send_attach_request(request, host=args.host, port=args.port, timeout=args.timeout)
    except (ServiceUnavailableError, ProtocolError) as e:
        logger.error(e.message)
        return 1

    print(response.model_dump_json(by_alias=True))
    return 0 if response.success else 1


if __name__ == "__main__":
    sys.exit(main())
