"""Launch the registry proxy API with the correct import paths."""

from __future__ import annotations

import argparse
import errno
import logging
import socket
import sys
from pathlib import Path
from typing import Final

import uvicorn

DEFAULT_LOG_LEVEL: Final[str] = "info"
LOG_FORMAT: Final[str] = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PORT_IN_USE_MESSAGE: Final[str] = (
    "Registry proxy failed to start: {host}:{port} is already in use.\n"
    "Stop the conflicting process or choose another port via --port or PROXY_API_PORT."
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the registry enrichment proxy.")
    parser.add_argument("--host", default=None, help="Bind address (overrides settings/env).")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to (overrides settings/env).")
    parser.add_argument("--reload", action="store_true", help="Enable uvicorn auto-reload.")
    parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        default=None,
        help="Log level for proxy and uvicorn output (overrides settings/env).",
    )
    return parser.parse_args()


def ensure_port_available(host: str, port: int) -> None:
    try:
        addr_info = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as exc:
        raise SystemExit(f"Unable to resolve host '{host}': {exc}") from exc

    for family, socktype, proto, _, sockaddr in addr_info:
        try:
            with socket.socket(family, socktype, proto) as probe:
                probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                probe.bind(sockaddr)
        except OSError as exc:
            if exc.errno == errno.EADDRINUSE:
                raise SystemExit(PORT_IN_USE_MESSAGE.format(host=host, port=port)) from exc
            continue
        return
    raise SystemExit(f"No suitable address family found for {host}:{port}.")


def main() -> None:
    args = parse_args()

    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "proxy" / "src"))

    # Import after sys.path is adjusted
    from proxy_api.config.settings import get_api_settings

    api_settings = get_api_settings()

    host = args.host or api_settings.host
    port = args.port or api_settings.port
    reload = args.reload or api_settings.reload
    log_level = (args.log_level or api_settings.log_level or DEFAULT_LOG_LEVEL).lower()
    root_level = logging.DEBUG if log_level == "trace" else getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(level=root_level, format=LOG_FORMAT)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(root_level)

    ensure_port_available(host, port)

    uvicorn.run(
        "proxy_api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level if log_level != "trace" else "debug",
        log_config=None,
    )


if __name__ == "__main__":
    main()
