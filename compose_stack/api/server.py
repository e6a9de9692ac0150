"""Web Service process entrypoint (``stack-web``).

Binds the HTTP listener on WEB_HOST:WEB_PORT. The listener comes up
whether or not the database is reachable. A port already in use is
fatal: the process logs the error and exits with status 1.
"""

import errno
import logging
import socket
import sys
from typing import Optional

import uvicorn

from compose_stack.lib.config_manager import config
from compose_stack.lib.logging_config import setup_logging

logger = logging.getLogger(__name__)


class PortInUseError(OSError):
    """The listener port is already bound by another process."""

    def __init__(self, host: str, port: int):
        super().__init__(errno.EADDRINUSE, f"Port {port} on {host} is already in use")
        self.host = host
        self.port = port


def check_port_available(host: str, port: int) -> None:
    """Try to bind the port once, with the same SO_REUSEADDR uvicorn sets.

    Connections left in TIME_WAIT by a previous run do not count as in use.

    Raises:
        PortInUseError: If the address is already in use
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                raise PortInUseError(host, port) from e
            raise


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the Web Service until terminated.

    Raises:
        PortInUseError: If the port is already bound
    """
    host = host or config.get("WEB_HOST")
    port = port or config.get("WEB_PORT")

    check_port_available(host, port)
    logger.info(f"Web Service listening on {host}:{port}")
    uvicorn.run("compose_stack.api.main:app", host=host, port=port, log_config=None)


def main() -> None:
    """Console entrypoint."""
    setup_logging("web", config.get("LOG_LEVEL"))
    try:
        serve()
    except PortInUseError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
