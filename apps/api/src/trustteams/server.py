"""
Development server entry point (``trustteams-api``).

In development the configured port may be taken by another local process,
so the next few ports are probed and the first free one is used. Other
environments bind the configured port or fail.
"""

import logging
import socket

import uvicorn

from trustteams.core.config import settings

logger = logging.getLogger(__name__)


def port_is_free(port: int, host: str = "0.0.0.0") -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def find_free_port(start: int, attempts: int, host: str = "0.0.0.0") -> int:
    """
    Return the first free port in ``start .. start + attempts``.

    Raises:
        RuntimeError: If every candidate is in use
    """
    for port in range(start, start + attempts + 1):
        if port_is_free(port, host):
            if port != start:
                logger.warning(f"Port {start} is in use, using {port} instead")
            return port
    raise RuntimeError(f"No free port between {start} and {start + attempts}")


def main() -> None:
    host = "0.0.0.0"
    port = settings.port
    if settings.is_development:
        port = find_free_port(port, settings.port_retry_attempts, host)

    uvicorn.run(
        "trustteams.main:app",
        host=host,
        port=port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
