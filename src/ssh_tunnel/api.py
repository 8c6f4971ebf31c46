"""High-level API for SSH tunnels.

Simple helpers for the common "forward a local port through a bastion" case.
"""

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from .config import TunnelConfig
from .events import TunnelEvent
from .logging import get_logger
from .session import SessionFactory, default_session_factory
from .tunnel import SSHTunnel

logger = get_logger(__name__)


@asynccontextmanager
async def open_tunnel(
    config: Mapping[str, Any] | TunnelConfig | None = None,
    *,
    session_factory: SessionFactory = default_session_factory,
    **settings: Any,
) -> AsyncIterator[SSHTunnel]:
    """Open a listening tunnel and close it on exit.

    Per-connection errors are logged; register more listeners on the
    yielded tunnel to handle them yourself.

    Args:
        config: Partial tunnel settings
        session_factory: Creates the SSH session for each connection
        **settings: Settings overriding ``config``

    Yields:
        SSHTunnel: The listening tunnel

    Example:
        >>> async with open_tunnel(host="bastion", destination_port=5432,
        ...                        local_port=0) as tunnel:
        ...     print(tunnel.config.local_port)
        54012
    """
    tunnel = SSHTunnel(config, session_factory=session_factory, **settings)
    tunnel.on(TunnelEvent.ERROR, _log_connection_error)

    await tunnel.listen()
    try:
        yield tunnel
    finally:
        try:
            await tunnel.close()
        except Exception as e:
            logger.error("Error while closing tunnel", error=str(e))
            raise


def _log_connection_error(error: Exception) -> None:
    origin = getattr(error, "origin", None)
    logger.warning(
        "Tunnel connection error",
        origin=origin.value if origin is not None else None,
        error=str(error),
    )
