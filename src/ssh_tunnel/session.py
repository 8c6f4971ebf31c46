"""Remote SSH sessions used to open forwarded channels."""

from collections.abc import Callable
from typing import Any, Protocol

import asyncssh

from .config import TunnelConfig
from .exceptions import ConfigurationError, SessionError
from .logging import get_logger

logger = get_logger(__name__)


class ChannelReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class ChannelWriter(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def can_write_eof(self) -> bool: ...

    def write_eof(self) -> None: ...

    def close(self) -> None: ...


class RemoteSession(Protocol):
    """An SSH session able to open forwarded data channels.

    ``connect`` returning means the session is ready; raising means it
    failed. ``end`` terminates the session and may be called at any time.
    """

    async def connect(self) -> None: ...

    async def open_channel(
        self, src_host: str, src_port: int, dst_host: str, dst_port: int
    ) -> tuple[ChannelReader, ChannelWriter]: ...

    def end(self) -> None: ...


SessionFactory = Callable[[TunnelConfig], RemoteSession]


class AsyncSSHSession:
    """RemoteSession backed by an asyncssh client connection."""

    def __init__(self, options: dict[str, Any]):
        """Prepare a session.

        Args:
            options: Keyword arguments for ``asyncssh.connect``

        Raises:
            ConfigurationError: If no SSH host is configured
        """
        if not options.get("host"):
            raise ConfigurationError("SSH host is required to open a session")

        self._options = options
        self._conn: asyncssh.SSHClientConnection | None = None
        self._ended = False

    @property
    def connected(self) -> bool:
        return self._conn is not None and not self._ended

    async def connect(self) -> None:
        """Connect and authenticate to the SSH server.

        Raises:
            SessionError: If the connection or authentication fails
        """
        options = dict(self._options)
        host = options.pop("host")
        try:
            conn = await asyncssh.connect(host, **options)
        except (OSError, ValueError, asyncssh.Error) as e:
            raise SessionError(f"Failed to connect to SSH server {host}: {e}") from e

        if self._ended:
            conn.close()
            raise SessionError("SSH session ended while connecting")

        self._conn = conn
        logger.debug("SSH session established", host=host, port=options.get("port"))

    async def open_channel(
        self, src_host: str, src_port: int, dst_host: str, dst_port: int
    ) -> tuple[asyncssh.SSHReader, asyncssh.SSHWriter]:
        """Open a direct-tcpip channel to ``dst_host:dst_port``.

        Raises:
            SessionError: If the session is not connected or the server refuses
        """
        if self._conn is None or self._ended:
            raise SessionError("SSH session is not connected")

        try:
            return await self._conn.open_connection(
                dst_host, dst_port, orig_host=src_host, orig_port=src_port
            )
        except (OSError, asyncssh.Error) as e:
            raise SessionError(
                f"Failed to open channel to {dst_host}:{dst_port}: {e}"
            ) from e

    def end(self) -> None:
        """Close the SSH connection; safe to call more than once."""
        if self._ended:
            return

        self._ended = True
        if self._conn is not None:
            self._conn.close()
            logger.debug("SSH session ended")


def default_session_factory(config: TunnelConfig) -> RemoteSession:
    """Create an AsyncSSHSession from the config's connection options."""
    return AsyncSSHSession(config.connect_options())
