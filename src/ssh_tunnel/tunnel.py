"""SSH tunnel: a local listener forwarding each connection over its own SSH session."""

import asyncio
from collections.abc import Mapping
from enum import Enum
from types import TracebackType
from typing import Any

from .config import TunnelConfig, resolve_config
from .connection import TunnelConnection
from .events import EventEmitter, TunnelEvent
from .exceptions import CloseError, ListenError, SessionError, TunnelError
from .logging import get_logger
from .registry import ConnectionRegistry
from .session import RemoteSession, SessionFactory, default_session_factory
from .splice import splice
from .utils import sanitize_log_data

logger = get_logger(__name__)


class ListenerState(str, Enum):
    """Local listener lifecycle; a closed listener is never rebound."""

    UNBOUND = "unbound"
    LISTENING = "listening"
    CLOSED = "closed"


class SSHTunnel(EventEmitter):
    """Local TCP listener forwarding every connection through an SSH server.

    Each accepted socket gets its own SSH session and a direct-tcpip channel
    to ``destination_host:destination_port``. Events: ``listening``,
    ``connection``, ``close`` and ``error``.

    Example:
        >>> tunnel = SSHTunnel(host="bastion", username="me", destination_port=5432,
        ...                    local_port=0)
        >>> await tunnel.listen()
        >>> tunnel.config.local_port
        54012
        >>> await tunnel.close()
    """

    def __init__(
        self,
        config: Mapping[str, Any] | TunnelConfig | None = None,
        *,
        session_factory: SessionFactory = default_session_factory,
        **settings: Any,
    ):
        """Initialize the tunnel without touching the network.

        Args:
            config: Partial tunnel settings (see resolve_config)
            session_factory: Creates the SSH session for each connection
            **settings: Settings overriding ``config``
        """
        super().__init__()
        self._config = resolve_config(config, **settings)
        self._session_factory = session_factory
        self._connections = ConnectionRegistry()
        self._server: asyncio.Server | None = None
        self._state = ListenerState.UNBOUND

        logger.debug(
            "SSHTunnel initialized", config=sanitize_log_data(self._config.model_dump())
        )

    @property
    def config(self) -> TunnelConfig:
        """Resolved configuration, reporting the actual bound local port."""
        port = self._bound_port()
        if port:
            return self._config.model_copy(update={"local_port": port})
        return self._config

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def listening(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def _bound_port(self) -> int | None:
        if self._server is None:
            return None
        for sock in self._server.sockets:
            address = sock.getsockname()
            if isinstance(address, tuple) and len(address) >= 2:
                return int(address[1])
        return None

    async def listen(self) -> None:
        """Bind the local listener.

        Raises:
            ListenError: If binding fails or the tunnel was already started
        """
        if self._state is not ListenerState.UNBOUND:
            raise ListenError(f"Tunnel listener cannot be started: {self._state.value}")

        host, port = self._config.local_host, self._config.local_port
        try:
            self._server = await asyncio.start_server(self._handle_connection, host, port)
        except OSError as e:
            logger.error("Failed to bind local listener", host=host, port=port, error=str(e))
            raise ListenError(f"Failed to listen on {host}:{port}: {e}") from e

        self._state = ListenerState.LISTENING
        logger.info("Tunnel listening", host=host, port=self._bound_port())
        self.emit(TunnelEvent.LISTENING)

    async def close(self) -> None:
        """Stop listening and force-close every open connection.

        Connection teardown is always awaited; a listener close failure is
        raised only afterwards.

        Raises:
            CloseError: If the listener was not listening
        """
        close_error: CloseError | None = None
        server = self._server

        if self._state is not ListenerState.LISTENING or server is None:
            close_error = CloseError(
                f"Tunnel listener is not listening: {self._state.value}"
            )
            server = None
        else:
            server.close()
            self._state = ListenerState.CLOSED

        await self._connections.close_all_and_wait()

        if server is not None:
            await server.wait_closed()
            logger.info("Tunnel closed")
            self.emit(TunnelEvent.CLOSE)

        if close_error is not None:
            raise close_error

    async def __aenter__(self) -> "SSHTunnel":
        await self.listen()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        if self._state is ListenerState.CLOSED:
            writer.transport.abort()
            return

        connection = TunnelConnection(reader, writer)
        connection.task = asyncio.current_task()
        self._connections.add(connection)
        connection.add_close_callback(self._on_connection_closed)

        logger.debug("Accepted connection", connection=connection.id, peer=connection.peername)
        self.emit(TunnelEvent.CONNECTION, connection)

        try:
            session = self._session_factory(self._config)
        except Exception as e:
            error = SessionError(f"Failed to start SSH session: {e}")
            error.__cause__ = e
            connection.destroy(error)
            return
        connection.session = session

        try:
            await self._forward(connection, session)
        except TunnelError as e:
            connection.destroy(e)
        except Exception as e:
            error = SessionError(f"SSH session failed: {e}")
            error.__cause__ = e
            connection.destroy(error)
        finally:
            connection.close()

    async def _forward(self, connection: TunnelConnection, session: RemoteSession) -> None:
        config = self._config

        await session.connect()
        channel_reader, channel_writer = await session.open_channel(
            config.source_host,
            config.source_port,
            config.destination_host,
            config.destination_port,
        )
        logger.debug(
            "Forwarding connection",
            connection=connection.id,
            destination=f"{config.destination_host}:{config.destination_port}",
        )

        try:
            await splice(connection.reader, connection.writer, channel_reader, channel_writer)
        finally:
            channel_writer.close()

    def _on_connection_closed(self, connection: TunnelConnection) -> None:
        if connection.error is not None:
            logger.debug(
                "Connection failed",
                connection=connection.id,
                origin=connection.error.origin.value,
                error=str(connection.error),
            )
            self.emit(TunnelEvent.ERROR, connection.error)

        if connection.session is not None:
            connection.session.end()

        if connection.task is not None and not connection.task.done():
            connection.task.cancel()

        self._connections.remove(connection)
