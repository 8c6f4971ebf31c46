"""A local client connection accepted by the tunnel listener."""

import asyncio
import contextlib
import socket
import struct
import uuid
from collections.abc import Callable
from typing import Any

from .exceptions import TunnelConnectionError, TunnelError
from .logging import get_logger
from .session import RemoteSession

logger = get_logger(__name__)

# l_onoff=1, l_linger=0: close() sends RST instead of FIN
_ABORTIVE_LINGER = struct.pack("ii", 1, 0)

CloseCallback = Callable[["TunnelConnection"], None]


class TunnelConnection:
    """One accepted local socket and the forwarding state attached to it.

    A watcher task waits for the transport to be lost and then delivers the
    close notification exactly once, whatever closed the socket.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.id = uuid.uuid4().hex[:12]
        self.reader = reader
        self.writer = writer
        self.peername: Any = writer.get_extra_info("peername")
        self.session: RemoteSession | None = None
        self.task: asyncio.Task[Any] | None = None
        self.error: TunnelError | None = None

        self._closed = asyncio.Event()
        self._close_callbacks: list[CloseCallback] = []
        self._watcher = asyncio.ensure_future(self._watch_close())

    def __repr__(self) -> str:
        return f"TunnelConnection(id={self.id!r}, peername={self.peername!r})"

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def add_close_callback(self, callback: CloseCallback) -> None:
        self._close_callbacks.append(callback)

    def destroy(self, error: TunnelError | None = None) -> None:
        """Abortively close the socket, recording ``error`` if it is the first."""
        if error is not None and self.error is None:
            self.error = error

        if self._closed.is_set():
            return

        sock = self.writer.get_extra_info("socket")
        if sock is not None:
            with contextlib.suppress(OSError):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, _ABORTIVE_LINGER)
        self.writer.transport.abort()

    def close(self) -> None:
        """Close the socket after flushing buffered data."""
        if not self.writer.is_closing():
            self.writer.close()

    async def wait_closed(self) -> None:
        """Wait for the close notification."""
        await self._closed.wait()

    async def _watch_close(self) -> None:
        try:
            await self.writer.wait_closed()
        except OSError as e:
            if self.error is None:
                self.error = TunnelConnectionError(f"Local connection failed: {e}")
                self.error.__cause__ = e

        self._closed.set()
        logger.debug("Local connection closed", connection=self.id)

        for callback in self._close_callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("Close callback failed", connection=self.id)
