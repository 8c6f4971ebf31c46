"""Test helpers: loopback destinations, a test SSH server and fake sessions."""

import asyncio
import socket
from collections.abc import Awaitable, Callable

import asyncssh

from ssh_tunnel.config import TunnelConfig

RESPONSE = b"Hello from destination\n"

# Destination port the test SSH server refuses to forward to
REFUSED_PORT = 1

Handler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


async def respond(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    """Destination handler: send RESPONSE and close."""
    writer.write(RESPONSE)
    await writer.drain()
    writer.close()


async def respond_slowly(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    """Destination handler: wait 500ms, then send RESPONSE and close."""
    await asyncio.sleep(0.5)
    writer.write(RESPONSE)
    await writer.drain()
    writer.close()


async def echo(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    """Destination handler: echo everything until EOF."""
    data = await reader.read()
    writer.write(data)
    await writer.drain()
    writer.close()


async def read_response(port: int, payload: bytes | None = None) -> bytes:
    """Connect to the tunnel, optionally send ``payload``, and read until EOF."""
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    try:
        if payload is not None:
            writer.write(payload)
            await writer.drain()
            writer.write_eof()
        return await asyncio.wait_for(reader.read(), timeout=5)
    finally:
        writer.close()


def unused_port() -> int:
    """Return a loopback port nothing is listening on."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class ForwardingSSHServer(asyncssh.SSHServer):
    """SSH server without authentication that forwards direct-tcpip channels."""

    def begin_auth(self, username: str) -> bool:
        return False

    def connection_requested(self, dest_host, dest_port, orig_host, orig_port):
        return dest_port != REFUSED_PORT


class DirectSession:
    """RemoteSession that dials the destination directly instead of over SSH."""

    def __init__(
        self,
        config: TunnelConfig,
        *,
        connect_error: Exception | None = None,
        channel_error: Exception | None = None,
        connect_delay: float = 0,
    ):
        self.config = config
        self.connect_error = connect_error
        self.channel_error = channel_error
        self.connect_delay = connect_delay
        self.connected = False
        self.channel_args: tuple | None = None
        self.end_calls = 0

    async def connect(self) -> None:
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def open_channel(self, src_host, src_port, dst_host, dst_port):
        self.channel_args = (src_host, src_port, dst_host, dst_port)
        if self.channel_error is not None:
            raise self.channel_error
        return await asyncio.open_connection(dst_host, dst_port)

    def end(self) -> None:
        self.end_calls += 1


class DirectSessionFactory:
    """Session factory recording every DirectSession it creates."""

    def __init__(self, **session_kwargs):
        self.session_kwargs = session_kwargs
        self.sessions: list[DirectSession] = []

    def __call__(self, config: TunnelConfig) -> DirectSession:
        session = DirectSession(config, **self.session_kwargs)
        self.sessions.append(session)
        return session


