"""Shared pytest fixtures for SSH tunnel tests."""

import asyncio

import asyncssh
import pytest
import pytest_asyncio

from helpers import DirectSessionFactory, ForwardingSSHServer, Handler, respond
from ssh_tunnel.connection import TunnelConnection


@pytest_asyncio.fixture
async def start_destination():
    """Start loopback TCP destinations; returns a factory yielding the port."""
    servers: list[asyncio.Server] = []
    writers: list[asyncio.StreamWriter] = []

    async def start(handler: Handler = respond) -> int:
        async def tracked(reader, writer):
            writers.append(writer)
            await handler(reader, writer)

        server = await asyncio.start_server(tracked, "127.0.0.1", 0)
        servers.append(server)
        return server.sockets[0].getsockname()[1]

    yield start

    for writer in writers:
        writer.transport.abort()
    for server in servers:
        server.close()
        await server.wait_closed()


@pytest_asyncio.fixture
async def destination_port(start_destination) -> int:
    return await start_destination(respond)


@pytest_asyncio.fixture
async def ssh_server_port():
    """Run an asyncssh server on loopback; yields its port."""
    acceptor = await asyncssh.listen(
        "127.0.0.1",
        0,
        server_factory=ForwardingSSHServer,
        server_host_keys=[asyncssh.generate_private_key("ssh-ed25519")],
    )

    yield acceptor.get_port()

    acceptor.close()
    await acceptor.wait_closed()


@pytest.fixture
def ssh_options() -> dict:
    """Client options accepting the throwaway test server."""
    return {
        "username": "tester",
        "known_hosts": None,
        "client_keys": None,
        "agent_path": None,
    }


@pytest.fixture
def session_factory() -> DirectSessionFactory:
    return DirectSessionFactory()


@pytest_asyncio.fixture
async def accept_connection():
    """Create TunnelConnections over real loopback sockets.

    Returns a factory yielding ``(connection, client_reader, client_writer)``.
    """
    accepted: asyncio.Queue = asyncio.Queue()
    server_writers: list[asyncio.StreamWriter] = []
    client_writers: list[asyncio.StreamWriter] = []

    async def handler(reader, writer):
        server_writers.append(writer)
        await accepted.put((reader, writer))

    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]

    async def connect():
        client_reader, client_writer = await asyncio.open_connection("127.0.0.1", port)
        client_writers.append(client_writer)
        reader, writer = await accepted.get()
        return TunnelConnection(reader, writer), client_reader, client_writer

    yield connect

    for writer in client_writers:
        writer.transport.abort()
    for writer in server_writers:
        writer.transport.abort()
    server.close()
    await server.wait_closed()
