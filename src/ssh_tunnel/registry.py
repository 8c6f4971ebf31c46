"""Registry of live local connections."""

import asyncio
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from .connection import TunnelConnection
from .exceptions import ConnectionRegistryError
from .logging import get_logger

logger = get_logger(__name__)


class ConnectionRegistry(BaseModel):
    """In-memory set of open local connections, keyed by connection ID."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    connections: dict[str, TunnelConnection] = Field(
        default_factory=dict, description="Open connections by ID"
    )

    def __len__(self) -> int:
        return len(self.connections)

    def __contains__(self, connection: object) -> bool:
        return (
            isinstance(connection, TunnelConnection)
            and self.connections.get(connection.id) is connection
        )

    def add(self, connection: TunnelConnection) -> None:
        """Track a connection.

        Raises:
            ConnectionRegistryError: If a connection with the same ID is tracked
        """
        if connection.id in self.connections:
            raise ConnectionRegistryError(
                f"Connection with ID '{connection.id}' already registered"
            )

        self.connections[connection.id] = connection
        logger.debug("Registered connection", connection=connection.id, total=len(self))

    def remove(self, connection: TunnelConnection) -> TunnelConnection | None:
        """Stop tracking a connection.

        Returns:
            The removed connection, or None if it was not tracked
        """
        removed = self.connections.pop(connection.id, None)
        if removed is not None:
            logger.debug("Removed connection", connection=connection.id, total=len(self))
        return removed

    def get(self, connection_id: str) -> TunnelConnection | None:
        return self.connections.get(connection_id)

    def list_connections(self) -> list[TunnelConnection]:
        """Snapshot of the tracked connections."""
        return list(self.connections.values())

    def for_each(self, callback: Callable[[TunnelConnection], None]) -> None:
        """Call ``callback`` for every tracked connection."""
        for connection in self.list_connections():
            callback(connection)

    async def close_all_and_wait(self) -> None:
        """Destroy every tracked connection and wait until each one has closed.

        Connections registered while waiting are closed in a further round.
        """
        while self.connections:
            pending = self.list_connections()
            logger.debug("Closing connections", count=len(pending))

            waiters = [connection.wait_closed() for connection in pending]
            for connection in pending:
                connection.destroy()
            await asyncio.gather(*waiters)

            for connection in pending:
                self.connections.pop(connection.id, None)
