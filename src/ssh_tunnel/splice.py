"""Bidirectional byte copying between a local socket and a forwarded channel."""

import asyncio
import contextlib
from collections.abc import Callable
from typing import Any

import asyncssh

from .exceptions import SessionError, TunnelConnectionError, TunnelError

BUFFER_SIZE = 64 * 1024

_STREAM_ERRORS = (OSError, asyncssh.Error)

ErrorFactory = Callable[[BaseException], TunnelError]


def _local_error(e: BaseException) -> TunnelError:
    return TunnelConnectionError(f"Local connection failed: {e}")


def _channel_error(e: BaseException) -> TunnelError:
    return SessionError(f"Forwarded channel failed: {e}")


async def pump(
    reader: Any,
    writer: Any,
    *,
    read_error: ErrorFactory = _local_error,
    write_error: ErrorFactory = _channel_error,
) -> int:
    """Copy ``reader`` to ``writer`` until EOF, then half-close ``writer``.

    Errors are wrapped by ``read_error``/``write_error`` according to the
    side that raised them.

    Returns:
        Number of bytes copied
    """
    copied = 0
    while True:
        try:
            data = await reader.read(BUFFER_SIZE)
        except _STREAM_ERRORS as e:
            raise read_error(e) from e

        if not data:
            break

        try:
            writer.write(data)
            await writer.drain()
        except _STREAM_ERRORS as e:
            raise write_error(e) from e
        copied += len(data)

    if writer.can_write_eof():
        # The peer may have closed both directions already
        with contextlib.suppress(*_STREAM_ERRORS):
            writer.write_eof()

    return copied


async def splice(
    local_reader: asyncio.StreamReader,
    local_writer: asyncio.StreamWriter,
    channel_reader: Any,
    channel_writer: Any,
) -> None:
    """Copy bytes both ways until both directions reach EOF.

    The first TunnelError raised by either direction stops the other one and
    is re-raised.
    """
    upstream = asyncio.ensure_future(
        pump(
            local_reader,
            channel_writer,
            read_error=_local_error,
            write_error=_channel_error,
        )
    )
    downstream = asyncio.ensure_future(
        pump(
            channel_reader,
            local_writer,
            read_error=_channel_error,
            write_error=_local_error,
        )
    )

    try:
        done, _ = await asyncio.wait(
            {upstream, downstream}, return_when=asyncio.FIRST_EXCEPTION
        )
    finally:
        for task in (upstream, downstream):
            task.cancel()

    errors = [
        task.exception()
        for task in (upstream, downstream)
        if task in done and not task.cancelled() and task.exception() is not None
    ]
    if errors:
        raise errors[0]
