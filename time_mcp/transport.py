"""
Byte-stream transports for the line protocol.

A transport only moves bytes: ``read()`` returns the next chunk (``b""`` at
end of stream), ``write()`` sends one encoded frame, ``close()`` releases
the channel. ``serve_lines`` binds a transport to a ``JsonRpcProtocol``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
import logging
import sys
from typing import BinaryIO, Protocol

from time_mcp.protocol import DEFAULT_MAX_LINE_BYTES, JsonRpcProtocol, LineDecoder, encode_message

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


class Transport(Protocol):
    async def read(self) -> bytes: ...

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...


class StdioTransport:
    """Process stdin/stdout. Blocking reads run in a worker thread."""

    def __init__(self, stdin: BinaryIO | None = None, stdout: BinaryIO | None = None):
        self._stdin = stdin or sys.stdin.buffer
        self._stdout = stdout or sys.stdout.buffer

    async def read(self) -> bytes:
        return await asyncio.to_thread(self._stdin.read1, CHUNK_SIZE)

    async def write(self, data: bytes) -> None:
        self._stdout.write(data)
        self._stdout.flush()

    async def close(self) -> None:
        self._stdout.flush()


class StreamTransport:
    """asyncio stream pair, e.g. one TCP connection."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._reader = reader
        self._writer = writer

    async def read(self) -> bytes:
        return await self._reader.read(CHUNK_SIZE)

    async def write(self, data: bytes) -> None:
        self._writer.write(data)
        await self._writer.drain()

    async def close(self) -> None:
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except ConnectionError:
            pass


class MemoryTransport:
    """In-memory duplex channel for tests and embedding."""

    def __init__(self, chunks: Iterable[bytes] = ()):
        self._incoming: asyncio.Queue[bytes] = asyncio.Queue()
        self.written: list[bytes] = []
        self.closed = False
        for chunk in chunks:
            self.feed(chunk)

    def feed(self, chunk: bytes) -> None:
        if chunk:
            self._incoming.put_nowait(chunk)

    def feed_eof(self) -> None:
        self._incoming.put_nowait(b"")

    async def read(self) -> bytes:
        return await self._incoming.get()

    async def write(self, data: bytes) -> None:
        self.written.append(data)

    async def close(self) -> None:
        self.closed = True

    @property
    def output(self) -> bytes:
        return b"".join(self.written)


async def serve_lines(
    transport: Transport,
    protocol: JsonRpcProtocol,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> None:
    """
    Pump one connection until end of stream.

    Requests are handled strictly in arrival order and each response is
    written before the next request starts.
    """
    decoder = LineDecoder(max_line_bytes=max_line_bytes)
    try:
        while True:
            chunk = await transport.read()
            if not chunk:
                break
            for item in decoder.feed(chunk):
                await _respond(transport, protocol, item)

        for item in decoder.close():
            await _respond(transport, protocol, item)
    finally:
        await transport.close()


async def _respond(transport: Transport, protocol: JsonRpcProtocol, item: object) -> None:
    response = await protocol.handle_decoded(item)
    if response is not None:
        await transport.write(encode_message(response))


async def serve_tcp(
    protocol: JsonRpcProtocol,
    host: str,
    port: int,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> asyncio.Server:
    """Start a TCP listener; each connection gets its own decoder."""

    async def on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        logger.info(f"connection opened: {peer}")
        try:
            await serve_lines(StreamTransport(reader, writer), protocol, max_line_bytes)
        except ConnectionError as e:
            logger.warning(f"connection {peer} dropped: {e}")
        logger.info(f"connection closed: {peer}")

    server = await asyncio.start_server(on_connect, host, port)
    logger.info(f"Listening on {host}:{port} (tcp, line framing)")
    return server
