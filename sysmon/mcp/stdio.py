"""Content-Length framed stdio transport.

Each message on stdin and stdout is a header block followed by a body::

    Content-Length: 52\\r\\n
    \\r\\n
    {"jsonrpc":"2.0","id":1,"method":"getCPUInfo"}

Requests are handled strictly one at a time: a response is written and
flushed before the next header block is read.  Stdout carries protocol
bytes only; logging goes to stderr.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Protocol

from sysmon.mcp.protocol import (
    ErrorCode,
    MCPResponse,
    RequestDecodeError,
    decode_request,
    encode_message,
    encode_response,
    frame,
)
from sysmon.mcp.server import MCPServer

logger = logging.getLogger(__name__)

CONTENT_LENGTH = "content-length"


class FrameWriter(Protocol):
    def write(self, data: bytes) -> Any: ...

    async def drain(self) -> None: ...


def parse_content_length(headers: list[bytes]) -> int | None:
    """Return the Content-Length of a header block, or None if absent/invalid."""
    length = None
    for line in headers:
        name, sep, value = line.partition(b":")
        if not sep:
            logger.debug("Ignoring malformed header line: %r", line)
            continue
        if name.strip().decode("latin-1").lower() != CONTENT_LENGTH:
            continue
        value = value.strip()
        if not value.isdigit():
            return None
        length = int(value)
    return length


class StdioServer:
    """Reads framed requests from ``reader`` and writes framed responses.

    ``reader`` is an :class:`asyncio.StreamReader`; ``writer`` needs only
    ``write(bytes)`` and an awaitable ``drain()``.
    """

    def __init__(
        self,
        server: MCPServer,
        reader: asyncio.StreamReader,
        writer: FrameWriter,
    ) -> None:
        self.server = server
        self.reader = reader
        self.writer = writer

    async def _read_headers(self) -> list[bytes] | None:
        """Read one header block.  Returns None on EOF.

        A block containing a line longer than the reader's limit comes back
        empty, so the caller discards it.
        """
        headers: list[bytes] = []
        oversized = False
        while True:
            try:
                line = await self.reader.readline()
            except ValueError as exc:
                # readline has already dropped the overlong chunk
                logger.warning("Discarding oversized header line: %s", exc)
                oversized = True
                continue
            if not line or not line.endswith(b"\n"):
                if headers or line:
                    logger.info("EOF inside header block; discarding %d line(s)",
                                len(headers) + bool(line))
                return None
            line = line.rstrip(b"\r\n")
            if not line:
                if oversized:
                    return []
                if headers:
                    return headers
                # stray blank line between frames
                continue
            headers.append(line)

    async def _write(self, response: MCPResponse) -> None:
        self.writer.write(frame(encode_message(response.to_dict())))
        await self.writer.drain()

    async def serve(self) -> None:
        """Run until stdin reaches EOF."""
        logger.info("sysmon MCP server starting on stdio")
        while True:
            headers = await self._read_headers()
            if headers is None:
                logger.info("stdin closed, stopping")
                return

            length = parse_content_length(headers)
            if length is None:
                logger.warning("Header block without a valid Content-Length; skipping")
                continue

            try:
                body = await self.reader.readexactly(length)
            except asyncio.IncompleteReadError as exc:
                received = len(exc.partial)
                logger.error("Truncated frame: expected %d bytes, got %d", length, received)
                await self._write(MCPResponse.failure(
                    None,
                    ErrorCode.PARSE_ERROR,
                    "Parse error",
                    {
                        "detail": "Incomplete message body",
                        "expected": length,
                        "received": received,
                    },
                ))
                return

            try:
                request = decode_request(body)
            except RequestDecodeError as exc:
                logger.warning("Could not decode request: %s", exc)
                await self._write(MCPResponse.failure(
                    exc.id, ErrorCode.PARSE_ERROR, "Parse error", str(exc)
                ))
                continue

            response = await self.server.handle_request(request)
            data = encode_response(request, response)
            if data is not None:
                self.writer.write(frame(data))
                await self.writer.drain()


async def connect_stdio() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap the process's stdin/stdout in asyncio streams."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin.buffer)

    writer_transport, writer_protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout.buffer
    )
    writer = asyncio.StreamWriter(writer_transport, writer_protocol, None, loop)
    return reader, writer


async def run_stdio(server: MCPServer) -> None:
    """Serve ``server`` over the process's stdin/stdout."""
    reader, writer = await connect_stdio()
    await StdioServer(server, reader, writer).serve()
