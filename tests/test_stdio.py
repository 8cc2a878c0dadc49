"""Tests for the Content-Length framed stdio transport."""

from __future__ import annotations

import asyncio
import json

import pytest

from sysmon.mcp.protocol import ErrorCode, frame
from sysmon.mcp.stdio import StdioServer, parse_content_length


class BufferWriter:
    """Collects written bytes; counts drains."""

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.drains = 0

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    async def drain(self) -> None:
        self.drains += 1


def request(method: str, id=1, params=None) -> bytes:
    msg = {"jsonrpc": "2.0", "method": method}
    if id is not None:
        msg["id"] = id
    if params is not None:
        msg["params"] = params
    return frame(json.dumps(msg).encode("utf-8"))


def read_frames(data: bytes) -> list[dict]:
    """Split framed output back into messages."""
    messages = []
    while data:
        header, _, rest = data.partition(b"\r\n\r\n")
        assert header.startswith(b"Content-Length: ")
        length = int(header.split(b":")[1])
        messages.append(json.loads(rest[:length]))
        data = rest[length:]
    return messages


async def run(server, *chunks: bytes, eof: bool = True) -> BufferWriter:
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    writer = BufferWriter()
    await StdioServer(server, reader, writer).serve()
    return writer


# ===========================================================================
# Header parsing
# ===========================================================================


class TestParseContentLength:

    def test_basic(self):
        assert parse_content_length([b"Content-Length: 12"]) == 12

    def test_case_insensitive(self):
        assert parse_content_length([b"content-length: 5"]) == 5
        assert parse_content_length([b"CONTENT-LENGTH:5"]) == 5

    def test_other_headers_ignored(self):
        headers = [b"Content-Type: application/vscode-jsonrpc; charset=utf-8", b"Content-Length: 3"]
        assert parse_content_length(headers) == 3

    def test_missing(self):
        assert parse_content_length([b"Content-Type: application/json"]) is None

    def test_not_a_number(self):
        assert parse_content_length([b"Content-Length: lots"]) is None
        assert parse_content_length([b"Content-Length: -4"]) is None


# ===========================================================================
# Serve loop
# ===========================================================================


class TestStdioServer:

    @pytest.mark.asyncio
    async def test_single_request(self, server):
        writer = await run(server, request("ping", id=1))
        assert read_frames(bytes(writer.buffer)) == [{"jsonrpc": "2.0", "id": 1, "result": {}}]
        assert writer.drains == 1

    @pytest.mark.asyncio
    async def test_clean_eof_writes_nothing(self, server):
        writer = await run(server)
        assert writer.buffer == b""

    @pytest.mark.asyncio
    async def test_numeric_id_round_trips_unquoted(self, server):
        writer = await run(server, request("getCPUInfo", id=7))
        assert b'"id":7' in writer.buffer
        (msg,) = read_frames(bytes(writer.buffer))
        assert msg["id"] == 7
        assert msg["result"]["cores"] > 0

    @pytest.mark.asyncio
    async def test_string_id_round_trips(self, server):
        writer = await run(server, request("ping", id="7"))
        (msg,) = read_frames(bytes(writer.buffer))
        assert msg["id"] == "7"

    @pytest.mark.asyncio
    async def test_notification_writes_nothing(self, server):
        writer = await run(server, request("initialized", id=None))
        assert writer.buffer == b""

    @pytest.mark.asyncio
    async def test_initialize_echoes_version(self, server):
        writer = await run(server, request(
            "initialize", id=1, params={"protocolVersion": "2099-01-01"},
        ))
        (msg,) = read_frames(bytes(writer.buffer))
        assert msg["result"]["protocolVersion"] == "2099-01-01"

    @pytest.mark.asyncio
    async def test_unknown_method_then_next_request(self, server):
        writer = await run(
            server,
            request("doesNotExist", id=1),
            request("ping", id=2),
        )
        first, second = read_frames(bytes(writer.buffer))
        assert first["error"]["code"] == -32601
        assert first["error"]["message"] == "Method not found"
        assert second == {"jsonrpc": "2.0", "id": 2, "result": {}}

    @pytest.mark.asyncio
    async def test_responses_in_request_order(self, server):
        writer = await run(server, *(request("ping", id=i) for i in range(5)))
        assert [m["id"] for m in read_frames(bytes(writer.buffer))] == list(range(5))

    @pytest.mark.asyncio
    async def test_bare_newlines_tolerated(self, server):
        body = b'{"jsonrpc":"2.0","id":1,"method":"ping"}'
        writer = await run(server, b"Content-Length: %d\n\n" % len(body) + body)
        assert read_frames(bytes(writer.buffer))[0]["result"] == {}

    @pytest.mark.asyncio
    async def test_block_without_length_is_skipped(self, server):
        writer = await run(
            server,
            b"Content-Type: application/json\r\n\r\n",
            request("ping", id=3),
        )
        (msg,) = read_frames(bytes(writer.buffer))
        assert msg["id"] == 3

    @pytest.mark.asyncio
    async def test_oversized_stray_line_is_skipped(self, server):
        writer = await run(
            server,
            b"x" * 70_000 + b"\r\n\r\n",
            request("ping", id=1),
        )
        assert read_frames(bytes(writer.buffer)) == [{"jsonrpc": "2.0", "id": 1, "result": {}}]

    @pytest.mark.asyncio
    async def test_block_with_oversized_header_is_discarded(self, server):
        writer = await run(
            server,
            b"Content-Length: 2\r\nX-Junk: " + b"y" * 70_000 + b"\r\n\r\n",
            request("ping", id=2),
        )
        (msg,) = read_frames(bytes(writer.buffer))
        assert msg["id"] == 2

    @pytest.mark.asyncio
    async def test_bad_json_is_parse_error(self, server):
        writer = await run(server, frame(b"{nope"), request("ping", id=2))
        error, ok = read_frames(bytes(writer.buffer))
        assert error["id"] is None
        assert error["error"]["code"] == ErrorCode.PARSE_ERROR
        assert error["error"]["message"] == "Parse error"
        assert ok["id"] == 2

    @pytest.mark.asyncio
    async def test_invalid_request_echoes_id(self, server):
        writer = await run(server, frame(b'{"jsonrpc":"2.0","id":5,"method":""}'))
        (msg,) = read_frames(bytes(writer.buffer))
        assert msg["id"] == 5
        assert msg["error"]["code"] == ErrorCode.PARSE_ERROR

    @pytest.mark.asyncio
    async def test_truncated_body_at_eof(self, server):
        writer = await run(server, b"Content-Length: 100\r\n\r\n" + b'{"jsonrpc":"2.0"')
        (msg,) = read_frames(bytes(writer.buffer))
        assert msg["id"] is None
        assert msg["error"]["code"] == ErrorCode.PARSE_ERROR
        assert msg["error"]["data"]["expected"] == 100
        assert msg["error"]["data"]["received"] == 16

    @pytest.mark.asyncio
    async def test_short_body_waits_for_rest(self, server):
        body = b'{"jsonrpc":"2.0","id":1,"method":"ping"}'
        reader = asyncio.StreamReader()
        writer = BufferWriter()
        task = asyncio.create_task(StdioServer(server, reader, writer).serve())

        reader.feed_data(b"Content-Length: %d\r\n\r\n" % len(body) + body[:10])
        await asyncio.sleep(0.01)
        assert writer.buffer == b""

        reader.feed_data(body[10:])
        reader.feed_eof()
        await asyncio.wait_for(task, timeout=1)
        assert read_frames(bytes(writer.buffer))[0]["id"] == 1
