"""MCP (Model Context Protocol) server for sysmon.

Exposes host telemetry as JSON-RPC 2.0 methods and MCP tools over a
Content-Length framed stdio transport and over HTTP.

Usage::

    from sysmon.mcp.server import MCPServer
    from sysmon.mcp.stdio import run_stdio

    await run_stdio(MCPServer())
"""

from sysmon.mcp.protocol import ErrorCode, MCPError, MCPRequest, MCPResponse
from sysmon.mcp.server import MCPServer
from sysmon.mcp.tools import SYSMON_TOOLS, TOOL_METHODS

__all__ = [
    "ErrorCode",
    "MCPError",
    "MCPRequest",
    "MCPResponse",
    "MCPServer",
    "SYSMON_TOOLS",
    "TOOL_METHODS",
]
