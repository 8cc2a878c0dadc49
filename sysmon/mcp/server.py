"""Protocol router for sysmon.

Turns one parsed :class:`MCPRequest` into exactly one :class:`MCPResponse`.
Transports own the bytes; this module owns the methods.  Whether a
response is actually written is decided by the transport (see
:func:`sysmon.mcp.protocol.encode_response`), so every handler here
returns a result even for notifications.

Usage::

    server = MCPServer()
    response = await server.handle_request(
        MCPRequest(method="getCPUInfo", id=1)
    )
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from sysmon import __version__
from sysmon.config.settings import Settings, get_settings
from sysmon.mcp.protocol import ErrorCode, MCPRequest, MCPResponse
from sysmon.mcp.tools import (
    METHOD_GET_CPU_INFO,
    METHOD_GET_DISK_INFO,
    METHOD_GET_MEMORY_INFO,
    METHOD_GET_MONITORING_STATUS,
    METHOD_GET_NETWORK_INFO,
    METHOD_GET_PROCESS_BY_PID,
    METHOD_GET_PROCESSES,
    METHOD_GET_SYSTEM_INFO,
    METHOD_GET_SYSTEM_METRICS,
    METHOD_START_MONITORING,
    METHOD_STOP_MONITORING,
    TOOL_METHODS,
    list_tools,
    validate_tool_catalogue,
)
from sysmon.monitor.core import SystemMonitor

logger = logging.getLogger(__name__)

# Server capabilities
SERVER_CAPABILITIES = {"tools": {}}

MAX_PID = 2**32 - 1

Handler = Callable[[Any], Awaitable[Any]]


class MethodError(Exception):
    """Raised by a handler to produce an error response."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def parse_pid(params: Any) -> int:
    """Extract a PID from ``params``.

    Accepts a JSON integer or a string of decimal digits in
    ``[0, 2**32 - 1]``.

    Raises:
        MethodError: INVALID_PARAMS when the PID is missing or malformed.
    """
    if not isinstance(params, dict) or "pid" not in params:
        raise MethodError(ErrorCode.INVALID_PARAMS, "Missing PID parameter")

    raw = params["pid"]
    if isinstance(raw, bool):
        pid = None
    elif isinstance(raw, int):
        pid = raw
    elif isinstance(raw, str) and raw.isascii() and raw.isdigit():
        pid = int(raw)
    else:
        pid = None

    if pid is None or not 0 <= pid <= MAX_PID:
        raise MethodError(ErrorCode.INVALID_PARAMS, "Invalid PID parameter")
    return pid


# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------


class MCPServer:
    """Routes JSON-RPC requests to the handshake, tool and monitor handlers.

    Handles the MCP protocol lifecycle:
      1. initialize → capabilities exchange
      2. tools/list → enumerate available tools
      3. tools/call → run a tool (an alias for a domain method)

    and the domain methods (``getCPUInfo``, ``getProcessByPID``, ...)
    called directly.
    """

    def __init__(
        self,
        monitor: SystemMonitor | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.monitor = monitor if monitor is not None else SystemMonitor()
        self.settings = settings or get_settings()

        # Method dispatch table
        self._methods: dict[str, Handler] = {
            "initialize": self._handle_initialize,
            "initialized": self._handle_initialized,
            "notifications/initialized": self._handle_initialized,
            "ping": self._handle_ping,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
            METHOD_GET_SYSTEM_INFO: self._handle_system_info,
            METHOD_GET_CPU_INFO: self._handle_cpu_info,
            METHOD_GET_MEMORY_INFO: self._handle_memory_info,
            METHOD_GET_DISK_INFO: self._handle_disk_info,
            METHOD_GET_NETWORK_INFO: self._handle_network_info,
            METHOD_GET_PROCESSES: self._handle_processes,
            METHOD_GET_PROCESS_BY_PID: self._handle_process_by_pid,
            METHOD_GET_SYSTEM_METRICS: self._handle_system_metrics,
            METHOD_START_MONITORING: self._handle_start_monitoring,
            METHOD_STOP_MONITORING: self._handle_stop_monitoring,
            METHOD_GET_MONITORING_STATUS: self._handle_monitoring_status,
        }

        validate_tool_catalogue(methods=set(self._methods))

    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    @property
    def server_info(self) -> dict[str, str]:
        return {"name": self.settings.SERVER_NAME, "version": __version__}

    # --- Protocol handlers ---

    async def _handle_initialize(self, params: Any) -> dict[str, Any]:
        """Echo the client's protocol version; no negotiation is done."""
        params = params if isinstance(params, dict) else {}
        client_info = params.get("clientInfo") or {}
        if isinstance(client_info, dict):
            logger.info(
                "MCP client connecting: %s %s",
                client_info.get("name", "unknown"),
                client_info.get("version", ""),
            )
        version = params.get("protocolVersion")
        if not isinstance(version, str) or not version:
            version = self.settings.DEFAULT_PROTOCOL_VERSION
        return {
            "protocolVersion": version,
            "capabilities": SERVER_CAPABILITIES,
            "serverInfo": self.server_info,
        }

    async def _handle_initialized(self, params: Any) -> dict[str, Any]:
        logger.info("MCP session initialized")
        return {}

    async def _handle_ping(self, params: Any) -> dict[str, Any]:
        return {}

    async def _handle_tools_list(self, params: Any) -> dict[str, Any]:
        return {"tools": list_tools()}

    async def _handle_tools_call(self, params: Any) -> dict[str, Any]:
        """Run a tool by dispatching its mapped domain method.

        Domain errors propagate unchanged as the tools/call error.
        """
        params = params if isinstance(params, dict) else {}
        tool_name = params.get("name")
        if not isinstance(tool_name, str) or not tool_name:
            raise MethodError(ErrorCode.INVALID_PARAMS, "Missing tool name")

        method = TOOL_METHODS.get(tool_name)
        if method is None:
            raise MethodError(
                ErrorCode.METHOD_NOT_FOUND, "Tool not found", {"tool": tool_name}
            )

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}

        logger.info("MCP tool call: %s -> %s", tool_name, method)
        result = await self._methods[method](arguments)
        return {
            "content": [
                {"type": "text", "text": json.dumps(result, indent=2, default=str)},
            ],
        }

    # --- Monitor handlers ---

    async def _call_monitor(self, action: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking monitor call in a worker thread.

        Any failure becomes INTERNAL_ERROR ``"Failed to <action>: <detail>"``.
        """
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as exc:
            logger.error("Failed to %s: %s", action, exc)
            raise MethodError(
                ErrorCode.INTERNAL_ERROR, f"Failed to {action}: {exc}"
            ) from exc

    async def _handle_system_info(self, params: Any) -> dict[str, Any]:
        info = await self._call_monitor("get system info", self.monitor.get_system_info)
        return info.to_dict()

    async def _handle_cpu_info(self, params: Any) -> dict[str, Any]:
        info = await self._call_monitor("get CPU info", self.monitor.get_cpu_info)
        return info.to_dict()

    async def _handle_memory_info(self, params: Any) -> dict[str, Any]:
        info = await self._call_monitor("get memory info", self.monitor.get_memory_info)
        return info.to_dict()

    async def _handle_disk_info(self, params: Any) -> list[dict[str, Any]]:
        disks = await self._call_monitor("get disk info", self.monitor.get_disk_info)
        return [d.to_dict() for d in disks]

    async def _handle_network_info(self, params: Any) -> list[dict[str, Any]]:
        networks = await self._call_monitor(
            "get network info", self.monitor.get_network_info
        )
        return [n.to_dict() for n in networks]

    async def _handle_processes(self, params: Any) -> list[dict[str, Any]]:
        processes = await self._call_monitor("get processes", self.monitor.get_processes)
        return [p.to_dict() for p in processes]

    async def _handle_process_by_pid(self, params: Any) -> dict[str, Any]:
        pid = parse_pid(params)
        process = await self._call_monitor(
            "get process", self.monitor.get_process_by_pid, pid
        )
        if process is None:
            raise MethodError(
                ErrorCode.PROCESS_NOT_FOUND, f"Process with PID {pid} not found"
            )
        return process.to_dict()

    async def _handle_system_metrics(self, params: Any) -> dict[str, Any]:
        metrics = await self._call_monitor(
            "get system metrics", self.monitor.get_system_metrics
        )
        return metrics.to_dict()

    async def _handle_start_monitoring(self, params: Any) -> dict[str, Any]:
        started = await self._call_monitor(
            "start monitoring", self.monitor.start_monitoring
        )
        return {
            "started": started,
            "message": (
                "Monitoring started successfully" if started
                else "Monitoring already active"
            ),
        }

    async def _handle_stop_monitoring(self, params: Any) -> dict[str, Any]:
        stopped = await self._call_monitor(
            "stop monitoring", self.monitor.stop_monitoring
        )
        return {
            "stopped": stopped,
            "message": (
                "Monitoring stopped successfully" if stopped
                else "Monitoring not active"
            ),
        }

    async def _handle_monitoring_status(self, params: Any) -> dict[str, Any]:
        status = await self._call_monitor(
            "get monitoring status", self.monitor.get_monitoring_status
        )
        result = status.to_dict()
        result["service_status"] = "running"
        return result

    # --- Request routing ---

    async def handle_request(self, request: MCPRequest) -> MCPResponse:
        """Dispatch ``request`` and return its response.

        Never raises: handler failures come back as error responses.
        """
        handler = self._methods.get(request.method)
        if handler is None:
            logger.warning("Unknown method: %s", request.method)
            return MCPResponse.failure(
                request.id,
                ErrorCode.METHOD_NOT_FOUND,
                "Method not found",
                {"method": request.method},
            )

        logger.debug("Handling %s (id=%r)", request.method, request.id)
        try:
            result = await handler(request.params)
        except MethodError as exc:
            return MCPResponse.failure(request.id, exc.code, exc.message, exc.data)
        except Exception as exc:
            logger.exception("Error handling %s", request.method)
            return MCPResponse.failure(
                request.id, ErrorCode.INTERNAL_ERROR, f"Internal error: {exc}"
            )
        return MCPResponse.success(request.id, result)
