"""MCP tool definitions for sysmon.

Each tool is a thin alias for one domain JSON-RPC method; ``tools/call``
looks the tool up in :data:`TOOL_METHODS` and dispatches the mapped
method with the tool arguments as its params.

The catalogue is static and side-effect free.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain method names
# ---------------------------------------------------------------------------

METHOD_GET_SYSTEM_INFO = "getSystemInfo"
METHOD_GET_CPU_INFO = "getCPUInfo"
METHOD_GET_MEMORY_INFO = "getMemoryInfo"
METHOD_GET_DISK_INFO = "getDiskInfo"
METHOD_GET_NETWORK_INFO = "getNetworkInfo"
METHOD_GET_PROCESSES = "getProcesses"
METHOD_GET_PROCESS_BY_PID = "getProcessByPID"
METHOD_GET_SYSTEM_METRICS = "getSystemMetrics"
METHOD_START_MONITORING = "startMonitoring"
METHOD_STOP_MONITORING = "stopMonitoring"
METHOD_GET_MONITORING_STATUS = "getMonitoringStatus"

DOMAIN_METHODS = frozenset({
    METHOD_GET_SYSTEM_INFO,
    METHOD_GET_CPU_INFO,
    METHOD_GET_MEMORY_INFO,
    METHOD_GET_DISK_INFO,
    METHOD_GET_NETWORK_INFO,
    METHOD_GET_PROCESSES,
    METHOD_GET_PROCESS_BY_PID,
    METHOD_GET_SYSTEM_METRICS,
    METHOD_START_MONITORING,
    METHOD_STOP_MONITORING,
    METHOD_GET_MONITORING_STATUS,
})


# ---------------------------------------------------------------------------
# Tool definition schema (MCP-compatible)
# ---------------------------------------------------------------------------


def _no_arguments() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


@dataclass
class MCPToolDef:
    """MCP tool definition with JSON Schema input."""
    name: str
    description: str
    method: str
    input_schema: dict[str, Any] = field(default_factory=_no_arguments)
    read_only: bool = True            # MCP annotation hint

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "annotations": {
                "readOnlyHint": self.read_only,
                "destructiveHint": False,
            },
        }


SYSMON_TOOLS: list[MCPToolDef] = [
    MCPToolDef(
        name="get_system_info",
        description="Get system information (hostname, OS, kernel version, uptime)",
        method=METHOD_GET_SYSTEM_INFO,
    ),
    MCPToolDef(
        name="get_cpu_info",
        description="Get CPU information and usage statistics",
        method=METHOD_GET_CPU_INFO,
    ),
    MCPToolDef(
        name="get_memory_info",
        description="Get memory and swap usage information",
        method=METHOD_GET_MEMORY_INFO,
    ),
    MCPToolDef(
        name="get_disk_info",
        description="Get disk usage information for all mounted filesystems",
        method=METHOD_GET_DISK_INFO,
    ),
    MCPToolDef(
        name="get_network_info",
        description="Get network interface information and statistics",
        method=METHOD_GET_NETWORK_INFO,
    ),
    MCPToolDef(
        name="get_processes",
        description="Get list of all running processes",
        method=METHOD_GET_PROCESSES,
    ),
    MCPToolDef(
        name="get_process_by_pid",
        description="Get details for a single process by its PID",
        method=METHOD_GET_PROCESS_BY_PID,
        input_schema={
            "type": "object",
            "properties": {
                "pid": {
                    "type": "integer",
                    "minimum": 0,
                    "maximum": 2**32 - 1,
                    "description": "Process ID to look up",
                },
            },
            "required": ["pid"],
        },
    ),
    MCPToolDef(
        name="get_system_metrics",
        description="Get comprehensive system metrics",
        method=METHOD_GET_SYSTEM_METRICS,
    ),
    MCPToolDef(
        name="start_monitoring",
        description="Mark monitoring as active (returns whether the state changed)",
        method=METHOD_START_MONITORING,
        read_only=False,
    ),
    MCPToolDef(
        name="stop_monitoring",
        description="Mark monitoring as inactive (returns whether the state changed)",
        method=METHOD_STOP_MONITORING,
        read_only=False,
    ),
    MCPToolDef(
        name="get_monitoring_status",
        description="Get the monitoring flag and the time of the last data refresh",
        method=METHOD_GET_MONITORING_STATUS,
    ),
]

TOOL_METHODS: dict[str, str] = {
    "get_system_info": METHOD_GET_SYSTEM_INFO,
    "get_cpu_info": METHOD_GET_CPU_INFO,
    "get_memory_info": METHOD_GET_MEMORY_INFO,
    "get_disk_info": METHOD_GET_DISK_INFO,
    "get_network_info": METHOD_GET_NETWORK_INFO,
    "get_processes": METHOD_GET_PROCESSES,
    "get_process_by_pid": METHOD_GET_PROCESS_BY_PID,
    "get_system_metrics": METHOD_GET_SYSTEM_METRICS,
    "start_monitoring": METHOD_START_MONITORING,
    "stop_monitoring": METHOD_STOP_MONITORING,
    "get_monitoring_status": METHOD_GET_MONITORING_STATUS,
}


def list_tools() -> list[dict[str, Any]]:
    """Return the MCP-formatted tool catalogue."""
    return [t.to_dict() for t in SYSMON_TOOLS]


def validate_tool_catalogue(
    tools: list[MCPToolDef] | None = None,
    mapping: dict[str, str] | None = None,
    methods: frozenset[str] | set[str] = DOMAIN_METHODS,
) -> None:
    """Check that the catalogue and the dispatch mapping agree.

    Every listed tool must have a mapping entry pointing at the same
    domain method, and every mapping entry must be listed.

    Raises:
        RuntimeError: describing every mismatch found.
    """
    tools = SYSMON_TOOLS if tools is None else tools
    mapping = TOOL_METHODS if mapping is None else mapping

    problems = []
    listed = {t.name: t for t in tools}
    if len(listed) != len(tools):
        problems.append("duplicate tool names in catalogue")

    for name in sorted(set(listed) - set(mapping)):
        problems.append(f"tool {name!r} is listed but has no dispatch entry")
    for name in sorted(set(mapping) - set(listed)):
        problems.append(f"dispatch entry {name!r} is not listed")
    for name, method in sorted(mapping.items()):
        if method not in methods:
            problems.append(f"tool {name!r} maps to unknown method {method!r}")
        elif name in listed and listed[name].method != method:
            problems.append(
                f"tool {name!r} lists method {listed[name].method!r} "
                f"but dispatches to {method!r}"
            )

    if problems:
        raise RuntimeError("Tool catalogue mismatch: " + "; ".join(problems))
    logger.debug("Tool catalogue ok: %d tools", len(listed))
