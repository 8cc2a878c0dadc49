"""Host monitoring: snapshot types, the Linux collector and the shared monitor."""

from sysmon.monitor.collector import CollectorError, LinuxCollector
from sysmon.monitor.core import SystemMonitor
from sysmon.monitor.types import (
    CPUInfo,
    DiskInfo,
    MemoryInfo,
    MonitoringStatus,
    NetworkInfo,
    ProcessInfo,
    SystemInfo,
    SystemMetrics,
)

__all__ = [
    "CollectorError",
    "LinuxCollector",
    "SystemMonitor",
    "CPUInfo",
    "DiskInfo",
    "MemoryInfo",
    "MonitoringStatus",
    "NetworkInfo",
    "ProcessInfo",
    "SystemInfo",
    "SystemMetrics",
]
