"""Snapshot value objects produced by the system monitor.

Every snapshot is created fresh for each request and never mutated.
``to_dict()`` yields plain JSON values (datetimes as ISO-8601 UTC).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class _Snapshot:
    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class SystemInfo(_Snapshot):
    """Hostname, OS details and uptime."""
    hostname: str
    os_name: str
    os_version: str
    kernel_version: str
    uptime: int                 # seconds
    boot_time: datetime


@dataclass(frozen=True)
class CPUInfo(_Snapshot):
    name: str
    brand: str
    frequency: int              # MHz
    cores: int
    usage_percent: float
    temperature: float | None = None   # Celsius


@dataclass(frozen=True)
class MemoryInfo(_Snapshot):
    """RAM and swap usage, all sizes in bytes."""
    total: int
    used: int
    free: int
    available: int
    swap_total: int
    swap_used: int
    swap_free: int
    usage_percent: float
    swap_usage_percent: float


@dataclass(frozen=True)
class DiskInfo(_Snapshot):
    """One mounted filesystem."""
    name: str
    mount_point: str
    file_system: str
    total_space: int
    used_space: int
    free_space: int
    usage_percent: float


@dataclass(frozen=True)
class NetworkInfo(_Snapshot):
    """One network interface with cumulative counters."""
    interface: str
    ip_address: str
    mac_address: str
    bytes_received: int
    bytes_transmitted: int
    packets_received: int
    packets_transmitted: int
    errors_received: int
    errors_transmitted: int


@dataclass(frozen=True)
class ProcessInfo(_Snapshot):
    pid: int
    name: str
    command: str
    cpu_usage: float
    memory_usage: int           # resident bytes
    memory_usage_percent: float
    status: str
    start_time: datetime
    user: str
    priority: int


@dataclass(frozen=True)
class SystemMetrics(_Snapshot):
    """Everything above, collected in one pass."""
    timestamp: datetime
    system_info: SystemInfo
    cpu_info: CPUInfo
    memory_info: MemoryInfo
    disks: list[DiskInfo] = field(default_factory=list)
    networks: list[NetworkInfo] = field(default_factory=list)
    processes: list[ProcessInfo] = field(default_factory=list)


@dataclass(frozen=True)
class MonitoringStatus(_Snapshot):
    monitoring_active: bool
    last_update: datetime


def calculate_percentage(part: int | float, total: int | float) -> float:
    """Percentage of ``part`` in ``total``; 0.0 when ``total`` is zero."""
    if not total:
        return 0.0
    return (part / total) * 100.0
