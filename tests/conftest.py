"""Shared fixtures: a fixed-value collector behind a real SystemMonitor."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sysmon.config.settings import Settings
from sysmon.mcp.server import MCPServer
from sysmon.monitor import (
    CPUInfo,
    CollectorError,
    DiskInfo,
    MemoryInfo,
    NetworkInfo,
    ProcessInfo,
    SystemInfo,
    SystemMonitor,
)

BOOT = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeCollector:
    """Deterministic stand-in for LinuxCollector.

    Set ``fail`` to make every call raise CollectorError.
    """

    def __init__(self) -> None:
        self.fail = False
        self.calls: list[str] = []
        self.procs = {
            1: self._proc(1, "init"),
            4242: self._proc(4242, "python3"),
        }

    @staticmethod
    def _proc(pid: int, name: str) -> ProcessInfo:
        return ProcessInfo(
            pid=pid,
            name=name,
            command=f"/usr/bin/{name}",
            cpu_usage=0.5,
            memory_usage=1024 * 1024,
            memory_usage_percent=0.1,
            status="sleeping",
            start_time=BOOT,
            user="root",
            priority=0,
        )

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise CollectorError(f"cannot read {name}: boom")

    def system_info(self) -> SystemInfo:
        self._record("system_info")
        return SystemInfo(
            hostname="testhost",
            os_name="Debian GNU/Linux",
            os_version="12 (bookworm)",
            kernel_version="6.1.0",
            uptime=3600,
            boot_time=BOOT,
        )

    def cpu_info(self) -> CPUInfo:
        self._record("cpu_info")
        return CPUInfo(
            name="Test CPU",
            brand="Test CPU",
            frequency=2400,
            cores=4,
            usage_percent=12.5,
            temperature=None,
        )

    def memory_info(self) -> MemoryInfo:
        self._record("memory_info")
        return MemoryInfo(
            total=8000,
            used=2000,
            free=5000,
            available=6000,
            swap_total=0,
            swap_used=0,
            swap_free=0,
            usage_percent=25.0,
            swap_usage_percent=0.0,
        )

    def disk_info(self) -> list[DiskInfo]:
        self._record("disk_info")
        return [DiskInfo(
            name="/dev/sda1",
            mount_point="/",
            file_system="ext4",
            total_space=100,
            used_space=40,
            free_space=60,
            usage_percent=40.0,
        )]

    def network_info(self) -> list[NetworkInfo]:
        self._record("network_info")
        return [NetworkInfo(
            interface="eth0",
            ip_address="10.0.0.2",
            mac_address="02:42:ac:11:00:02",
            bytes_received=100,
            bytes_transmitted=200,
            packets_received=1,
            packets_transmitted=2,
            errors_received=0,
            errors_transmitted=0,
        )]

    def processes(self) -> list[ProcessInfo]:
        self._record("processes")
        return list(self.procs.values())

    def process(self, pid: int) -> ProcessInfo | None:
        self._record("process")
        return self.procs.get(pid)


@pytest.fixture
def collector() -> FakeCollector:
    return FakeCollector()


@pytest.fixture
def monitor(collector: FakeCollector) -> SystemMonitor:
    return SystemMonitor(collector=collector)


@pytest.fixture
def app_settings() -> Settings:
    return Settings(SSE_HEARTBEAT_INTERVAL=0.01)


@pytest.fixture
def server(monitor: SystemMonitor, app_settings: Settings) -> MCPServer:
    return MCPServer(monitor=monitor, settings=app_settings)
