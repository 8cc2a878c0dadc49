"""Linux host collector.

Reads host state through psutil plus a couple of procfs / etc files that
psutil doesn't surface (CPU model name, distribution name).  Each public
method returns a fresh snapshot or raises :class:`CollectorError`.

Linux is the only target; other platforms may work where psutil does.
"""

from __future__ import annotations

import logging
import platform
import socket
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

import psutil

from sysmon.monitor.types import (
    CPUInfo,
    DiskInfo,
    MemoryInfo,
    NetworkInfo,
    ProcessInfo,
    SystemInfo,
    calculate_percentage,
)

logger = logging.getLogger(__name__)

_PROCESS_ATTRS = [
    "pid",
    "name",
    "cmdline",
    "cpu_percent",
    "memory_info",
    "memory_percent",
    "status",
    "create_time",
    "username",
    "nice",
]


class CollectorError(Exception):
    """Raised when host state cannot be read or parsed."""


@contextmanager
def _collecting(what: str) -> Iterator[None]:
    try:
        yield
    except CollectorError:
        raise
    except (OSError, psutil.Error, ValueError) as exc:
        raise CollectorError(f"cannot read {what}: {exc}") from exc


class LinuxCollector:
    """Collects snapshots from a Linux host.

    Parameters
    ----------
    cpuinfo_path:
        Location of the CPU description file (``/proc/cpuinfo``).
    os_release_path:
        Location of the distribution release file (``/etc/os-release``).
    """

    def __init__(
        self,
        cpuinfo_path: str | Path = "/proc/cpuinfo",
        os_release_path: str | Path = "/etc/os-release",
    ) -> None:
        self.cpuinfo_path = Path(cpuinfo_path)
        self.os_release_path = Path(os_release_path)

    # --- System ---

    def system_info(self) -> SystemInfo:
        with _collecting("system information"):
            boot_ts = psutil.boot_time()
            os_name, os_version = self._os_release()
            return SystemInfo(
                hostname=socket.gethostname(),
                os_name=os_name,
                os_version=os_version,
                kernel_version=platform.release(),
                uptime=max(0, int(time.time() - boot_ts)),
                boot_time=datetime.fromtimestamp(boot_ts, tz=timezone.utc),
            )

    def _os_release(self) -> tuple[str, str]:
        name, version = platform.system(), "Unknown"
        try:
            content = self.os_release_path.read_text(encoding="utf-8")
        except OSError:
            logger.debug("No %s, falling back to platform name", self.os_release_path)
            return name, version
        for line in content.splitlines():
            key, sep, value = line.partition("=")
            if not sep:
                continue
            if key == "NAME":
                name = value.strip().strip('"')
            elif key == "VERSION":
                version = value.strip().strip('"')
        return name, version

    # --- CPU ---

    def cpu_info(self) -> CPUInfo:
        with _collecting("CPU information"):
            cpuinfo = self._read_cpuinfo()
            name = cpuinfo.get("model name") or platform.processor() or "Unknown CPU"

            freq = psutil.cpu_freq()
            if freq is not None:
                frequency = int(freq.current)
            else:
                frequency = int(float(cpuinfo.get("cpu MHz", "0") or 0))

            return CPUInfo(
                name=name,
                brand=name,
                frequency=frequency,
                cores=psutil.cpu_count() or 1,
                usage_percent=self._cpu_usage(),
                temperature=self._cpu_temperature(),
            )

    def _read_cpuinfo(self) -> dict[str, str]:
        fields: dict[str, str] = {}
        try:
            content = self.cpuinfo_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return fields
        for line in content.splitlines():
            key, sep, value = line.partition(":")
            if sep:
                # first processor block wins
                fields.setdefault(key.strip(), value.strip())
        return fields

    @staticmethod
    def _cpu_usage() -> float:
        # Busy share of cumulative jiffies since boot, as /proc/stat reports them.
        times = psutil.cpu_times()
        busy = times.user + getattr(times, "nice", 0.0) + times.system
        return calculate_percentage(busy, busy + times.idle)

    @staticmethod
    def _cpu_temperature() -> float | None:
        sensors = getattr(psutil, "sensors_temperatures", None)
        if sensors is None:
            return None
        try:
            readings = sensors()
        except (OSError, RuntimeError):
            return None
        for entries in readings.values():
            for entry in entries:
                if entry.current is not None:
                    return float(entry.current)
        return None

    # --- Memory ---

    def memory_info(self) -> MemoryInfo:
        with _collecting("memory information"):
            mem = psutil.virtual_memory()
            swap = psutil.swap_memory()
            used = max(0, mem.total - mem.available)
            return MemoryInfo(
                total=mem.total,
                used=used,
                free=mem.free,
                available=mem.available,
                swap_total=swap.total,
                swap_used=swap.used,
                swap_free=swap.free,
                usage_percent=calculate_percentage(used, mem.total),
                swap_usage_percent=calculate_percentage(swap.used, swap.total),
            )

    # --- Disks ---

    def disk_info(self) -> list[DiskInfo]:
        with _collecting("disk information"):
            disks = []
            for part in psutil.disk_partitions(all=False):
                try:
                    usage = psutil.disk_usage(part.mountpoint)
                except OSError as exc:
                    logger.debug("Skipping %s: %s", part.mountpoint, exc)
                    continue
                disks.append(
                    DiskInfo(
                        name=part.device,
                        mount_point=part.mountpoint,
                        file_system=part.fstype,
                        total_space=usage.total,
                        used_space=usage.used,
                        free_space=usage.free,
                        usage_percent=calculate_percentage(usage.used, usage.total),
                    )
                )
            return disks

    # --- Network ---

    def network_info(self) -> list[NetworkInfo]:
        with _collecting("network information"):
            counters = psutil.net_io_counters(pernic=True)
            addrs = psutil.net_if_addrs()
            networks = []
            for interface, io in counters.items():
                if interface == "lo":
                    continue
                ip_address, mac_address = "N/A", "N/A"
                for addr in addrs.get(interface, []):
                    if addr.family == socket.AF_INET and ip_address == "N/A":
                        ip_address = addr.address
                    elif addr.family == psutil.AF_LINK and mac_address == "N/A":
                        mac_address = addr.address
                networks.append(
                    NetworkInfo(
                        interface=interface,
                        ip_address=ip_address,
                        mac_address=mac_address,
                        bytes_received=io.bytes_recv,
                        bytes_transmitted=io.bytes_sent,
                        packets_received=io.packets_recv,
                        packets_transmitted=io.packets_sent,
                        errors_received=io.errin,
                        errors_transmitted=io.errout,
                    )
                )
            return networks

    # --- Processes ---

    def processes(self) -> list[ProcessInfo]:
        with _collecting("process list"):
            processes = []
            for proc in psutil.process_iter(attrs=_PROCESS_ATTRS, ad_value=None):
                try:
                    processes.append(self._to_process_info(proc.info))
                except (psutil.NoSuchProcess, psutil.ZombieProcess):
                    continue
            return processes

    def process(self, pid: int) -> ProcessInfo | None:
        """Snapshot of one process, or None if no such PID exists."""
        with _collecting(f"process {pid}"):
            try:
                proc = psutil.Process(pid)
                with proc.oneshot():
                    info = proc.as_dict(attrs=_PROCESS_ATTRS, ad_value=None)
            except psutil.NoSuchProcess:
                return None
            return self._to_process_info(info)

    @staticmethod
    def _to_process_info(info: dict[str, Any]) -> ProcessInfo:
        name = info.get("name") or ""
        cmdline = info.get("cmdline") or []
        mem = info.get("memory_info")
        created = info.get("create_time")
        return ProcessInfo(
            pid=int(info["pid"]),
            name=name,
            command=" ".join(cmdline) if cmdline else name,
            cpu_usage=float(info.get("cpu_percent") or 0.0),
            memory_usage=int(mem.rss) if mem is not None else 0,
            memory_usage_percent=float(info.get("memory_percent") or 0.0),
            status=info.get("status") or "unknown",
            start_time=(
                datetime.fromtimestamp(created, tz=timezone.utc)
                if created
                else datetime.now(timezone.utc)
            ),
            user=info.get("username") or "unknown",
            priority=int(info.get("nice") or 0),
        )
