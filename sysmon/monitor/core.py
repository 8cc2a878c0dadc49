"""System monitor capability.

The single shared resource behind both transports.  Every operation,
reads included, takes the same lock because each call also refreshes
``last_update``; concurrent clients are therefore serialized here.

The ``monitoring_active`` flag is a latch only: flipping it does not
start any background sampling.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from sysmon.monitor.collector import LinuxCollector
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

logger = logging.getLogger(__name__)


class SystemMonitor:
    """Thread-safe facade over a host collector.

    Usage::

        monitor = SystemMonitor()
        cpu = monitor.get_cpu_info()
        monitor.start_monitoring()   # True the first time, False after
    """

    def __init__(self, collector: LinuxCollector | None = None) -> None:
        self.collector = collector or LinuxCollector()
        self._lock = threading.Lock()
        self._monitoring_active = False
        self._last_update = datetime.now(timezone.utc)

    def _refresh(self) -> None:
        self._last_update = datetime.now(timezone.utc)

    # --- Snapshots ---

    def get_system_info(self) -> SystemInfo:
        with self._lock:
            self._refresh()
            return self.collector.system_info()

    def get_cpu_info(self) -> CPUInfo:
        with self._lock:
            self._refresh()
            return self.collector.cpu_info()

    def get_memory_info(self) -> MemoryInfo:
        with self._lock:
            self._refresh()
            return self.collector.memory_info()

    def get_disk_info(self) -> list[DiskInfo]:
        with self._lock:
            self._refresh()
            return self.collector.disk_info()

    def get_network_info(self) -> list[NetworkInfo]:
        with self._lock:
            self._refresh()
            return self.collector.network_info()

    def get_processes(self) -> list[ProcessInfo]:
        with self._lock:
            self._refresh()
            return self.collector.processes()

    def get_process_by_pid(self, pid: int) -> ProcessInfo | None:
        with self._lock:
            self._refresh()
            return self.collector.process(pid)

    def get_system_metrics(self) -> SystemMetrics:
        """Collect every snapshot under a single lock acquisition."""
        with self._lock:
            self._refresh()
            return SystemMetrics(
                timestamp=datetime.now(timezone.utc),
                system_info=self.collector.system_info(),
                cpu_info=self.collector.cpu_info(),
                memory_info=self.collector.memory_info(),
                disks=self.collector.disk_info(),
                networks=self.collector.network_info(),
                processes=self.collector.processes(),
            )

    # --- Monitoring latch ---

    def start_monitoring(self) -> bool:
        """Set the latch.  Returns False if it was already set."""
        with self._lock:
            self._refresh()
            if self._monitoring_active:
                logger.info("Monitoring already active")
                return False
            self._monitoring_active = True
            logger.info("Monitoring started")
            return True

    def stop_monitoring(self) -> bool:
        """Clear the latch.  Returns False if it was not set."""
        with self._lock:
            self._refresh()
            if not self._monitoring_active:
                logger.info("Monitoring not active")
                return False
            self._monitoring_active = False
            logger.info("Monitoring stopped")
            return True

    def is_monitoring_active(self) -> bool:
        with self._lock:
            return self._monitoring_active

    @property
    def last_update(self) -> datetime:
        with self._lock:
            return self._last_update

    def get_monitoring_status(self) -> MonitoringStatus:
        with self._lock:
            return MonitoringStatus(
                monitoring_active=self._monitoring_active,
                last_update=self._last_update,
            )
