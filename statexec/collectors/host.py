"""psutil 기반 호스트 컬렉터"""

import logging

import psutil

from statexec.collectors.base import (
    BaseCollector,
    CpuSample,
    DiskSample,
    MemorySample,
    NetworkSample,
)

logger = logging.getLogger(__name__)

_COLLECT_ERRORS = (psutil.Error, OSError, RuntimeError)


class HostCollector(BaseCollector):
    """Reads the local host's counters through psutil"""

    def collect_cpu(self) -> list[CpuSample]:
        try:
            per_cpu = psutil.cpu_times(percpu=True)
        except _COLLECT_ERRORS as exc:
            logger.debug("cpu_times unavailable: %s", exc)
            return []
        return [
            CpuSample(cpu=f"cpu{index}", seconds_per_mode=dict(times._asdict()))
            for index, times in enumerate(per_cpu)
        ]

    def collect_memory(self) -> MemorySample:
        try:
            mem = psutil.virtual_memory()
        except _COLLECT_ERRORS as exc:
            logger.debug("virtual_memory unavailable: %s", exc)
            return MemorySample()
        # buffers/cached only exist on some platforms
        return MemorySample(
            total=mem.total,
            available=mem.available,
            used=mem.used,
            free=mem.free,
            buffers=getattr(mem, "buffers", 0),
            cached=getattr(mem, "cached", 0),
            used_percent=float(mem.percent),
        )

    def collect_network(self) -> list[NetworkSample]:
        try:
            counters = psutil.net_io_counters(pernic=True)
        except _COLLECT_ERRORS as exc:
            logger.debug("net_io_counters unavailable: %s", exc)
            return []
        return [
            NetworkSample(
                interface=name, sent_bytes=nic.bytes_sent, recv_bytes=nic.bytes_recv
            )
            for name, nic in (counters or {}).items()
        ]

    def collect_disk(self) -> list[DiskSample]:
        try:
            counters = psutil.disk_io_counters(perdisk=True)
        except _COLLECT_ERRORS as exc:
            logger.debug("disk_io_counters unavailable: %s", exc)
            return []
        return [
            DiskSample(
                device=name, read_bytes=disk.read_bytes, write_bytes=disk.write_bytes
            )
            for name, disk in (counters or {}).items()
        ]
