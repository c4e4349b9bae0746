"""호스트 메트릭 컬렉터 추상 베이스 클래스"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class CpuSample:
    cpu: str
    seconds_per_mode: dict[str, float] = field(default_factory=dict)


@dataclass
class MemorySample:
    total: int = 0
    available: int = 0
    used: int = 0
    free: int = 0
    buffers: int = 0
    cached: int = 0
    used_percent: float = 0.0


@dataclass
class NetworkSample:
    interface: str
    sent_bytes: int = 0
    recv_bytes: int = 0


@dataclass
class DiskSample:
    device: str
    read_bytes: int = 0
    write_bytes: int = 0


class BaseCollector(ABC):
    """Point-in-time host counters.

    Implementations must not raise: on an unsupported platform they return
    empty lists or zero values, and the sampler writes whatever comes back.
    """

    @abstractmethod
    def collect_cpu(self) -> list[CpuSample]:
        """Cumulative CPU seconds per cpu and mode"""
        ...

    @abstractmethod
    def collect_memory(self) -> MemorySample:
        """Memory gauges in bytes"""
        ...

    @abstractmethod
    def collect_network(self) -> list[NetworkSample]:
        """Cumulative bytes per network interface"""
        ...

    @abstractmethod
    def collect_disk(self) -> list[DiskSample]:
        """Cumulative bytes per block device"""
        ...
