"""Data models for sysmonitor."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SortKey(Enum):
    """Sort keys for the process table."""

    MEM = "mem"
    CPU = "cpu"


@dataclass(slots=True, frozen=True)
class CpuSample:
    """Cumulative CPU time counters since boot, in clock ticks."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0

    @classmethod
    def zero(cls) -> "CpuSample":
        """Return the all-zero sample used when counters are unreadable."""
        return cls()

    @property
    def idle_time(self) -> int:
        return self.idle + self.iowait

    @property
    def busy_time(self) -> int:
        return self.user + self.nice + self.system + self.irq + self.softirq + self.steal

    @property
    def total(self) -> int:
        return self.idle_time + self.busy_time


@dataclass(slots=True, frozen=True)
class MemorySample:
    """Host memory totals in KiB."""

    total_kb: int = 0
    available_kb: int = 0

    @property
    def used_kb(self) -> int:
        return self.total_kb - self.available_kb

    @property
    def used_mb(self) -> int:
        return self.used_kb // 1024

    @property
    def total_mb(self) -> int:
        return self.total_kb // 1024


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable snapshot of a single process."""

    pid: int
    name: str
    memory_kb: int  # Resident set size
    cpu_percent: float = 0.0  # Not sampled per process; always 0.0


@dataclass(slots=True, frozen=True)
class HistoryRecord:
    """One line of the history log."""

    timestamp: str
    cpu_load_percent: float
    mem_used_mb: int
    mem_total_mb: int

    @classmethod
    def now(cls, cpu_load_percent: float, memory: MemorySample) -> "HistoryRecord":
        """Build a record for the current local time from a cycle's aggregates."""
        return cls(
            timestamp=datetime.now().strftime(TIMESTAMP_FORMAT),
            cpu_load_percent=cpu_load_percent,
            mem_used_mb=memory.used_mb,
            mem_total_mb=memory.total_mb,
        )
