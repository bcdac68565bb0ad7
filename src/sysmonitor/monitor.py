"""Sampling engine for sysmonitor."""

from dataclasses import dataclass, field
from datetime import datetime

import psutil
import structlog

from sysmonitor import history, procfs
from sysmonitor.config import Config
from sysmonitor.models import (
    TIMESTAMP_FORMAT,
    CpuSample,
    HistoryRecord,
    MemorySample,
    ProcessRecord,
    SortKey,
)

log = structlog.get_logger()


@dataclass
class Session:
    """Operator-controlled state threaded through every sampling cycle."""

    sort_key: SortKey = SortKey.MEM
    running: bool = True


@dataclass(slots=True)
class SystemSnapshot:
    """Snapshot of overall system state for one sampling cycle."""

    cpu_percent: float
    memory: MemorySample
    processes: list[ProcessRecord]
    sort_key: SortKey = SortKey.MEM
    timestamp: str = field(default_factory=lambda: datetime.now().strftime(TIMESTAMP_FORMAT))


@dataclass(slots=True, frozen=True)
class TerminationResult:
    """Outcome of a kill request."""

    pid: int
    success: bool
    error: str | None = None


def estimate_cpu_usage(prev: CpuSample, curr: CpuSample) -> float:
    """
    Compute host CPU utilization between two counter samples.

    Returns a percentage in [0, 100]. When no ticks elapsed, or the counters
    went backwards (wraparound, reboot), the result is 0.0.
    """
    total_delta = curr.total - prev.total
    if total_delta <= 0:
        return 0.0
    idle_delta = curr.idle_time - prev.idle_time
    usage = (total_delta - idle_delta) * 100.0 / total_delta
    return min(max(usage, 0.0), 100.0)


def sort_processes(processes: list[ProcessRecord], key: SortKey) -> list[ProcessRecord]:
    """Sort descending by the selected key. Ties keep their input order."""
    key_func = {
        SortKey.CPU: lambda p: p.cpu_percent,
        SortKey.MEM: lambda p: p.memory_kb,
    }
    return sorted(processes, key=key_func[key], reverse=True)


def terminate(pid: int) -> TerminationResult:
    """
    Send SIGKILL to a process.

    There is no confirmation and no protection for privileged processes or
    this process itself.
    """
    if pid <= 0:
        return TerminationResult(pid, False, f"invalid pid {pid}")
    try:
        psutil.Process(pid).kill()
    except psutil.NoSuchProcess:
        error = f"no such process (pid={pid})"
    except psutil.AccessDenied:
        error = f"permission denied (pid={pid})"
    except (psutil.Error, OSError) as e:
        error = str(e) or type(e).__name__
    else:
        log.info("process_killed", pid=pid)
        return TerminationResult(pid, True)

    log.warning("process_kill_failed", pid=pid, error=error)
    return TerminationResult(pid, False, error)


class SystemMonitor:
    """
    Synchronous sampler producing one SystemSnapshot per call.

    Holds the previous CPU counter sample between cycles so that every
    cycle reports utilization since the one before it. The first cycle
    measures against the sample taken at construction.
    """

    def __init__(self, config: Config | None = None) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            config: Runtime configuration. Defaults to Config().
        """
        self._config = config or Config()
        self._prev_cpu = procfs.read_cpu_sample(self._config.proc_root)
        try:
            history.initialize(self._config.log_path)
        except OSError as e:
            log.warning("history_init_failed", path=str(self._config.log_path), error=str(e))

    @property
    def config(self) -> Config:
        return self._config

    def sample(self, session: Session) -> SystemSnapshot:
        """Run one full sampling cycle and log its aggregates."""
        proc_root = self._config.proc_root

        curr_cpu = procfs.read_cpu_sample(proc_root)
        cpu_percent = estimate_cpu_usage(self._prev_cpu, curr_cpu)
        self._prev_cpu = curr_cpu

        memory = procfs.read_memory_sample(proc_root)
        processes = sort_processes(procfs.collect_processes(proc_root), session.sort_key)

        record = HistoryRecord.now(cpu_percent, memory)
        try:
            history.append(self._config.log_path, record)
        except OSError as e:
            log.warning("history_append_failed", path=str(self._config.log_path), error=str(e))

        log.debug(
            "cycle_complete",
            cpu_percent=cpu_percent,
            mem_used_mb=memory.used_mb,
            processes=len(processes),
            sort_key=session.sort_key.value,
        )
        return SystemSnapshot(
            cpu_percent=cpu_percent,
            memory=memory,
            processes=processes,
            sort_key=session.sort_key,
            timestamp=record.timestamp,
        )
