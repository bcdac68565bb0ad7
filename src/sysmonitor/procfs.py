"""Host and process readers built on psutil.

Every reader here degrades instead of raising: an unreadable source gives a
zero-valued sample, an empty PID set, or a partial process record. Processes
can exit between enumeration and inspection, so partial records are normal.

All readers take the procfs mount to read from. psutil resolves it through
the module-level ``psutil.PROCFS_PATH``, which is swapped in for the duration
of each call.
"""

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psutil
import structlog

from sysmonitor.models import CpuSample, MemorySample, ProcessRecord

DEFAULT_PROC_ROOT = Path("/proc")

_CPU_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")

log = structlog.get_logger()


@contextmanager
def procfs_root(proc_root: Path) -> Iterator[None]:
    """Point psutil at ``proc_root`` until the block exits."""
    previous = getattr(psutil, "PROCFS_PATH", str(DEFAULT_PROC_ROOT))
    psutil.PROCFS_PATH = str(proc_root)
    try:
        yield
    finally:
        psutil.PROCFS_PATH = previous


def clock_ticks() -> int:
    """Return the kernel clock tick rate (ticks per second)."""
    return os.sysconf("SC_CLK_TCK")


def read_cpu_sample(proc_root: Path = DEFAULT_PROC_ROOT) -> CpuSample:
    """Read the aggregate CPU counters, in clock ticks."""
    try:
        with procfs_root(proc_root):
            times = psutil.cpu_times()
    except (psutil.Error, OSError, ValueError, TypeError) as e:
        # TypeError: fewer counters than psutil's field layout expects
        log.debug("cpu_times_unreadable", proc_root=str(proc_root), error=str(e))
        return CpuSample.zero()

    # psutil reports seconds; older kernels lack some columns
    ticks = clock_ticks()
    return CpuSample(*(round(getattr(times, name, 0.0) * ticks) for name in _CPU_FIELDS))


def read_memory_sample(proc_root: Path = DEFAULT_PROC_ROOT) -> MemorySample:
    """Read total and available memory in KiB."""
    try:
        with procfs_root(proc_root):
            mem = psutil.virtual_memory()
    except (psutil.Error, OSError, ValueError, KeyError) as e:
        # KeyError: meminfo without MemTotal/MemFree
        log.debug("meminfo_unreadable", proc_root=str(proc_root), error=str(e))
        return MemorySample()

    total = mem.total // 1024
    return MemorySample(total_kb=total, available_kb=min(mem.available // 1024, total))


def list_pids(proc_root: Path = DEFAULT_PROC_ROOT) -> set[int]:
    """Return the identifiers of all running processes."""
    try:
        with procfs_root(proc_root):
            return {pid for pid in psutil.pids() if pid > 0}
    except (OSError, IndexError) as e:
        # IndexError: psutil.pids() on a listing without any PID
        log.debug("pids_unreadable", proc_root=str(proc_root), error=str(e))
        return set()


def inspect(pid: int, proc_root: Path = DEFAULT_PROC_ROOT) -> ProcessRecord:
    """
    Build a ProcessRecord for a single PID.

    Args:
        pid: Process identifier.
        proc_root: Root of the procfs mount.

    Returns:
        A record with an empty name and/or zero memory for any attribute
        that could not be read.
    """
    name = ""
    memory_kb = 0
    with procfs_root(proc_root):
        try:
            proc = psutil.Process(pid)
        except (psutil.Error, OSError):
            # Exited between enumeration and inspection
            return ProcessRecord(pid=pid, name=name, memory_kb=memory_kb)

        with proc.oneshot():
            try:
                name = proc.name()
            except (psutil.Error, OSError) as e:
                log.debug("process_name_unreadable", pid=pid, error=str(e))
            try:
                memory_kb = proc.memory_info().rss // 1024
            except (psutil.Error, OSError) as e:
                log.debug("process_memory_unreadable", pid=pid, error=str(e))

    return ProcessRecord(pid=pid, name=name, memory_kb=memory_kb)


def collect_processes(proc_root: Path = DEFAULT_PROC_ROOT) -> list[ProcessRecord]:
    """Inspect every running process in ascending PID order."""
    return [inspect(pid, proc_root) for pid in sorted(list_pids(proc_root))]
