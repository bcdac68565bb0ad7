"""Tests for the sampling engine."""

import subprocess
import sys

import psutil
import pytest

from sysmonitor import history
from sysmonitor.config import Config
from sysmonitor.models import CpuSample, MemorySample, ProcessRecord, SortKey
from sysmonitor.monitor import (
    Session,
    SystemMonitor,
    SystemSnapshot,
    TerminationResult,
    estimate_cpu_usage,
    sort_processes,
    terminate,
)


class TestEstimateCpuUsage:
    """Tests for estimate_cpu_usage."""

    def test_known_counters(self):
        """Test the documented worked example gives exactly 75%."""
        prev = CpuSample(user=100, nice=0, system=50, idle=200, iowait=10)
        curr = CpuSample(user=120, nice=0, system=60, idle=210, iowait=10)

        assert estimate_cpu_usage(prev, curr) == 75.0

    def test_identical_samples(self):
        """Test no elapsed ticks means no load."""
        sample = CpuSample(5, 6, 7, 8, 9, 10, 11, 12)

        assert estimate_cpu_usage(sample, sample) == 0.0

    def test_zero_samples(self):
        """Test two zero samples do not divide by zero."""
        assert estimate_cpu_usage(CpuSample.zero(), CpuSample.zero()) == 0.0

    def test_fully_idle(self):
        """Test only idle ticks elapsing gives 0%."""
        prev = CpuSample(idle=100)
        curr = CpuSample(idle=200, iowait=50)

        assert estimate_cpu_usage(prev, curr) == 0.0

    def test_fully_busy(self):
        """Test only busy ticks elapsing gives 100%."""
        prev = CpuSample(user=100, idle=100)
        curr = CpuSample(user=150, system=25, steal=25, idle=100)

        assert estimate_cpu_usage(prev, curr) == 100.0

    def test_counters_going_backwards(self):
        """Test decreasing counters do not produce negative or NaN output."""
        prev = CpuSample(user=1000, system=500, idle=2000)
        curr = CpuSample(user=10, system=5, idle=20)

        assert estimate_cpu_usage(prev, curr) == 0.0

    def test_idle_counter_wraps(self):
        """Test a shrinking idle counter with growing total is clamped."""
        prev = CpuSample(user=0, idle=1000)
        curr = CpuSample(user=2000, idle=10)

        assert estimate_cpu_usage(prev, curr) == 100.0

    @pytest.mark.parametrize(
        "prev,curr",
        [
            (CpuSample(1, 2, 3, 4), CpuSample(10, 2, 3, 40)),
            (CpuSample(0, 0, 0, 0), CpuSample(0, 0, 0, 1)),
            (CpuSample(7, 7, 7, 7, 7, 7, 7, 7), CpuSample(9, 8, 10, 70, 7, 8, 7, 9)),
        ],
    )
    def test_result_in_range(self, prev, curr):
        """Test advancing counters always give a value in [0, 100]."""
        assert 0.0 <= estimate_cpu_usage(prev, curr) <= 100.0


class TestSortProcesses:
    """Tests for sort_processes."""

    records = [
        ProcessRecord(pid=1, name="a", memory_kb=100),
        ProcessRecord(pid=2, name="b", memory_kb=300),
        ProcessRecord(pid=3, name="c", memory_kb=100),
        ProcessRecord(pid=4, name="d", memory_kb=200, cpu_percent=5.0),
    ]

    def test_by_memory_descending(self):
        """Test memory sort is non-increasing and stable on ties."""
        result = sort_processes(self.records, SortKey.MEM)

        assert [r.pid for r in result] == [2, 4, 1, 3]
        assert all(a.memory_kb >= b.memory_kb for a, b in zip(result, result[1:]))

    def test_by_cpu_descending(self):
        """Test CPU sort is non-increasing and keeps enumeration order on ties."""
        result = sort_processes(self.records, SortKey.CPU)

        assert [r.pid for r in result] == [4, 1, 2, 3]
        assert all(a.cpu_percent >= b.cpu_percent for a, b in zip(result, result[1:]))

    def test_does_not_mutate_input(self):
        """Test the input list is left untouched."""
        original = list(self.records)
        sort_processes(self.records, SortKey.MEM)
        assert self.records == original

    def test_empty(self):
        """Test sorting no records."""
        assert sort_processes([], SortKey.CPU) == []


class TestTerminate:
    """Tests for terminate."""

    def test_kills_child_process(self):
        """Test a live child is killed with SIGKILL."""
        child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
        try:
            result = terminate(child.pid)
            assert result == TerminationResult(child.pid, True)
            assert child.wait(timeout=5) == -9
        finally:
            if child.poll() is None:
                child.kill()
                child.wait()

    def test_nonexistent_pid(self):
        """Test a PID that does not exist reports failure."""
        pid = max(psutil.pids()) + 100000
        result = terminate(pid)

        assert not result.success
        assert "no such process" in result.error

    @pytest.mark.parametrize("pid", [0, -1])
    def test_invalid_pid(self, pid):
        """Test non-positive PIDs are rejected without signalling."""
        result = terminate(pid)

        assert not result.success
        assert "invalid pid" in result.error

    def test_access_denied(self, monkeypatch):
        """Test permission errors are surfaced."""

        class DeniedProcess:
            def __init__(self, pid):
                self.pid = pid

            def kill(self):
                raise psutil.AccessDenied(self.pid)

        monkeypatch.setattr(psutil, "Process", DeniedProcess)

        result = terminate(1)

        assert not result.success
        assert "permission denied" in result.error


class TestSystemMonitor:
    """Tests for SystemMonitor class."""

    def test_monitor_initializes_history(self, fake_proc, tmp_path):
        """Test the history log gets its header on construction."""
        log_path = tmp_path / "log.csv"
        SystemMonitor(Config(log_path=log_path, proc_root=fake_proc.root))

        assert log_path.read_text() == history.HEADER + "\n"

    def test_sample_computes_cpu_against_previous(self, fake_proc, tmp_path):
        """Test each cycle measures against the previous sample."""
        config = Config(log_path=tmp_path / "log.csv", proc_root=fake_proc.root)
        monitor = SystemMonitor(config)
        session = Session()

        fake_proc.set_stat(120, 0, 60, 210, 10)
        first = monitor.sample(session)
        second = monitor.sample(session)

        assert first.cpu_percent == 75.0
        assert second.cpu_percent == 0.0

    def test_sample_snapshot_contents(self, fake_proc, tmp_path):
        """Test a snapshot carries memory and sorted processes."""
        fake_proc.add_process(1, name="init", resident_pages=10)
        fake_proc.add_process(2, name="big", resident_pages=1000)
        fake_proc.add_process(3, name="gone", resident_pages=None)
        config = Config(log_path=tmp_path / "log.csv", proc_root=fake_proc.root)

        snapshot = SystemMonitor(config).sample(Session(sort_key=SortKey.MEM))

        assert isinstance(snapshot, SystemSnapshot)
        assert snapshot.memory == MemorySample(8000000, 2000000)
        assert [p.pid for p in snapshot.processes] == [2, 1, 3]
        assert snapshot.processes[-1].memory_kb == 0
        assert snapshot.sort_key is SortKey.MEM

    def test_sample_appends_history(self, fake_proc, tmp_path):
        """Test every cycle appends one history record."""
        log_path = tmp_path / "log.csv"
        monitor = SystemMonitor(Config(log_path=log_path, proc_root=fake_proc.root))
        fake_proc.set_stat(120, 0, 60, 210, 10)

        snapshot = monitor.sample(Session())
        monitor.sample(Session())

        lines = history.tail(log_path, 10)
        assert len(lines) == 2
        assert lines[0] == f"{snapshot.timestamp},75,5859,7812"

    def test_sample_with_unreadable_sources(self, tmp_path):
        """Test a missing procfs degrades to a zero snapshot."""
        config = Config(log_path=tmp_path / "log.csv", proc_root=tmp_path / "missing")

        snapshot = SystemMonitor(config).sample(Session())

        assert snapshot.cpu_percent == 0.0
        assert snapshot.memory == MemorySample()
        assert snapshot.processes == []

    def test_sample_survives_unwritable_history(self, fake_proc, tmp_path):
        """Test a history write failure does not abort the cycle."""
        config = Config(log_path=tmp_path / "no-such-dir" / "log.csv", proc_root=fake_proc.root)

        snapshot = SystemMonitor(config).sample(Session())

        assert snapshot.memory.total_kb == 8000000

    def test_live_sample(self, tmp_path):
        """Test sampling the real system."""
        monitor = SystemMonitor(Config(log_path=tmp_path / "log.csv"))

        snapshot = monitor.sample(Session(sort_key=SortKey.CPU))

        assert 0.0 <= snapshot.cpu_percent <= 100.0
        for proc in snapshot.processes[:5]:
            assert isinstance(proc, ProcessRecord)
            assert proc.pid > 0
            assert isinstance(proc.name, str)
            assert proc.memory_kb >= 0


def test_session_defaults():
    """Test the session starts sorted by memory and running."""
    session = Session()
    assert session.sort_key is SortKey.MEM
    assert session.running is True
