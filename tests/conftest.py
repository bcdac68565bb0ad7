"""Shared fixtures: a fake procfs tree under tmp_path."""

from pathlib import Path

import pytest

MEMINFO = """MemTotal:        8000000 kB
MemFree:          500000 kB
MemAvailable:    2000000 kB
Buffers:          100000 kB
Cached:          1200000 kB
SwapCached:            0 kB
Active:          3000000 kB
Inactive:        1500000 kB
Shmem:             50000 kB
Slab:             200000 kB
SReclaimable:     150000 kB
"""

# Fields after "(comm)" in /proc/<pid>/stat, starting with the state
_PID_STAT_FIELDS = 50


class FakeProc:
    """Builder for a procfs-shaped directory tree readable by psutil."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def set_stat(self, user, nice, system, idle, iowait=0, irq=0, softirq=0, steal=0) -> None:
        counters = " ".join(str(v) for v in (user, nice, system, idle, iowait, irq, softirq, steal))
        (self.root / "stat").write_text(
            f"cpu  {counters} 0 0\n"
            f"cpu0 {counters} 0 0\n"
            "ctxt 0\n"
            "btime 1700000000\n"
            "processes 1\n"
        )

    def set_meminfo(self, text: str = MEMINFO) -> None:
        (self.root / "meminfo").write_text(text)

    def add_process(
        self,
        pid: int,
        name: str | None = "proc",
        resident_pages: int | None = 10,
    ) -> Path:
        """Add a process directory; None leaves the matching file out."""
        proc_dir = self.root / str(pid)
        proc_dir.mkdir()
        if name is not None:
            fields = " ".join(["S"] + ["0"] * _PID_STAT_FIELDS)
            (proc_dir / "stat").write_text(f"{pid} ({name}) {fields}\n")
        if resident_pages is not None:
            (proc_dir / "statm").write_text(f"{resident_pages * 4} {resident_pages} 5 1 0 20 0\n")
        return proc_dir


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """A fake procfs root with stat and meminfo populated."""
    root = tmp_path / "proc"
    root.mkdir()
    proc = FakeProc(root)
    proc.set_stat(100, 0, 50, 200, 10)
    proc.set_meminfo()
    return proc
