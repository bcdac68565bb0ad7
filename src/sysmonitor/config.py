"""Configuration for sysmonitor."""

from dataclasses import dataclass
from pathlib import Path

from sysmonitor.history import DEFAULT_LOG_PATH
from sysmonitor.procfs import DEFAULT_PROC_ROOT


@dataclass
class Config:
    """Runtime configuration, populated from the command line."""

    log_path: Path = DEFAULT_LOG_PATH  # CSV history, relative to the working directory
    proc_root: Path = DEFAULT_PROC_ROOT
    history_lines: int = 10  # Records shown by the history view
    debug_log: Path | None = None  # JSON lines diagnostics; disabled when None

    def __post_init__(self) -> None:
        self.log_path = Path(self.log_path)
        self.proc_root = Path(self.proc_root)
        if self.debug_log is not None:
            self.debug_log = Path(self.debug_log)
        if self.history_lines < 1:
            raise ValueError(f"history_lines must be positive, got {self.history_lines}")
