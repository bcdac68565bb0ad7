"""Append-only CSV history of sampling cycles."""

from pathlib import Path

import structlog

from sysmonitor.models import HistoryRecord

HEADER = "Timestamp,CPU Load %,Memory Used MB,Memory Total MB"

DEFAULT_LOG_PATH = Path("sysmonitor_log.csv")

log = structlog.get_logger()


class HistoryFormatError(ValueError):
    """A history line that does not match the log format."""


def format_record(record: HistoryRecord) -> str:
    """Format a record as one CSV line (without line terminator)."""
    return (
        f"{record.timestamp},{record.cpu_load_percent:g},"
        f"{record.mem_used_mb},{record.mem_total_mb}"
    )


def parse_line(line: str) -> HistoryRecord:
    """Parse one CSV data line back into a HistoryRecord."""
    fields = line.strip().split(",")
    if len(fields) != 4:
        raise HistoryFormatError(f"expected 4 fields, got {len(fields)}: {line!r}")
    timestamp, cpu, used, total = fields
    try:
        return HistoryRecord(
            timestamp=timestamp,
            cpu_load_percent=float(cpu),
            mem_used_mb=int(used),
            mem_total_mb=int(total),
        )
    except ValueError as e:
        raise HistoryFormatError(f"invalid value in {line!r}: {e}") from e


def initialize(path: Path) -> None:
    """Create the log with its header line if it does not exist yet."""
    if path.exists():
        return
    with open(path, "a", encoding="utf-8") as f:
        f.write(HEADER + "\n")
    log.info("history_initialized", path=str(path))


def append(path: Path, record: HistoryRecord) -> None:
    """Append one record. Prior lines are never rewritten."""
    initialize(path)
    with open(path, "a", encoding="utf-8") as f:
        f.write(format_record(record) + "\n")


def tail(path: Path, n: int) -> list[str] | None:
    """
    Return the last ``n`` data lines of the log.

    The header line is not counted as data. Returns None when the log does not
    exist or cannot be read, and an empty list for ``n <= 0``.
    """
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        log.warning("history_unreadable", path=str(path), error=str(e))
        return None

    if lines and lines[0] == HEADER:
        lines = lines[1:]
    lines = [line for line in lines if line]
    if n <= 0:
        return []
    return lines[-n:]


def load(path: Path, n: int) -> list[HistoryRecord] | None:
    """Return the last ``n`` parsed records, skipping malformed lines."""
    lines = tail(path, n)
    if lines is None:
        return None

    records: list[HistoryRecord] = []
    for line in lines:
        try:
            records.append(parse_line(line))
        except HistoryFormatError as e:
            log.warning("history_line_skipped", path=str(path), error=str(e))
    return records
