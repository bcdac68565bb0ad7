"""sysmonitor - Main Textual application."""

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import DataTable, Footer, Input, Label, Static

from sysmonitor import history
from sysmonitor.config import Config
from sysmonitor.models import HistoryRecord, MemorySample, ProcessRecord, SortKey
from sysmonitor.monitor import Session, SystemMonitor, SystemSnapshot, terminate

COMMAND_KEYS = frozenset("cmkhq")


def format_memory(memory: MemorySample) -> str:
    """Format host memory usage in whole MiB."""
    return f"{memory.used_mb} MB used / {memory.total_mb} MB total"


def format_history_line(record: HistoryRecord) -> tuple[str, str, str, str]:
    """Format a history record as table cells."""
    return (
        record.timestamp,
        f"{record.cpu_load_percent:.1f}",
        str(record.mem_used_mb),
        str(record.mem_total_mb),
    )


class HeaderStats(Static):
    """Header widget showing CPU and memory statistics."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 4;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__("Loading...", *args, **kwargs)
        self._stats: SystemSnapshot | None = None

    def update_stats(self, snapshot: SystemSnapshot) -> None:
        """Update the statistics from a system snapshot."""
        self._stats = snapshot
        self.update("\n".join((self._get_cpu_info(), self._get_mem_info(), self._get_sort_info())))

    def _get_cpu_info(self) -> str:
        if self._stats is None:
            return "Loading CPU info..."
        usage = self._stats.cpu_percent
        bar_len = min(int(usage / 5), 20)
        bar = "[green]█[/green]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)
        return f"CPU Load \\[{bar}] {usage:5.1f} %"

    def _get_mem_info(self) -> str:
        if self._stats is None:
            return "Loading memory info..."
        memory = self._stats.memory
        percent = memory.used_kb * 100 / memory.total_kb if memory.total_kb else 0.0
        bar_len = min(int(percent / 5), 20)
        bar = "[cyan]█[/cyan]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)
        return f"Memory   \\[{bar}] {format_memory(memory)}"

    def _get_sort_info(self) -> str:
        if self._stats is None:
            return ""
        label = "CPU%" if self._stats.sort_key is SortKey.CPU else "Memory"
        return f"[dim]Sorted by {label} · {self._stats.timestamp}[/dim]"


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"
        table.add_column("PID", key="pid", width=8)
        table.add_column("Process Name", key="name", width=20)
        table.add_column("Memory (KB)", key="mem")

    def update_processes(self, processes: list[ProcessRecord]) -> None:
        """
        Replace the table contents with an already-sorted process list.

        Rows are rebuilt on every cycle so that their order follows the sort.
        """
        table = self.query_one("#process-table", DataTable)
        table.clear()
        for proc in processes:
            table.add_row(str(proc.pid), proc.name, str(proc.memory_kb), key=str(proc.pid))


class KillScreen(ModalScreen[int | None]):
    """Prompt for the PID to kill."""

    DEFAULT_CSS = """
    KillScreen {
        align: center middle;
    }

    KillScreen > Vertical {
        width: 40;
        height: auto;
        padding: 1 2;
        border: thick $error;
        background: $surface;
    }
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    def compose(self) -> ComposeResult:
        """Compose the PID prompt."""
        yield Vertical(
            Label("Enter PID to kill:"),
            Input(placeholder="PID", type="integer", id="pid-input"),
        )

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Dismiss with the entered PID, or None when it is not a number."""
        try:
            pid = int(event.value.strip())
        except ValueError:
            pid = None
        self.dismiss(pid)

    def action_cancel(self) -> None:
        """Dismiss without killing anything."""
        self.dismiss(None)


class HistoryScreen(ModalScreen[None]):
    """Show the most recent history log records."""

    DEFAULT_CSS = """
    HistoryScreen {
        align: center middle;
    }

    HistoryScreen > Vertical {
        width: 80;
        height: auto;
        max-height: 90%;
        padding: 1 2;
        border: thick $primary;
        background: $surface;
    }

    HistoryScreen DataTable {
        height: auto;
    }
    """

    BINDINGS = [
        ("escape", "close", "Close"),
        ("enter", "close", "Close"),
        ("h", "close", "Close"),
    ]

    def __init__(self, records: list[HistoryRecord] | None, limit: int) -> None:
        """Initialize with the loaded records, None when there is no log."""
        super().__init__()
        self._records = records
        self._limit = limit

    def compose(self) -> ComposeResult:
        """Compose the title and the history table."""
        title = f"System Monitor History (last {self._limit} records):"
        if not self._records:
            yield Vertical(Label(title), Label("No history log found.", id="no-history"))
            return
        yield Vertical(Label(title), DataTable(id="history-table", show_cursor=False))

    def on_mount(self) -> None:
        """Fill the history table."""
        if not self._records:
            return
        table = self.query_one("#history-table", DataTable)
        table.add_columns("Timestamp", "CPU Load %", "Memory Used MB", "Memory Total MB")
        for record in self._records:
            table.add_row(*format_history_line(record))

    def action_close(self) -> None:
        """Return to the dashboard."""
        self.dismiss(None)


class SysMonitorApp(App):
    """Main sysmonitor application."""

    TITLE = "sysmonitor"
    SUB_TITLE = "System Monitor Tool"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
    }
    """

    BINDINGS = [
        ("c", "sort('cpu')", "CPU%"),
        ("m", "sort('mem')", "Memory%"),
        ("k", "kill", "Kill Process"),
        ("h", "history", "History"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the SysMonitorApp."""
        super().__init__()
        self.config = config or Config()
        self.session = Session()
        self._monitor = SystemMonitor(self.config)
        self._last_snapshot: SystemSnapshot | None = None

    @property
    def last_snapshot(self) -> SystemSnapshot | None:
        return self._last_snapshot

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Run the first sampling cycle once the widgets exist."""
        self.call_after_refresh(self.run_cycle)

    def run_cycle(self) -> SystemSnapshot | None:
        """Sample the system and refresh the display, unless the session has ended."""
        if not self.session.running:
            return None
        snapshot = self._monitor.sample(self.session)
        self._last_snapshot = snapshot
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot)
        self.query_one(ProcessTable).update_processes(snapshot.processes)
        return snapshot

    def on_key(self, event: events.Key) -> None:
        """Reject printable keys that are not commands."""
        if isinstance(self.screen, ModalScreen):
            return
        if not event.is_printable or event.character in COMMAND_KEYS:
            return
        self.notify("Invalid command.", severity="warning")
        self.run_cycle()

    def action_sort(self, key: str) -> None:
        """Switch the process table sort key."""
        self.session.sort_key = SortKey(key)
        self.run_cycle()

    def action_kill(self) -> None:
        """Prompt for a PID and kill it."""
        self.push_screen(KillScreen(), self._on_kill_pid)

    def _on_kill_pid(self, pid: int | None) -> None:
        if pid is not None:
            result = terminate(pid)
            if result.success:
                self.notify(f"Process {pid} killed successfully.")
            else:
                self.notify(f"Failed to kill process {pid}: {result.error}", severity="error")
        self.run_cycle()

    def action_history(self) -> None:
        """Show the last records of the history log."""
        limit = self.config.history_lines
        records = history.load(self.config.log_path, limit)
        self.push_screen(HistoryScreen(records, limit), lambda _: self.run_cycle())

    def action_quit(self) -> None:
        """Stop the session and exit."""
        self.session.running = False
        self.exit()


def run_app(config: Config | None = None) -> None:
    """Run the dashboard until the operator quits."""
    SysMonitorApp(config).run()
