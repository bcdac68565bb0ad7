"""CLI commands for sysmonitor."""

from pathlib import Path

import click

from sysmonitor.config import Config
from sysmonitor.history import DEFAULT_LOG_PATH
from sysmonitor.procfs import DEFAULT_PROC_ROOT


@click.group(invoke_without_command=True)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_LOG_PATH,
    show_default=True,
    help="CSV history log.",
)
@click.option(
    "--proc-root",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_PROC_ROOT,
    show_default=True,
    help="procfs mount to sample.",
)
@click.option(
    "--history-lines",
    type=click.IntRange(min=1),
    default=10,
    show_default=True,
    help="Records shown by the history view.",
)
@click.option(
    "--debug-log",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write JSON diagnostics to this file.",
)
@click.version_option(package_name="sysmonitor")
@click.pass_context
def main(
    ctx: click.Context,
    log_file: Path,
    proc_root: Path,
    history_lines: int,
    debug_log: Path | None,
) -> None:
    """Interactive CPU, memory and process monitor."""
    from sysmonitor.log import configure

    config = Config(
        log_path=log_file,
        proc_root=proc_root,
        history_lines=history_lines,
        debug_log=debug_log,
    )
    configure(config.debug_log)
    ctx.obj = config

    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


@main.command()
@click.pass_obj
def tui(config: Config) -> None:
    """Launch the interactive dashboard."""
    from sysmonitor.app import run_app

    run_app(config)


@main.command()
@click.option(
    "--sort",
    "sort_key",
    type=click.Choice(["mem", "cpu"]),
    default="mem",
    show_default=True,
    help="Process table order.",
)
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Show at most N processes.")
@click.pass_obj
def snapshot(config: Config, sort_key: str, limit: int | None) -> None:
    """Run one sampling cycle and print it."""
    from sysmonitor.models import SortKey
    from sysmonitor.monitor import Session, SystemMonitor

    session = Session(sort_key=SortKey(sort_key))
    snap = SystemMonitor(config).sample(session)

    click.echo("System Monitor Tool\n")
    click.echo(f"CPU Load: {snap.cpu_percent:g} %")
    click.echo(f"Memory Usage: {snap.memory.used_mb} MB / {snap.memory.total_mb} MB\n")
    click.echo("PID\tProcess Name\tMemory (KB)")
    click.echo("-" * 41)
    processes = snap.processes if limit is None else snap.processes[:limit]
    for proc in processes:
        click.echo(f"{proc.pid}\t{proc.name}\t\t{proc.memory_kb}")


@main.command()
@click.option("-n", "count", type=click.IntRange(min=1), default=None, help="Number of records.")
@click.pass_obj
def history(config: Config, count: int | None) -> None:
    """Print the most recent history records."""
    from sysmonitor import history as history_log

    lines = history_log.tail(config.log_path, count or config.history_lines)
    if not lines:
        click.echo("No history log found.")
        return

    click.echo(history_log.HEADER)
    click.echo("-" * len(history_log.HEADER))
    for line in lines:
        click.echo(line)


@main.command()
@click.argument("pid", type=int)
def kill(pid: int) -> None:
    """Send SIGKILL to PID."""
    from sysmonitor.monitor import terminate

    result = terminate(pid)
    if result.success:
        click.echo(f"Process {pid} killed successfully.")
        return
    click.echo(f"Failed to kill process {pid}: {result.error}", err=True)
    raise SystemExit(1)
