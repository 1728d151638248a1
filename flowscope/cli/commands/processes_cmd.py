"""``flowscope processes`` — list processes that can be watched."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from flowscope.bridge.transport import discover_processes
from flowscope.config import config

console = Console()


def processes_cmd(
    socket_dir: Path = typer.Option(
        None,
        "--socket-dir",
        help="Directory holding observation sockets.",
    ),
) -> None:
    """List live processes that expose an observation socket."""
    directory = socket_dir or config.socket_dir
    processes = discover_processes(directory)

    if not processes:
        console.print("[dim]No processes found.[/dim]")
        console.print(f"[dim]Looked in {directory}[/dim]")
        return

    table = Table(title="Observable Processes")
    table.add_column("PID", style="cyan", justify="right")
    table.add_column("Description")
    table.add_column("Socket", style="dim")

    for process in processes:
        table.add_row(str(process.pid), process.description, str(process.socket_path))

    console.print(table)
    console.print("[dim]Watch one with: flowscope watch PID[/dim]")
