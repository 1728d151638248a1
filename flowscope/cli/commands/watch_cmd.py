"""``flowscope watch PID`` — observe a running pipeline until it finishes.

Connects to the process's observation socket, fetches the execution graph
once, then polls node statuses and re-renders the graph every interval.
Exits 0 when the pipeline finishes, 1 on a connection/RPC/render failure,
and 130 when interrupted.
"""

from __future__ import annotations

import asyncio
import functools
from pathlib import Path

import typer
from rich.console import Console

from flowscope.bridge.transport import connect
from flowscope.config import config
from flowscope.core.scheduler import PollScheduler
from flowscope.models.render import MAX_SCALE_PERCENT, MIN_SCALE_PERCENT
from flowscope.models.session import PollOutcome, PollResult
from flowscope.monitor.console import WatchView
from flowscope.monitor.dot import ColorScheme
from flowscope.monitor.svg import graphviz_renderer, is_dot_available

console = Console()


async def watch(scheduler: PollScheduler, view: WatchView) -> PollResult:
    """Run ``scheduler`` with ``view`` attached, inside a live display."""
    with view.live():
        try:
            result = await scheduler.run()
        except asyncio.CancelledError:
            view.finish(PollOutcome.CANCELLED)
            raise
        view.finish(result.outcome)
    return result


def report(result: PollResult) -> None:
    """Print the session outcome and exit with the matching code."""
    if result.outcome == PollOutcome.FINISHED:
        console.print(
            f"[green]Pipeline in process {result.process_id} finished "
            f"after {result.cycles} cycles.[/green]"
        )
        return
    console.print(
        f"[bold red]Lost process {result.process_id} ({result.error_kind} failure):"
        f"[/bold red] {result.error_message}"
    )
    raise typer.Exit(code=1)


def require_dot(dot_binary: str) -> None:
    if not is_dot_available(dot_binary):
        console.print(f"[bold red]Graphviz not found:[/bold red] {dot_binary}")
        console.print("[dim]Install Graphviz or set FLOWSCOPE_DOT_BINARY.[/dim]")
        raise typer.Exit(code=1)


def require_svg_target(svg_output: Path | None) -> None:
    if svg_output is not None and not svg_output.parent.is_dir():
        console.print(
            f"[bold red]Cannot write SVG:[/bold red] {svg_output.parent} is not a directory"
        )
        raise typer.Exit(code=1)


def watch_cmd(
    pid: int = typer.Argument(
        ...,
        help="Process id of the pipeline to observe.",
    ),
    svg: Path = typer.Option(
        None,
        "--svg",
        "-o",
        help="Write the latest rendered SVG to this file on every cycle.",
    ),
    scheme: ColorScheme = typer.Option(
        None,
        "--scheme",
        "-s",
        help="Graph text color scheme: light (dark text) or dark (light text).",
    ),
    interval_ms: int = typer.Option(
        None,
        "--interval",
        "-i",
        min=1,
        help="Poll interval in milliseconds.",
    ),
    scale: int = typer.Option(
        None,
        "--scale",
        min=MIN_SCALE_PERCENT,
        max=MAX_SCALE_PERCENT,
        help="Image zoom percentage reported in the view.",
    ),
    socket_dir: Path = typer.Option(
        None,
        "--socket-dir",
        help="Directory holding observation sockets.",
    ),
) -> None:
    """Observe a running pipeline and render its graph until it finishes."""
    require_dot(config.dot_binary)
    svg_output = svg or config.svg_output
    require_svg_target(svg_output)

    view = WatchView(
        pid,
        console=console,
        svg_output=svg_output,
        thresholds=config.thresholds,
        scale_percent=scale or config.scale_percent,
    )
    scheduler = PollScheduler(
        pid,
        connector=functools.partial(connect, socket_dir=socket_dir or config.socket_dir),
        image_renderer=graphviz_renderer(config.dot_binary),
        color_scheme=scheme,
        poll_interval=interval_ms / 1000.0 if interval_ms else None,
        on_state=view.on_state,
        on_event=view.on_event,
    )

    try:
        result = asyncio.run(watch(scheduler, view))
    except KeyboardInterrupt:
        console.print(f"[dim]Stopped watching process {pid}.[/dim]")
        raise typer.Exit(code=130)
    report(result)
