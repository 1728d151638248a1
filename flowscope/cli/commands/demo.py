"""``flowscope demo`` — watch a simulated pipeline end to end.

Starts a simulated six-node pipeline in this process, exposes it on an
observation socket, and watches it with the regular poll loop until it
finishes.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import tempfile
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from flowscope.bridge.server import StatusServer
from flowscope.bridge.transport import connect
from flowscope.cli.commands.watch_cmd import (
    report,
    require_dot,
    require_svg_target,
    watch,
)
from flowscope.config import config
from flowscope.core.scheduler import PollScheduler
from flowscope.models.session import PollResult
from flowscope.monitor.console import WatchView
from flowscope.monitor.svg import graphviz_renderer
from flowscope.simulation import DEMO_TOPOLOGY, SimulatedPipeline

console = Console()


async def run_demo(
    pipeline: SimulatedPipeline,
    socket_dir: Path,
    *,
    step: float,
    interval: float,
    svg_output: Path | None,
) -> PollResult:
    """Serve ``pipeline`` and watch it until the poll loop ends."""
    async with StatusServer(pipeline, socket_dir) as server:
        simulation = asyncio.create_task(pipeline.run(step))
        try:
            view = WatchView(
                server.pid,
                console=console,
                svg_output=svg_output,
                thresholds=config.thresholds,
                scale_percent=config.scale_percent,
            )
            scheduler = PollScheduler(
                server.pid,
                connector=functools.partial(connect, socket_dir=socket_dir),
                image_renderer=graphviz_renderer(config.dot_binary),
                poll_interval=interval,
                on_state=view.on_state,
                on_event=view.on_event,
            )
            return await watch(scheduler, view)
        finally:
            simulation.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await simulation


def demo_cmd(
    step: float = typer.Option(
        0.5,
        "--step",
        help="Seconds between simulated pipeline steps.",
    ),
    interval_ms: int = typer.Option(
        1000,
        "--interval",
        "-i",
        min=1,
        help="Poll interval in milliseconds.",
    ),
    records: int = typer.Option(
        500,
        "--records",
        min=1,
        help="Records produced by the source node.",
    ),
    fail_node: str = typer.Option(
        None,
        "--fail",
        help=f"Make this node fail. One of: {', '.join(DEMO_TOPOLOGY.nodes)}.",
    ),
    svg: Path = typer.Option(
        None,
        "--svg",
        "-o",
        help="Write the latest rendered SVG to this file on every cycle.",
    ),
) -> None:
    """Run a simulated pipeline and watch it until it finishes."""
    require_dot(config.dot_binary)
    require_svg_target(svg)

    if fail_node is not None and fail_node not in DEMO_TOPOLOGY:
        console.print(f"[bold red]Unknown node:[/bold red] {fail_node}")
        raise typer.Exit(code=1)

    console.print()
    console.print(
        Panel(
            "[bold]flowscope demo pipeline[/bold]\n\n"
            f"{len(DEMO_TOPOLOGY.nodes)} nodes moving {records} records.\n"
            "The graph re-renders on every poll until every node is done.",
            border_style="cyan",
            padding=(1, 2),
        )
    )

    pipeline = SimulatedPipeline(total_records=records, fail_node=fail_node)
    with tempfile.TemporaryDirectory(prefix="flowscope-demo-") as socket_dir:
        try:
            result = asyncio.run(
                run_demo(
                    pipeline,
                    Path(socket_dir),
                    step=step,
                    interval=interval_ms / 1000.0,
                    svg_output=svg,
                )
            )
        except KeyboardInterrupt:
            console.print("[dim]Demo interrupted.[/dim]")
            raise typer.Exit(code=130)
    report(result)
