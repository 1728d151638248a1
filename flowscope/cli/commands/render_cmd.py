"""``flowscope render GRAPH STATUSES`` — render saved wire JSON offline.

GRAPH is a wire graph (``{"nodes": [...], "edges": [...]}``); STATUSES is
either ``{"statuses": [...]}`` or a bare list of status records.  Prints
DOT to stdout, or writes SVG with ``--svg``.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console

from flowscope.config import config
from flowscope.core.codec import decode_statuses, decode_topology
from flowscope.core.errors import SessionError
from flowscope.core.termination import is_finished
from flowscope.monitor.dot import ColorScheme, render
from flowscope.monitor.svg import dot_to_svg

console = Console(stderr=True)


def _load_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[bold red]Cannot read {path}:[/bold red] {exc}")
        raise typer.Exit(code=1)


def render_cmd(
    graph_file: Path = typer.Argument(..., help="Wire graph JSON file."),
    statuses_file: Path = typer.Argument(..., help="Node statuses JSON file."),
    svg: Path = typer.Option(
        None,
        "--svg",
        "-o",
        help="Write SVG here instead of printing DOT.",
    ),
    scheme: ColorScheme = typer.Option(
        None,
        "--scheme",
        "-s",
        help="Graph text color scheme: light (dark text) or dark (light text).",
    ),
) -> None:
    """Render one saved snapshot without connecting to a process."""
    graph_wire = _load_json(graph_file)
    statuses_wire = _load_json(statuses_file)
    if isinstance(statuses_wire, dict):
        statuses_wire = statuses_wire.get("statuses", [])

    try:
        topology = decode_topology(graph_wire)
        snapshot = decode_statuses(statuses_wire)
        dot_source = render(
            topology,
            snapshot,
            scheme or ColorScheme(config.color_scheme),
            config.thresholds,
        )
        if svg is not None:
            rendered = asyncio.run(dot_to_svg(dot_source, dot_binary=config.dot_binary))
            try:
                svg.write_text(rendered.svg, encoding="utf-8")
            except OSError as exc:
                console.print(f"[bold red]Cannot write {svg}:[/bold red] {exc}")
                raise typer.Exit(code=1)
            console.print(
                f"[green]Wrote {svg}[/green] ({rendered.width_pt}x{rendered.height_pt}pt)"
            )
        else:
            typer.echo(dot_source, nl=False)
    except SessionError as exc:
        console.print(f"[bold red]Render failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    state = "finished" if is_finished(snapshot) else "still running"
    console.print(f"[dim]Pipeline {state}.[/dim]")
