"""Rich terminal view of a poll session.

Turns the scheduler's state changes and ``PollEvent``s into Rich
renderables: a connection indicator, a node table, and an edge table with
backlogs.  Optionally writes each rendered SVG to a file so it can be
opened in a browser or image viewer.

Indicator
---------
- dim    : CONNECTING
- green  : CONNECTED (polling)
- cyan   : DISCONNECTED after the pipeline finished
- red    : DISCONNECTED after a failure
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from flowscope.models.session import ConnectionState, PollEvent, PollOutcome
from flowscope.models.status import Error, Running, Success, Waiting
from flowscope.monitor.dot import AMBER, GREEN, RED, BacklogThresholds, DEFAULT_THRESHOLDS

logger = logging.getLogger(__name__)


_STATE_ICONS: dict[str, str] = {
    Waiting().kind: "[dim]WAITING[/dim]",
    Running().kind: "[yellow]RUNNING[/yellow]",
    Success().kind: "[green]SUCCESS[/green]",
    Error().kind: "[bold red]ERROR[/bold red]",
}

_BACKLOG_STYLES: dict[str, str] = {
    GREEN: "green",
    AMBER: "yellow",
    RED: "bold red",
}


def connection_indicator(
    state: ConnectionState, outcome: PollOutcome | None = None
) -> Text:
    """The status dot shown next to the process id."""
    if state == ConnectionState.CONNECTING:
        return Text.from_markup("[dim]● connecting[/dim]")
    if state == ConnectionState.CONNECTED:
        return Text.from_markup("[green]● connected[/green]")
    if outcome == PollOutcome.FINISHED:
        return Text.from_markup("[cyan]● finished[/cyan]")
    if outcome == PollOutcome.CANCELLED:
        return Text.from_markup("[dim]● detached[/dim]")
    return Text.from_markup("[bold red]● disconnected[/bold red]")


def _counters(values: tuple[int | None, ...]) -> str:
    if not values:
        return "[dim]-[/dim]"
    return " ".join("[dim]?[/dim]" if v is None else str(v) for v in values)


class WatchView:
    """Holds the latest session state and renders it.

    Parameters
    ----------
    process_id:
        The observed process.
    console:
        Rich Console instance.  A new one is created if not provided.
    svg_output:
        If set, every rendered SVG is written to this path.
    thresholds:
        Backlog thresholds, for styling the backlog column.
    scale_percent:
        Zoom level used when reporting the image size.
    """

    def __init__(
        self,
        process_id: int,
        *,
        console: Console | None = None,
        svg_output: Path | None = None,
        thresholds: BacklogThresholds = DEFAULT_THRESHOLDS,
        scale_percent: int = 100,
    ) -> None:
        self.process_id = process_id
        self.console = console or Console()
        self.svg_output = svg_output
        self.thresholds = thresholds
        self.scale_percent = scale_percent
        self.state = ConnectionState.CONNECTING
        self.outcome: PollOutcome | None = None
        self.last_event: PollEvent | None = None
        self._live: Live | None = None

    # ------------------------------------------------------------------
    # Scheduler callbacks
    # ------------------------------------------------------------------

    def on_state(self, state: ConnectionState) -> None:
        self.state = state
        self._refresh()

    def on_event(self, event: PollEvent) -> None:
        self.last_event = event
        if self.svg_output is not None:
            self._write_svg(event)
        self._refresh()

    def _write_svg(self, event: PollEvent) -> None:
        try:
            self.svg_output.write_text(event.rendered.svg, encoding="utf-8")
        except OSError as exc:
            # The graph stays on screen; only the file copy is lost.
            logger.warning("Could not write SVG to %s: %s", self.svg_output, exc)
            return
        logger.debug("Wrote cycle %d SVG to %s", event.cycle, self.svg_output)

    def finish(self, outcome: PollOutcome) -> None:
        self.outcome = outcome
        self._refresh()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> Panel:
        """Render the current view as a Rich Panel."""
        header = Text.assemble(
            Text(f"Process {self.process_id}  ", style="bold"),
            connection_indicator(self.state, self.outcome),
        )
        parts: list = [header]

        event = self.last_event
        if event is None:
            parts.append(Text("Waiting for the first snapshot...", style="dim"))
        else:
            parts.extend([Text(""), self._node_table(event), Text(""), self._edge_table(event)])
            snapshot = event.snapshot
            width, height = event.rendered.scaled_size(self.scale_percent)
            summary = (
                f"[bold]Cycle:[/bold] {event.cycle}  |  "
                f"[bold]Done:[/bold] {snapshot.completed_count}/{len(event.topology.nodes)}  |  "
                f"[bold]Running:[/bold] {len(snapshot.running_nodes)}  |  "
                f"[bold]Image:[/bold] {width}x{height}pt @ {self.scale_percent}%"
            )
            failed = snapshot.failed_nodes
            if failed:
                summary += f"  |  [bold red]Failed:[/bold red] {escape(', '.join(failed))}"
            if self.svg_output is not None:
                summary += f"  |  [bold]SVG:[/bold] {self.svg_output}"
            parts.extend([Text(""), Text.from_markup(summary)])

        subtitle = None
        if event is not None:
            subtitle = f"Last snapshot: {event.snapshot.captured_at.strftime('%Y-%m-%d %H:%M:%S UTC')}"

        return Panel(
            Group(*parts),
            title="[bold]flowscope[/bold]",
            subtitle=subtitle,
            border_style="blue",
            padding=(1, 2),
        )

    def _node_table(self, event: PollEvent) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Node", min_width=20)
        table.add_column("State", justify="center", min_width=10)
        table.add_column("Read", justify="right")
        table.add_column("Written", justify="right")
        table.add_column("Details")

        for name in event.topology.nodes:
            status = event.snapshot[name]
            details = ""
            if isinstance(status.state, Error) and status.state.detail:
                details = f"[red]{escape(status.state.detail)}[/red]"
            table.add_row(
                name,
                _STATE_ICONS[status.state.kind],
                _counters(status.input_read),
                _counters(status.output_written),
                details,
            )
        return table

    def _edge_table(self, event: PollEvent) -> Table:
        table = Table(show_header=True, header_style="bold cyan", expand=True)
        table.add_column("Edge", min_width=20)
        table.add_column("Written", justify="right")
        table.add_column("Read", justify="right")
        table.add_column("Backlog", justify="right")

        for edge in event.topology.edges:
            written = event.snapshot[edge.tail].written_at(edge.tail_port)
            read = event.snapshot[edge.head].read_at(edge.head_port)
            backlog = "[dim]-[/dim]"
            if written is not None and read is not None:
                diff = written - read
                style = _BACKLOG_STYLES[self.thresholds.color_for(diff)]
                backlog = f"[{style}]{diff}[/{style}]"
            table.add_row(
                f"{edge.tail}:{edge.tail_port} → {edge.head}:{edge.head_port}",
                "[dim]?[/dim]" if written is None else str(written),
                "[dim]?[/dim]" if read is None else str(read),
                backlog,
            )
        return table

    # ------------------------------------------------------------------
    # Live mode
    # ------------------------------------------------------------------

    def live(self) -> Live:
        """A ``Rich.Live`` context that refreshes on every callback."""
        self._live = Live(
            self.render(),
            console=self.console,
            refresh_per_second=4,
            transient=False,
        )
        return self._live

    def _refresh(self) -> None:
        if self._live is not None:
            self._live.update(self.render())
