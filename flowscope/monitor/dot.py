"""DOT renderer — turns a topology and a status snapshot into Graphviz text.

Pure and deterministic: identical inputs always give byte-identical text.

Color scheme
------------
Nodes:

- grey   : WAITING, or RUNNING with no counter observed yet
- amber  : RUNNING with at least one counter observed
- green  : SUCCESS
- red    : ERROR

Edges (only when both port counters are known), by backlog
``d = tail written - head read``:

- green  : d < warn
- amber  : warn <= d < critical
- red    : d >= critical
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from flowscope.core.errors import RenderFailure
from flowscope.models.graph import Edge, GraphTopology
from flowscope.models.status import (
    Error,
    NodeStatus,
    Running,
    StatusSnapshot,
    Success,
    Waiting,
)

GREY = "#59636e"
AMBER = "#dbab0a"
GREEN = "#1a7f37"
RED = "#d1242f"


class ColorScheme(str, Enum):
    """Text/stroke contrast of the rendered graph."""

    LIGHT = "light"  # dark text on a light background
    DARK = "dark"  # light text on a dark background


_FOREGROUND: dict[ColorScheme, str] = {
    ColorScheme.LIGHT: "black",
    ColorScheme.DARK: "white",
}


class BacklogThresholds(BaseModel):
    """Edge backlog levels at which the edge turns amber, then red."""

    model_config = ConfigDict(frozen=True)

    warn: int = 10
    critical: int = 42

    @model_validator(mode="after")
    def _ordered(self) -> BacklogThresholds:
        if self.critical <= self.warn:
            raise ValueError("critical threshold must exceed warn threshold")
        return self

    def color_for(self, backlog: int) -> str:
        if backlog < self.warn:
            return GREEN
        if backlog < self.critical:
            return AMBER
        return RED


DEFAULT_THRESHOLDS = BacklogThresholds()


class UnquotableNameError(RenderFailure, ValueError):
    """A node name contains a double quote and cannot be used as a DOT id."""


def node_name_to_dot_id(name: str) -> str:
    """Quote ``name`` verbatim as a DOT identifier.

    Names containing ``"`` are rejected rather than escaped.
    """
    if '"' in name:
        raise UnquotableNameError(f"Node name contains a double quote: {name!r}")
    return f'"{name}"'


def node_color(status: NodeStatus) -> str:
    state = status.state
    if isinstance(state, Error):
        return RED
    if isinstance(state, Success):
        return GREEN
    if isinstance(state, Running):
        return GREY if status.total_records() is None else AMBER
    if isinstance(state, Waiting):
        return GREY
    raise TypeError(f"Unhandled execution state: {state!r}")


def edge_attributes(
    edge: Edge,
    snapshot: StatusSnapshot,
    thresholds: BacklogThresholds = DEFAULT_THRESHOLDS,
) -> list[tuple[str, str]]:
    """Label and color attributes of one edge, in emission order."""
    tail_counter = snapshot[edge.tail].written_at(edge.tail_port)
    head_counter = snapshot[edge.head].read_at(edge.head_port)

    attrs: list[tuple[str, str]] = []
    if tail_counter is not None:
        attrs.append(("taillabel", str(tail_counter)))
    if head_counter is not None:
        if tail_counter is None:
            attrs.append(("headlabel", str(head_counter)))
        else:
            backlog = tail_counter - head_counter
            attrs.append(("headlabel", f"{head_counter} ({backlog})"))
            attrs.append(("color", thresholds.color_for(backlog)))
    return attrs


def _attr_list(attrs: list[tuple[str, str]]) -> str:
    return ", ".join(f'{key}="{value}"' for key, value in attrs)


def render(
    topology: GraphTopology,
    snapshot: StatusSnapshot,
    color_scheme: ColorScheme = ColorScheme.LIGHT,
    thresholds: BacklogThresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Render DOT source for one snapshot of a pipeline.

    Parameters
    ----------
    topology:
        Nodes and edges, emitted in their given order.
    snapshot:
        Must hold an entry for every topology node.
    color_scheme:
        Foreground (text and default stroke) contrast.
    thresholds:
        Backlog levels for edge coloring.

    Raises
    ------
    UnquotableNameError
        If a node name contains a double quote.
    RenderFailure
        If the snapshot lacks an entry for a topology node.
    """
    missing = snapshot.missing_nodes(topology)
    if missing:
        raise RenderFailure(f"Snapshot has no status for nodes: {missing}")

    fg = _FOREGROUND[ColorScheme(color_scheme)]
    lines: list[str] = [
        "digraph G {",
        '    graph [bgcolor="transparent"];',
        f'    node [fontcolor="{fg}", color="{fg}"];',
        f'    edge [fontcolor="{fg}", color="{fg}"];',
    ]

    for name in topology.nodes:
        color = node_color(snapshot[name])
        lines.append(f'    {node_name_to_dot_id(name)} [color="{color}"];')

    for edge in topology.edges:
        ids = f"{node_name_to_dot_id(edge.tail)} -> {node_name_to_dot_id(edge.head)}"
        attrs = edge_attributes(edge, snapshot, thresholds)
        if attrs:
            lines.append(f"    {ids} [{_attr_list(attrs)}];")
        else:
            lines.append(f"    {ids};")

    lines.append("}")
    return "\n".join(lines) + "\n"
