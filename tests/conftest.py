"""Shared test fixtures for flowscope."""

from __future__ import annotations

import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from flowscope.models.graph import Edge, GraphTopology
from flowscope.models.render import RenderedGraph
from flowscope.models.status import NodeStatus, Running, StatusSnapshot, Success

FAKE_SVG = '<svg width="120pt" height="80pt" viewBox="0 0 120 80"></svg>'


class ScriptedSource:
    """A ``StatusSource`` that replays a list of status dicts, one per call.

    The last entry repeats once the script runs out.
    """

    def __init__(
        self,
        topology: GraphTopology,
        script: list[dict[str, NodeStatus]],
    ) -> None:
        self._topology = topology
        self._script = list(script)
        self.status_calls = 0
        self.graph_calls = 0

    def topology(self) -> GraphTopology:
        self.graph_calls += 1
        return self._topology

    def statuses(self) -> dict[str, NodeStatus]:
        index = min(self.status_calls, len(self._script) - 1)
        self.status_calls += 1
        return self._script[index]


class FakeImageRenderer:
    """Records DOT sources and returns a fixed-size RenderedGraph."""

    def __init__(self) -> None:
        self.sources: list[str] = []

    async def __call__(self, dot_source: str) -> RenderedGraph:
        self.sources.append(dot_source)
        return RenderedGraph(dot_source=dot_source, svg=FAKE_SVG, width_pt=120, height_pt=80)


@pytest.fixture
def socket_dir() -> Iterator[Path]:
    """A short-path directory for Unix sockets (sun_path is ~108 bytes)."""
    with tempfile.TemporaryDirectory(prefix="fs-") as directory:
        yield Path(directory)


@pytest.fixture
def topology_ab() -> GraphTopology:
    """The two-node topology A -> B."""
    return GraphTopology(
        nodes=("A", "B"),
        edges=(Edge(tail="A", tail_port=0, head="B", head_port=0),),
    )


@pytest.fixture
def image_renderer() -> FakeImageRenderer:
    return FakeImageRenderer()


@pytest.fixture
def make_status() -> Callable[..., NodeStatus]:
    """Factory fixture: build a NodeStatus with sensible defaults."""

    def _factory(
        state: Any = None,
        input_read: tuple[int | None, ...] = (),
        output_written: tuple[int | None, ...] = (),
    ) -> NodeStatus:
        return NodeStatus(
            state=state if state is not None else Running(),
            input_read=input_read,
            output_written=output_written,
        )

    return _factory


@pytest.fixture
def running_ab(make_status: Callable[..., NodeStatus]) -> dict[str, NodeStatus]:
    """A: Success with 100 written; B: Running with 80 read."""
    return {
        "A": make_status(Success(), output_written=(100,)),
        "B": make_status(Running(), input_read=(80,)),
    }


@pytest.fixture
def finished_ab(make_status: Callable[..., NodeStatus]) -> dict[str, NodeStatus]:
    return {
        "A": make_status(Success(), output_written=(100,)),
        "B": make_status(Success(), input_read=(100,)),
    }


@pytest.fixture
def snapshot_of() -> Callable[[dict[str, NodeStatus]], StatusSnapshot]:
    def _factory(statuses: dict[str, NodeStatus]) -> StatusSnapshot:
        return StatusSnapshot(statuses=statuses)

    return _factory


@pytest.fixture
def make_source() -> Callable[..., ScriptedSource]:
    """Factory fixture: a ScriptedSource for a topology and status script."""

    def _factory(
        topology: GraphTopology, *script: dict[str, NodeStatus]
    ) -> ScriptedSource:
        return ScriptedSource(topology, list(script))

    return _factory


@pytest.fixture
def fake_dot(tmp_path: Path) -> str:
    """An executable that reads DOT on stdin and prints a fixed SVG, like ``dot -Tsvg``."""
    path = tmp_path / "fake-dot"
    path.write_text(f"#!/bin/sh\ncat > /dev/null\necho '{FAKE_SVG}'\n")
    path.chmod(0o755)
    return str(path)
