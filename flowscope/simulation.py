"""Simulated pipeline used by ``flowscope demo`` and the integration tests.

A small fixed DAG whose nodes move records along at different rates, so
that backlogs build up on the slow edges.  ``advance()`` performs one
deterministic step; ``run()`` steps on a timer until every node is
terminal.
"""

from __future__ import annotations

import asyncio
import logging

from flowscope.models.graph import Edge, GraphTopology
from flowscope.models.status import (
    Error,
    ExecutionState,
    NodeStatus,
    Running,
    Success,
    Waiting,
)

logger = logging.getLogger(__name__)

DEMO_TOPOLOGY = GraphTopology(
    nodes=("read_csv", "parse", "enrich", "validate", "join", "write_parquet"),
    edges=(
        Edge(tail="read_csv", tail_port=0, head="parse", head_port=0),
        Edge(tail="parse", tail_port=0, head="enrich", head_port=0),
        Edge(tail="parse", tail_port=0, head="validate", head_port=0),
        Edge(tail="enrich", tail_port=0, head="join", head_port=0),
        Edge(tail="validate", tail_port=0, head="join", head_port=1),
        Edge(tail="join", tail_port=0, head="write_parquet", head_port=0),
    ),
)

# Records moved per step.  "enrich" is the bottleneck.
DEFAULT_RATES: dict[str, int] = {
    "read_csv": 120,
    "parse": 100,
    "enrich": 40,
    "validate": 90,
    "join": 100,
    "write_parquet": 100,
}


class SimulatedPipeline:
    """In-memory pipeline that satisfies ``StatusSource``.

    Parameters
    ----------
    total_records:
        Records produced by the source node.
    rates:
        Records each node moves per step.  Missing nodes move 100.
    fail_node:
        If set, this node errors ``fail_after`` steps after it starts,
        and every non-terminal node downstream of it errors too.
    """

    def __init__(
        self,
        *,
        total_records: int = 500,
        rates: dict[str, int] | None = None,
        fail_node: str | None = None,
        fail_after: int = 2,
        topology: GraphTopology = DEMO_TOPOLOGY,
    ) -> None:
        if fail_node is not None and fail_node not in topology:
            raise ValueError(f"Unknown node {fail_node!r}")
        self._topology = topology
        self._total = total_records
        self._rates = {**DEFAULT_RATES, **(rates or {})}
        self._fail_node = fail_node
        self._fail_after = fail_after
        self.steps = 0

        self._inputs: dict[str, list[Edge]] = {
            n: sorted(topology.upstream_of(n), key=lambda e: e.head_port)
            for n in topology.nodes
        }
        self._outputs: dict[str, int] = {
            n: len({e.tail_port for e in topology.downstream_of(n)}) or 1
            for n in topology.nodes
        }
        self._states: dict[str, ExecutionState] = {
            n: Waiting() for n in topology.nodes
        }
        self._started_at: dict[str, int] = {}
        self._read: dict[str, list[int | None]] = {
            n: [None] * len(self._inputs[n]) for n in topology.nodes
        }
        self._written: dict[str, list[int | None]] = {
            n: [None] * self._outputs[n] for n in topology.nodes
        }

    # ------------------------------------------------------------------
    # StatusSource
    # ------------------------------------------------------------------

    def topology(self) -> GraphTopology:
        return self._topology

    def statuses(self) -> dict[str, NodeStatus]:
        return {
            n: NodeStatus(
                state=self._states[n],
                input_read=tuple(self._read[n]),
                output_written=tuple(self._written[n]),
            )
            for n in self._topology.nodes
        }

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    @property
    def finished(self) -> bool:
        return all(s.is_terminal for s in self._states.values())

    def advance(self) -> None:
        """Move every node forward by one step, in topology order."""
        self.steps += 1
        for name in self._topology.nodes:
            if self._states[name].is_terminal:
                continue
            if self._should_fail(name):
                self._fail(name)
                continue
            if self._inputs[name]:
                self._advance_stage(name)
            else:
                self._advance_source(name)

    def _rate(self, name: str) -> int:
        return self._rates.get(name, 100)

    def _start(self, name: str) -> None:
        self._states[name] = Running()
        self._started_at[name] = self.steps
        self._read[name] = [0] * len(self._read[name])
        self._written[name] = [0] * len(self._written[name])

    def _should_fail(self, name: str) -> bool:
        return (
            name == self._fail_node
            and name in self._started_at
            and self.steps - self._started_at[name] >= self._fail_after
        )

    def _fail(self, name: str) -> None:
        logger.info("Simulated node %s failed at step %d", name, self.steps)
        self._states[name] = Error(detail="simulated failure")
        for downstream in self._descendants(name):
            if not self._states[downstream].is_terminal:
                self._states[downstream] = Error(detail=f"upstream {name} failed")

    def _descendants(self, name: str) -> list[str]:
        seen: list[str] = []
        frontier = [name]
        while frontier:
            current = frontier.pop()
            for edge in self._topology.downstream_of(current):
                if edge.head not in seen:
                    seen.append(edge.head)
                    frontier.append(edge.head)
        return seen

    def _advance_source(self, name: str) -> None:
        if isinstance(self._states[name], Waiting):
            self._start(name)
            return
        written = min(self._total, (self._written[name][0] or 0) + self._rate(name))
        self._written[name] = [written] * len(self._written[name])
        if written == self._total:
            self._states[name] = Success()

    def _available(self, edge: Edge) -> int:
        return self._written[edge.tail][edge.tail_port] or 0

    def _advance_stage(self, name: str) -> None:
        edges = self._inputs[name]
        if isinstance(self._states[name], Waiting):
            if any(self._available(e) > 0 for e in edges):
                self._start(name)
            return

        read = [
            min(self._available(e), (self._read[name][i] or 0) + self._rate(name))
            for i, e in enumerate(edges)
        ]
        self._read[name] = read
        self._written[name] = [min(read)] * len(self._written[name])

        upstream_done = all(
            isinstance(self._states[e.tail], Success) for e in edges
        )
        drained = all(r == self._available(e) for r, e in zip(read, edges))
        if upstream_done and drained:
            self._states[name] = Success()

    async def run(self, step_seconds: float = 1.0) -> None:
        """Step until every node is terminal."""
        while not self.finished:
            self.advance()
            await asyncio.sleep(step_seconds)
        logger.info("Simulated pipeline finished after %d steps", self.steps)
