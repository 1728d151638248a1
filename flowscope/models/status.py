"""Node execution state and status snapshot models.

``ExecutionState`` is a closed tagged union.  Both the renderer and the
termination check branch on the concrete variant, so it is never carried
around as a bare string.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from flowscope.models.graph import GraphTopology, NodeId


class Waiting(BaseModel):
    """The node has not started yet."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["waiting"] = "waiting"

    @property
    def is_terminal(self) -> bool:
        return False


class Running(BaseModel):
    """The node is processing records."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["running"] = "running"

    @property
    def is_terminal(self) -> bool:
        return False


class Success(BaseModel):
    """The node completed normally."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"

    @property
    def is_terminal(self) -> bool:
        return True


class Error(BaseModel):
    """The node failed.  ``detail`` is the remote error text, if any."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["error"] = "error"
    detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        return True


ExecutionState = Annotated[
    Union[Waiting, Running, Success, Error],
    Field(discriminator="kind"),
]

Counter = Union[NonNegativeInt, None]


class NodeStatus(BaseModel):
    """Execution state and per-port record counters of one node.

    Each counter tuple has one slot per port.  ``None`` means the counter
    has not been observed yet, which is not the same as zero.
    """

    model_config = ConfigDict(frozen=True)

    state: ExecutionState = Field(default_factory=Waiting)
    input_read: tuple[Counter, ...] = ()
    output_written: tuple[Counter, ...] = ()

    def read_at(self, port: int) -> int | None:
        """Records read on input ``port``; ``None`` if absent or out of range."""
        if 0 <= port < len(self.input_read):
            return self.input_read[port]
        return None

    def written_at(self, port: int) -> int | None:
        """Records written on output ``port``; ``None`` if absent or out of range."""
        if 0 <= port < len(self.output_written):
            return self.output_written[port]
        return None

    def total_records(self) -> int | None:
        """Sum of every present counter, or ``None`` when none is present."""
        present = [
            c for c in (*self.input_read, *self.output_written) if c is not None
        ]
        if not present:
            return None
        return sum(present)


class StatusSnapshot(BaseModel):
    """One atomic read of every node's status.

    Replaced wholesale on every poll cycle, never patched.
    """

    model_config = ConfigDict(frozen=True)

    statuses: dict[NodeId, NodeStatus] = {}
    captured_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __getitem__(self, name: NodeId) -> NodeStatus:
        return self.statuses[name]

    def __contains__(self, name: object) -> bool:
        return name in self.statuses

    def __len__(self) -> int:
        return len(self.statuses)

    def missing_nodes(self, topology: GraphTopology) -> list[NodeId]:
        """Topology node names that have no entry in this snapshot."""
        return [n for n in topology.nodes if n not in self.statuses]

    @property
    def running_nodes(self) -> list[NodeId]:
        return [n for n, s in self.statuses.items() if isinstance(s.state, Running)]

    @property
    def failed_nodes(self) -> list[NodeId]:
        return [n for n, s in self.statuses.items() if isinstance(s.state, Error)]

    @property
    def completed_count(self) -> int:
        """Number of nodes in a terminal state."""
        return sum(1 for s in self.statuses.values() if s.state.is_terminal)
