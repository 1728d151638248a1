"""Poll session state, per-cycle events, and session results."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from flowscope.models.graph import GraphTopology
from flowscope.models.render import RenderedGraph
from flowscope.models.status import StatusSnapshot


class SchedulerState(str, Enum):
    """Internal states of the poll scheduler.  ``DISCONNECTED`` is terminal."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    POLLING = "polling"
    DISCONNECTED = "disconnected"


class ConnectionState(str, Enum):
    """Connection state as shown to the user."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


# POLLING is presented as a live connection.
PRESENTED_STATE: dict[SchedulerState, ConnectionState] = {
    SchedulerState.CONNECTING: ConnectionState.CONNECTING,
    SchedulerState.CONNECTED: ConnectionState.CONNECTED,
    SchedulerState.POLLING: ConnectionState.CONNECTED,
    SchedulerState.DISCONNECTED: ConnectionState.DISCONNECTED,
}

# Allowed scheduler transitions.  DISCONNECTED has no way out.
VALID_TRANSITIONS: dict[SchedulerState, set[SchedulerState]] = {
    SchedulerState.CONNECTING: {SchedulerState.CONNECTED, SchedulerState.DISCONNECTED},
    SchedulerState.CONNECTED: {SchedulerState.POLLING, SchedulerState.DISCONNECTED},
    SchedulerState.POLLING: {SchedulerState.DISCONNECTED},
    SchedulerState.DISCONNECTED: set(),
}


class PollOutcome(str, Enum):
    """Why a poll session ended."""

    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PollEvent(BaseModel):
    """Emitted once per fully successful poll cycle."""

    model_config = ConfigDict(frozen=True)

    process_id: int
    cycle: int
    topology: GraphTopology
    snapshot: StatusSnapshot
    rendered: RenderedGraph
    finished: bool


class PollResult(BaseModel):
    """Final result of a poll session."""

    model_config = ConfigDict(frozen=True)

    process_id: int
    outcome: PollOutcome
    cycles: int = 0
    error_kind: str | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == PollOutcome.FINISHED


class ProcessInfo(BaseModel):
    """A process that exposes an observation socket."""

    model_config = ConfigDict(frozen=True)

    pid: int
    description: str
    socket_path: Path
