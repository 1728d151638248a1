"""flowscope data models — all Pydantic v2, all frozen (immutable)."""

from flowscope.models.graph import Edge, GraphTopology, NodeId
from flowscope.models.render import RenderedGraph
from flowscope.models.session import (
    PRESENTED_STATE,
    VALID_TRANSITIONS,
    ConnectionState,
    PollEvent,
    PollOutcome,
    PollResult,
    ProcessInfo,
    SchedulerState,
)
from flowscope.models.status import (
    Error,
    ExecutionState,
    NodeStatus,
    Running,
    StatusSnapshot,
    Success,
    Waiting,
)

__all__ = [
    # graph
    "Edge",
    "GraphTopology",
    "NodeId",
    # status
    "ExecutionState",
    "Waiting",
    "Running",
    "Success",
    "Error",
    "NodeStatus",
    "StatusSnapshot",
    # render
    "RenderedGraph",
    # session
    "SchedulerState",
    "ConnectionState",
    "PRESENTED_STATE",
    "VALID_TRANSITIONS",
    "PollOutcome",
    "PollEvent",
    "PollResult",
    "ProcessInfo",
]
