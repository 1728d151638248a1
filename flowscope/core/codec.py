"""Wire decoding for graph and node-status payloads.

Wire shapes
-----------
Node state is a one-key mapping, one key per variant::

    {"waiting": null} | {"running": null} | {"success": null}
    {"error": "detail text or null"}

A node status record::

    {"node_name": "parse", "state": {"running": null},
     "input_read": [120, null], "output_written": [118]}

A graph::

    {"nodes": [{"name": "parse"}, ...],
     "edges": [{"tail_name": "parse", "tail_index": 0,
                "head_name": "sink", "head_index": 0}, ...]}

Every decode error, including a pydantic ``ValidationError``, surfaces as
``RpcFailure``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from flowscope.core.errors import RpcFailure
from flowscope.models.graph import Edge, GraphTopology
from flowscope.models.status import (
    Error,
    ExecutionState,
    NodeStatus,
    Running,
    StatusSnapshot,
    Success,
    Waiting,
)

# Wire numbers and names are taken as sent; "12", true or 3.0 are not counters.
_WireCount = Annotated[StrictInt, Field(ge=0)]

_UNIT_STATES: dict[str, type[BaseModel]] = {
    "waiting": Waiting,
    "running": Running,
    "success": Success,
}


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class _WireNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr


class _WireEdge(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tail_name: StrictStr
    tail_index: _WireCount
    head_name: StrictStr
    head_index: _WireCount


class _WireGraph(BaseModel):
    model_config = ConfigDict(extra="ignore")

    nodes: list[_WireNode]
    edges: list[_WireEdge] = []


class _WireNodeStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    node_name: StrictStr
    state: dict[str, Any]
    input_read: list[_WireCount | None] = []
    output_written: list[_WireCount | None] = []


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def decode_state(wire: Any) -> ExecutionState:
    """Decode a one-key state mapping into an ``ExecutionState`` variant."""
    if not isinstance(wire, Mapping) or len(wire) != 1:
        raise RpcFailure(f"Malformed node state: {wire!r}")

    (tag, payload), = wire.items()
    if tag in _UNIT_STATES:
        return _UNIT_STATES[tag]()
    if tag == "error":
        if payload is not None and not isinstance(payload, str):
            raise RpcFailure(f"Malformed error detail: {payload!r}")
        return Error(detail=payload)
    raise RpcFailure(f"Unknown node state tag: {tag!r}")


def decode_node_status(record: Any) -> tuple[str, NodeStatus]:
    """Decode one wire status record into ``(node_name, NodeStatus)``."""
    try:
        wire = _WireNodeStatus.model_validate(record)
    except ValidationError as exc:
        raise RpcFailure(f"Malformed node status record: {exc}") from exc

    status = NodeStatus(
        state=decode_state(wire.state),
        input_read=tuple(wire.input_read),
        output_written=tuple(wire.output_written),
    )
    return wire.node_name, status


def decode_statuses(records: list[Any]) -> StatusSnapshot:
    """Decode a full list of status records into one snapshot."""
    if not isinstance(records, (list, tuple)):
        raise RpcFailure(f"Status records are not a list: {records!r}")
    statuses: dict[str, NodeStatus] = {}
    for record in records:
        name, status = decode_node_status(record)
        if name in statuses:
            raise RpcFailure(f"Duplicate status record for node {name!r}")
        statuses[name] = status
    return StatusSnapshot(statuses=statuses)


def decode_topology(wire: Any) -> GraphTopology:
    """Decode a wire graph into a validated ``GraphTopology``."""
    try:
        graph = _WireGraph.model_validate(wire)
        return GraphTopology(
            nodes=tuple(n.name for n in graph.nodes),
            edges=tuple(
                Edge(
                    tail=e.tail_name,
                    tail_port=e.tail_index,
                    head=e.head_name,
                    head_port=e.head_index,
                )
                for e in graph.edges
            ),
        )
    except ValidationError as exc:
        raise RpcFailure(f"Malformed graph: {exc}") from exc


# ---------------------------------------------------------------------------
# Encoders (used by the status server)
# ---------------------------------------------------------------------------


def encode_state(state: ExecutionState) -> dict[str, Any]:
    if isinstance(state, Error):
        return {"error": state.detail}
    return {state.kind: None}


def encode_node_status(name: str, status: NodeStatus) -> dict[str, Any]:
    return {
        "node_name": name,
        "state": encode_state(status.state),
        "input_read": list(status.input_read),
        "output_written": list(status.output_written),
    }


def encode_topology(topology: GraphTopology) -> dict[str, Any]:
    return {
        "nodes": [{"name": n} for n in topology.nodes],
        "edges": [
            {
                "tail_name": e.tail,
                "tail_index": e.tail_port,
                "head_name": e.head,
                "head_index": e.head_port,
            }
            for e in topology.edges
        ],
    }
