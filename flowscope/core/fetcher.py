"""Snapshot fetcher — the two RPC calls made against an open session.

``fetch_topology`` runs once per session, ``fetch_status`` once per poll
cycle.  Neither retries: every failure is an ``RpcFailure`` and ends the
session.
"""

from __future__ import annotations

import logging
from typing import Any

from flowscope.core.codec import decode_statuses, decode_topology
from flowscope.core.errors import RpcFailure
from flowscope.core.session import Session
from flowscope.models.graph import GraphTopology
from flowscope.models.status import StatusSnapshot

logger = logging.getLogger(__name__)

STATE_SERVICE = "state"


async def fetch_topology(session: Session) -> GraphTopology:
    """Fetch the static execution graph."""
    state = await session.service(STATE_SERVICE)
    topology = decode_topology(await state.call("graph"))
    logger.info(
        "Process %d topology: %d nodes, %d edges",
        session.process_id,
        len(topology.nodes),
        len(topology.edges),
    )
    return topology


async def fetch_status(session: Session, topology: GraphTopology) -> StatusSnapshot:
    """Fetch one status snapshot covering every node of ``topology``."""
    state = await session.service(STATE_SERVICE)
    result: Any = await state.call("node_statuses")
    if not isinstance(result, dict) or not isinstance(result.get("statuses"), list):
        raise RpcFailure(f"Malformed node_statuses result: {result!r}")

    snapshot = decode_statuses(result["statuses"])
    missing = snapshot.missing_nodes(topology)
    if missing:
        raise RpcFailure(f"Snapshot is missing topology nodes: {missing}")
    return snapshot
