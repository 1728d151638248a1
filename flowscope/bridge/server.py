"""Status server — exposes a pipeline's topology and statuses on a socket.

A pipeline process embeds ``StatusServer`` and hands it a ``StatusSource``.
The server answers the two calls flowscope needs on the ``"state"``
service: ``graph`` and ``node_statuses``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from flowscope.bridge.rpc import decode_message, encode_message
from flowscope.bridge.transport import STREAM_LIMIT, socket_path
from flowscope.core.codec import encode_node_status, encode_topology
from flowscope.core.errors import RpcFailure
from flowscope.core.fetcher import STATE_SERVICE
from flowscope.models.graph import GraphTopology
from flowscope.models.status import NodeStatus

logger = logging.getLogger(__name__)

_STATE_SERVICE_ID = 1


@runtime_checkable
class StatusSource(Protocol):
    """Anything that can report a pipeline's topology and current statuses."""

    def topology(self) -> GraphTopology:
        ...

    def statuses(self) -> dict[str, NodeStatus]:
        ...


class StatusServer:
    """Serves one ``StatusSource`` on the observation socket.

    Parameters
    ----------
    source:
        Where topology and statuses come from.
    socket_dir:
        Directory for the socket file.
    pid:
        Process id used in the socket name.  Defaults to this process.
    """

    def __init__(
        self,
        source: StatusSource,
        socket_dir: Path,
        *,
        pid: int | None = None,
    ) -> None:
        self._source = source
        self.pid = pid if pid is not None else os.getpid()
        self.path = socket_path(self.pid, socket_dir)
        self._server: asyncio.AbstractServer | None = None
        self.requests_served = 0

    async def start(self) -> None:
        if self.path.exists():
            self.path.unlink()
        self._server = await asyncio.start_unix_server(
            self._handle, path=str(self.path), limit=STREAM_LIMIT
        )
        logger.info("Status server listening on %s", self.path)

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        if self.path.exists():
            self.path.unlink()
        logger.info("Status server on %s closed", self.path)

    async def __aenter__(self) -> StatusServer:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                writer.write(encode_message(self._respond(line)))
                await writer.drain()
        except (ConnectionError, ValueError) as exc:
            logger.debug("Client connection dropped: %s", exc)
        finally:
            writer.close()

    def _respond(self, line: bytes) -> dict[str, Any]:
        try:
            request = decode_message(line)
        except RpcFailure as exc:
            return {"id": None, "error": {"message": str(exc)}}

        call_id = request.get("id")
        params = request.get("params") or {}
        if not isinstance(params, dict):
            message = f"params must be an object: {params!r}"
            return {"id": call_id, "error": {"message": message}}
        try:
            result = self._call(request.get("target"), request.get("method"), params)
        except LookupError as exc:
            return {"id": call_id, "error": {"message": str(exc)}}
        self.requests_served += 1
        return {"id": call_id, "result": result}

    def _call(self, target: Any, method: Any, params: dict[str, Any]) -> Any:
        if target is None:
            if method != "service":
                raise LookupError(f"Unknown root method {method!r}")
            name = params.get("name")
            if name != STATE_SERVICE:
                raise LookupError(f"Unknown service {name!r}")
            return {"service": _STATE_SERVICE_ID}

        if target != _STATE_SERVICE_ID:
            raise LookupError(f"Unknown service id {target!r}")
        if method == "graph":
            return encode_topology(self._source.topology())
        if method == "node_statuses":
            return {
                "statuses": [
                    encode_node_status(name, status)
                    for name, status in self._source.statuses().items()
                ]
            }
        raise LookupError(f"Unknown method {method!r} on service {STATE_SERVICE!r}")
