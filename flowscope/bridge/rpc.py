"""JSON-lines RPC client for the observation socket.

Each message is one UTF-8 JSON object per line.

Request::

    {"id": 7, "target": null, "method": "service", "params": {"name": "state"}}
    {"id": 8, "target": 1, "method": "graph", "params": {}}

Response::

    {"id": 7, "result": {"service": 1}}
    {"id": 8, "error": {"message": "..."}}

``target`` is ``null`` for calls on the root object and a service id
(obtained through ``service``) otherwise.  Responses are matched to
requests by ``id``; ``RpcClient.run`` is the message loop that reads them
and must be running for any call to complete.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any

from flowscope.core.errors import RpcFailure

logger = logging.getLogger(__name__)


def encode_message(message: dict[str, Any]) -> bytes:
    return json.dumps(message, separators=(",", ":")).encode("utf-8") + b"\n"


def decode_message(line: bytes) -> dict[str, Any]:
    try:
        message = json.loads(line)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RpcFailure(f"Undecodable RPC message: {exc}") from exc
    if not isinstance(message, dict):
        raise RpcFailure(f"RPC message is not an object: {message!r}")
    return message


class ServiceClient:
    """A named remote service obtained from ``RpcClient.service``."""

    def __init__(self, client: RpcClient, name: str, service_id: int) -> None:
        self._client = client
        self.name = name
        self.service_id = service_id

    async def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        return await self._client.call(method, params, target=self.service_id)

    def __repr__(self) -> str:
        return f"ServiceClient(name={self.name!r}, service_id={self.service_id})"


class RpcClient:
    """Request/response client over a stream pair.

    Parameters
    ----------
    reader, writer:
        The connected stream pair.  The client does not close them;
        the owning session does.
    """

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._failure: RpcFailure | None = None

    @property
    def failed(self) -> bool:
        return self._failure is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Message loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Read responses until the connection ends.

        Always ends with an exception: ``RpcFailure`` when the peer closes
        the connection or sends garbage, ``CancelledError`` when cancelled.
        Pending calls are failed in either case.
        """
        try:
            while True:
                try:
                    line = await self._reader.readline()
                except (OSError, ValueError) as exc:
                    raise RpcFailure(f"Connection read failed: {exc}") from exc
                if not line:
                    raise RpcFailure("Connection closed by peer")
                self._dispatch(decode_message(line))
        except asyncio.CancelledError:
            self._fail_pending(RpcFailure("RPC connection closed"))
            raise
        except RpcFailure as exc:
            self._fail_pending(exc)
            raise

    def _dispatch(self, message: dict[str, Any]) -> None:
        call_id = message.get("id")
        future = self._pending.pop(call_id, None) if isinstance(call_id, int) else None
        if future is None:
            logger.warning("Dropping RPC response with unknown id %r", call_id)
            return
        if future.done():
            return

        if "error" in message:
            error = message["error"]
            text = error.get("message") if isinstance(error, dict) else error
            future.set_exception(RpcFailure(f"Remote error: {text}"))
        elif "result" in message:
            future.set_result(message["result"])
        else:
            future.set_exception(
                RpcFailure(f"RPC response {call_id} has neither result nor error")
            )

    def _fail_pending(self, failure: RpcFailure) -> None:
        self._failure = failure
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(failure)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        target: int | None = None,
    ) -> Any:
        """Send one request and wait for its response."""
        if self._failure is not None:
            raise RpcFailure(f"RPC connection unusable: {self._failure}")

        call_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[call_id] = future

        request = {
            "id": call_id,
            "target": target,
            "method": method,
            "params": params or {},
        }
        try:
            self._writer.write(encode_message(request))
            await self._writer.drain()
        except OSError as exc:
            self._pending.pop(call_id, None)
            raise RpcFailure(f"Could not send {method!r}: {exc}") from exc

        try:
            return await future
        finally:
            self._pending.pop(call_id, None)

    async def service(self, name: str) -> ServiceClient:
        """Look up a named sub-service on the root object."""
        result = await self.call("service", {"name": name})
        service_id = result.get("service") if isinstance(result, dict) else None
        if not isinstance(service_id, int):
            raise RpcFailure(f"Malformed service lookup result for {name!r}: {result!r}")
        return ServiceClient(self, name, service_id)
