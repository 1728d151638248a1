"""Session — one open connection plus its RPC client and message loop.

A session is owned by exactly one poll scheduler.  Closing it stops the
message loop and closes the socket; it is safe to close more than once.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from flowscope.bridge.rpc import RpcClient, ServiceClient

logger = logging.getLogger(__name__)

Connector = Callable[
    [int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]
]


class Session:
    """An open observation session on one process.

    Parameters
    ----------
    process_id:
        The observed process.
    reader, writer:
        The connected stream pair; the session owns and closes them.
    """

    def __init__(
        self,
        process_id: int,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        self.process_id = process_id
        self._writer = writer
        self.client = RpcClient(reader, writer)
        self._services: dict[str, ServiceClient] = {}
        self._loop_task: asyncio.Task[None] | None = None
        self._closed = False

    @classmethod
    async def open(cls, process_id: int, connector: Connector) -> Session:
        """Connect and start the RPC message loop."""
        reader, writer = await connector(process_id)
        session = cls(process_id, reader, writer)
        session.start()
        return session

    def start(self) -> None:
        self._loop_task = asyncio.create_task(
            self._drive(), name=f"flowscope-rpc-{self.process_id}"
        )

    async def _drive(self) -> None:
        try:
            await self.client.run()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            # Pending and later calls fail through the client; this is the
            # independent report of the loop itself going down.
            logger.warning(
                "Connection to process %d interrupted: %s", self.process_id, exc
            )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def message_loop_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def service(self, name: str) -> ServiceClient:
        """Look up a named service once; later lookups reuse the handle."""
        if name not in self._services:
            self._services[name] = await self.client.service(name)
        return self._services[name]

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task

        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as exc:
            logger.debug("Error while closing connection: %s", exc)
        logger.info("Session with process %d closed", self.process_id)
