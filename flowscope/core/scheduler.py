"""Poll scheduler — session lifecycle and the fetch/render/decide loop.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Topology fetched exactly once per session
- One full cycle per poll: fetch, render, emit, decide; partial cycles
  are abandoned, never emitted
- No retries: any session error disconnects
- The session is closed on every exit path, cancellation included
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable

from flowscope.bridge.transport import connect
from flowscope.config import config
from flowscope.core.errors import SessionError
from flowscope.core.fetcher import fetch_status, fetch_topology
from flowscope.core.session import Connector, Session
from flowscope.core.termination import is_finished
from flowscope.models.graph import GraphTopology
from flowscope.models.session import (
    PRESENTED_STATE,
    VALID_TRANSITIONS,
    ConnectionState,
    PollEvent,
    PollOutcome,
    PollResult,
    SchedulerState,
)
from flowscope.monitor.dot import BacklogThresholds, ColorScheme, render
from flowscope.monitor.svg import ImageRenderer, graphviz_renderer

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested scheduler state transition is not valid."""


class PollScheduler:
    """Watches one process until its pipeline finishes or the session fails.

    A scheduler runs once.  Observing the process again needs a new
    instance.

    Parameters
    ----------
    process_id:
        The process to observe.
    connector:
        Opens the stream pair for a process id.  Defaults to the Unix
        socket transport in ``config.socket_dir``.
    image_renderer:
        Turns DOT text into a ``RenderedGraph``.  Defaults to Graphviz.
    color_scheme, thresholds, poll_interval:
        Rendering and pacing policy.  Default to the values in ``config``.
    on_state:
        Called with the new ``ConnectionState`` whenever it changes.
    on_event:
        Called with a ``PollEvent`` after every completed cycle.
    """

    def __init__(
        self,
        process_id: int,
        *,
        connector: Connector | None = None,
        image_renderer: ImageRenderer | None = None,
        color_scheme: ColorScheme | None = None,
        thresholds: BacklogThresholds | None = None,
        poll_interval: float | None = None,
        on_state: Callable[[ConnectionState], None] | None = None,
        on_event: Callable[[PollEvent], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.process_id = process_id
        self._connector = connector or functools.partial(
            connect, socket_dir=config.socket_dir
        )
        self._image_renderer = image_renderer or graphviz_renderer(config.dot_binary)
        self._color_scheme = ColorScheme(color_scheme or config.color_scheme)
        self._thresholds = thresholds or config.thresholds
        self._poll_interval = (
            config.poll_interval if poll_interval is None else poll_interval
        )
        self._on_state = on_state
        self._on_event = on_event
        self._sleep = sleep

        self._state = SchedulerState.CONNECTING
        self._started = False
        self._cycles = 0
        self._outcome: PollOutcome | None = None
        self._error: BaseException | None = None
        self._topology: GraphTopology | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def connection_state(self) -> ConnectionState:
        return PRESENTED_STATE[self._state]

    @property
    def outcome(self) -> PollOutcome | None:
        """Why the session ended; ``None`` while it is still running."""
        return self._outcome

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def cycles(self) -> int:
        return self._cycles

    @property
    def topology(self) -> GraphTopology | None:
        return self._topology

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def _transition(self, target: SchedulerState) -> None:
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {self._state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        before = self.connection_state
        self._state = target
        logger.debug("Process %d: scheduler -> %s", self.process_id, target.value)
        if self.connection_state != before:
            self._notify_state()

    def _notify_state(self) -> None:
        if self._on_state is not None:
            self._on_state(self.connection_state)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run(self) -> PollResult:
        """Connect, then poll until the pipeline finishes or the session fails.

        Returns a ``PollResult`` with outcome FINISHED or FAILED.  On
        cancellation the session is closed and ``CancelledError``
        propagates.

        Raises
        ------
        RuntimeError
            If this scheduler has already been run.
        """
        if self._started:
            raise RuntimeError("PollScheduler instances run only once")
        self._started = True
        self._notify_state()

        session: Session | None = None
        try:
            session = await Session.open(self.process_id, self._connector)
            self._transition(SchedulerState.CONNECTED)

            self._topology = await fetch_topology(session)
            self._transition(SchedulerState.POLLING)

            while True:
                if await self._cycle(session, self._topology):
                    logger.info(
                        "Process %d: pipeline finished after %d cycles",
                        self.process_id,
                        self._cycles,
                    )
                    return self._result(PollOutcome.FINISHED)
                await self._sleep(self._poll_interval)

        except SessionError as exc:
            self._error = exc
            logger.error("Process %d: %s failure: %s", self.process_id, exc.kind, exc)
            return self._result(PollOutcome.FAILED)
        except asyncio.CancelledError:
            self._outcome = PollOutcome.CANCELLED
            logger.info("Process %d: polling cancelled", self.process_id)
            raise
        except Exception as exc:
            self._error = exc
            self._outcome = PollOutcome.FAILED
            logger.exception("Process %d: unexpected error in poller", self.process_id)
            raise
        finally:
            if session is not None:
                await session.close()
            self._transition(SchedulerState.DISCONNECTED)

    async def _cycle(self, session: Session, topology: GraphTopology) -> bool:
        """One full poll cycle.  Returns ``True`` when the pipeline is finished."""
        snapshot = await fetch_status(session, topology)
        dot_source = render(topology, snapshot, self._color_scheme, self._thresholds)
        rendered = await self._image_renderer(dot_source)
        finished = is_finished(snapshot)

        self._cycles += 1
        if self._on_event is not None:
            self._on_event(
                PollEvent(
                    process_id=self.process_id,
                    cycle=self._cycles,
                    topology=topology,
                    snapshot=snapshot,
                    rendered=rendered,
                    finished=finished,
                )
            )
        return finished

    def _result(self, outcome: PollOutcome) -> PollResult:
        self._outcome = outcome
        error = self._error
        return PollResult(
            process_id=self.process_id,
            outcome=outcome,
            cycles=self._cycles,
            error_kind=getattr(error, "kind", None) if error else None,
            error_message=str(error) if error else None,
        )
