"""Session error kinds.

Every one of these is terminal for the current poll session.  None is
retried; the scheduler surfaces it once and disconnects.
"""

from __future__ import annotations


class SessionError(RuntimeError):
    """Base class for errors that end a poll session."""

    kind: str = "session"


class ConnectFailure(SessionError):
    """The transport to the observed process could not be established."""

    kind = "connect"


class RpcFailure(SessionError):
    """An RPC call failed or returned malformed data.

    Includes a snapshot that does not cover every topology node.
    """

    kind = "rpc"


class RenderFailure(SessionError):
    """The image renderer failed or produced output that could not be parsed."""

    kind = "render"
