"""Termination check — has the observed pipeline finished?"""

from __future__ import annotations

from flowscope.models.status import StatusSnapshot


def is_finished(snapshot: StatusSnapshot) -> bool:
    """True iff every node is in a terminal state (SUCCESS or ERROR).

    An empty snapshot counts as finished.
    """
    return all(status.state.is_terminal for status in snapshot.statuses.values())
