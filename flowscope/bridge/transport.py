"""Transport bridge — turns a process id into a byte-stream connection.

Observed processes listen on a Unix-domain socket named
``flowscope-<pid>.sock`` inside the socket directory (the system temp dir
unless ``FLOWSCOPE_SOCKET_DIR`` says otherwise).  This module locates that
socket, opens it as an asyncio stream pair, and lists the processes that
currently expose one.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path

from flowscope.core.errors import ConnectFailure
from flowscope.models.session import ProcessInfo

logger = logging.getLogger(__name__)

SOCKET_PREFIX = "flowscope-"
SOCKET_SUFFIX = ".sock"

# Snapshot lines for large pipelines exceed asyncio's 64 KiB default.
STREAM_LIMIT = 16 * 1024 * 1024

_SOCKET_NAME_RE = re.compile(
    rf"^{re.escape(SOCKET_PREFIX)}([0-9]+){re.escape(SOCKET_SUFFIX)}$"
)


def socket_path(pid: int, socket_dir: Path) -> Path:
    """Path of the observation socket for process ``pid``."""
    return Path(socket_dir) / f"{SOCKET_PREFIX}{pid}{SOCKET_SUFFIX}"


async def connect(
    pid: int, socket_dir: Path
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open a stream connection to the observation socket of ``pid``.

    Raises
    ------
    ConnectFailure
        If the socket does not exist or refuses the connection.
    """
    path = socket_path(pid, socket_dir)
    logger.debug("Connecting to process %d at %s", pid, path)
    try:
        reader, writer = await asyncio.open_unix_connection(
            str(path), limit=STREAM_LIMIT
        )
    except OSError as exc:
        raise ConnectFailure(
            f"Could not connect to process {pid} at {path}: {exc}"
        ) from exc
    logger.info("Connected to process %d", pid)
    return reader, writer


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else.
        return True
    return True


def _describe(pid: int) -> str:
    """Best-effort command line of ``pid``."""
    cmdline = Path("/proc") / str(pid) / "cmdline"
    try:
        raw = cmdline.read_bytes()
    except OSError:
        return f"process {pid}"
    parts = [p.decode("utf-8", errors="replace") for p in raw.split(b"\0") if p]
    return " ".join(parts) or f"process {pid}"


def discover_processes(socket_dir: Path) -> list[ProcessInfo]:
    """List live processes that expose an observation socket, by pid.

    Sockets left behind by processes that have exited are skipped.
    """
    directory = Path(socket_dir)
    if not directory.is_dir():
        return []

    found: list[ProcessInfo] = []
    for entry in directory.iterdir():
        match = _SOCKET_NAME_RE.match(entry.name)
        if match is None:
            continue
        pid = int(match.group(1))
        if not _pid_alive(pid):
            logger.debug("Skipping stale socket %s", entry)
            continue
        found.append(
            ProcessInfo(pid=pid, description=_describe(pid), socket_path=entry)
        )
    return sorted(found, key=lambda p: p.pid)
