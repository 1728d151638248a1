"""Graphviz image renderer — DOT text in, SVG out.

Runs ``dot -Tsvg`` as a subprocess and reads the image size back out of
the SVG header.
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from collections.abc import Awaitable, Callable

from flowscope.core.errors import RenderFailure
from flowscope.models.render import RenderedGraph

logger = logging.getLogger(__name__)

SVG_SIZE_RE = re.compile(r'width="([0-9]+)pt" height="([0-9]+)pt"')

ImageRenderer = Callable[[str], Awaitable[RenderedGraph]]


def parse_svg_size(svg: str) -> tuple[int, int]:
    """Return ``(width, height)`` in points from an SVG produced by dot."""
    match = SVG_SIZE_RE.search(svg)
    if match is None:
        raise RenderFailure("Renderer output has no width/height header")
    return int(match.group(1)), int(match.group(2))


def is_dot_available(dot_binary: str = "dot") -> bool:
    """Return ``True`` if the Graphviz binary is on PATH."""
    return shutil.which(dot_binary) is not None


async def dot_to_svg(dot_source: str, *, dot_binary: str = "dot") -> RenderedGraph:
    """Render ``dot_source`` to SVG with Graphviz.

    Raises
    ------
    RenderFailure
        If dot cannot be started, exits non-zero, or produces output
        without a size header.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            dot_binary,
            "-Tsvg",
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise RenderFailure(f"Could not run {dot_binary!r}: {exc}") from exc

    try:
        stdout, stderr = await process.communicate(dot_source.encode("utf-8"))
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    if process.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise RenderFailure(
            f"{dot_binary} exited with status {process.returncode}: {message}"
        )

    svg = stdout.decode("utf-8", errors="replace")
    width, height = parse_svg_size(svg)
    logger.debug("Rendered %d bytes of DOT into %dx%dpt SVG", len(dot_source), width, height)
    return RenderedGraph(dot_source=dot_source, svg=svg, width_pt=width, height_pt=height)


def graphviz_renderer(dot_binary: str = "dot") -> ImageRenderer:
    """An ``ImageRenderer`` bound to a specific dot binary."""

    async def _render(dot_source: str) -> RenderedGraph:
        return await dot_to_svg(dot_source, dot_binary=dot_binary)

    return _render
