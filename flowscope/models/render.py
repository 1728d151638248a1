"""Rendered graph output handed to the presentation layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

MIN_SCALE_PERCENT = 10
MAX_SCALE_PERCENT = 200


class RenderedGraph(BaseModel):
    """DOT source together with the SVG image produced from it.

    ``width_pt`` / ``height_pt`` are read back out of the SVG header.
    """

    model_config = ConfigDict(frozen=True)

    dot_source: str
    svg: str
    width_pt: int = Field(ge=0)
    height_pt: int = Field(ge=0)

    def scaled_size(self, scale_percent: int = 100) -> tuple[int, int]:
        """Display size for a zoom level, clamped to the supported range."""
        percent = min(max(scale_percent, MIN_SCALE_PERCENT), MAX_SCALE_PERCENT)
        return (
            self.width_pt * percent // 100,
            self.height_pt * percent // 100,
        )
