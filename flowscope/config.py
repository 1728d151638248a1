"""Runtime configuration — env-driven.

Centralized config using pydantic-settings.  Reads from a .env file and
FLOWSCOPE_* environment variables.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowscope.models.render import MAX_SCALE_PERCENT, MIN_SCALE_PERCENT
from flowscope.monitor.dot import BacklogThresholds


class ScopeConfig(BaseSettings):
    """flowscope configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export FLOWSCOPE_POLL_INTERVAL_MS=1000
        export FLOWSCOPE_COLOR_SCHEME=dark
        export FLOWSCOPE_LOG_LEVEL=DEBUG

    Or via .env file::

        FLOWSCOPE_BACKLOG_WARN=100
        FLOWSCOPE_BACKLOG_CRITICAL=1000
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FLOWSCOPE_",
        env_file_encoding="utf-8",
    )

    # Rich Live owns the terminal while watching; keep log output quiet.
    log_level: str = "WARNING"

    # Poll loop
    poll_interval_ms: int = Field(default=3000, gt=0)

    # Edge backlog thresholds (tail written - head read)
    backlog_warn: int = 10
    backlog_critical: int = 42

    # Rendering
    color_scheme: Literal["light", "dark"] = "light"
    dot_binary: str = "dot"
    scale_percent: int = Field(
        default=100, ge=MIN_SCALE_PERCENT, le=MAX_SCALE_PERCENT
    )
    svg_output: Path | None = None

    # Transport
    socket_dir: Path = Path(tempfile.gettempdir())

    @model_validator(mode="after")
    def _check_thresholds(self) -> ScopeConfig:
        if self.backlog_critical <= self.backlog_warn:
            raise ValueError(
                "backlog_critical must be greater than backlog_warn "
                f"(got warn={self.backlog_warn}, critical={self.backlog_critical})"
            )
        return self

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0

    @property
    def thresholds(self) -> BacklogThresholds:
        """Backlog thresholds as consumed by the DOT renderer."""
        return BacklogThresholds(
            warn=self.backlog_warn, critical=self.backlog_critical
        )


# Module-level singleton: import as `from flowscope.config import config`
config = ScopeConfig()
