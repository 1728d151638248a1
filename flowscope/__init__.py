"""flowscope: live execution-graph monitor for running data pipelines.

Connects to a running pipeline process over its observation socket,
fetches the execution graph once, then polls per-node status counters
until every node is done, rendering each snapshot as a Graphviz graph:

  - Node colors by execution state (waiting, running, success, error)
  - Edge labels with written/read counters and the backlog between them
  - Edge colors by backlog severity (configurable thresholds)
  - Rich terminal view with connection indicator and SVG output
  - Typer CLI: processes, watch, render, demo
"""

__version__ = "0.1.0"
__description__ = "Live execution-graph monitor for running data pipelines"

from flowscope.core.scheduler import PollScheduler
from flowscope.monitor.dot import render

__all__ = ["PollScheduler", "render", "__version__"]
