"""Main Typer application — imports and registers all CLI commands.

Entry point: ``flowscope`` (configured via pyproject.toml project.scripts).

Commands: processes, watch, render, demo.
"""

from __future__ import annotations

import logging

import typer

from flowscope.cli.commands.demo import demo_cmd
from flowscope.cli.commands.processes_cmd import processes_cmd
from flowscope.cli.commands.render_cmd import render_cmd
from flowscope.cli.commands.watch_cmd import watch_cmd
from flowscope.config import config

app = typer.Typer(
    name="flowscope",
    help="flowscope: live execution-graph monitor for running data pipelines.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="processes", help="List processes that can be watched.")(processes_cmd)
app.command(name="watch", help="Watch a running pipeline until it finishes.")(watch_cmd)
app.command(name="render", help="Render saved graph and status JSON offline.")(render_cmd)
app.command(name="demo", help="Watch a simulated pipeline end to end.")(demo_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (default from FLOWSCOPE_LOG_LEVEL).",
    ),
) -> None:
    """flowscope: live execution-graph monitor for running data pipelines."""
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
