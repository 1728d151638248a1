"""flowscope CLI — Typer-based command-line interface.

Provides the ``flowscope`` command with subcommands for listing observable
processes, watching a pipeline, rendering saved snapshots, and running a
demo.

All output uses Rich for formatted terminal display.
"""
