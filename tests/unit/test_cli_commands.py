"""Unit tests for the CLI — Typer command registration and basic behavior.

Exercises CLI app registration, help output, offline rendering, and the
watch/demo commands via typer.testing.CliRunner.  Graphviz is replaced by
the ``fake_dot`` script.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from flowscope.cli.app import app
from flowscope.config import config

runner = CliRunner()


GRAPH_WIRE = {
    "nodes": [{"name": "A"}, {"name": "B"}],
    "edges": [{"tail_name": "A", "tail_index": 0, "head_name": "B", "head_index": 0}],
}

RUNNING_WIRE = {
    "statuses": [
        {"node_name": "A", "state": {"success": None}, "output_written": [100]},
        {"node_name": "B", "state": {"running": None}, "input_read": [80]},
    ]
}


@pytest.fixture
def wire_files(tmp_path: Path) -> tuple[Path, Path]:
    graph = tmp_path / "graph.json"
    statuses = tmp_path / "statuses.json"
    graph.write_text(json.dumps(GRAPH_WIRE))
    statuses.write_text(json.dumps(RUNNING_WIRE))
    return graph, statuses


@pytest.fixture
def dot_binary(monkeypatch, fake_dot: str) -> str:
    monkeypatch.setattr(config, "dot_binary", fake_dot)
    return fake_dot


# ---------------------------------------------------------------------------
# Test: CLI help and registration
# ---------------------------------------------------------------------------


class TestCliApp:
    """The CLI must register all expected commands and show help."""

    def test_no_args_shows_help(self):
        """Running 'flowscope' with no args should show help (exit code 0 or 2)."""
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "Usage" in result.output or "usage" in result.output.lower()

    def test_help_flag(self):
        """--help must list every command."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("processes", "watch", "render", "demo"):
            assert name in result.output

    @pytest.mark.parametrize("command", ["processes", "watch", "render", "demo"])
    def test_command_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# Test: processes
# ---------------------------------------------------------------------------


class TestProcessesCommand:
    def test_empty_directory(self, socket_dir):
        result = runner.invoke(app, ["processes", "--socket-dir", str(socket_dir)])
        assert result.exit_code == 0
        assert "No processes found" in result.output


# ---------------------------------------------------------------------------
# Test: render
# ---------------------------------------------------------------------------


class TestRenderCommand:
    def test_prints_dot(self, wire_files):
        graph, statuses = wire_files
        result = runner.invoke(app, ["render", str(graph), str(statuses)])
        assert result.exit_code == 0
        assert "digraph G {" in result.output
        assert 'headlabel="80 (20)"' in result.output
        assert "still running" in result.output

    def test_dark_scheme(self, wire_files):
        graph, statuses = wire_files
        result = runner.invoke(app, ["render", str(graph), str(statuses), "--scheme", "dark"])
        assert result.exit_code == 0
        assert 'fontcolor="white"' in result.output

    def test_bare_status_list(self, tmp_path: Path, wire_files):
        graph, _ = wire_files
        statuses = tmp_path / "list.json"
        statuses.write_text(json.dumps([
            {"node_name": "A", "state": {"success": None}},
            {"node_name": "B", "state": {"error": "boom"}},
        ]))
        result = runner.invoke(app, ["render", str(graph), str(statuses)])
        assert result.exit_code == 0
        assert "finished" in result.output

    def test_missing_node_fails(self, tmp_path: Path, wire_files):
        graph, _ = wire_files
        statuses = tmp_path / "partial.json"
        statuses.write_text(json.dumps({"statuses": [{"node_name": "A", "state": {"running": None}}]}))
        result = runner.invoke(app, ["render", str(graph), str(statuses)])
        assert result.exit_code == 1
        assert "Render failed" in result.output

    def test_unreadable_file(self, tmp_path: Path, wire_files):
        _, statuses = wire_files
        result = runner.invoke(app, ["render", str(tmp_path / "nope.json"), str(statuses)])
        assert result.exit_code == 1
        assert "Cannot read" in result.output

    @pytest.mark.parametrize("payload", [42, "running", None, {"statuses": 5}])
    def test_non_list_statuses_fail_cleanly(self, tmp_path: Path, wire_files, payload):
        graph, _ = wire_files
        statuses = tmp_path / "scalar.json"
        statuses.write_text(json.dumps(payload))
        result = runner.invoke(app, ["render", str(graph), str(statuses)])
        assert result.exit_code == 1
        assert "Render failed" in result.output
        assert not isinstance(result.exception, TypeError)

    def test_unwritable_svg_target(self, tmp_path: Path, wire_files, dot_binary):
        graph, statuses = wire_files
        target = tmp_path / "missing-dir" / "out.svg"
        result = runner.invoke(app, ["render", str(graph), str(statuses), "--svg", str(target)])
        assert result.exit_code == 1
        assert "Cannot write" in result.output

    def test_writes_svg(self, tmp_path: Path, wire_files, dot_binary):
        graph, statuses = wire_files
        target = tmp_path / "out.svg"
        result = runner.invoke(app, ["render", str(graph), str(statuses), "--svg", str(target)])
        assert result.exit_code == 0
        assert target.read_text().startswith("<svg")
        assert "120x80pt" in result.output


# ---------------------------------------------------------------------------
# Test: watch
# ---------------------------------------------------------------------------


class TestWatchCommand:
    def test_requires_graphviz(self, monkeypatch):
        monkeypatch.setattr(config, "dot_binary", "definitely-not-graphviz")
        result = runner.invoke(app, ["watch", "1"])
        assert result.exit_code == 1
        assert "Graphviz not found" in result.output

    def test_unreachable_process(self, socket_dir, dot_binary):
        result = runner.invoke(app, ["watch", "31337", "--socket-dir", str(socket_dir)])
        assert result.exit_code == 1
        assert "connect failure" in result.output

    def test_svg_directory_must_exist(self, tmp_path: Path, socket_dir, dot_binary):
        target = tmp_path / "missing-dir" / "graph.svg"
        result = runner.invoke(
            app, ["watch", "31337", "--socket-dir", str(socket_dir), "--svg", str(target)]
        )
        assert result.exit_code == 1
        assert "Cannot write SVG" in result.output

    def test_scale_bounds(self, dot_binary):
        result = runner.invoke(app, ["watch", "1", "--scale", "500"])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# Test: demo
# ---------------------------------------------------------------------------


class TestDemoCommand:
    def test_demo_runs_to_completion(self, tmp_path: Path, dot_binary):
        target = tmp_path / "demo.svg"
        result = runner.invoke(
            app,
            ["demo", "--step", "0.01", "--interval", "20", "--records", "50", "--svg", str(target)],
        )
        assert result.exit_code == 0, result.output
        assert "finished after" in result.output
        assert target.exists()

    def test_svg_directory_must_exist(self, tmp_path: Path, dot_binary):
        target = tmp_path / "missing-dir" / "demo.svg"
        result = runner.invoke(app, ["demo", "--svg", str(target)])
        assert result.exit_code == 1
        assert "Cannot write SVG" in result.output

    def test_unknown_fail_node(self, dot_binary):
        result = runner.invoke(app, ["demo", "--fail", "nope"])
        assert result.exit_code == 1
        assert "Unknown node" in result.output
