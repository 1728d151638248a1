"""Tests for the simulated demo pipeline."""

from __future__ import annotations

import asyncio

import pytest

from flowscope.bridge.server import StatusSource
from flowscope.core.termination import is_finished
from flowscope.models.status import Error, Running, StatusSnapshot, Success, Waiting
from flowscope.monitor.dot import render
from flowscope.simulation import DEMO_TOPOLOGY, SimulatedPipeline


def _run_to_end(pipeline: SimulatedPipeline, limit: int = 200) -> None:
    while not pipeline.finished and pipeline.steps < limit:
        pipeline.advance()


class TestSimulatedPipeline:
    def test_is_a_status_source(self):
        assert isinstance(SimulatedPipeline(), StatusSource)

    def test_starts_waiting_with_absent_counters(self):
        statuses = SimulatedPipeline().statuses()
        assert set(statuses) == set(DEMO_TOPOLOGY.nodes)
        assert all(isinstance(s.state, Waiting) for s in statuses.values())
        assert statuses["join"].input_read == (None, None)
        assert statuses["read_csv"].total_records() is None

    def test_source_starts_first(self):
        pipeline = SimulatedPipeline()
        pipeline.advance()
        statuses = pipeline.statuses()
        assert isinstance(statuses["read_csv"].state, Running)
        assert statuses["read_csv"].output_written == (0,)
        assert isinstance(statuses["parse"].state, Waiting)

    def test_runs_to_success(self):
        pipeline = SimulatedPipeline(total_records=300)
        _run_to_end(pipeline)
        statuses = pipeline.statuses()

        assert pipeline.finished
        assert all(isinstance(s.state, Success) for s in statuses.values())
        assert statuses["write_parquet"].input_read == (300,)
        assert statuses["join"].input_read == (300, 300)

    def test_backlog_builds_on_slow_edge(self):
        pipeline = SimulatedPipeline(total_records=1000)
        for _ in range(6):
            pipeline.advance()
        statuses = pipeline.statuses()
        backlog = statuses["parse"].written_at(0) - statuses["enrich"].read_at(0)
        assert backlog > 0

    def test_snapshots_always_render(self):
        pipeline = SimulatedPipeline(total_records=200)
        while not pipeline.finished:
            snapshot = StatusSnapshot(statuses=pipeline.statuses())
            assert render(DEMO_TOPOLOGY, snapshot).startswith("digraph G {")
            pipeline.advance()
        assert is_finished(StatusSnapshot(statuses=pipeline.statuses()))

    def test_failure_propagates_downstream(self):
        pipeline = SimulatedPipeline(total_records=1000, fail_node="enrich")
        _run_to_end(pipeline)
        statuses = pipeline.statuses()

        assert pipeline.finished
        assert statuses["enrich"].state == Error(detail="simulated failure")
        assert statuses["join"].state == Error(detail="upstream enrich failed")
        assert statuses["write_parquet"].state == Error(detail="upstream enrich failed")
        assert isinstance(statuses["read_csv"].state, Success)

    def test_unknown_fail_node(self):
        with pytest.raises(ValueError, match="Unknown node"):
            SimulatedPipeline(fail_node="nope")

    def test_run_steps_until_finished(self):
        pipeline = SimulatedPipeline(total_records=100)
        asyncio.run(pipeline.run(step_seconds=0))
        assert pipeline.finished
