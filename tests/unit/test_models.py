"""Tests for flowscope data models — topology validation, node status helpers."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from flowscope.models import (
    PRESENTED_STATE,
    VALID_TRANSITIONS,
    ConnectionState,
    Edge,
    Error,
    GraphTopology,
    NodeStatus,
    RenderedGraph,
    Running,
    SchedulerState,
    StatusSnapshot,
    Success,
    Waiting,
)


class TestGraphTopology:
    def test_valid_topology(self, topology_ab: GraphTopology):
        assert topology_ab.nodes == ("A", "B")
        assert "A" in topology_ab
        assert "C" not in topology_ab

    def test_edge_to_unknown_node_rejected(self):
        with pytest.raises(ValidationError, match="unknown node"):
            GraphTopology(
                nodes=("A",),
                edges=(Edge(tail="A", tail_port=0, head="B", head_port=0),),
            )

    def test_duplicate_node_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            GraphTopology(nodes=("A", "A"))

    def test_negative_port_rejected(self):
        with pytest.raises(ValidationError):
            Edge(tail="A", tail_port=-1, head="B", head_port=0)

    def test_topology_is_frozen(self, topology_ab: GraphTopology):
        with pytest.raises(ValidationError):
            topology_ab.nodes = ("X",)  # type: ignore[misc]

    def test_upstream_and_downstream(self, topology_ab: GraphTopology):
        assert [e.tail for e in topology_ab.upstream_of("B")] == ["A"]
        assert [e.head for e in topology_ab.downstream_of("A")] == ["B"]
        assert topology_ab.upstream_of("A") == []


class TestExecutionState:
    def test_terminal_states(self):
        assert Success().is_terminal
        assert Error(detail="boom").is_terminal
        assert not Waiting().is_terminal
        assert not Running().is_terminal

    def test_discriminated_by_kind(self):
        status = NodeStatus.model_validate({"state": {"kind": "error", "detail": "x"}})
        assert isinstance(status.state, Error)
        assert status.state.detail == "x"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            NodeStatus.model_validate({"state": {"kind": "paused"}})

    def test_default_state_is_waiting(self):
        assert isinstance(NodeStatus().state, Waiting)


class TestNodeStatus:
    def test_absent_is_not_zero(self):
        status = NodeStatus(input_read=(None, 0))
        assert status.read_at(0) is None
        assert status.read_at(1) == 0

    def test_out_of_range_port_is_absent(self):
        status = NodeStatus(output_written=(5,))
        assert status.written_at(1) is None
        assert status.written_at(-1) is None

    def test_total_records_none_when_all_absent(self):
        assert NodeStatus(input_read=(None,), output_written=(None,)).total_records() is None
        assert NodeStatus().total_records() is None

    def test_total_records_sums_present(self):
        status = NodeStatus(input_read=(3, None, 4), output_written=(None, 10))
        assert status.total_records() == 17

    def test_zero_counter_is_present(self):
        assert NodeStatus(output_written=(0,)).total_records() == 0

    def test_negative_counter_rejected(self):
        with pytest.raises(ValidationError):
            NodeStatus(input_read=(-1,))


class TestStatusSnapshot:
    def test_missing_nodes(self, topology_ab: GraphTopology):
        snapshot = StatusSnapshot(statuses={"A": NodeStatus()})
        assert snapshot.missing_nodes(topology_ab) == ["B"]

    def test_summary_properties(self):
        snapshot = StatusSnapshot(
            statuses={
                "A": NodeStatus(state=Success()),
                "B": NodeStatus(state=Running()),
                "C": NodeStatus(state=Error()),
            }
        )
        assert snapshot.completed_count == 2
        assert snapshot.running_nodes == ["B"]
        assert snapshot.failed_nodes == ["C"]
        assert len(snapshot) == 3


class TestSessionStates:
    def test_disconnected_is_terminal(self):
        assert VALID_TRANSITIONS[SchedulerState.DISCONNECTED] == set()

    def test_every_state_is_presented(self):
        for state in SchedulerState:
            assert state in PRESENTED_STATE

    def test_polling_presented_as_connected(self):
        assert PRESENTED_STATE[SchedulerState.POLLING] == ConnectionState.CONNECTED


class TestRenderedGraph:
    def test_scaled_size(self):
        rendered = RenderedGraph(dot_source="", svg="", width_pt=200, height_pt=100)
        assert rendered.scaled_size(100) == (200, 100)
        assert rendered.scaled_size(50) == (100, 50)

    def test_scale_is_clamped(self):
        rendered = RenderedGraph(dot_source="", svg="", width_pt=200, height_pt=100)
        assert rendered.scaled_size(1000) == (400, 200)
        assert rendered.scaled_size(0) == (20, 10)
