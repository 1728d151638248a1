"""Pipeline topology models — the static execution graph of a session."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

NodeId = str


class Edge(BaseModel):
    """A directed data-flow edge between an output port and an input port."""

    model_config = ConfigDict(frozen=True)

    tail: NodeId
    tail_port: int = Field(ge=0)
    head: NodeId
    head_port: int = Field(ge=0)


class GraphTopology(BaseModel):
    """Nodes and edges of a running pipeline, fetched once per session.

    Node order is significant: the DOT renderer emits nodes in this order,
    and edges in the order they appear here.
    """

    model_config = ConfigDict(frozen=True)

    nodes: tuple[NodeId, ...] = ()
    edges: tuple[Edge, ...] = ()

    @model_validator(mode="after")
    def _check_references(self) -> GraphTopology:
        seen: set[str] = set()
        for name in self.nodes:
            if name in seen:
                raise ValueError(f"Duplicate node name in topology: {name!r}")
            seen.add(name)

        for edge in self.edges:
            for end in (edge.tail, edge.head):
                if end not in seen:
                    raise ValueError(
                        f"Edge {edge.tail!r} -> {edge.head!r} references "
                        f"unknown node {end!r}"
                    )
        return self

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def upstream_of(self, name: NodeId) -> list[Edge]:
        """Edges whose head is ``name``, in topology order."""
        return [e for e in self.edges if e.head == name]

    def downstream_of(self, name: NodeId) -> list[Edge]:
        """Edges whose tail is ``name``, in topology order."""
        return [e for e in self.edges if e.tail == name]
