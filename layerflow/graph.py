"""Directed graph model shared by the layout phases, plus pre- and post-processing steps."""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

_log = logging.getLogger(__name__)

OPTION_NS_BALANCE_V = 1
OPTION_NS_BALANCE_H = 2


class EdgeType(enum.Enum):
    """Kind of an edge according to the virtual nodes it connects."""

    CONCRETE = "concrete"
    HYBRID = "hybrid"
    VIRTUAL = "virtual"


def _discard(edges: list[Edge], edge: Edge) -> None:
    for i, candidate in enumerate(edges):
        if candidate is edge:
            del edges[i]
            return


@dataclass(eq=False)
class Node:
    """A graph node with its layout attributes and adjacency lists."""

    id: str
    layer: int = 0
    layer_pos: int = 0
    is_virtual: bool = False
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0
    in_edges: list[Edge] = field(default_factory=list, repr=False)
    out_edges: list[Edge] = field(default_factory=list, repr=False)

    def indeg(self) -> int:
        return len(self.in_edges)

    def outdeg(self) -> int:
        return len(self.out_edges)

    def edges(self) -> Iterator[Edge]:
        """Yield incoming edges first, then outgoing edges."""
        yield from self.in_edges
        yield from self.out_edges


@dataclass(eq=False)
class Edge:
    """A directed edge. Creating an edge does not link it into its nodes' lists."""

    from_node: Node
    to_node: Node
    weight: int = 1
    delta: int = 1
    cut_value: int = 0
    is_in_spanning_tree: bool = False
    is_reversed: bool = False
    arrow_head_start: bool = False
    points: list[tuple[float, float]] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"Edge({self.from_node.id!r} -> {self.to_node.id!r})"

    def reverse(self) -> None:
        """Swap the edge direction, update adjacency lists and toggle the reversed flag."""
        _discard(self.from_node.out_edges, self)
        _discard(self.to_node.in_edges, self)
        self.from_node, self.to_node = self.to_node, self.from_node
        self.from_node.out_edges.append(self)
        self.to_node.in_edges.append(self)
        self.is_reversed = not self.is_reversed

    def self_loops(self) -> bool:
        return self.from_node is self.to_node

    def is_flat(self) -> bool:
        return self.from_node.layer == self.to_node.layer

    def connected_node(self, node: Node) -> Node:
        """Return the end of this edge opposite to the given node."""
        if node is self.from_node:
            return self.to_node
        if node is self.to_node:
            return self.from_node
        raise ValueError(f"node {node.id!r} is not an end of {self!r}")

    def type(self) -> EdgeType:
        virtual = int(self.from_node.is_virtual) + int(self.to_node.is_virtual)
        return (EdgeType.CONCRETE, EdgeType.HYBRID, EdgeType.VIRTUAL)[virtual]


@dataclass(eq=False)
class Layer:
    """An ordered row of nodes."""

    index: int = 0
    nodes: list[Node] = field(default_factory=list)
    w: float = 0.0
    h: float = 0.0

    def head(self) -> Node:
        return self.nodes[0]

    def tail(self) -> Node:
        return self.nodes[-1]

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass(eq=False)
class DGraph:
    """A directed graph with its nodes, edges and layers."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    layers: list[Layer] = field(default_factory=list)

    def sources(self) -> Iterator[Node]:
        """Yield the nodes without incoming edges."""
        return (n for n in self.nodes if n.indeg() == 0)

    def virtual_nodes(self) -> Iterator[Node]:
        return (n for n in self.nodes if n.is_virtual)


@dataclass
class Params:
    """Tuning parameters for the layout phases."""

    network_simplex_thoroughness: int = 0
    network_simplex_max_iter_factor: int = 0
    network_simplex_balance: int = 0
    network_simplex_auxiliary_graph_weight_factor: int = 0
    greedy_cycle_breaker_random_node_choice: bool = False
    wmedian_max_iter: int = 0
    virtual_node_fixed_size: float = 0.0
    brandes_koepf_layout: int = -1
    node_spacing: float = 0.0
    node_vertical_spacing: float = 0.0
    layer_spacing: float = 0.0


def from_edge_slice(pairs: Iterable[tuple[str, str]]) -> DGraph:
    """Build a graph from (source id, target id) pairs; nodes keep first-appearance order."""
    g = DGraph()
    by_id: dict[str, Node] = {}

    def node(node_id: str) -> Node:
        if node_id not in by_id:
            by_id[node_id] = Node(node_id)
            g.nodes.append(by_id[node_id])
        return by_id[node_id]

    for source, target in pairs:
        u, v = node(source), node(target)
        e = Edge(u, v)
        u.out_edges.append(e)
        v.in_edges.append(e)
        g.edges.append(e)
    return g


def ignore_self_loops(g: DGraph) -> Callable[[DGraph], None]:
    """Detach self-loop edges from the graph and return a function that puts them back."""
    removed = [e for e in g.edges if e.from_node is e.to_node]
    for e in removed:
        _log.debug("self-loop removed: %s", e.from_node.id)
        _discard(e.from_node.out_edges, e)
        _discard(e.to_node.in_edges, e)
        _discard(g.edges, e)

    def restore(graph: DGraph) -> None:
        for e in removed:
            _log.debug("self-loop added: %s", e.from_node.id)
            e.from_node.out_edges.append(e)
            e.to_node.in_edges.append(e)
            graph.edges.append(e)

    return restore


def unreverse_edges(g: DGraph) -> None:
    """Restore the direction of edges reversed during cycle breaking."""
    for e in g.edges:
        if e.is_reversed:
            e.reverse()