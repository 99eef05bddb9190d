"""Layer assignment: give every node of an acyclic graph a layer index."""

from __future__ import annotations

import enum
from collections.abc import Iterator

from layerflow.graph import DGraph, Edge, Layer, Node, Params
from layerflow.ns import NetworkSimplex


class Layering(enum.IntEnum):
    """Layering algorithms."""

    LONGEST_PATH = 0
    NETWORK_SIMPLEX = 1

    def phase(self) -> int:
        """Ordinal number of this phase in the layout pipeline."""
        return 2

    def __str__(self) -> str:
        return {Layering.LONGEST_PATH: "longestpath", Layering.NETWORK_SIMPLEX: "ns"}[self]

    def process(self, g: DGraph, params: Params) -> None:
        """Assign layers to the nodes of an acyclic graph and build g.layers."""
        if len(g.nodes) != 1:
            if self is Layering.LONGEST_PATH:
                longest_path(g)
            else:
                network_simplex_layering(g, params)
        _build_layers(g)


def _build_layers(g: DGraph) -> None:
    size = max((n.layer for n in g.nodes), default=0) + 1
    layers = [Layer(index=i) for i in range(size)]
    for n in g.nodes:
        layers[n.layer].nodes.append(n)
    g.layers = layers


def longest_path(g: DGraph) -> None:
    """Put each node one layer below its deepest predecessor; sources go to layer 0."""
    for n in g.nodes:
        n.layer = -1
    for n in g.nodes:
        if n.layer < 0:
            _follow_longest_path(n)


def _follow_longest_path(start: Node) -> None:
    on_path = {start}
    # frame: node, remaining in-edges, predecessor being resolved, height so far
    frames: list[list] = [[start, iter(start.in_edges), None, 0]]
    while frames:
        frame = frames[-1]
        node: Node = frame[0]
        edges: Iterator[Edge] = frame[1]
        pending: Node | None = frame[2]
        if pending is not None:
            frame[3] = max(frame[3], pending.layer + 1)
            frame[2] = None
        for e in edges:
            if e.self_loops():
                continue
            m = e.connected_node(node)
            if m.layer < 0:
                if m in on_path:
                    raise ValueError("longest path layering: graph has cycles")
                on_path.add(m)
                frame[2] = m
                frames.append([m, iter(m.in_edges), None, 0])
                break
            frame[3] = max(frame[3], m.layer + 1)
        else:
            frames.pop()
            on_path.discard(node)
            node.layer = frame[3]


def network_simplex_layering(g: DGraph, params: Params) -> None:
    """Assign layers minimising total weighted edge length."""
    NetworkSimplex().run(g, params)