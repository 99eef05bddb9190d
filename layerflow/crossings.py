"""Long edge splitting, bilayer crossing counting and same-layer ordering constraints."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from layerflow.graph import DGraph, Edge, Layer, Node


@dataclass
class FixedPositions:
    """Relative order constraints between nodes joined by flat edges."""

    must_after: dict[Node, Node] = field(default_factory=dict)
    must_before: dict[Node, Node] = field(default_factory=dict)

    def head(self, node: Node) -> tuple[Node, int]:
        """Return the first node of the flat chain holding node and its distance from it.

        A node outside any chain is its own head at distance 0.
        """
        current = node
        steps = 0
        while current in self.must_after:
            current = self.must_after[current]
            steps += 1
        return current, steps


@dataclass(eq=False)
class _Link:
    node: Node
    prev: _Link | None = None
    next: _Link | None = None


def init_fixed_positions(edges: Iterable[Edge]) -> FixedPositions:
    """Chain the ends of flat edges into ordered sequences."""
    known: dict[Node, _Link] = {}
    chains: list[_Link] = []

    for e in edges:
        if not e.is_flat():
            continue
        src, tgt = known.get(e.from_node), known.get(e.to_node)
        if src is None and tgt is None:
            first, second = _Link(e.from_node), _Link(e.to_node)
            first.next, second.prev = second, first
            known[e.from_node], known[e.to_node] = first, second
            chains.append(first)
        elif src is not None and tgt is None:
            last = src
            while last.next is not None:
                last = last.next
            link = _Link(e.to_node, prev=last)
            last.next = link
            known[e.to_node] = link
        elif src is None and tgt is not None:
            link = _Link(e.from_node, next=tgt)
            if tgt.prev is not None:
                link.prev = tgt.prev
                tgt.prev.next = link
            else:
                chains = [link if chain is tgt else chain for chain in chains]
            tgt.prev = link
            known[e.from_node] = link

    fixed = FixedPositions()
    for chain in chains:
        link = chain
        while link.next is not None:
            fixed.must_before[link.node] = link.next.node
            link = link.next
            fixed.must_after[link.node] = link.prev.node
    return fixed


def _break_edge(g: DGraph, e: Edge, serial: int) -> tuple[Edge, Edge]:
    """Insert a virtual node one layer below e's source; return both halves."""
    target = e.to_node
    virtual = Node(f"V{serial}", layer=e.from_node.layer + 1, is_virtual=True)
    e.to_node = virtual
    virtual.in_edges = [e]
    f = Edge(virtual, target, 1)
    f.is_reversed = e.is_reversed
    virtual.out_edges = [f]
    for i, incoming in enumerate(target.in_edges):
        if incoming is e:
            target.in_edges[i] = f
            break
    g.edges.append(f)
    g.nodes.append(virtual)
    g.layers[virtual.layer].nodes.append(virtual)
    return e, f


def break_long_edges(g: DGraph) -> None:
    """Split edges spanning more than one layer with chains of virtual nodes."""
    serial = 1
    # edges appended while iterating are visited too, so long chains are split fully
    for e in g.edges:
        if e.to_node.layer - e.from_node.layer > 1:
            _break_edge(g, e, serial)
            serial += 1
        elif e.from_node.layer - e.to_node.layer > 1:
            e.reverse()
            upper, lower = _break_edge(g, e, serial)
            serial += 1
            upper.reverse()
            lower.reverse()


def _edges_between(upper: Layer, lower: Layer) -> list[Edge]:
    wanted = {upper.index, lower.index}
    return [
        e
        for n in upper.nodes
        for e in n.edges()
        if {e.from_node.layer, e.to_node.layer} == wanted
    ]


def _sorted_targets(upper: Layer, edges: list[Edge]) -> list[Node]:
    """Lower ends of the edges, ordered by (upper position, lower position); duplicates dropped."""
    targets: dict[tuple[int, int], Node] = {}
    for e in edges:
        if e.from_node.layer == upper.index:
            top, bottom = e.from_node, e.to_node
        else:
            top, bottom = e.to_node, e.from_node
        targets[(top.layer_pos, bottom.layer_pos)] = bottom
    return [targets[key] for key in sorted(targets)]


def count_crossings(l1: Layer, l2: Layer) -> int:
    """Count edge crossings between two adjacent layers with an accumulator tree."""
    if len(l1) < 2 or len(l2) < 2:
        return 0
    upper, lower = (l1, l2) if len(l1) > len(l2) else (l2, l1)
    targets = _sorted_targets(upper, _edges_between(upper, lower))

    leaves = 1
    while leaves < min(len(l1), len(l2)):
        leaves *= 2
    tree = [0] * (2 * leaves - 1)
    first_leaf = leaves - 1

    count = 0
    for n in targets:
        i = n.layer_pos + first_leaf
        tree[i] += 1
        while i > 0:
            if i % 2:
                count += tree[i + 1]
            i = (i - 1) // 2
            tree[i] += 1
    return count


def crossings(layers: Sequence[Layer]) -> int:
    """Total crossings between all pairs of consecutive layers."""
    return sum(count_crossings(a, b) for a, b in zip(layers, layers[1:]))


def crossings_around(index: int, layers: Sequence[Layer]) -> int:
    """Crossings between the layer at index and its neighbouring layers."""
    if index == 0:
        return count_crossings(layers[0], layers[1])
    if index == len(layers) - 1:
        return count_crossings(layers[index - 1], layers[index])
    return count_crossings(layers[index - 1], layers[index]) + count_crossings(
        layers[index], layers[index + 1]
    )