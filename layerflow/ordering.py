"""Node ordering within layers: weighted median heuristic with transposition."""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence

from layerflow.crossings import (
    FixedPositions,
    break_long_edges,
    crossings,
    crossings_around,
    init_fixed_positions,
)
from layerflow.graph import DGraph, Edge, Layer, Node, Params

_log = logging.getLogger(__name__)

_Neighbours = Callable[[Node], Iterable[Node]]


class Ordering(enum.IntEnum):
    """Ordering algorithms."""

    NO_ORDERING = 0
    WMEDIAN = 1

    def phase(self) -> int:
        """Ordinal number of this phase in the layout pipeline."""
        return 3

    def __str__(self) -> str:
        return {Ordering.NO_ORDERING: "noop", Ordering.WMEDIAN: "gvdot"}[self]

    def process(self, g: DGraph, params: Params) -> None:
        """Order the nodes within each layer of a layered graph."""
        if len(g.nodes) == 1:
            _log.debug("%s: skip: not enough nodes", self)
            return
        if self is Ordering.WMEDIAN:
            weighted_median(g, params)


def median_of(positions: Sequence[int]) -> float:
    """Weighted median of sorted adjacent positions; -1 when there are none."""
    fpos = [float(x) for x in positions]
    count = len(fpos)
    mid = count // 2
    if count == 0:
        return -1.0
    if count % 2 == 1:
        return fpos[mid]
    if count == 2:
        return (fpos[0] + fpos[1]) / 2
    left = fpos[mid - 1] - fpos[0]
    right = fpos[-1] - fpos[mid]
    if left == right:
        return (fpos[mid - 1] + fpos[mid]) / 2
    return (fpos[mid - 1] * right + fpos[mid] * left) / (left + right)


class _WeightedMedian:
    """One run of the weighted median heuristic from a given initial order."""

    def __init__(self, fixed: FixedPositions) -> None:
        self.positions: dict[Node, int] = {}
        self.fixed = fixed
        self.flip_equal = False
        self.transpose_equal = False

    def get_pos(self, n: Node) -> int:
        pos = self.positions.get(n, 0)
        if pos != n.layer_pos:
            raise RuntimeError("weighted median: corrupted state: node in-layer position mismatch")
        return pos

    def set_pos(self, n: Node, pos: int) -> None:
        self.positions[n] = pos
        n.layer_pos = pos

    def swap(self, v: Node, w: Node) -> None:
        iv, iw = self.get_pos(v), self.get_pos(w)
        self.set_pos(v, iw)
        self.set_pos(w, iv)

    def init_positions(self, g: DGraph, start_layer: Layer, neighbours: _Neighbours) -> None:
        visited: set[Node] = set()
        indices: defaultdict[int, int] = defaultdict(int)
        for n in start_layer.nodes:
            self._init_from(n, neighbours, visited, indices)
        for n in g.nodes:
            self._init_from(n, neighbours, visited, indices)

    def _init_from(
        self,
        start: Node,
        neighbours: _Neighbours,
        visited: set[Node],
        indices: defaultdict[int, int],
    ) -> None:
        if start in visited:
            return
        self._mark(start, visited, indices)
        stack = [iter(neighbours(start))]
        while stack:
            for m in stack[-1]:
                if m not in visited:
                    self._mark(m, visited, indices)
                    stack.append(iter(neighbours(m)))
                    break
            else:
                stack.pop()

    def _mark(self, n: Node, visited: set[Node], indices: defaultdict[int, int]) -> None:
        visited.add(n)
        self._place_next(n, indices)
        head, steps = self.fixed.head(n)
        if steps > 0:
            current: Node | None = head
            while current is not None and current is not n:
                if current not in visited:
                    visited.add(current)
                    self._place_next(current, indices)
                current = self.fixed.must_before.get(current)

    def _place_next(self, n: Node, indices: defaultdict[int, int]) -> None:
        self.set_pos(n, indices[n.layer])
        indices[n.layer] += 1

    def adjacent_positions(self, n: Node, edges: Iterable[Edge], adj_layer: int) -> list[int]:
        return sorted(
            self.get_pos(m)
            for e in edges
            if not e.self_loops()
            for m in (e.connected_node(n),)
            if m.layer == adj_layer
        )

    def sweep_top_bottom(self, layers: Sequence[Layer]) -> None:
        medians: dict[Node, float] = {}
        for r in range(1, len(layers)):
            for v in layers[r].nodes:
                medians[v] = median_of(self.adjacent_positions(v, v.in_edges, r - 1))
            self.sort_layer(layers[r].nodes, medians)

    def sweep_bottom_top(self, layers: Sequence[Layer]) -> None:
        medians: dict[Node, float] = {}
        for r in range(len(layers) - 1, -1, -1):
            for v in layers[r].nodes:
                medians[v] = median_of(self.adjacent_positions(v, v.out_edges, r + 1))
            self.sort_layer(layers[r].nodes, medians)

    def sort_layer(self, nodes: list[Node], medians: dict[Node, float]) -> None:
        """Bubble nodes by median, leaving nodes without neighbours (median -1) in place."""
        end = len(nodes)
        for _ in range(len(nodes)):
            lp = 0
            while lp < end:
                while lp < end and medians[nodes[lp]] == -1:
                    lp += 1
                if lp >= end:
                    break
                can_swap = True
                rp = lp + 1
                while rp < end:
                    head, steps = self.fixed.head(nodes[rp])
                    if steps > 0 and head is nodes[lp]:
                        can_swap = False
                        break
                    if medians[nodes[rp]] >= 0:
                        break
                    rp += 1
                if rp >= end:
                    break
                if can_swap:
                    ml, mr = medians[nodes[lp]], medians[nodes[rp]]
                    if ml > mr or (ml == mr and self.flip_equal):
                        self.swap(nodes[lp], nodes[rp])
                        nodes[lp], nodes[rp] = nodes[rp], nodes[lp]
                lp = rp
            if not self.flip_equal:
                end -= 1

    def transpose(self, layers: Sequence[Layer]) -> None:
        """Swap adjacent nodes while doing so reduces crossings around their layer."""
        must_before, must_after = self.fixed.must_before, self.fixed.must_after
        improved = True
        while improved:
            improved = False
            for layer in layers:
                for i in range(len(layer.nodes) - 2):
                    v, w = layer.nodes[i], layer.nodes[i + 1]
                    if must_before.get(v) is w:
                        continue
                    if must_before.get(v) is None and must_before.get(w) is not None:
                        continue
                    if must_after.get(v) is not None and must_after.get(w) is None:
                        continue
                    current = crossings_around(layer.index, layers)
                    self.swap(v, w)
                    if crossings_around(layer.index, layers) < current:
                        improved = True
                        layer.nodes[i], layer.nodes[i + 1] = w, v
                    else:
                        self.swap(v, w)


def _run(
    g: DGraph, max_iter: int, fixed: FixedPositions, from_top: bool
) -> tuple[int, dict[Node, int]]:
    p = _WeightedMedian(fixed)
    if from_top:
        p.init_positions(g, g.layers[0], lambda n: (e.to_node for e in n.out_edges))
    else:
        p.init_positions(g, g.layers[-1], lambda n: (e.from_node for e in n.in_edges))

    layers = g.layers
    for layer in layers:
        if any(n.layer != layer.nodes[0].layer for n in layer.nodes):
            raise RuntimeError("weighted median: same-layer nodes have different layers")
        layer.nodes.sort(key=lambda n: p.positions[n])

    best_x = crossings(layers)
    best_p = dict(p.positions)
    if best_x == 0:
        return best_x, best_p

    for i in range(max_iter):
        if i % 2 == 0:
            p.sweep_top_bottom(layers)
        else:
            p.sweep_bottom_top(layers)
            p.flip_equal = not p.flip_equal
        p.transpose(layers)
        p.transpose_equal = not p.transpose_equal

        x = crossings(layers)
        if x < best_x:
            best_x = x
            best_p = dict(p.positions)
        if best_x == 0:
            break
    return best_x, best_p


def weighted_median(g: DGraph, params: Params) -> None:
    """Reorder layers to reduce edge crossings, splitting long edges with virtual nodes first."""
    if len(g.layers) == 1:
        return

    break_long_edges(g)
    size = params.virtual_node_fixed_size
    if size > 0.0:
        for n in g.virtual_nodes():
            n.w = size
            n.h = size

    max_iter = params.wmedian_max_iter
    fixed = init_fixed_positions(g.edges)

    top_x, top_p = _run(g, max_iter, fixed, from_top=True)
    bottom_x, bottom_p = _run(g, max_iter, fixed, from_top=False)
    best_x, best_p = (top_x, top_p) if top_x < bottom_x else (bottom_x, bottom_p)

    _log.debug("crossings: %d", best_x)

    for n in g.nodes:
        n.layer_pos = best_p[n]
    for layer in g.layers:
        layer.nodes.sort(key=lambda n: n.layer_pos)