"""Horizontal coordinate assignment after Brandes and Köpf, with final overlap removal."""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import NamedTuple

from layerflow.graph import DGraph, Edge, Layer, Node, Params

_log = logging.getLogger(__name__)


class Direction(enum.Enum):
    """Sweep directions: vertical (TOP, BOTTOM) and horizontal (LEFT, RIGHT)."""

    TOP = 0
    BOTTOM = 1
    LEFT = 2
    RIGHT = 3


class _Neighbor(NamedTuple):
    node: Node
    edge: Edge


_Neighbors = dict[Node, dict[Direction, list[_Neighbor]]]


@dataclass
class _Layout:
    v: Direction
    h: Direction
    blockroot: dict[Node, Node]
    alignment: dict[Node, Node]


def _invalid(direction: Direction) -> ValueError:
    return ValueError(f"brandes-koepf: invalid direction {direction}")


def layout_size(xcoords: dict[Node, float]) -> tuple[float, float, float]:
    """Return width, leftmost x and rightmost x (node widths included) of a layout."""
    minx = math.inf
    maxx = -math.inf
    for n, x in xcoords.items():
        minx = min(minx, x)
        maxx = max(maxx, x + n.w)
    return maxx - minx, minx, maxx


def median_neighbor_indices(d: int, direction: Direction) -> list[int]:
    """Indices of the median neighbours among d, ordered for the horizontal direction."""
    m1 = (d + 1) // 2 - 1
    m2 = (d + 2) // 2 - 1
    if direction is Direction.RIGHT:
        return [m1, m2]
    if direction is Direction.LEFT:
        return [m2, m1]
    raise _invalid(direction)


def _iter_layers(layers: Sequence[Layer], direction: Direction) -> Iterable[Layer]:
    if direction is Direction.BOTTOM:
        return layers
    if direction is Direction.TOP:
        return reversed(layers)
    raise _invalid(direction)


def _iter_nodes(nodes: Sequence[Node], direction: Direction) -> Iterable[Node]:
    if direction is Direction.RIGHT:
        return nodes
    if direction is Direction.LEFT:
        return reversed(nodes)
    raise _invalid(direction)


def _outermost_pos(direction: Direction) -> float:
    if direction is Direction.RIGHT:
        return -1
    if direction is Direction.LEFT:
        return math.inf
    raise _invalid(direction)


def _outermost_x(direction: Direction) -> float:
    if direction is Direction.RIGHT:
        return math.inf
    if direction is Direction.LEFT:
        return -math.inf
    raise _invalid(direction)


def _within_outermost_pos(r: float, pos: int, direction: Direction) -> bool:
    if direction is Direction.RIGHT:
        return r < pos
    if direction is Direction.LEFT:
        return r > pos
    raise _invalid(direction)


def _within_outermost_x(shift: float, direction: Direction) -> bool:
    if direction is Direction.RIGHT:
        return shift < math.inf
    if direction is Direction.LEFT:
        return shift > -math.inf
    raise _invalid(direction)


def _first_node(layer: Layer, direction: Direction) -> Node:
    if direction is Direction.RIGHT:
        return layer.head()
    if direction is Direction.LEFT:
        return layer.tail()
    raise _invalid(direction)


def _last_node(layer: Layer, direction: Direction) -> Node:
    if direction is Direction.RIGHT:
        return layer.tail()
    if direction is Direction.LEFT:
        return layer.head()
    raise _invalid(direction)


def _next_node(n: Node, nodes: Sequence[Node], direction: Direction) -> Node:
    if direction is Direction.RIGHT:
        return nodes[n.layer_pos + 1]
    if direction is Direction.LEFT:
        return nodes[n.layer_pos - 1]
    raise _invalid(direction)


def _prev_node(n: Node, nodes: Sequence[Node], direction: Direction) -> Node:
    if direction is Direction.RIGHT:
        return nodes[n.layer_pos - 1]
    if direction is Direction.LEFT:
        return nodes[n.layer_pos + 1]
    raise _invalid(direction)


def _incident_to_inner(n: Node) -> int:
    """Upper position of the inner edge ending at n, or -1 when there is none."""
    if not n.is_virtual:
        return -1
    for e in n.in_edges:
        if e.from_node.is_virtual and e.from_node.layer == n.layer - 1:
            return e.from_node.layer_pos
    return -1


def _init_neighbors(g: DGraph) -> _Neighbors:
    neighbors: _Neighbors = {}
    last_layer = len(g.layers) - 1
    for n in g.nodes:
        entry: dict[Direction, list[_Neighbor]] = {}
        if n.layer > 0:
            entry[Direction.BOTTOM] = [
                _Neighbor(e.from_node, e)
                for e in n.in_edges
                if not e.self_loops() and not e.is_flat()
            ]
        if n.layer < last_layer:
            entry[Direction.TOP] = [
                _Neighbor(e.to_node, e)
                for e in n.out_edges
                if not e.self_loops() and not e.is_flat()
            ]
        neighbors[n] = entry
    return neighbors


def _mark_conflicts(g: DGraph, neighbors: _Neighbors) -> set[Edge]:
    """Mark edges that cross inner edges (type 1 and type 2 conflicts)."""
    marked: set[Edge] = set()
    if len(g.layers) < 4:
        return marked
    for i in range(1, len(g.layers) - 1):
        upper, lower = g.layers[i], g.layers[i + 1]
        k0 = 0
        for l1, v in enumerate(lower.nodes):
            ksrc = _incident_to_inner(v)
            if lower.tail() is not v and ksrc < 0:
                continue
            k1 = len(upper) - 1
            if ksrc >= 0:
                k1 = neighbors[v][Direction.BOTTOM][0].node.layer_pos
            for w in lower.nodes[: l1 + 1]:
                for e in w.in_edges:
                    if e.self_loops() or e.is_flat():
                        continue
                    if e.from_node.layer_pos < k0 or e.from_node.layer_pos > k1:
                        marked.add(e)
            k0 = k1
    return marked


class _Positioner:
    def __init__(self, g: DGraph, neighbors: _Neighbors, marked: set[Edge], spacing: float):
        self.g = g
        self.neighbors = neighbors
        self.marked = marked
        self.spacing = spacing

    def vertical_align(self, layout: _Layout) -> None:
        for layer in _iter_layers(self.g.layers, layout.v):
            r = _outermost_pos(layout.h)
            for vk in _iter_nodes(layer.nodes, layout.h):
                candidates = self.neighbors[vk].get(layout.v, [])
                if not candidates:
                    continue
                for m in median_neighbor_indices(len(candidates), layout.h):
                    if layout.alignment[vk] is not vk:
                        continue
                    u, uv = candidates[m]
                    if uv not in self.marked and _within_outermost_pos(r, u.layer_pos, layout.h):
                        layout.alignment[u] = vk
                        layout.blockroot[vk] = layout.blockroot[u]
                        layout.alignment[vk] = layout.blockroot[vk]
                        r = u.layer_pos

    def horizontal_compaction(self, layout: _Layout) -> dict[Node, float]:
        g = self.g
        h = layout.h
        sinks = {n: n for n in g.nodes}
        xshift = {n: _outermost_x(h) for n in g.nodes}
        xcoord = {n: 0.0 for n in g.nodes}
        placed: set[Node] = set()

        for layer in _iter_layers(g.layers, layout.v):
            for n in _iter_nodes(layer.nodes, h):
                if layout.blockroot[n] is n:
                    self._place_block(n, layout, sinks, xcoord, placed)

        for layer in _iter_layers(g.layers, layout.v):
            if not layer.nodes:
                continue
            n = _first_node(layer, h)
            if sinks[n] is not n:
                continue
            if xshift[sinks[n]] == _outermost_x(h):
                xshift[sinks[n]] = 0.0

            k = 0
            j = layer.index
            while j < len(g.layers) and k < len(g.layers[j]):
                vjk = g.layers[j].nodes[k]
                v = vjk
                if sinks[v] is not sinks[vjk]:
                    break
                while layout.alignment[v] is not layout.blockroot[v]:
                    v = layout.alignment[v]
                    lv = g.layers[v.layer]
                    if v is not _first_node(lv, h):
                        u = _prev_node(v, lv.nodes, h)
                        if h is Direction.LEFT:
                            s = xshift[sinks[v]] + xcoord[v] + (xcoord[u] + u.w + self.spacing)
                            xshift[sinks[u]] = max(xshift[sinks[u]], s)
                        else:
                            s = xshift[sinks[v]] + xcoord[v] - (xcoord[u] + self.spacing)
                            xshift[sinks[u]] = min(xshift[sinks[u]], s)
                    j += 1
                k = v.layer_pos + 1

        for n in g.nodes:
            shift = xshift[sinks[n]]
            if _within_outermost_x(shift, h):
                xcoord[n] += shift
        return xcoord

    def _place_block(
        self,
        root: Node,
        layout: _Layout,
        sinks: dict[Node, Node],
        xcoord: dict[Node, float],
        placed: set[Node],
    ) -> None:
        stack = [self._block_steps(root, layout, sinks, xcoord, placed)]
        while stack:
            try:
                child = next(stack[-1])
            except StopIteration:
                stack.pop()
            else:
                stack.append(self._block_steps(child, layout, sinks, xcoord, placed))

    def _block_steps(
        self,
        v: Node,
        layout: _Layout,
        sinks: dict[Node, Node],
        xcoord: dict[Node, float],
        placed: set[Node],
    ) -> Iterator[Node]:
        """Place the block rooted at v, yielding each neighbouring block root to place first."""
        if v in placed:
            return
        placed.add(v)
        xcoord[v] = 0.0
        h = layout.h
        w = v
        while True:
            wlayer = self.g.layers[w.layer]
            if w is not _last_node(wlayer, h):
                u = _next_node(w, wlayer.nodes, h)
                uroot = layout.blockroot[u]
                yield uroot
                if sinks[v] is v:
                    sinks[v] = sinks[uroot]
                if sinks[v] is sinks[uroot]:
                    if h is Direction.LEFT:
                        xcoord[v] = max(xcoord[v], xcoord[uroot] + u.w + self.spacing)
                    elif h is Direction.RIGHT:
                        xcoord[v] = min(xcoord[v], xcoord[uroot] - (v.w + self.spacing))
            w = layout.alignment[w]
            if w is v:
                break

        while layout.alignment[w] is not v:
            w = layout.alignment[w]
            xcoord[w] = xcoord[v]
            sinks[w] = sinks[v]


def balance_layouts(xcoords: Sequence[dict[Node, float]], nodes: Iterable[Node]) -> dict[Node, float]:
    """Align the four layouts to the narrowest one and take the average median x of each node."""
    sizes = [layout_size(xc) for xc in xcoords]
    least = 0
    for i, (width, _, _) in enumerate(sizes):
        if sizes[least][0] > width:
            least = i

    shifts = []
    for i, (_, minx, maxx) in enumerate(sizes):
        if i in (1, 3):
            shifts.append(sizes[least][1] - minx)
        else:
            shifts.append(sizes[least][2] - maxx)

    balanced: dict[Node, float] = {}
    for n in nodes:
        xs = sorted(xc.get(n, 0.0) + shift for xc, shift in zip(xcoords, shifts))
        balanced[n] = (xs[1] + xs[2]) / 2.0
    return balanced


def verify_layout(layout: dict[Node, float], layers: Iterable[Layer], node_spacing: float) -> bool:
    """Tell whether every layer keeps its nodes in order with full spacing between them."""
    for layer in layers:
        pos = -math.inf
        for n in layer.nodes:
            left = layout.get(n, 0.0)
            right = left + n.w + node_spacing
            if left > pos and right > pos:
                pos = right
            else:
                return False
    return True


_LAYOUTS = (
    (Direction.BOTTOM, Direction.RIGHT),
    (Direction.BOTTOM, Direction.LEFT),
    (Direction.TOP, Direction.RIGHT),
    (Direction.TOP, Direction.LEFT),
)


def brandes_koepf(g: DGraph, params: Params) -> None:
    """Assign x coordinates to the nodes of a layered, ordered graph."""
    neighbors = _init_neighbors(g)
    marked = _mark_conflicts(g, neighbors)
    positioner = _Positioner(g, neighbors, marked, params.node_spacing)

    xcoords: list[dict[Node, float]] = []
    for v, h in _LAYOUTS:
        layout = _Layout(
            v=v,
            h=h,
            blockroot={n: n for n in g.nodes},
            alignment={n: n for n in g.nodes},
        )
        positioner.vertical_align(layout)
        xcoords.append(positioner.horizontal_compaction(layout))

    if 0 <= params.brandes_koepf_layout < 4:
        final = xcoords[params.brandes_koepf_layout]
    else:
        final = balance_layouts(xcoords, g.nodes)
        if not verify_layout(final, g.layers, params.node_spacing):
            changed = False
            smallest = layout_size(final)[0]
            for xc in xcoords:
                if verify_layout(xc, g.layers, params.node_spacing):
                    width = layout_size(xc)[0]
                    if width < smallest:
                        smallest = width
                        final = xc
                        changed = True
            if not changed:
                _log.debug("layout verification: no viable layout, keep balanced")

    lmargin = 0.0
    for layer in g.layers:
        for n in layer.nodes:
            n.x = final[n]
            lmargin = min(lmargin, n.x)
            layer.h = max(layer.h, n.h)
    if lmargin < 0:
        for n in g.nodes:
            n.x += abs(lmargin)

    # averaging can leave overlaps; push overlapping nodes to the right
    for layer in g.layers:
        for v, w in zip(layer.nodes, layer.nodes[1:]):
            if v.x < w.x < v.x + v.w:
                w.x = v.x + v.w + params.node_spacing