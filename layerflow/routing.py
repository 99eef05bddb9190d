"""Edge routing: merge split long edges and compute the points each edge passes through."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from layerflow.graph import DGraph, Edge, EdgeType, Node, Params

_log = logging.getLogger(__name__)

Point = tuple[float, float]


class Routing(enum.IntEnum):
    """Edge routing algorithms."""

    NO_ROUTING = 0
    STRAIGHT = 1
    POLYLINE = 2
    ORTHO = 3

    def phase(self) -> int:
        """Ordinal number of this phase in the layout pipeline."""
        return 5

    def __str__(self) -> str:
        return {
            Routing.NO_ROUTING: "noop",
            Routing.STRAIGHT: "straight",
            Routing.POLYLINE: "piecewise",
            Routing.ORTHO: "ortho",
        }[self]

    def process(self, g: DGraph, params: Params) -> None:
        """Merge long edges back together and route them according to this algorithm."""
        if len(g.nodes) == 1:
            _log.debug("%s: skip: not enough nodes", self)
            return

        routes = merge_long_edges(g)
        if self is Routing.STRAIGHT:
            straight_routing(routes)
        elif self is Routing.POLYLINE:
            polyline_routing(g, routes)
        elif self is Routing.ORTHO:
            ortho_routing(g, routes, params)


@dataclass(eq=False)
class RoutableEdge:
    """An edge with the ordered nodes its route passes through.

    The first node has the lesser layer (or lesser position in a flat edge).
    """

    edge: Edge
    nodes: list[Node] = field(default_factory=list)

    @property
    def from_node(self) -> Node:
        return self.edge.from_node

    @property
    def to_node(self) -> Node:
        return self.edge.to_node

    def is_flat(self) -> bool:
        return self.edge.is_flat()


def _remove(edges: list[Edge], edge: Edge) -> None:
    edges[:] = [e for e in edges if e is not edge]


def _ordered_nodes(e: Edge) -> tuple[Node, Node]:
    u, v = e.from_node, e.to_node
    if u.layer < v.layer:
        return u, v
    if u.layer > v.layer:
        return v, u
    return (u, v) if u.layer_pos < v.layer_pos else (v, u)


def _reduce_forward(g: DGraph, e: Edge) -> list[Node]:
    """Fold the chain of virtual nodes after e into e; return the nodes it passes through."""
    nodes = [e.from_node]
    while e.to_node.is_virtual:
        virtual = e.to_node
        if len(virtual.out_edges) != 1:
            raise RuntimeError("edge routing: virtual node doesn't have exactly one exit edge")
        nodes.append(virtual)
        f = virtual.out_edges[0]
        target = f.to_node
        _remove(target.in_edges, f)
        target.in_edges.append(e)
        e.to_node = target
        _remove(g.edges, f)
    nodes.append(e.to_node)

    u, v = _ordered_nodes(e)
    e.arrow_head_start = e.is_reversed
    if nodes[0] is v and nodes[-1] is u:
        nodes.reverse()
    return nodes


def merge_long_edges(g: DGraph) -> list[RoutableEdge]:
    """Undo long edge splitting and collect a route for every remaining edge."""
    routes: list[RoutableEdge] = []
    for e in list(g.edges):
        kind = e.type()
        if kind is EdgeType.CONCRETE:
            u, v = _ordered_nodes(e)
            e.arrow_head_start = e.is_reversed
            routes.append(RoutableEdge(e, [u, v]))
        elif kind is EdgeType.HYBRID and not e.from_node.is_virtual:
            routes.append(RoutableEdge(e, _reduce_forward(g, e)))
        # virtual edges and chain tails are folded in when their chain head is met
    return routes


def _start_point(n: Node) -> Point:
    """Middle of the node's lower side."""
    return (n.x + n.w / 2, n.y + n.h)


def _end_point(n: Node) -> Point:
    """Middle of the node's upper side."""
    return (n.x + n.w / 2, n.y)


def _straight(start: Node, end: Node) -> list[Point]:
    return [_start_point(start), _end_point(end)]


def _flat_straight(start: Node, end: Node) -> list[Point]:
    return [(start.x + start.w, start.y + start.h / 2), (end.x, end.y + end.h / 2)]


def _flat_non_consecutive(e: Edge, layer_h: float) -> list[Point]:
    anchor = 20.0
    dist = abs(e.from_node.layer_pos - e.to_node.layer_pos)
    start_x = e.from_node.x + e.from_node.w
    start_y = e.from_node.y + e.from_node.h / 2
    end_x = e.to_node.x
    end_y = e.to_node.y + e.to_node.h / 2
    top = min(start_y - layer_h / 2, end_y - layer_h / 2) - (10 + dist * 5)
    return [
        (start_x, start_y),
        (start_x + anchor, start_y),
        (start_x + anchor, top),
        (end_x - anchor, top),
        (end_x - anchor, end_y),
        (end_x, end_y),
    ]


def _flat_polyline(r: RoutableEdge, layer_h: float) -> None:
    if abs(r.from_node.layer_pos - r.to_node.layer_pos) > 1:
        r.edge.points = _flat_non_consecutive(r.edge, layer_h)
    else:
        r.edge.points = _flat_straight(r.nodes[0], r.nodes[-1])


def straight_routing(routes: list[RoutableEdge]) -> None:
    """Route every edge as one straight segment."""
    for r in routes:
        if r.is_flat():
            r.edge.points = _flat_straight(r.nodes[0], r.nodes[-1])
        else:
            r.edge.points = _straight(r.nodes[0], r.nodes[-1])


def _bend_point(n: Node, layer_h: float) -> Point:
    if not n.is_virtual:
        raise ValueError(f"routing: bend point on non-virtual node {n.id!r}")
    return (n.x + n.w / 2, n.y + layer_h / 2)


def polyline_routing(g: DGraph, routes: list[RoutableEdge]) -> None:
    """Route edges as polylines bending at the virtual nodes they pass through."""
    for r in routes:
        if r.is_flat():
            _flat_polyline(r, g.layers[r.from_node.layer].h)
            continue
        if len(r.nodes) == 2:
            r.edge.points = _straight(r.nodes[0], r.nodes[-1])
            continue
        r.edge.points.append(_start_point(r.nodes[0]))
        r.edge.points.extend(_bend_point(n, g.layers[n.layer].h) for n in r.nodes[1:-1])
        r.edge.points.append(_end_point(r.nodes[-1]))


def _vertically_aligned(a: Node, b: Node) -> bool:
    return a.x + a.w / 2 == b.x + b.w / 2


def ortho_routing(g: DGraph, routes: list[RoutableEdge], params: Params) -> None:
    """Route edges with horizontal and vertical segments, turning halfway between layers."""
    half_spacing = params.layer_spacing / 2
    for r in routes:
        layer_h = g.layers[r.from_node.layer].h
        if r.is_flat():
            _flat_polyline(r, layer_h)
            continue
        if _vertically_aligned(r.from_node, r.to_node):
            r.edge.points = _straight(r.nodes[0], r.nodes[-1])
            continue

        for upper, lower in zip(r.nodes, r.nodes[1:]):
            sx, sy = _start_point(upper)
            # virtual nodes have no size, so extend from them by the layer height
            if upper.is_virtual:
                sy += layer_h
            ex, ey = _end_point(lower)
            r.edge.points.extend(
                [(sx, sy), (sx, sy + half_spacing), (ex, ey - half_spacing), (ex, ey)]
            )