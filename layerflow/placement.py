"""Horizontal coordinate assignment strategies for layered, ordered graphs."""

from __future__ import annotations

import math

from layerflow.graph import OPTION_NS_BALANCE_H, DGraph, Edge, EdgeType, Node, Params
from layerflow.ns import NetworkSimplex


def vertical_align(g: DGraph, params: Params) -> None:
    """Center every layer on the widest one, packing nodes with fixed spacing."""
    spacing = params.node_spacing
    max_w = 0.0
    for layer in g.layers:
        layer.w = sum(n.w for n in layer.nodes) + spacing * max(len(layer.nodes) - 1, 0)
        layer.h = max((n.h for n in layer.nodes), default=0.0)
        max_w = max(max_w, layer.w)

    for layer in g.layers:
        pos = (max_w - layer.w) / 2
        for n in layer.nodes:
            n.x = pos
            pos += n.w + spacing


def pack_right(g: DGraph, params: Params) -> None:
    """Pack the nodes of every layer against a common right edge."""
    left_bound = 0.0
    for layer in g.layers:
        x = 0.0
        for n in reversed(layer.nodes):
            x -= n.w + params.node_spacing
            n.x = x
        left_bound = min(left_bound, x)

    for layer in g.layers:
        for n in layer.nodes:
            n.x -= left_bound
            layer.h = max(layer.h, n.h)


def crosses(e: Edge, f: Edge) -> bool:
    """Tell whether two edges between the same pair of layers cross."""
    if not (e.from_node.layer == f.from_node.layer and e.to_node.layer == f.to_node.layer):
        return False
    etop, ebtm = e.from_node, e.to_node
    ftop, fbtm = f.from_node, f.to_node
    return (etop.layer_pos < ftop.layer_pos and ebtm.layer_pos > fbtm.layer_pos) or (
        etop.layer_pos > ftop.layer_pos and ebtm.layer_pos < fbtm.layer_pos
    )


def _block_edge(
    n: Node, colors: dict[Node, Node], priority: dict[int, list[Edge]]
) -> Edge | None:
    """Pick the incoming edge along which n joins its upper neighbour's block, if any."""
    if colors[n] is not n or not n.in_edges:
        return None

    candidate = None
    for f in n.in_edges:
        if f.connected_node(n).is_virtual:
            candidate = f

    remaining = iter(n.in_edges)
    while candidate is None or candidate.self_loops() or candidate.is_flat():
        candidate = next(remaining, None)
        if candidate is None:
            return None

    upper = candidate.connected_node(n)
    if colors[upper] is not upper:
        return None
    layer_edges = priority.setdefault(n.layer, [])
    if any(crosses(candidate, f) for f in layer_edges):
        return None
    layer_edges.append(candidate)
    return candidate


def _set_color(
    n: Node,
    colors: dict[Node, Node],
    roots: dict[Node, Node],
    priority: dict[int, list[Edge]],
) -> tuple[Node, float]:
    """Extend n's block upwards; return the block root and the block's width."""
    chain: list[Node] = []
    top = n
    while (e := _block_edge(top, colors, priority)) is not None:
        chain.append(top)
        top = e.connected_node(top)

    width = top.w
    upper = top
    for node in reversed(chain):
        colors[upper] = node
        roots[node] = top
        width = max(node.w, width)
        upper = node
    return top, width


def _place_blocks(
    g: DGraph,
    layer_max_len: int,
    spacing: float,
    blockmax: dict[Node, float],
    blockwidth: dict[Node, float],
    xcoord: dict[Node, float],
    roots: dict[Node, Node],
) -> None:
    while True:
        for n in g.nodes:
            root = roots[n]
            x = blockmax.get(root, 0.0)
            xcoord[n] = max(x, x + (blockwidth.get(root, 0.0) - n.w) / 2)

        shifted = False
        for k in range(layer_max_len):
            for layer in g.layers:
                size = len(layer.nodes)
                if k >= size:
                    continue
                if k == size - 1 and k > 0:
                    prv, cur = layer.nodes[k - 1], layer.nodes[k]
                    bound = xcoord[prv] + blockwidth.get(roots[prv], 0.0) + spacing
                    if xcoord[cur] < bound:
                        xcoord[cur] = bound
                        shifted = True
                        blockmax[roots[cur]] = max(blockmax.get(roots[cur], 0.0), xcoord[cur])
                elif k < size - 1:
                    cur, suc = layer.nodes[k], layer.nodes[k + 1]
                    if xcoord[cur] > xcoord[suc]:
                        xcoord[suc] = xcoord[cur] + blockwidth.get(roots[cur], 0.0) + spacing
                        shifted = True
                        blockmax[roots[suc]] = max(blockmax.get(roots[suc], 0.0), xcoord[suc])
        if not shifted:
            return


def sink_coloring(g: DGraph, params: Params) -> None:
    """Align nodes in vertical blocks grown from the bottom layer up, then resolve overlaps."""
    colors = {n: n for n in g.nodes}
    roots = {n: n for n in g.nodes}
    priority: dict[int, list[Edge]] = {}
    blockwidth: dict[Node, float] = {}

    for layer in reversed(g.layers):
        for n in layer.nodes:
            _, width = _set_color(n, colors, roots, priority)
            root = roots[n]
            blockwidth[root] = max(blockwidth.get(root, 0.0), width)

    xcoord: dict[Node, float] = {}
    for layer in g.layers:
        x = 0.0
        for n in layer.nodes:
            xcoord[n] = x
            x += blockwidth.get(roots[n], 0.0) + params.node_spacing

    blockmax: dict[Node, float] = {}
    for n, x in xcoord.items():
        blockmax[roots[n]] = max(blockmax.get(roots[n], 0.0), x)

    layer_max_len = max((len(layer) for layer in g.layers), default=0)
    _place_blocks(g, layer_max_len, params.node_spacing, blockmax, blockwidth, xcoord, roots)

    for layer in g.layers:
        for n in layer.nodes:
            n.x = xcoord[n]
            layer.h = max(layer.h, n.h)


_OMEGA = {EdgeType.CONCRETE: 1, EdgeType.HYBRID: 2, EdgeType.VIRTUAL: 8}


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _auxiliary_graph(g: DGraph, weight_factor: int, spacing: float) -> tuple[DGraph, dict[str, Node]]:
    aux = DGraph()
    by_id: dict[str, Node] = {}

    def add(node: Node) -> Node:
        by_id[node.id] = node
        aux.nodes.append(node)
        return node

    def link(u: Node, v: Node, weight: int, delta: int) -> None:
        e = Edge(u, v, weight, delta=delta)
        u.out_edges.append(e)
        v.in_edges.append(e)
        aux.edges.append(e)

    for n in g.nodes:
        add(Node(n.id, w=n.w, h=n.h))

    for i, e in enumerate(g.edges):
        if e.self_loops() or e.is_flat():
            continue
        ne = add(Node(f"NE{i}"))
        weight = e.weight * _OMEGA[e.type()] * weight_factor
        link(ne, by_id[e.from_node.id], weight, 0)
        link(ne, by_id[e.to_node.id], weight, 0)

    for layer in g.layers:
        for left, right in zip(layer.nodes, layer.nodes[1:]):
            v, w = by_id[left.id], by_id[right.id]
            link(v, w, 0, _round_half_away(v.w / 2 + w.w / 2 + spacing))
    return aux, by_id


def network_simplex_positions(g: DGraph, params: Params) -> None:
    """Assign x coordinates by solving layering on an auxiliary graph with network simplex."""
    aux, by_id = _auxiliary_graph(
        g, params.network_simplex_auxiliary_graph_weight_factor, params.node_spacing
    )
    NetworkSimplex().run(
        aux,
        Params(
            network_simplex_thoroughness=params.network_simplex_thoroughness,
            network_simplex_max_iter_factor=len(g.nodes),
            network_simplex_balance=OPTION_NS_BALANCE_H,
        ),
    )
    for layer in g.layers:
        for n in layer.nodes:
            layer.h = max(layer.h, n.h)
            n.x = float(by_id[n.id].layer)