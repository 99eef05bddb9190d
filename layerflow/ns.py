"""Network simplex layer assignment on a connected directed graph."""

from __future__ import annotations

import math
from collections import Counter, deque

from layerflow.graph import (
    OPTION_NS_BALANCE_H,
    OPTION_NS_BALANCE_V,
    DGraph,
    Edge,
    Node,
    Params,
)


def slack(edge: Edge) -> int:
    """Layer distance of the edge beyond its minimum length."""
    return edge.to_node.layer - edge.from_node.layer - edge.delta


def normalize(g: DGraph) -> None:
    """Shift all layers so that the lowest one is 0."""
    if not g.nodes:
        return
    lowest = min(n.layer for n in g.nodes)
    if lowest == 0:
        return
    for n in g.nodes:
        n.layer -= lowest


def vbalance(g: DGraph) -> None:
    """Move nodes with equal in- and out-degree to less crowded feasible layers."""
    lsize: Counter[int] = Counter(n.layer for n in g.nodes)
    lmax = max((n.layer for n in g.nodes), default=0)
    lmax = max(lmax, 0)

    for n in g.nodes:
        if n.indeg() != n.outdeg():
            continue
        low = max((e.from_node.layer + e.delta for e in n.in_edges), default=0)
        low = max(low, 0)
        high = min((e.to_node.layer - e.delta for e in n.out_edges), default=lmax)
        high = min(high, lmax)
        newl = low
        for i in range(low + 1, high + 1):
            if lsize[i] < lsize[newl]:
                newl = i
        if lsize[newl] < lsize[n.layer]:
            lsize[n.layer] -= 1
            lsize[newl] += 1
            n.layer = newl


def _neg_cut_value_tree_edge(edges: list[Edge]) -> Edge | None:
    return next((e for e in edges if e.is_in_spanning_tree and e.cut_value < 0), None)


def _tight_tree(root: Node) -> dict[Node, None]:
    """Grow a spanning tree of tight edges from root; return its nodes in visiting order."""
    visited_edges: set[Edge] = set()
    tree: dict[Node, None] = {root: None}
    stack = [(root, root.edges())]
    while stack:
        node, edges = stack[-1]
        for e in edges:
            if e in visited_edges:
                continue
            visited_edges.add(e)
            m = e.connected_node(node)
            if e.is_in_spanning_tree or (m not in tree and slack(e) == 0):
                e.is_in_spanning_tree = True
                tree[m] = None
                stack.append((m, m.edges()))
                break
        else:
            stack.pop()
    return tree


class NetworkSimplex:
    """Network simplex solver; lim and low hold the spanning tree postorder numbering."""

    def __init__(self) -> None:
        self.lim: dict[Node, int] = {}
        self.low: dict[Node, int] = {}

    def run(self, g: DGraph, params: Params) -> None:
        """Assign optimal layers to the nodes of g, then normalize and balance them."""
        if not g.nodes:
            raise ValueError("network simplex: graph has no nodes")
        self.lim = {}
        self.low = {}
        self._feasible_tree(g)

        k1 = math.isqrt(len(g.nodes))
        if params.network_simplex_max_iter_factor > 0:
            k1 = params.network_simplex_max_iter_factor
        max_iter = params.network_simplex_thoroughness * k1

        for _ in range(max_iter):
            e = _neg_cut_value_tree_edge(g.edges)
            if e is None:
                break
            f = self._min_slack_non_tree_edge(g.edges, e)
            if f is None:
                break
            self._exchange(e, f, g)

        normalize(g)
        if params.network_simplex_balance == OPTION_NS_BALANCE_V:
            vbalance(g)
        elif params.network_simplex_balance == OPTION_NS_BALANCE_H:
            self._hbalance(g)

    def _min_slack_non_tree_edge(self, edges: list[Edge], e: Edge) -> Edge | None:
        min_slack = math.inf
        candidate = None
        for f in edges:
            if f is e or f.is_in_spanning_tree:
                continue
            if self.in_head_component(f.from_node, e) and not self.in_head_component(f.to_node, e):
                s = slack(f)
                if s < min_slack:
                    min_slack = s
                    candidate = f
        return candidate

    def _feasible_tree(self, g: DGraph) -> None:
        self._init_layers(g)
        while True:
            tree = _tight_tree(g.nodes[0])
            if len(tree) == len(g.nodes):
                break
            e = self._incident_non_tree_edge(tree)
            d = slack(e)
            if e.to_node in tree:
                d = -d
            for n in tree:
                n.layer += d
        self.set_stree_values(g.nodes[0])
        self._set_cut_values(g)

    @staticmethod
    def _init_layers(g: DGraph) -> None:
        unseen = {n: n.indeg() for n in g.nodes}
        queue = deque(g.sources())
        while queue:
            n = queue.popleft()
            for e in n.out_edges:
                m = e.to_node
                m.layer = max(m.layer, n.layer + e.delta)
                unseen[m] = unseen.get(m, 0) - 1
                if unseen[m] == 0:
                    queue.append(m)

    @staticmethod
    def _incident_non_tree_edge(tree: dict[Node, None]) -> Edge:
        min_slack = math.inf
        candidate = None
        for n in tree:
            for e in n.edges():
                if e.self_loops():
                    continue
                if e.is_in_spanning_tree or e.connected_node(n) in tree:
                    continue
                s = slack(e)
                if s < min_slack:
                    min_slack = s
                    candidate = e
        if candidate is None:
            raise ValueError(
                "network simplex: no incident non-tree edge found: make sure the graph is connected"
            )
        return candidate

    def in_head_component(self, node: Node, edge: Edge) -> bool:
        """Tell whether node lies in the head component of the tree edge."""
        if not edge.is_in_spanning_tree:
            raise RuntimeError("network simplex: breaking tree around non-tree edge")
        u, v = edge.from_node, edge.to_node
        if self.lim[u] < self.lim[v]:
            return not (self.low[u] <= self.lim[node] <= self.lim[u])
        return self.low[v] <= self.lim[node] <= self.lim[v]

    def _exchange(self, e: Edge, f: Edge, g: DGraph) -> None:
        if not e.is_in_spanning_tree:
            raise RuntimeError("network simplex: exchange: tree edge not in spanning tree")
        if f.is_in_spanning_tree:
            raise RuntimeError("network simplex: exchange: non-tree edge already in spanning tree")

        d = slack(f)
        if d > 0:
            for n in g.nodes:
                if not self.in_head_component(n, e):
                    n.layer -= d

        e.is_in_spanning_tree = False
        f.is_in_spanning_tree = True

        self.set_stree_values(g.nodes[0])
        self._set_cut_values(g)

    def set_stree_values(self, root: Node) -> None:
        """Number the spanning tree nodes in postorder starting from root."""
        self.lim.clear()
        self.low.clear()
        visited: set[Edge] = set()
        self.low[root] = 1
        stack = [[root, root.edges(), 1]]
        while stack:
            frame = stack[-1]
            node, edges = frame[0], frame[1]
            for e in edges:
                if e.is_in_spanning_tree and e not in visited:
                    visited.add(e)
                    child = e.connected_node(node)
                    self.low[child] = frame[2]
                    stack.append([child, child.edges(), frame[2]])
                    break
            else:
                stack.pop()
                self.lim[node] = frame[2]
                if stack:
                    stack[-1][2] = frame[2] + 1

    def _set_cut_values(self, g: DGraph) -> None:
        for e in g.edges:
            if not e.is_in_spanning_tree:
                continue
            e.cut_value += e.weight
            for f in g.edges:
                if f.is_in_spanning_tree:
                    continue
                from_in_head = self.in_head_component(f.from_node, e)
                to_in_head = self.in_head_component(f.to_node, e)
                if not from_in_head and to_in_head:
                    e.cut_value += f.weight
                elif from_in_head and not to_in_head:
                    e.cut_value -= f.weight

    def _hbalance(self, g: DGraph) -> None:
        for e in g.edges:
            if not e.is_in_spanning_tree or e.cut_value != 0:
                continue
            f = self._min_slack_non_tree_edge(g.edges, e)
            if f is None:
                continue
            d = slack(f)
            if d < 1:
                continue
            if self.lim[e.from_node] < self.lim[e.to_node]:
                self._adjust_layers(e.from_node, d)
            else:
                self._adjust_layers(e.to_node, -d)

    def _adjust_layers(self, start: Node, delta: int) -> None:
        stack = [start]
        while stack:
            n = stack.pop()
            n.layer -= delta
            for e in n.out_edges:
                if e.is_in_spanning_tree and not self.lim[n] < self.lim[e.connected_node(n)]:
                    stack.append(e.to_node)
            for e in n.in_edges:
                if e.is_in_spanning_tree and not self.lim[n] < self.lim[e.connected_node(n)]:
                    stack.append(e.from_node)