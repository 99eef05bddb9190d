"""Cycle breaking: reverse a set of edges so that the graph becomes acyclic."""

from __future__ import annotations

import enum
import logging
import random
from collections.abc import Iterator

from layerflow.graph import DGraph, Edge, Node, Params

_log = logging.getLogger(__name__)


class CycleBreaking(enum.IntEnum):
    """Cycle breaking algorithms."""

    GREEDY = 0
    DEPTH_FIRST = 1

    def phase(self) -> int:
        """Ordinal number of this phase in the layout pipeline."""
        return 1

    def __str__(self) -> str:
        return {CycleBreaking.GREEDY: "greedy", CycleBreaking.DEPTH_FIRST: "dfs"}[self]

    def process(self, g: DGraph, params: Params) -> None:
        """Run this cycle breaker on a connected graph, leaving it acyclic."""
        if len(g.nodes) == 1:
            _log.debug("%s: skip: not enough nodes", self)
            return

        remove_two_node_cycles(g)
        if not has_cycles(g):
            return
        if self is CycleBreaking.GREEDY:
            break_cycles_greedy(g, params)
        else:
            break_cycles_depth_first(g)

        if has_cycles(g):
            raise RuntimeError("cycle breaking: graph is still cyclic")


def remove_two_node_cycles(g: DGraph) -> None:
    """Reverse every edge whose node pair, in either direction, was already seen."""
    seen: set[tuple[Node, Node]] = set()
    to_reverse: list[Edge] = []
    for e in g.edges:
        a, b = e.from_node, e.to_node
        if (a, b) in seen or (b, a) in seen:
            to_reverse.append(e)
        else:
            seen.add((a, b))
    for e in to_reverse:
        e.reverse()


def has_cycles(g: DGraph) -> bool:
    """Tell whether the graph has a directed cycle, ignoring self-loops."""
    on_path: set[Node] = set()
    finished: set[Node] = set()
    for start in g.nodes:
        if start in on_path or start in finished:
            continue
        on_path.add(start)
        stack: list[tuple[Node, Iterator[Edge]]] = [(start, iter(start.out_edges))]
        while stack:
            node, edges = stack[-1]
            for e in edges:
                if e.self_loops():
                    continue
                m = e.connected_node(node)
                if m in on_path:
                    return True
                if m not in finished:
                    on_path.add(m)
                    stack.append((m, iter(m.out_edges)))
                    break
            else:
                stack.pop()
                on_path.discard(node)
                finished.add(node)
    return False


def break_cycles_depth_first(g: DGraph) -> None:
    """Reverse the back edges found by a depth-first search started from the sources."""
    visited: set[Node] = set()
    active: set[Node] = set()
    reversible: list[Edge] = []

    def visit(start: Node) -> None:
        if start in visited:
            return
        visited.add(start)
        active.add(start)
        stack: list[tuple[Node, Iterator[Edge]]] = [(start, iter(start.out_edges))]
        while stack:
            node, edges = stack[-1]
            for e in edges:
                if e.self_loops():
                    continue
                target = e.to_node
                if target in active:
                    reversible.append(e)
                elif target not in visited:
                    visited.add(target)
                    active.add(target)
                    stack.append((target, iter(target.out_edges)))
                    break
            else:
                stack.pop()
                active.discard(node)

    for node in list(g.sources()):
        visit(node)
    for node in g.nodes:
        visit(node)

    for e in reversible:
        e.reverse()


class _GreedyBreaker:
    """Arranges nodes on a line, sinks right and sources left, then reverses right-pointing edges."""

    def __init__(self, g: DGraph, params: Params) -> None:
        self.g = g
        self.random_choice = params.greedy_cycle_breaker_random_node_choice
        self.rnd = random.Random()
        self.arcdiag: dict[Node, int] = {}
        self.indeg = {n: n.indeg() for n in g.nodes}
        self.outdeg = {n: n.outdeg() for n in g.nodes}
        self.sources = [n for n in g.nodes if n.indeg() == 0]
        self.sinks = [n for n in g.nodes if n.outdeg() == 0]

    def run(self) -> None:
        node_count = len(self.g.nodes)
        next_right = -1
        next_left = 1
        remaining = node_count

        while remaining > 0:
            while self.sinks:
                sink = self.sinks.pop(0)
                self.arcdiag[sink] = next_right
                next_right -= 1
                self._update_neighbors(sink)
                remaining -= 1

            while self.sources:
                source = self.sources.pop(0)
                self.arcdiag[source] = next_left
                next_left += 1
                self._update_neighbors(source)
                remaining -= 1

            while remaining > 0:
                candidates = self._max_outflow_nodes()
                if not candidates:
                    raise RuntimeError("greedy cycle breaker: no unprocessed node left")
                n = self._pick(candidates)
                self.arcdiag[n] = next_left
                next_left += 1
                self._update_neighbors(n)
                remaining -= 1

        shift = node_count + 1
        for n in self.g.nodes:
            if self.arcdiag.get(n, 0) < 0:
                self.arcdiag[n] += shift

        for n in self.g.nodes:
            for e in list(n.out_edges):
                if self.arcdiag.get(n, 0) > self.arcdiag.get(e.to_node, 0):
                    e.reverse()

    def _max_outflow_nodes(self) -> list[Node]:
        best: list[Node] = []
        max_outflow: int | None = None
        for n in self.g.nodes:
            if n in self.arcdiag:
                continue
            outflow = self.outdeg[n] - self.indeg[n]
            if max_outflow is None or outflow > max_outflow:
                max_outflow = outflow
                best = [n]
            elif outflow == max_outflow:
                best.append(n)
        return best

    def _pick(self, nodes: list[Node]) -> Node:
        if self.random_choice:
            return self.rnd.choice(nodes)
        return nodes[len(nodes) // 2]

    def _update_neighbors(self, n: Node) -> None:
        """Simulate removing n, updating degrees and the source and sink queues."""
        for e in n.in_edges:
            if e.self_loops():
                continue
            src = e.from_node
            if src in self.arcdiag:
                continue
            self.outdeg[src] -= 1
            if self.outdeg[src] <= 0 and self.indeg[src] > 0:
                self.sinks.append(src)
        for e in n.out_edges:
            if e.self_loops():
                continue
            tgt = e.to_node
            if tgt in self.arcdiag:
                continue
            self.indeg[tgt] -= 1
            if self.indeg[tgt] <= 0 and self.outdeg[tgt] > 0:
                self.sources.append(tgt)


def break_cycles_greedy(g: DGraph, params: Params) -> None:
    """Break cycles with the Eades-Lin-Smyth feedback arc set heuristic."""
    _GreedyBreaker(g, params).run()