# layerflow

Layered layout of directed graphs. `layerflow` works on an in-memory graph
model (`layerflow.graph`) and computes node layers, in-layer order,
coordinates and edge paths in five phases:

1. **Cycle breaking** (`layerflow.cycles.CycleBreaking`): reverses a set of
   edges so the graph becomes acyclic (`GREEDY` or `DEPTH_FIRST`).
2. **Layering** (`layerflow.layering.Layering`): assigns each node to a layer
   and builds `g.layers` (`LONGEST_PATH` or `NETWORK_SIMPLEX`).
3. **Ordering** (`layerflow.ordering.Ordering`): orders the nodes within each
   layer to reduce edge crossings (`WMEDIAN`), first splitting edges that span
   several layers with virtual nodes; `NO_ORDERING` leaves the order as is.
4. **Positioning** (`layerflow.positioning.Positioning`): assigns x and y
   coordinates (`VERTICAL_ALIGN`, `BRANDES_KOEPF`, `NETWORK_SIMPLEX`,
   `SINK_COLORING`, `PACK_RIGHT`, or `NO_POSITIONING`).
5. **Routing** (`layerflow.routing.Routing`): merges split edges back together
   and stores the points of each edge in `edge.points` (`STRAIGHT`,
   `POLYLINE`, `ORTHO`, or `NO_ROUTING`).

Every phase value has a `phase()` method returning its ordinal number (1 to 5),
a short name through `str()`, and a `process(g, params)` method that updates
the graph in place.

## Installation

```
pip install layerflow
```

## Usage

```python
from layerflow.graph import Params, from_edge_slice, ignore_self_loops, unreverse_edges
from layerflow.cycles import CycleBreaking
from layerflow.layering import Layering
from layerflow.ordering import Ordering
from layerflow.positioning import Positioning
from layerflow.routing import Routing

g = from_edge_slice([("a", "b"), ("b", "c"), ("a", "c"), ("c", "a")])
for node in g.nodes:
    node.w, node.h = 40.0, 20.0

params = Params(
    network_simplex_thoroughness=28,
    wmedian_max_iter=24,
    node_spacing=20.0,
    layer_spacing=50.0,
)

restore_self_loops = ignore_self_loops(g)
for phase in (
    CycleBreaking.GREEDY,
    Layering.NETWORK_SIMPLEX,
    Ordering.WMEDIAN,
    Positioning.BRANDES_KOEPF,
    Routing.POLYLINE,
):
    phase.process(g, params)
unreverse_edges(g)
restore_self_loops(g)

for node in g.nodes:
    print(node.id, node.layer, node.x, node.y)
for edge in g.edges:
    print(edge.from_node.id, "->", edge.to_node.id, edge.points)
```

`ignore_self_loops` detaches self-loop edges and returns a function that puts
them back; `unreverse_edges` restores the direction of edges reversed during
cycle breaking. Routing expects the graph to be connected and to have gone
through the earlier phases.

`Params` holds the tuning knobs: node spacing, vertical node spacing, layer
spacing, network simplex thoroughness, iteration factor and balancing,
weighted median iterations, fixed size of virtual nodes, the forced
Brandes–Köpf layout (0 to 3, or -1 to balance all four), and random node
choice in the greedy cycle breaker.

Lower-level building blocks are available too, for example
`layerflow.ns.NetworkSimplex`, `layerflow.crossings.count_crossings`,
`layerflow.ordering.median_of` and `layerflow.brandes_koepf.brandes_koepf`.
Progress details are written with the standard `logging` module at debug
level.

## What it does not do

- No spline routing: edges are routed as straight lines, polylines or
  orthogonal segments only.
- No reading or writing of graph files and no rendering; graphs are built in
  code (for example with `from_edge_slice`) and results are read from the
  node and edge attributes.
- No command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```