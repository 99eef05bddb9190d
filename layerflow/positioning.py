"""Node positioning: assign x and y coordinates to a layered, ordered graph."""

from __future__ import annotations

import enum

from layerflow.brandes_koepf import brandes_koepf
from layerflow.graph import DGraph, Params
from layerflow.placement import (
    network_simplex_positions,
    pack_right,
    sink_coloring,
    vertical_align,
)


class Positioning(enum.IntEnum):
    """Positioning algorithms."""

    NO_POSITIONING = 0
    VERTICAL_ALIGN = 1
    BRANDES_KOEPF = 2
    NETWORK_SIMPLEX = 3
    SINK_COLORING = 4
    PACK_RIGHT = 5

    def phase(self) -> int:
        """Ordinal number of this phase in the layout pipeline."""
        return 4

    def __str__(self) -> str:
        return _NAMES[self]

    def process(self, g: DGraph, params: Params) -> None:
        """Assign coordinates to the nodes of a layered and ordered graph."""
        if len(g.nodes) == 1:
            # a lone node sits at the origin and its layer is as large as the node
            g.layers[0].w = g.nodes[0].w
            g.layers[0].h = g.nodes[0].h
            return

        if self is Positioning.NO_POSITIONING:
            return
        _STRATEGIES[self](g, params)
        assign_y_coords(g, params.layer_spacing, params.node_vertical_spacing)


_NAMES = {
    Positioning.NO_POSITIONING: "noop",
    Positioning.VERTICAL_ALIGN: "vertical",
    Positioning.BRANDES_KOEPF: "b&k",
    Positioning.NETWORK_SIMPLEX: "ns",
    Positioning.SINK_COLORING: "sinkcoloring",
    Positioning.PACK_RIGHT: "packright",
}

_STRATEGIES = {
    Positioning.VERTICAL_ALIGN: vertical_align,
    Positioning.BRANDES_KOEPF: brandes_koepf,
    Positioning.NETWORK_SIMPLEX: network_simplex_positions,
    Positioning.SINK_COLORING: sink_coloring,
    Positioning.PACK_RIGHT: pack_right,
}


def assign_y_coords(g: DGraph, layer_spacing: float, vertical_spacing: float) -> None:
    """Stack layers top to bottom, offsetting successive nodes of a layer by vertical_spacing."""
    y = 0.0
    for layer in g.layers:
        line = 0.0
        for n in layer.nodes:
            n.y = y + line
            line += vertical_spacing
        y += layer.h + layer_spacing + line