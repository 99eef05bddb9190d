"""Layered layout of directed graphs: cycle breaking, layering, ordering, positioning and edge routing."""

__version__ = "0.1.0"

__all__ = [
    "graph",
    "ns",
    "cycles",
    "layering",
    "crossings",
    "placement",
    "ordering",
    "brandes_koepf",
    "positioning",
    "routing",
]