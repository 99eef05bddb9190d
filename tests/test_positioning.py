import pytest

from layerflow.graph import DGraph, Edge, Layer, Node, Params
from layerflow.positioning import Positioning, assign_y_coords


def _graph():
    a = Node("A", layer=0, layer_pos=0, w=10, h=10)
    b = Node("B", layer=1, layer_pos=0, w=10, h=10)
    c = Node("C", layer=1, layer_pos=1, w=10, h=10)
    g = DGraph(nodes=[a, b, c])
    for u, v in ((a, b), (a, c)):
        e = Edge(u, v)
        u.out_edges.append(e)
        v.in_edges.append(e)
        g.edges.append(e)
    g.layers = [Layer(0, [a]), Layer(1, [b, c])]
    return g, a, b, c


def test_alg_names_and_phase():
    names = ["noop", "vertical", "b&k", "ns", "sinkcoloring", "packright"]
    assert len(Positioning) == len(names)
    for value, name in enumerate(names):
        alg = Positioning(value)
        assert alg.phase() == 4
        assert str(alg) == name


def test_assign_y_coords_stacks_layers():
    g, a, b, c = _graph()
    g.layers[0].h = 10
    g.layers[1].h = 20
    assign_y_coords(g, 5, 0)
    assert (a.y, b.y, c.y) == (0, 15, 15)


def test_assign_y_coords_with_vertical_spacing():
    g, a, b, c = _graph()
    g.layers = [Layer(0, [b, c], h=10), Layer(1, [a], h=10)]
    assign_y_coords(g, 5, 2)
    assert (b.y, c.y) == (0, 2)
    assert a.y == 19


def test_single_node_sets_layer_size():
    n = Node("A", w=30, h=12)
    g = DGraph(nodes=[n], layers=[Layer(0, [n])])
    Positioning.BRANDES_KOEPF.process(g, Params())
    assert (g.layers[0].w, g.layers[0].h) == (30, 12)
    assert (n.x, n.y) == (0, 0)


def test_vertical_align_process():
    g, a, b, c = _graph()
    Positioning.VERTICAL_ALIGN.process(g, Params(node_spacing=5, layer_spacing=20))
    assert a.x == pytest.approx(7.5)
    assert (b.x, c.x) == (0, 15)
    assert a.y == 0
    assert (b.y, c.y) == (30, 30)


def test_pack_right_process():
    g, a, b, c = _graph()
    Positioning.PACK_RIGHT.process(g, Params(node_spacing=5, layer_spacing=20))
    assert (a.x, b.x, c.x) == (15, 0, 15)
    assert b.y == 30


def test_no_positioning_leaves_coordinates():
    g, a, b, c = _graph()
    Positioning.NO_POSITIONING.process(g, Params(node_spacing=5, layer_spacing=20))
    assert [(n.x, n.y) for n in (a, b, c)] == [(0, 0), (0, 0), (0, 0)]


def test_sink_coloring_keeps_layer_order():
    g, a, b, c = _graph()
    Positioning.SINK_COLORING.process(g, Params(node_spacing=5, layer_spacing=20))
    assert c.x >= b.x + b.w + 5
    assert b.y == 30