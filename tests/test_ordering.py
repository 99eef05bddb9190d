import pytest

from layerflow.crossings import crossings
from layerflow.graph import DGraph, Layer, Node, Params, from_edge_slice
from layerflow.layering import Layering
from layerflow.ordering import Ordering, median_of, weighted_median


def _layered(pairs):
    g = from_edge_slice(pairs)
    Layering.LONGEST_PATH.process(g, Params())
    return g


def _assert_consistent(g):
    for layer in g.layers:
        assert [n.layer_pos for n in layer.nodes] == list(range(len(layer.nodes)))
        assert all(n.layer == layer.index for n in layer.nodes)


def test_alg_phase_and_names():
    names = ["noop", "gvdot"]
    assert len(Ordering) == len(names)
    for value, name in enumerate(names):
        alg = Ordering(value)
        assert alg.phase() == 3
        assert str(alg) == name


def test_invalid_alg_value():
    with pytest.raises(ValueError):
        Ordering(2)


@pytest.mark.parametrize(
    "positions, expected",
    [([], -1.0), ([3], 3.0), ([1, 5], 3.0), ([0, 1, 2, 3], 1.5), ([2, 4, 9], 4.0)],
)
def test_median_of(positions, expected):
    assert median_of(positions) == pytest.approx(expected)


def test_median_of_even_is_between_middle_values():
    result = median_of([0, 1, 2, 10])
    assert 1.0 <= result <= 2.0


def test_tree_ends_without_crossings():
    g = _layered(
        [("r", "a"), ("r", "b"), ("a", "c"), ("a", "d"), ("b", "e"), ("b", "f")]
    )
    weighted_median(g, Params(wmedian_max_iter=24))
    assert crossings(g.layers) == 0
    _assert_consistent(g)


def test_complete_bipartite_keeps_one_crossing():
    g = _layered([("a", "x"), ("a", "y"), ("b", "x"), ("b", "y"), ("s", "a"), ("s", "b")])
    weighted_median(g, Params(wmedian_max_iter=10))
    assert crossings(g.layers) == 1
    _assert_consistent(g)


def test_long_edges_are_split_and_sized():
    g = _layered([("a", "b"), ("b", "c"), ("a", "c")])
    weighted_median(g, Params(wmedian_max_iter=4, virtual_node_fixed_size=5.0))
    virtual = list(g.virtual_nodes())
    assert len(virtual) == 1
    assert (virtual[0].layer, virtual[0].w, virtual[0].h) == (1, 5.0, 5.0)
    assert all(abs(e.to_node.layer - e.from_node.layer) == 1 for e in g.edges)
    _assert_consistent(g)


def test_single_layer_is_left_alone():
    a, b = Node("a"), Node("b", layer_pos=1)
    g = DGraph(nodes=[a, b], layers=[Layer(0, [a, b])])
    weighted_median(g, Params(wmedian_max_iter=4))
    assert g.layers[0].nodes == [a, b]
    assert len(g.nodes) == 2


def test_no_ordering_keeps_layers():
    g = _layered([("a", "x"), ("b", "y"), ("s", "a"), ("s", "b"), ("a", "y")])
    before = [[n.id for n in layer.nodes] for layer in g.layers]
    Ordering.NO_ORDERING.process(g, Params())
    assert [[n.id for n in layer.nodes] for layer in g.layers] == before


def test_process_single_node_is_noop():
    n = Node("only")
    g = DGraph(nodes=[n], layers=[Layer(0, [n])])
    Ordering.WMEDIAN.process(g, Params(wmedian_max_iter=4))
    assert g.layers[0].nodes == [n]
    assert n.layer_pos == 0


def test_process_wmedian_runs_ordering():
    g = _layered([("r", "a"), ("r", "b"), ("a", "c"), ("b", "d"), ("r", "d")])
    Ordering.WMEDIAN.process(g, Params(wmedian_max_iter=12))
    assert crossings(g.layers) == 0
    _assert_consistent(g)