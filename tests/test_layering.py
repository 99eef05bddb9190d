import pytest

from layerflow.graph import Node, Params, from_edge_slice
from layerflow.layering import Layering, longest_path, network_simplex_layering


def test_alg_values():
    names = ["longestpath", "ns"]
    assert len(Layering) == len(names)
    for value, name in enumerate(names):
        alg = Layering(value)
        assert alg.phase() == 2
        assert str(alg) == name


LONGEST_PATH_EDGES = [
    ("F", "B"),
    ("F", "Z"),
    ("B", "A"),
    ("B", "D"),
    ("B", "K"),
    ("Z", "a1"),
    ("Z", "b1"),
    ("A", "C"),
    ("C", "U"),
]

LONGEST_PATH_WANT = {
    "F": 0,
    "B": 1, "Z": 1,
    "A": 2, "D": 2, "K": 2, "a1": 2, "b1": 2,
    "C": 3,
    "U": 4,
}


def test_longest_path():
    g = from_edge_slice(LONGEST_PATH_EDGES)
    longest_path(g)
    assert {n.id: n.layer for n in g.nodes} == LONGEST_PATH_WANT


def test_longest_path_rejects_cycles():
    g = from_edge_slice([("a", "b"), ("b", "a")])
    with pytest.raises(ValueError):
        longest_path(g)


def test_process_builds_layers():
    g = from_edge_slice(LONGEST_PATH_EDGES)
    Layering.LONGEST_PATH.process(g, Params())
    assert [layer.index for layer in g.layers] == [0, 1, 2, 3, 4]
    assert [[n.id for n in layer.nodes] for layer in g.layers] == [
        ["F"],
        ["B", "Z"],
        ["A", "D", "K", "a1", "b1"],
        ["C"],
        ["U"],
    ]


def test_process_single_node():
    g = from_edge_slice([])
    g.nodes.append(Node("x"))
    Layering.NETWORK_SIMPLEX.process(g, Params())
    assert len(g.layers) == 1
    assert g.layers[0].index == 0
    assert [n.id for n in g.layers[0].nodes] == ["x"]


def test_process_network_simplex_feasible():
    g = from_edge_slice([("a", "b"), ("b", "c"), ("a", "c"), ("c", "d")])
    Layering.NETWORK_SIMPLEX.process(g, Params(network_simplex_thoroughness=28))
    assert all(e.to_node.layer - e.from_node.layer >= e.delta for e in g.edges)
    assert min(n.layer for n in g.nodes) == 0
    assert {n.id: n.layer for n in g.nodes} == {"a": 0, "b": 1, "c": 2, "d": 3}


NS_EDGES = [
    ("S24", "27"), ("S24", "25"), ("S1", "10"), ("S1", "2"), ("S35", "36"),
    ("S35", "43"), ("S30", "31"), ("S30", "33"), ("9", "42"), ("9", "T1"),
    ("25", "T1"), ("25", "26"), ("27", "T24"), ("2", "3"), ("2", "16"),
    ("2", "17"), ("2", "T1"), ("2", "18"), ("10", "11"), ("10", "14"),
    ("10", "T1"), ("10", "13"), ("10", "12"), ("31", "T1"), ("31", "32"),
    ("33", "T30"), ("33", "34"), ("42", "4"), ("26", "4"), ("3", "4"),
    ("16", "15"), ("17", "19"), ("18", "29"), ("11", "4"), ("14", "15"),
    ("37", "39"), ("37", "41"), ("37", "38"), ("37", "40"), ("13", "19"),
    ("12", "29"), ("43", "38"), ("43", "40"), ("36", "19"), ("32", "23"),
    ("34", "29"), ("39", "15"), ("41", "29"), ("38", "4"), ("40", "19"),
    ("4", "5"), ("19", "21"), ("19", "20"), ("19", "28"), ("5", "6"),
    ("5", "T35"), ("5", "23"), ("21", "22"), ("20", "15"), ("28", "29"),
    ("6", "7"), ("15", "T1"), ("22", "23"), ("22", "T35"), ("29", "T30"),
    ("7", "T8"), ("23", "T24"), ("23", "T1"),
]

NS_WANT = {
    "S1": 0, "S35": 0,
    "10": 1, "2": 1, "37": 1, "36": 1, "43": 1, "S24": 1,
    "S30": 2, "13": 2, "17": 2, "39": 4, "40": 2, "9": 2, "38": 2, "25": 2,
    "33": 3, "12": 3, "16": 3, "19": 3, "42": 3, "11": 3, "3": 3, "26": 3, "27": 3,
    "34": 4, "18": 4, "41": 2, "28": 4, "31": 4, "14": 4, "20": 4, "21": 4, "4": 4,
    "29": 5, "32": 5, "15": 5, "22": 5, "5": 5,
    "T30": 6, "23": 6, "T35": 6, "6": 6,
    "T1": 7, "T24": 7, "7": 7,
    "T8": 8,
}


def test_network_simplex_layering():
    g = from_edge_slice(NS_EDGES)
    network_simplex_layering(
        g, Params(network_simplex_thoroughness=28, network_simplex_balance=1)
    )
    got = {n.id: n.layer for n in g.nodes if not n.is_virtual}
    assert got == NS_WANT


def test_network_simplex_layering_is_feasible():
    g = from_edge_slice(NS_EDGES)
    network_simplex_layering(
        g, Params(network_simplex_thoroughness=28, network_simplex_balance=1)
    )
    assert all(e.to_node.layer - e.from_node.layer >= e.delta for e in g.edges)
    assert min(n.layer for n in g.nodes) == 0