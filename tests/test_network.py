"""Tests for minimum spanning tree construction."""

import numpy as np
from scipy.sparse.csgraph import minimum_spanning_tree
from scipy.spatial.distance import cdist
from py_terrain.core.network import NetworkBuilder, build_minimum_spanning_tree


def is_spanning_tree(n, edges):
    parent = list(range(n))

    def find(i):
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for a, b in edges:
        ra, rb = find(a), find(b)
        if ra == rb:
            return False
        parent[ra] = rb
    return len({find(i) for i in range(n)}) == 1


class TestMinimumSpanningTree:
    """Test greedy-expansion MST."""

    def test_five_sites_make_four_edges(self):
        points = np.array(
            [[0, 0, 0], [100, 5, 20], [-50, 0, 80], [30, 2, -90], [200, 10, 200]],
            dtype=np.float64,
        )
        edges = build_minimum_spanning_tree(points)

        assert len(edges) == 4
        assert is_spanning_tree(5, edges)

    def test_collinear_chain(self):
        points = np.array([[0, 0], [1, 0], [3, 0], [6, 0]], dtype=np.float64)
        assert build_minimum_spanning_tree(points) == [(0, 1), (1, 2), (2, 3)]

    def test_ties_prefer_lowest_indices(self):
        points = np.array([[0, 0], [1, 0], [0, 1], [1, 1]], dtype=np.float64)
        assert build_minimum_spanning_tree(points) == [(0, 1), (0, 2), (1, 3)]

    def test_degenerate_inputs(self):
        assert build_minimum_spanning_tree(np.zeros((0, 3))) == []
        assert build_minimum_spanning_tree(np.array([[1.0, 2.0, 3.0]])) == []

    def test_matches_reference_total_length(self):
        rng = np.random.default_rng(21)
        points = rng.uniform(0, 1000, size=(20, 3))
        edges = build_minimum_spanning_tree(points)

        total = sum(np.linalg.norm(points[i] - points[j]) for i, j in edges)
        reference = minimum_spanning_tree(cdist(points, points)).sum()

        assert len(edges) == 19
        assert is_spanning_tree(20, edges)
        assert np.isclose(total, reference)


class TestNetworkBuilder:
    """Test the network wrapper."""

    def test_build(self):
        points = [[0.0, 0.0, 0.0], [3.0, 0.0, 4.0], [3.0, 0.0, 0.0]]
        network = NetworkBuilder(points).build()

        assert network.edges == [(0, 2), (2, 1)]
        assert network.total_length == 7.0

    def test_single_site_has_no_edges(self):
        network = NetworkBuilder([[1.0, 2.0, 3.0]]).build()
        assert network.edges == []
        assert network.total_length == 0.0
