"""
Road network topology over monument sites.

Builds a minimum spanning tree by greedy expansion from site 0, which
connects every site without redundant loops.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
import structlog

logger = structlog.get_logger()

Edge = Tuple[int, int]


@dataclass
class RoadNetwork:
    """Spanning-tree edges over a point list."""

    points: np.ndarray
    edges: List[Edge] = field(default_factory=list)

    @property
    def total_length(self) -> float:
        return float(
            sum(np.linalg.norm(self.points[i] - self.points[j]) for i, j in self.edges)
        )


def build_minimum_spanning_tree(points) -> List[Edge]:
    """
    Greedy-expansion (Prim) minimum spanning tree.

    Each step adds the globally cheapest edge, by squared distance, from an
    in-tree point to an out-of-tree point. Ties go to the smallest in-tree
    index, then the smallest out-of-tree index.

    Args:
        points: (N, D) coordinates

    Returns:
        Edges as (in_tree_index, new_index) pairs, N - 1 for N >= 1
    """
    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    if n == 0:
        return []
    pts = pts.reshape(n, -1)

    diff = pts[:, None, :] - pts[None, :, :]
    dist_sq = np.einsum("ijk,ijk->ij", diff, diff)

    in_tree = np.zeros(n, dtype=bool)
    in_tree[0] = True
    edges: List[Edge] = []

    while len(edges) < n - 1:
        candidates = np.where(in_tree[:, None] & ~in_tree[None, :], dist_sq, np.inf)
        # argmin over the flattened matrix is row-major: smallest i, then j
        flat = int(np.argmin(candidates))
        bi, bj = divmod(flat, n)
        if not np.isfinite(candidates[bi, bj]):
            break
        edges.append((bi, bj))
        in_tree[bj] = True

    return edges


class NetworkBuilder:
    """Connects accepted sites with a minimum spanning tree."""

    def __init__(self, points):
        self.points = np.asarray(points, dtype=np.float64)

    def build(self) -> RoadNetwork:
        if len(self.points) <= 1:
            logger.info("Not enough sites to build a network", sites=len(self.points))
            return RoadNetwork(points=self.points, edges=[])

        edges = build_minimum_spanning_tree(self.points)
        network = RoadNetwork(points=self.points, edges=edges)
        logger.info(
            "Network built",
            sites=len(self.points),
            edges=len(edges),
            total_length=round(network.total_length, 1),
        )
        return network
