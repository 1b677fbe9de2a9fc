"""
Banked ribbon meshes along routed roads.

The ribbon frame at each sample uses the terrain normal as "up", so the
road banks with the slope, and the path tangent projected onto the
up-plane as "forward" to avoid twisting.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog

from .corridor import RoadOptions
from .terrain import Terrain

logger = structlog.get_logger()

WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_RIGHT = np.array([1.0, 0.0, 0.0])


@dataclass
class RoadMesh:
    """Triangle mesh buffers of one road."""

    vertices: np.ndarray  # (V, 3)
    normals: np.ndarray  # (V, 3)
    uvs: np.ndarray  # (V, 2)
    triangles: np.ndarray  # (T * 3,) vertex indices

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles) // 3


def _normalize_rows(vectors: np.ndarray) -> np.ndarray:
    lengths = np.linalg.norm(vectors, axis=-1, keepdims=True)
    return np.divide(vectors, lengths, out=np.zeros_like(vectors), where=lengths > 1e-12)


def forward_tangents(samples: np.ndarray) -> np.ndarray:
    """Unit tangents: central difference inside, one-sided at the ends."""
    fwd = np.empty_like(samples)
    fwd[0] = samples[1] - samples[0]
    fwd[-1] = samples[-1] - samples[-2]
    fwd[1:-1] = samples[2:] - samples[:-2]
    return _normalize_rows(fwd)


def quad_strip_triangles(rows: int, columns: int) -> np.ndarray:
    """
    Triangle indices for a grid of ``rows`` x ``columns`` vertices.

    Every quad (a, b) over (c, d), with a/b on one row and c/d on the next,
    becomes triangles (a, c, b) and (b, c, d).
    """
    if rows < 2 or columns < 2:
        return np.zeros(0, dtype=np.int32)
    r, k = np.meshgrid(np.arange(rows - 1), np.arange(columns - 1), indexing="ij")
    a = (r * columns + k).ravel()
    b = a + 1
    c = a + columns
    d = c + 1
    quads = np.stack([a, c, b, b, c, d], axis=-1)
    return quads.ravel().astype(np.int32)


class CorridorMeshBuilder:
    """Builds ribbon meshes that follow the terrain surface."""

    def __init__(self, terrain: Terrain, options: Optional[RoadOptions] = None):
        self.terrain = terrain
        self.options = options or RoadOptions()

    def frames(self, samples: np.ndarray):
        """
        Orthonormal (up, forward, right) frame at every sample.

        Returns:
            Tuple of three (N, 3) arrays
        """
        up = np.atleast_2d(self.terrain.normal_at(samples[:, 0], samples[:, 2]))
        degenerate = np.sum(up * up, axis=-1) < 1e-6
        up[degenerate] = WORLD_UP
        up = _normalize_rows(up)

        fwd = forward_tangents(samples)
        fwd = fwd - up * np.sum(fwd * up, axis=-1, keepdims=True)
        flat = np.sum(fwd * fwd, axis=-1) < 1e-6
        fwd = _normalize_rows(fwd)
        if np.any(flat):
            fwd[flat] = _normalize_rows(np.cross(up[flat], WORLD_RIGHT))

        right = _normalize_rows(np.cross(up, fwd))
        return up, fwd, right

    def build(self, samples) -> Optional[RoadMesh]:
        """
        Build the ribbon for one resampled route.

        Args:
            samples: (N, 3) terrain-conforming samples

        Returns:
            RoadMesh, or None for fewer than two samples
        """
        pts = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
        if len(pts) < 2:
            logger.info("Too few samples for a road mesh", samples=len(pts))
            return None

        opts = self.options
        up, _, right = self.frames(pts)

        # Cross-ribbon parameter t in [-1, 1] with a parabolic crown
        t = np.linspace(-1.0, 1.0, opts.cross_segments + 1)
        crown = opts.crown * (1.0 - t * t)
        half = opts.road_width * 0.5

        center = pts + up * opts.hover
        vertices = (
            center[:, None, :]
            + right[:, None, :] * (half * t)[None, :, None]
            + up[:, None, :] * crown[None, :, None]
        )

        arc = np.concatenate([[0.0], np.cumsum(np.linalg.norm(np.diff(pts, axis=0), axis=1))])
        u = np.repeat(arc * opts.uv_tiling, len(t))
        v = np.tile(np.linspace(0.0, 1.0, len(t)), len(pts))

        columns = len(t)
        mesh = RoadMesh(
            vertices=vertices.reshape(-1, 3).astype(np.float32),
            normals=np.repeat(up, columns, axis=0).astype(np.float32),
            uvs=np.stack([u, v], axis=-1).astype(np.float32),
            triangles=quad_strip_triangles(len(pts), columns),
        )
        logger.debug(
            "Road mesh built",
            vertices=mesh.vertex_count,
            triangles=mesh.triangle_count,
        )
        return mesh
