"""
Blue-noise point sampling.

Two samplers:
- ``PoissonDiskSampler``: Bridson active-set growth over a rectangle with a
  uniform acceleration grid
- ``sample_disk``: rejection sampling inside a disk with an explicit
  pairwise distance check, used for monument candidates
"""

import math
from typing import Tuple

import numpy as np
import structlog

logger = structlog.get_logger()

# Attempt budget of ``sample_disk`` per requested point
DISK_ATTEMPTS_PER_POINT = 50


class PoissonDiskSampler:
    """Poisson-disk point set over ``[0, width) x [0, height)``."""

    def __init__(
        self, width: float, height: float, radius: float, seed: int, k: int = 30
    ):
        """
        Initialize the sampler.

        Args:
            width: Domain extent along x
            height: Domain extent along y
            radius: Minimum distance between samples
            seed: Seed for the candidate generator
            k: Candidates tried per active point before it is retired
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Domain must be positive, got {width}x{height}")
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")

        self.width = width
        self.height = height
        self.radius = radius
        self.k = k
        self.cell_size = radius / math.sqrt(2.0)
        self.rng = np.random.default_rng(seed & 0xFFFFFFFF)

        self.grid_w = int(math.ceil(width / self.cell_size))
        self.grid_h = int(math.ceil(height / self.cell_size))
        # Index into self.samples, -1 when empty; one sample per cell at most
        self.grid = np.full((self.grid_h, self.grid_w), -1, dtype=np.int64)

        self.samples = []
        self.active = []

        self._add_sample((width * 0.5, height * 0.5))

    def _cell_of(self, point: Tuple[float, float]) -> Tuple[int, int]:
        gx = min(int(point[0] / self.cell_size), self.grid_w - 1)
        gy = min(int(point[1] / self.cell_size), self.grid_h - 1)
        return gx, gy

    def _add_sample(self, point: Tuple[float, float]) -> None:
        self.samples.append(point)
        self.active.append(point)
        gx, gy = self._cell_of(point)
        self.grid[gy, gx] = len(self.samples) - 1

    def _is_far(self, point: Tuple[float, float]) -> bool:
        gx, gy = self._cell_of(point)
        r_sq = self.radius * self.radius
        y0, y1 = max(0, gy - 2), min(self.grid_h - 1, gy + 2)
        x0, x1 = max(0, gx - 2), min(self.grid_w - 1, gx + 2)

        for idx in self.grid[y0:y1 + 1, x0:x1 + 1].ravel():
            if idx < 0:
                continue
            sx, sy = self.samples[idx]
            if (sx - point[0]) ** 2 + (sy - point[1]) ** 2 < r_sq:
                return False
        return True

    def generate(self) -> np.ndarray:
        """
        Grow the point set until no active points remain.

        Returns:
            (N, 2) array of sample positions
        """
        while self.active:
            i = int(self.rng.integers(len(self.active)))
            sx, sy = self.active[i]
            found = False

            for _ in range(self.k):
                angle = self.rng.random() * math.pi * 2.0
                r = self.radius * (1.0 + self.rng.random())
                cand = (sx + math.cos(angle) * r, sy + math.sin(angle) * r)
                if not (0.0 <= cand[0] < self.width and 0.0 <= cand[1] < self.height):
                    continue
                if self._is_far(cand):
                    self._add_sample(cand)
                    found = True
                    break

            if not found:
                self.active.pop(i)

        logger.debug("Poisson disk sampling completed", samples=len(self.samples))
        return np.asarray(self.samples, dtype=np.float64).reshape(-1, 2)


def sample_disk(
    center: Tuple[float, float],
    radius: float,
    min_distance: float,
    max_points: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """
    Rejection-sample up to ``max_points`` points inside a disk.

    Candidates are uniform in angle and radius around ``center`` with a
    ±0.3 * min_distance jitter per axis. A candidate closer than
    ``min_distance`` to an accepted point is rejected. The search stops after
    ``max_points * 50`` attempts, so fewer points may be returned.

    Args:
        center: Disk centre (x, z)
        radius: Disk radius
        min_distance: Minimum pairwise distance
        max_points: Requested point count
        rng: Random generator

    Returns:
        (N, 2) array of accepted points, N <= max_points
    """
    points = []
    attempts = 0
    budget = max_points * DISK_ATTEMPTS_PER_POINT
    min_dist_sq = min_distance * min_distance
    jitter = min_distance * 0.3

    while len(points) < max_points and attempts < budget:
        angle = rng.uniform(0.0, math.pi * 2.0)
        r = rng.uniform(0.0, radius)
        x = center[0] + math.cos(angle) * r + rng.uniform(-jitter, jitter)
        z = center[1] + math.sin(angle) * r + rng.uniform(-jitter, jitter)

        if all((px - x) ** 2 + (pz - z) ** 2 >= min_dist_sq for px, pz in points):
            points.append((x, z))
        attempts += 1

    if len(points) < max_points:
        logger.info(
            "Disk sampling under-populated",
            requested=max_points,
            placed=len(points),
            attempts=attempts,
        )

    return np.asarray(points, dtype=np.float64).reshape(-1, 2)
