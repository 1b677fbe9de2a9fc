"""
River carving by steepest descent.

This module implements:
- Random high-ground river sources
- 8-directional steepest-descent walks to the sea or a local minimum
- Dribble rejection for short paths
- Radially feathered channel carving into the shared elevation grid

This is a heuristic carve, not a flow simulation.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
import structlog

from .grid import Grid2D

logger = structlog.get_logger()

_NEIGHBOR_OFFSETS = [
    (dz, dx) for dz in (-1, 0, 1) for dx in (-1, 0, 1) if not (dx == 0 and dz == 0)
]


@dataclass
class HydrologyOptions:
    """River carving options."""

    river_count: int = 10  # Target number of carved rivers
    carve_depth: float = 3.5  # Channel depth factor
    depth_scale: float = 0.0015  # Converts carve_depth into normalized height
    start_margin: float = 0.1  # Sources must sit this far above sea level
    min_path_length: int = 32  # Shorter descents are discarded as dribbles
    carve_radius: float = 3.0  # Falloff radius in cells
    carve_extent: int = 4  # Half-size of the carve window in cells
    attempts_per_river: int = 50  # Retry budget multiplier
    max_steps_factor: int = 4  # Walk length cap as a multiple of resolution

    def __post_init__(self):
        self.river_count = max(0, int(self.river_count))
        if self.carve_radius <= 0:
            raise ValueError(f"carve_radius must be positive, got {self.carve_radius}")


@dataclass
class River:
    """Represents a carved river."""

    id: int
    cells: List[Tuple[int, int]] = field(default_factory=list)  # (row, col) path

    @property
    def source_cell(self) -> Tuple[int, int]:
        return self.cells[0]

    @property
    def mouth_cell(self) -> Tuple[int, int]:
        return self.cells[-1]

    @property
    def length(self) -> float:
        """Path length in cells (diagonal steps count √2)."""
        if len(self.cells) < 2:
            return 0.0
        path = np.asarray(self.cells, dtype=np.float64)
        return float(np.sum(np.linalg.norm(np.diff(path, axis=0), axis=1)))


class Hydrology:
    """Carves rivers into the elevation grid."""

    def __init__(
        self,
        heights: Grid2D,
        sea_level: float,
        seed: int,
        options: Optional[HydrologyOptions] = None,
    ):
        """
        Initialize river carver.

        Args:
            heights: Normalized elevation grid, modified in place
            sea_level: Normalized sea level
            seed: Seed for source selection
            options: River carving options
        """
        self.heights = heights
        self.sea_level = sea_level
        self.options = options or HydrologyOptions()
        self.rng = np.random.default_rng(seed & 0xFFFFFFFF)

        self.rivers: List[River] = []
        self._kernel = self._build_carve_kernel()

    def _build_carve_kernel(self) -> np.ndarray:
        extent = self.options.carve_extent
        offsets = np.arange(-extent, extent + 1, dtype=np.float64)
        dz, dx = np.meshgrid(offsets, offsets, indexing="ij")
        distance = np.sqrt(dx * dx + dz * dz)
        falloff = np.clip(1.0 - distance / self.options.carve_radius, 0.0, 1.0)
        return falloff * self.options.carve_depth * self.options.depth_scale

    def trace_descent(self, row: int, col: int) -> List[Tuple[int, int]]:
        """
        Walk downhill from (row, col) to the sea or a local minimum.

        Args:
            row: Start row
            col: Start column

        Returns:
            Visited cells including the start
        """
        h = self.heights.as_array()
        rows, cols = h.shape
        max_steps = self.options.max_steps_factor * rows
        path = []

        for _ in range(max_steps):
            path.append((row, col))
            current = h[row, col]
            if current <= self.sea_level:
                break

            best = (row, col)
            best_height = current
            for dz, dx in _NEIGHBOR_OFFSETS:
                nr, nc = row + dz, col + dx
                if not (0 <= nr < rows and 0 <= nc < cols):
                    continue
                if h[nr, nc] < best_height:
                    best_height = h[nr, nc]
                    best = (nr, nc)

            if best == (row, col):
                break  # local minimum
            row, col = best

        return path

    def carve_path(self, path: List[Tuple[int, int]]) -> None:
        """Lower the grid along a path with a feathered channel profile."""
        h = self.heights.as_array()
        rows, cols = h.shape
        extent = self.options.carve_extent

        for row, col in path:
            r0, r1 = max(0, row - extent), min(rows, row + extent + 1)
            c0, c1 = max(0, col - extent), min(cols, col + extent + 1)
            kernel = self._kernel[
                r0 - (row - extent):r1 - (row - extent),
                c0 - (col - extent):c1 - (col - extent),
            ]
            window = h[r0:r1, c0:c1]
            window[...] = np.maximum(window - kernel, 0.0)

    def generate_rivers(self) -> List[River]:
        """
        Carve up to ``river_count`` rivers.

        Returns:
            Carved rivers in creation order
        """
        opts = self.options
        logger.info("Carving rivers", river_count=opts.river_count)

        h = self.heights.as_array()
        rows, cols = h.shape
        tries = opts.river_count * opts.attempts_per_river
        dribbles = 0

        while tries > 0 and len(self.rivers) < opts.river_count:
            tries -= 1
            col = int(self.rng.integers(cols))
            row = int(self.rng.integers(rows))
            if h[row, col] < self.sea_level + opts.start_margin:
                continue

            path = self.trace_descent(row, col)
            if len(path) < opts.min_path_length:
                dribbles += 1
                continue

            self.carve_path(path)
            self.rivers.append(River(id=len(self.rivers) + 1, cells=path))

        if len(self.rivers) < opts.river_count:
            logger.warning(
                "River budget exhausted",
                requested=opts.river_count,
                carved=len(self.rivers),
            )

        logger.info(
            "River carving completed",
            rivers=len(self.rivers),
            dribbles_discarded=dribbles,
        )
        return self.rivers
