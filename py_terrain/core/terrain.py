"""
World-space queries over the shared elevation grid.

World coordinates use x/z for the horizontal plane and y for height. The
elevation grid is indexed ``[z, x]`` (row = z) and spans the terrain size
with ``resolution - 1`` cells per axis.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple, Union
from scipy import ndimage

from .grid import Grid2D

ArrayLike = Union[float, np.ndarray]


@dataclass
class TerrainDimensions:
    """World extents of the terrain."""

    size_x: float = 2048.0
    size_z: float = 2048.0
    height_scale: float = 350.0


class Terrain:
    """Bilinear height, steepness and normal queries in world units."""

    def __init__(self, elevation: Grid2D, dimensions: TerrainDimensions):
        self.elevation = elevation
        self.dimensions = dimensions
        self.resolution = elevation.cols

        self.cell_size_x = dimensions.size_x / (elevation.cols - 1)
        self.cell_size_z = dimensions.size_z / (elevation.rows - 1)

    @property
    def size_x(self) -> float:
        return self.dimensions.size_x

    @property
    def size_z(self) -> float:
        return self.dimensions.size_z

    @property
    def height_scale(self) -> float:
        return self.dimensions.height_scale

    @property
    def center(self) -> Tuple[float, float]:
        return self.size_x * 0.5, self.size_z * 0.5

    def normalize(self, x: ArrayLike, z: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
        """World x/z to normalized [0, 1] coordinates (clamped)."""
        nx = np.clip(np.asarray(x, dtype=np.float64) / self.size_x, 0.0, 1.0)
        nz = np.clip(np.asarray(z, dtype=np.float64) / self.size_z, 0.0, 1.0)
        return nx, nz

    def height01(self, nx: ArrayLike, nz: ArrayLike) -> ArrayLike:
        """Bilinear normalized height at normalized coordinates."""
        nx = np.asarray(nx, dtype=np.float64)
        nz = np.asarray(nz, dtype=np.float64)
        cols = np.clip(nx, 0.0, 1.0) * (self.elevation.cols - 1)
        rows = np.clip(nz, 0.0, 1.0) * (self.elevation.rows - 1)
        rows, cols = np.broadcast_arrays(rows, cols)
        values = ndimage.map_coordinates(
            self.elevation.as_array(),
            [np.atleast_1d(rows).ravel(), np.atleast_1d(cols).ravel()],
            output=np.float64,
            order=1,
            mode="nearest",
        )
        if rows.ndim == 0:
            return float(values[0])
        return values.reshape(rows.shape)

    def sample_height(self, x: ArrayLike, z: ArrayLike) -> ArrayLike:
        """World height (y) at world x/z."""
        nx, nz = self.normalize(x, z)
        return self.height01(nx, nz) * self.height_scale

    def height01_at_cell(self, x: float, z: float) -> float:
        """Normalized height of the grid cell containing world x/z (truncated index)."""
        nx, nz = self.normalize(x, z)
        col = min(max(int(nx * (self.elevation.cols - 1)), 0), self.elevation.cols - 1)
        row = min(max(int(nz * (self.elevation.rows - 1)), 0), self.elevation.rows - 1)
        return float(self.elevation.get(row, col))

    def _gradient(self, nx: ArrayLike, nz: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
        """World-space height gradient dy/dx, dy/dz by central differences."""
        nx = np.asarray(nx, dtype=np.float64)
        nz = np.asarray(nz, dtype=np.float64)
        du = 1.0 / (self.elevation.cols - 1)
        dv = 1.0 / (self.elevation.rows - 1)

        h_left = self.height01(np.clip(nx - du, 0.0, 1.0), nz)
        h_right = self.height01(np.clip(nx + du, 0.0, 1.0), nz)
        h_down = self.height01(nx, np.clip(nz - dv, 0.0, 1.0))
        h_up = self.height01(nx, np.clip(nz + dv, 0.0, 1.0))

        dydx = (np.asarray(h_right) - np.asarray(h_left)) * self.height_scale / (2.0 * self.cell_size_x)
        dydz = (np.asarray(h_up) - np.asarray(h_down)) * self.height_scale / (2.0 * self.cell_size_z)
        return dydx, dydz

    def steepness(self, nx: ArrayLike, nz: ArrayLike) -> ArrayLike:
        """Slope angle in degrees at normalized coordinates."""
        dydx, dydz = self._gradient(nx, nz)
        degrees = np.degrees(np.arctan(np.hypot(dydx, dydz)))
        if np.ndim(degrees) == 0:
            return float(degrees)
        return degrees

    def normal(self, nx: ArrayLike, nz: ArrayLike) -> np.ndarray:
        """Unit surface normal(s) at normalized coordinates, shape (..., 3)."""
        dydx, dydz = self._gradient(nx, nz)
        normals = np.stack(
            [-np.asarray(dydx), np.ones_like(dydx), -np.asarray(dydz)], axis=-1
        )
        return normals / np.linalg.norm(normals, axis=-1, keepdims=True)

    def steepness_at(self, x: float, z: float) -> float:
        nx, nz = self.normalize(x, z)
        return self.steepness(nx, nz)

    def normal_at(self, x: float, z: float) -> np.ndarray:
        nx, nz = self.normalize(x, z)
        return self.normal(nx, nz)
