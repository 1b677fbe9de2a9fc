"""
Flat raster buffers shared by the generation stages.

Every grid is stored as a single row-major numpy buffer. Stages that need
vectorized access use ``as_array()``, which returns a reshaped *view*, so
writes through it land in the same buffer other stages read.
"""

import numpy as np
from typing import Optional, Tuple


class Grid2D:
    """Row-major 2D grid backed by a flat buffer."""

    def __init__(
        self,
        rows: int,
        cols: int,
        data: Optional[np.ndarray] = None,
        dtype=np.float32,
    ):
        if rows <= 0 or cols <= 0:
            raise ValueError(f"Grid size must be positive, got {rows}x{cols}")

        self.rows = rows
        self.cols = cols

        if data is None:
            self.data = np.zeros(rows * cols, dtype=dtype)
        else:
            flat = np.ascontiguousarray(data, dtype=dtype).reshape(-1)
            if flat.size != rows * cols:
                raise ValueError(
                    f"Buffer of {flat.size} values does not fit a {rows}x{cols} grid"
                )
            self.data = flat

    @classmethod
    def from_array(cls, array: np.ndarray, dtype=np.float32) -> "Grid2D":
        """Build a grid from a 2D array (copied into a flat buffer)."""
        array = np.asarray(array)
        if array.ndim != 2:
            raise ValueError(f"Expected a 2D array, got shape {array.shape}")
        return cls(array.shape[0], array.shape[1], array.copy(), dtype=dtype)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.rows, self.cols

    def index(self, row: int, col: int) -> int:
        """Flat index of (row, col), bounds checked."""
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(
                f"Cell ({row}, {col}) outside {self.rows}x{self.cols} grid"
            )
        return row * self.cols + col

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def get(self, row: int, col: int):
        return self.data[self.index(row, col)]

    def set(self, row: int, col: int, value) -> None:
        self.data[self.index(row, col)] = value

    def __getitem__(self, cell: Tuple[int, int]):
        return self.get(*cell)

    def __setitem__(self, cell: Tuple[int, int], value) -> None:
        self.set(cell[0], cell[1], value)

    def as_array(self) -> np.ndarray:
        """(rows, cols) view over the flat buffer."""
        return self.data.reshape(self.rows, self.cols)

    def clamp(self, low: float = 0.0, high: float = 1.0) -> None:
        np.clip(self.data, low, high, out=self.data)

    def copy(self) -> "Grid2D":
        return Grid2D(self.rows, self.cols, self.data.copy(), dtype=self.data.dtype)


class LayeredGrid:
    """
    Per-cell weight vectors (splat map) backed by a flat buffer.

    Layout is row-major over cells with the layer index fastest, i.e. the
    weights of cell (row, col) are the contiguous slice
    ``data[(row * cols + col) * layers : ... + layers]``.
    """

    def __init__(self, rows: int, cols: int, layers: int, dtype=np.float32):
        if rows <= 0 or cols <= 0:
            raise ValueError(f"Grid size must be positive, got {rows}x{cols}")
        if layers <= 0:
            raise ValueError(f"Layer count must be positive, got {layers}")

        self.rows = rows
        self.cols = cols
        self.layers = layers
        self.data = np.zeros(rows * cols * layers, dtype=dtype)

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.rows, self.cols, self.layers

    def offset(self, row: int, col: int) -> int:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(
                f"Cell ({row}, {col}) outside {self.rows}x{self.cols} grid"
            )
        return (row * self.cols + col) * self.layers

    def weights(self, row: int, col: int) -> np.ndarray:
        """View of the weight vector of one cell."""
        start = self.offset(row, col)
        return self.data[start:start + self.layers]

    def as_array(self) -> np.ndarray:
        """(rows, cols, layers) view over the flat buffer."""
        return self.data.reshape(self.rows, self.cols, self.layers)

    def layer_sums(self) -> np.ndarray:
        return self.as_array().sum(axis=2, dtype=np.float64)

    def copy(self) -> "LayeredGrid":
        clone = LayeredGrid(self.rows, self.cols, self.layers, dtype=self.data.dtype)
        clone.data[:] = self.data
        return clone
