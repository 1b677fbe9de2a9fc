"""
Road corridor editing.

Each resampled road sample stamps an elliptical brush into two rasters:
- the elevation grid, lowered by a smoothstep profile (never raised,
  never below zero)
- the layered weight grid, where the road layer is raised to the brush
  strength and the other layers are rescaled so every cell still sums to 1

Brush radii are converted to cells per axis for each raster, since the
heightmap and the weight map have different cell-to-world ratios.
"""

from typing import Optional, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .grid import Grid2D, LayeredGrid
from .noise import smoothstep
from .terrain import TerrainDimensions

logger = structlog.get_logger()


class RoadOptions(BaseModel):
    """Road corridor and mesh options."""

    road_width: float = Field(default=8.0, gt=0, description="Road width edge to edge")
    shoulder_width: float = Field(
        default=6.0, ge=0, description="Blend shoulder beyond the road edge"
    )
    cut_depth: float = Field(
        default=0.35, ge=0, description="Carve depth at the centreline (0 disables)"
    )
    feather: float = Field(default=2.0, ge=0, description="Extra brush falloff")
    hover: float = Field(
        default=0.04, ge=0, description="Mesh offset along the terrain normal"
    )
    crown: float = Field(default=0.06, ge=0, description="Centreline crown height")
    uv_tiling: float = Field(default=0.15, ge=0, description="U repeats per world unit")
    cross_segments: int = Field(
        default=1, ge=1, le=16, description="Mesh spans across the road"
    )
    build_mesh: bool = Field(default=True, description="Build ribbon meshes")
    road_layer_index: Optional[int] = Field(
        default=5, description="Weight layer painted as road (None disables paint)"
    )


class BrushFootprint:
    """Brush radii of one raster, in cells per axis."""

    def __init__(
        self,
        world_size: Tuple[float, float],
        cells: Tuple[int, int],
        spacing: Tuple[float, float],
        options: RoadOptions,
    ):
        """
        Args:
            world_size: Terrain (size_x, size_z)
            cells: Raster (cols, rows) used to place the brush centre
            spacing: World units per cell along (x, z)
            options: Road options
        """
        self.world_size = world_size
        self.cells = cells

        half_width = options.road_width * 0.5
        base = np.array(
            [
                (half_width + options.shoulder_width) / spacing[0],
                (half_width + options.shoulder_width) / spacing[1],
            ]
        )
        feather = np.array([options.feather / spacing[0], options.feather / spacing[1]])

        self.extent = base + feather
        self.falloff_radius = base + np.maximum(1.0, feather)

    def stamp(self, x: float, z: float):
        """
        Window bounds and normalized brush distance around a world point.

        Returns:
            (z0, z1, x0, x1, d) with half-open bounds and distances shaped
            (z1 - z0, x1 - x0)
        """
        cols, rows = self.cells
        cx = int(np.rint(x / self.world_size[0] * (cols - 1)))
        cz = int(np.rint(z / self.world_size[1] * (rows - 1)))

        x0 = max(0, int(np.floor(cx - self.extent[0])))
        x1 = min(cols - 1, int(np.ceil(cx + self.extent[0]))) + 1
        z0 = max(0, int(np.floor(cz - self.extent[1])))
        z1 = min(rows - 1, int(np.ceil(cz + self.extent[1]))) + 1
        if x0 >= x1 or z0 >= z1:
            return z0, z1, x0, x1, None

        dx = (np.arange(x0, x1) - cx) / self.falloff_radius[0]
        dz = (np.arange(z0, z1) - cz) / self.falloff_radius[1]
        d = np.sqrt(dz[:, None] ** 2 + dx[None, :] ** 2)
        return z0, z1, x0, x1, d


class CorridorEditor:
    """Carves and paints road corridors into the shared grids."""

    def __init__(
        self,
        elevation: Grid2D,
        weights: Optional[LayeredGrid],
        dimensions: TerrainDimensions,
        options: Optional[RoadOptions] = None,
    ):
        """
        Initialize corridor editor.

        Args:
            elevation: Normalized elevation grid, modified in place
            weights: Layered weight grid, modified in place (None skips paint)
            dimensions: World extents and height scale
            options: Road options
        """
        self.elevation = elevation
        self.weights = weights
        self.dimensions = dimensions
        self.options = options or RoadOptions()

        size = (dimensions.size_x, dimensions.size_z)
        self._height_brush = BrushFootprint(
            size,
            (elevation.cols, elevation.rows),
            (
                dimensions.size_x / (elevation.cols - 1),
                dimensions.size_z / (elevation.rows - 1),
            ),
            self.options,
        )

        self.road_layer = self._resolve_road_layer()
        self._weight_brush = None
        if self.road_layer is not None:
            self._weight_brush = BrushFootprint(
                size,
                (weights.cols, weights.rows),
                (dimensions.size_x / weights.cols, dimensions.size_z / weights.rows),
                self.options,
            )

        self.samples_applied = 0

    def _resolve_road_layer(self) -> Optional[int]:
        index = self.options.road_layer_index
        if self.weights is None or index is None:
            return None
        if not 0 <= index < self.weights.layers:
            logger.warning(
                "Road layer not present, skipping weight paint",
                road_layer_index=index,
                layer_count=self.weights.layers,
            )
            return None
        return index

    @property
    def carves(self) -> bool:
        return self.options.cut_depth > 0

    @property
    def paints(self) -> bool:
        return self.road_layer is not None

    def carve_at(self, x: float, z: float) -> None:
        """Lower the elevation grid under one brush stamp."""
        z0, z1, x0, x1, d = self._height_brush.stamp(x, z)
        if d is None:
            return
        depth = (1.0 - smoothstep(d)) * self.options.cut_depth / self.dimensions.height_scale
        window = self.elevation.as_array()[z0:z1, x0:x1]
        window[...] = np.maximum(0.0, window - depth)

    def paint_at(self, x: float, z: float) -> None:
        """Blend the road layer into the weight grid under one brush stamp."""
        z0, z1, x0, x1, d = self._weight_brush.stamp(x, z)
        if d is None:
            return

        layers = self.weights.layers
        road = self.road_layer
        window = self.weights.as_array()[z0:z1, x0:x1, :]

        if layers == 1:
            window[..., road] = 1.0
            return

        strength = 1.0 - smoothstep(d)
        cell = window.astype(np.float64)
        current = cell[..., road]
        others = np.ones(layers, dtype=bool)
        others[road] = False

        other_sum = cell[..., others].sum(axis=-1)
        target = np.maximum(current, strength)
        remaining = 1.0 - target

        has_others = other_sum > 0
        scale = np.divide(
            remaining, other_sum, out=np.zeros_like(remaining), where=has_others
        )
        even = remaining / (layers - 1)
        blended = np.where(
            has_others[..., None],
            cell[..., others] * scale[..., None],
            even[..., None],
        )

        cell[..., others] = blended
        cell[..., road] = target
        window[...] = cell

    def apply(self, samples) -> None:
        """
        Carve and paint along a resampled route.

        Args:
            samples: (N, 3) world-space samples
        """
        pts = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
        if len(pts) < 2:
            logger.info("Corridor has fewer than two samples, skipping", samples=len(pts))
            return

        for x, _, z in pts:
            if self.carves:
                self.carve_at(x, z)
            if self.paints:
                self.paint_at(x, z)
        self.samples_applied += len(pts)

        logger.debug(
            "Corridor applied",
            samples=len(pts),
            carved=self.carves,
            painted=self.paints,
        )
