"""
Heightfield synthesis for island/continent terrain.

This module builds the normalized elevation grid:
- Domain-warped FBM sampled at a configurable feature size
- Radial island falloff with a noisy coastline
- Continent shaping (power curve blended with smoothstep)
- Coastal smoothing band around sea level
"""

import numpy as np
import structlog
from dataclasses import dataclass, field
from typing import Optional

from .grid import Grid2D
from .noise import FractalOptions, NoiseField, inverse_lerp, lerp, smoothstep
from .terrain import TerrainDimensions

logger = structlog.get_logger()


@dataclass
class HeightmapOptions:
    """Heightfield synthesis parameters."""

    noise_scale: float = 900.0  # World units per noise feature
    fractal: FractalOptions = field(default_factory=FractalOptions)
    warp_strength: float = 120.0  # World-unit amplitude of the domain warp
    continent_bias: float = 0.6  # 0 = eroded/low, 1 = plateaued/high
    height_exponent: float = 1.2  # Power curve applied before shaping
    low_land_scale: float = 0.85  # Linear branch multiplier of the shaping blend
    coast_noise_frequency: float = 1.5  # Frequency of the coastline perturbation
    coast_falloff_range: tuple = (0.8, 1.2)  # Falloff multiplier range from coast noise
    coastal_band: float = 0.07  # Half-width of the smoothing band around sea level
    shore_jitter_frequency: float = 0.08  # Per-cell frequency of shoreline jitter
    shore_jitter_amplitude: float = 0.01  # Peak-to-peak shoreline jitter

    def __post_init__(self):
        if isinstance(self.fractal, dict):
            self.fractal = FractalOptions(**self.fractal)
        self.continent_bias = float(np.clip(self.continent_bias, 0.0, 1.0))
        self.coastal_band = max(0.0, float(self.coastal_band))
        if self.noise_scale <= 0:
            raise ValueError(f"noise_scale must be positive, got {self.noise_scale}")


class HeightmapGenerator:
    """
    Generates the normalized elevation grid.

    Every cell is evaluated independently, so the whole grid is computed
    with vectorized numpy operations.
    """

    def __init__(
        self,
        resolution: int,
        dimensions: TerrainDimensions,
        seed: int,
        options: Optional[HeightmapOptions] = None,
    ):
        """
        Initialize the heightfield synthesizer.

        Args:
            resolution: Grid size per side (2^n + 1)
            dimensions: World extents of the terrain
            seed: Seed for the noise field
            options: Synthesis parameters
        """
        self.resolution = resolution
        self.dimensions = dimensions
        self.seed = seed
        self.options = options or HeightmapOptions()
        self.noise = NoiseField(seed)

        self.heights: Optional[Grid2D] = None

    def _cell_coordinates(self):
        res = self.resolution
        cols, rows = np.meshgrid(
            np.arange(res, dtype=np.float64), np.arange(res, dtype=np.float64)
        )
        return cols, rows

    def build_height01(self) -> Grid2D:
        """
        Synthesize the island heightfield (before coastal smoothing).

        Returns:
            Elevation grid with values in [0, 1]
        """
        logger.info(
            "Synthesizing heightfield",
            resolution=self.resolution,
            continent_bias=self.options.continent_bias,
        )

        opts = self.options
        res = self.resolution
        inv = 1.0 / (res - 1)
        center = (res - 1) / 2.0
        max_radius = center

        x, z = self._cell_coordinates()
        nx = x * inv
        nz = z * inv

        dist_to_center = np.hypot(x - center, z - center)
        radial_falloff = np.clip(1.0 - dist_to_center / max_radius, 0.0, 1.0)

        warp_x, warp_z = self.noise.warp(nx, nz, opts.warp_strength)

        e = self.noise.fbm(
            (nx * self.dimensions.size_x + warp_x) / opts.noise_scale,
            (nz * self.dimensions.size_z + warp_z) / opts.noise_scale,
            opts.fractal,
        )

        # Irregular coastline
        coast_offset = self.seed % 1024
        coast_noise = self.noise.perlin(
            (nx + coast_offset) * opts.coast_noise_frequency,
            (nz + coast_offset) * opts.coast_noise_frequency,
        )
        low, high = opts.coast_falloff_range
        radial_falloff = radial_falloff * lerp(low, high, coast_noise)

        e = e * radial_falloff

        # Continent shaping
        e = np.power(np.clip(e, 0.0, 1.0), opts.height_exponent)
        e = lerp(e * opts.low_land_scale, smoothstep(e), opts.continent_bias)

        # Hard ocean beyond the island bound
        e[dist_to_center > max_radius] = 0.0

        self.heights = Grid2D(res, res, np.clip(e, 0.0, 1.0))
        return self.heights

    def apply_coastal_smoothing(self, sea_level: float) -> Grid2D:
        """
        Pull cells inside the coastal band toward sea level.

        A cell at the lower band edge lands on sea level, one at the upper
        edge keeps its height; a small noise jitter breaks up straight
        shorelines.

        Args:
            sea_level: Normalized sea level

        Returns:
            The smoothed elevation grid (modified in place)
        """
        if self.heights is None:
            self.build_height01()

        band = self.options.coastal_band
        if band <= 0:
            return self.heights

        h = self.heights.as_array()
        lower = sea_level - band
        upper = sea_level + band
        mask = (h > lower) & (h < upper)

        x, z = self._cell_coordinates()
        offset = self.seed % 1024
        jitter = (
            np.asarray(
                self.noise.perlin(
                    (x[mask] + offset) * self.options.shore_jitter_frequency,
                    (z[mask] + offset) * self.options.shore_jitter_frequency,
                )
            )
            - 0.5
        ) * self.options.shore_jitter_amplitude

        t = inverse_lerp(lower, upper, h[mask])
        h[mask] = lerp(sea_level, h[mask].astype(np.float64), t) + jitter
        self.heights.clamp(0.0, 1.0)

        logger.info(
            "Coastal smoothing completed",
            cells_smoothed=int(mask.sum()),
            sea_level=sea_level,
        )
        return self.heights

    def generate(self, sea_level: float) -> Grid2D:
        """Build the heightfield and run coastal smoothing."""
        self.build_height01()
        return self.apply_coastal_smoothing(sea_level)
