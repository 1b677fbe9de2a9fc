"""
Climate field synthesis.

This module implements:
- Temperature field from seeded FBM
- Moisture field from seeded FBM
- Decorrelation of both fields from each other and from elevation by
  hashing derived seeds into large coordinate offsets
"""

import numpy as np
import structlog
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .grid import Grid2D
from .noise import FractalOptions, NoiseField, hash2
from .terrain import TerrainDimensions

logger = structlog.get_logger()

TEMPERATURE_SEED_FACTOR = 17
MOISTURE_SEED_FACTOR = 29


@dataclass
class ClimateOptions:
    """Climate synthesis options."""

    temperature_scale: float = 1500.0  # World units per temperature feature
    moisture_scale: float = 1100.0  # World units per moisture feature
    offset_range: float = 10000.0  # Span of the hashed coordinate offsets
    fractal: FractalOptions = field(default_factory=FractalOptions)

    def __post_init__(self):
        if isinstance(self.fractal, dict):
            self.fractal = FractalOptions(**self.fractal)
        if self.temperature_scale <= 0 or self.moisture_scale <= 0:
            raise ValueError("Climate feature scales must be positive")


@dataclass
class ClimateMaps:
    """Temperature and moisture grids of one generation pass."""

    temperature: Grid2D
    moisture: Grid2D

    @property
    def resolution(self) -> int:
        return self.temperature.cols


class Climate:
    """Handles temperature and moisture synthesis."""

    def __init__(
        self,
        resolution: int,
        dimensions: TerrainDimensions,
        seed: int,
        options: Optional[ClimateOptions] = None,
    ):
        """
        Initialize climate synthesizer.

        Args:
            resolution: Climate grid size per side
            dimensions: World extents of the terrain
            seed: World seed; per-field seeds are derived from it
            options: Climate synthesis options
        """
        self.resolution = resolution
        self.dimensions = dimensions
        self.seed = seed
        self.options = options or ClimateOptions()
        self.noise = NoiseField(seed)

        self.temperatures: Optional[Grid2D] = None
        self.moisture: Optional[Grid2D] = None

    def _field_offset(self, derived_seed: int) -> Tuple[float, float]:
        hx, hy = hash2(derived_seed)
        return hx * self.options.offset_range, hy * self.options.offset_range

    def build_noise_map(self, scale: float, derived_seed: int) -> Grid2D:
        """
        Build one FBM field at the given feature size.

        Args:
            scale: World units per noise feature
            derived_seed: Seed hashed into the coordinate offset

        Returns:
            Field grid (values unclamped, typically within [0, 1])
        """
        res = self.resolution
        inv = 1.0 / (res - 1)
        off_x, off_z = self._field_offset(derived_seed)

        cols, rows = np.meshgrid(
            np.arange(res, dtype=np.float64), np.arange(res, dtype=np.float64)
        )
        nx = cols * inv * self.dimensions.size_x / scale + off_x
        nz = rows * inv * self.dimensions.size_z / scale + off_z

        values = self.noise.fbm(nx, nz, self.options.fractal)
        return Grid2D(res, res, values)

    def calculate_temperatures(self) -> Grid2D:
        logger.info("Calculating temperatures", resolution=self.resolution)
        self.temperatures = self.build_noise_map(
            self.options.temperature_scale, self.seed * TEMPERATURE_SEED_FACTOR
        )
        return self.temperatures

    def calculate_moisture(self) -> Grid2D:
        logger.info("Calculating moisture", resolution=self.resolution)
        self.moisture = self.build_noise_map(
            self.options.moisture_scale, self.seed * MOISTURE_SEED_FACTOR
        )
        return self.moisture

    def generate(self) -> ClimateMaps:
        """Run temperature and moisture synthesis."""
        temperature = self.calculate_temperatures()
        moisture = self.calculate_moisture()

        logger.info(
            "Climate synthesis completed",
            temperature_range=(float(temperature.data.min()), float(temperature.data.max())),
            moisture_range=(float(moisture.data.min()), float(moisture.data.max())),
        )
        return ClimateMaps(temperature=temperature, moisture=moisture)
