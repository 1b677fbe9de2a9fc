"""
Biome classification based on height, temperature and moisture.

This module implements:
- Range-gated biome scoring against an ordered definition table
- Argmax classification onto the alphamap grid
- One-hot layered weight map (blending happens later, in corridor editing)
"""

import structlog
import numpy as np
from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from .climate import ClimateMaps
from .grid import Grid2D, LayeredGrid
from .noise import inverse_lerp

logger = structlog.get_logger()

# Score of a definition whose ranges exclude the sample; never selected
NO_MATCH_SCORE = float("-inf")

# Keeps a sample sitting exactly on a range centre from hitting the bound
CENTER_EPSILON = 1e-5


class BiomeDefinition(BaseModel):
    """Externally supplied biome: match ranges plus target weight layer."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="Biome", description="Display name")
    min_height: float = Field(default=0.0, ge=0.0, le=1.0)
    max_height: float = Field(default=1.0, ge=0.0, le=1.0)
    min_temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    max_temperature: float = Field(default=1.0, ge=0.0, le=1.0)
    min_moisture: float = Field(default=0.0, ge=0.0, le=1.0)
    max_moisture: float = Field(default=1.0, ge=0.0, le=1.0)
    layer_index: int = Field(default=0, ge=0, description="Target weight-map layer")
    density: float = Field(
        default=0.2, ge=0.0, description="Prop density (objects per 100x100 area)"
    )

    def match_score(self, height, temperature, moisture):
        """
        Score a sample (scalars or equally shaped arrays).

        Samples outside any range score ``NO_MATCH_SCORE``. Otherwise each
        axis contributes 1 at its range centre falling toward 0 at the
        distance of the range's upper bound; higher is better.
        """
        h = np.asarray(height, dtype=np.float64)
        t = np.asarray(temperature, dtype=np.float64)
        m = np.asarray(moisture, dtype=np.float64)

        center_h = 0.5 * (self.min_height + self.max_height)
        center_t = 0.5 * (self.min_temperature + self.max_temperature)
        center_m = 0.5 * (self.min_moisture + self.max_moisture)

        dh = inverse_lerp(self.max_height, self.min_height, np.abs(h - center_h) + CENTER_EPSILON)
        dt = inverse_lerp(self.max_temperature, self.min_temperature, np.abs(t - center_t) + CENTER_EPSILON)
        dm = inverse_lerp(self.max_moisture, self.min_moisture, np.abs(m - center_m) + CENTER_EPSILON)

        outside = (
            (h < self.min_height) | (h > self.max_height)
            | (t < self.min_temperature) | (t > self.max_temperature)
            | (m < self.min_moisture) | (m > self.max_moisture)
        )
        score = np.where(outside, NO_MATCH_SCORE, dh + dt + dm)
        if score.ndim == 0:
            return float(score)
        return score


def default_biome_table() -> List[BiomeDefinition]:
    """
    Biome table used when none is supplied.

    Layers: 0 sand, 1 grass, 2 forest floor, 3 rock, 4 snow, 5 road.
    """
    return [
        BiomeDefinition(name="Seabed", max_height=0.28, layer_index=0, density=0.0),
        BiomeDefinition(name="Beach", min_height=0.26, max_height=0.34, layer_index=0, density=0.02),
        BiomeDefinition(
            name="Grassland", min_height=0.3, max_height=0.6,
            min_temperature=0.3, max_moisture=0.55, layer_index=1, density=0.1,
        ),
        BiomeDefinition(
            name="Forest", min_height=0.3, max_height=0.65,
            min_temperature=0.2, min_moisture=0.45, layer_index=2, density=0.6,
        ),
        BiomeDefinition(
            name="Desert", min_height=0.3, max_height=0.55,
            min_temperature=0.6, max_moisture=0.35, layer_index=0, density=0.02,
        ),
        BiomeDefinition(
            name="Tundra", min_height=0.3, max_height=0.7,
            max_temperature=0.35, layer_index=3, density=0.05,
        ),
        BiomeDefinition(name="Mountain", min_height=0.55, max_height=0.85, layer_index=3, density=0.05),
        BiomeDefinition(name="Snow", min_height=0.8, layer_index=4, density=0.0),
    ]


class BiomeClassifier:
    """Handles biome classification and the initial weight map."""

    def __init__(
        self,
        heights: Grid2D,
        climate: ClimateMaps,
        biomes: Optional[List[BiomeDefinition]],
        resolution: int,
        layer_count: int,
    ):
        """
        Initialize biome classifier.

        Args:
            heights: Normalized elevation grid
            climate: Temperature and moisture grids
            biomes: Ordered biome table (read only)
            resolution: Alphamap (classification) resolution
            layer_count: Number of weight-map layers
        """
        self.heights = heights
        self.climate = climate
        self.biomes = list(biomes or [])
        self.resolution = resolution
        self.layer_count = layer_count

        # Classification results
        self.biome_index: Optional[Grid2D] = None
        self.weights: Optional[LayeredGrid] = None

    def _nearest_indices(self, source_resolution: int) -> np.ndarray:
        """Source-grid index of every classification row/column."""
        res = self.resolution
        steps = np.arange(res, dtype=np.float64)
        scale = (source_resolution - 1) / (res - 1) if res > 1 else 0.0
        return np.clip(np.rint(steps * scale).astype(np.int64), 0, source_resolution - 1)

    def _resample(self, grid: Grid2D) -> np.ndarray:
        rows = self._nearest_indices(grid.rows)
        cols = self._nearest_indices(grid.cols)
        return grid.as_array()[np.ix_(rows, cols)].astype(np.float64)

    def sample_inputs(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Height, temperature and moisture at every classification cell."""
        return (
            self._resample(self.heights),
            self._resample(self.climate.temperature),
            self._resample(self.climate.moisture),
        )

    def classify_biomes(self) -> Grid2D:
        """
        Classify every alphamap cell into a biome index.

        Returns:
            Grid of biome indices into the definition table
        """
        logger.info(
            "Classifying biomes",
            resolution=self.resolution,
            definitions=len(self.biomes),
        )
        res = self.resolution

        if not self.biomes:
            logger.warning("No biome definitions supplied, defaulting every cell to index 0")
            self.biome_index = Grid2D(res, res, dtype=np.int32)
            return self.biome_index

        h, t, m = self.sample_inputs()
        scores = np.stack([b.match_score(h, t, m) for b in self.biomes], axis=0)

        # argmax returns the first maximum, so ties go to table order and an
        # all-excluded cell falls back to index 0
        winners = np.argmax(scores, axis=0).astype(np.int32)

        unmatched = int(np.sum(np.all(np.isneginf(scores), axis=0)))
        if unmatched:
            logger.warning("Cells matched no biome, using index 0", cells=unmatched)

        self.biome_index = Grid2D(res, res, winners, dtype=np.int32)

        logger.info(
            "Biome classification completed",
            unique_biomes=len(np.unique(winners)),
        )
        return self.biome_index

    def layer_for_biome(self, biome_idx: int) -> int:
        """Weight layer of a biome index, clamped into the layer table."""
        if 0 <= biome_idx < len(self.biomes):
            return int(np.clip(self.biomes[biome_idx].layer_index, 0, self.layer_count - 1))
        return 0

    def build_weight_map(self) -> LayeredGrid:
        """
        One-hot weight map: full weight on the winning biome's layer.

        Returns:
            Layered weight grid summing to 1 in every cell
        """
        if self.biome_index is None:
            self.classify_biomes()

        res = self.resolution
        self.weights = LayeredGrid(res, res, self.layer_count)

        lookup = np.array(
            [self.layer_for_biome(i) for i in range(max(len(self.biomes), 1))],
            dtype=np.int64,
        )
        layers = lookup[self.biome_index.data]

        weights = self.weights.data.reshape(res * res, self.layer_count)
        weights[np.arange(res * res), layers] = 1.0
        return self.weights

    def run_full_classification(self) -> Tuple[Grid2D, LayeredGrid]:
        """Classify biomes and build the weight map."""
        self.classify_biomes()
        self.build_weight_map()
        return self.biome_index, self.weights

    def get_biome_statistics(self) -> Dict[str, int]:
        """Cell count per biome name."""
        if self.biome_index is None:
            return {}

        counts = np.bincount(
            self.biome_index.data, minlength=max(len(self.biomes), 1)
        )
        stats = {}
        for idx, count in enumerate(counts):
            if count == 0:
                continue
            name = self.biomes[idx].name if idx < len(self.biomes) else f"biome_{idx}"
            stats[name] = stats.get(name, 0) + int(count)
        return stats
