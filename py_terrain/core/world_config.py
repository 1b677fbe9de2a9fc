"""
World generation configuration.

Resolutions are normalized rather than rejected: the heightmap snaps to
the closest ``2^n + 1`` and the alphamap to the closest ``2^n``.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .biomes import BiomeDefinition, default_biome_table
from .climate import ClimateOptions
from .corridor import RoadOptions
from .heightmap_generator import HeightmapOptions
from .hydrology import HydrologyOptions
from .routing import RoutingOptions
from .sites import MonumentOptions
from .terrain import TerrainDimensions


def closest_power_of_two(value: int) -> int:
    """Closest power of two to a positive integer, ties rounding up."""
    if value < 1:
        raise ValueError(f"value must be positive, got {value}")
    lower = 1 << (int(value).bit_length() - 1)
    upper = lower << 1
    return upper if value - lower >= upper - value else lower


class WorldConfig(BaseModel):
    """Everything one generation pass depends on."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    seed: int = Field(default=12345, description="World seed")
    size_x: float = Field(default=2048.0, gt=0, description="Terrain extent along X")
    size_z: float = Field(default=2048.0, gt=0, description="Terrain extent along Z")
    height_scale: float = Field(default=350.0, gt=0, description="World height of 1.0")
    sea_level: float = Field(default=0.28, description="Normalized sea level")

    heightmap_resolution: int = Field(
        default=1025, gt=0, description="Heightmap cells per side (2^n + 1)"
    )
    alphamap_resolution: int = Field(
        default=256, gt=0, description="Weight-map cells per side (2^n)"
    )
    climate_resolution: Optional[int] = Field(
        default=None, gt=1, description="Climate grid size (defaults to heightmap)"
    )
    layer_count: int = Field(default=6, ge=1, description="Weight-map layers")
    biomes: List[BiomeDefinition] = Field(default_factory=default_biome_table)

    heightmap: HeightmapOptions = Field(default_factory=HeightmapOptions)
    climate: ClimateOptions = Field(default_factory=ClimateOptions)
    hydrology: HydrologyOptions = Field(default_factory=HydrologyOptions)
    monuments: MonumentOptions = Field(default_factory=MonumentOptions)
    routing: RoutingOptions = Field(default_factory=RoutingOptions)
    roads: RoadOptions = Field(default_factory=RoadOptions)

    @field_validator("sea_level")
    @classmethod
    def clamp_sea_level(cls, v: float) -> float:
        return min(max(v, 0.0), 1.0)

    @field_validator("heightmap_resolution")
    @classmethod
    def normalize_heightmap_resolution(cls, v: int) -> int:
        return closest_power_of_two(max(v - 1, 1)) + 1

    @field_validator("alphamap_resolution")
    @classmethod
    def normalize_alphamap_resolution(cls, v: int) -> int:
        return closest_power_of_two(v)

    @property
    def dimensions(self) -> TerrainDimensions:
        return TerrainDimensions(
            size_x=self.size_x, size_z=self.size_z, height_scale=self.height_scale
        )

    @property
    def effective_climate_resolution(self) -> int:
        return self.climate_resolution or self.heightmap_resolution
