"""
Monument site selection.

Process:
1. sample_candidates() - Blue-noise candidates in a disk around the terrain centre
2. select_sites() - Reject candidates that are too low or too steep
3. Accepted sites are snapped to the terrain surface
"""

from typing import List, Optional

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .sampling import sample_disk
from .terrain import Terrain

logger = structlog.get_logger()


class MonumentOptions(BaseModel):
    """Monument placement options."""

    monument_count: int = Field(default=10, ge=0, description="Requested monuments")
    min_distance: float = Field(default=40.0, gt=0, description="Minimum spacing")
    spawn_radius: float = Field(
        default=500.0, ge=0, description="Search radius around the terrain centre"
    )
    slope_limit: float = Field(
        default=35.0, ge=0, le=90, description="Maximum slope in degrees"
    )
    sea_margin: float = Field(
        default=0.01, ge=0, description="Required normalized height above sea level"
    )


class MonumentSite(BaseModel):
    """An accepted monument position in world space."""

    id: int = Field(description="Site index in acceptance order")
    x: float = Field(description="World X coordinate")
    y: float = Field(description="World height")
    z: float = Field(description="World Z coordinate")
    height_norm: float = Field(description="Normalized terrain height at the site")
    slope: float = Field(description="Terrain slope in degrees")

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


class SiteSelector:
    """Filters sampled points into accepted monument sites."""

    def __init__(
        self,
        terrain: Terrain,
        sea_level: float,
        seed: int,
        options: Optional[MonumentOptions] = None,
    ):
        """
        Initialize site selector.

        Args:
            terrain: Terrain to query heights and slopes from
            sea_level: Normalized sea level
            seed: Seed for candidate sampling
            options: Placement options
        """
        self.terrain = terrain
        self.sea_level = sea_level
        self.options = options or MonumentOptions()
        self.rng = np.random.default_rng(seed & 0xFFFFFFFF)

        self.sites: List[MonumentSite] = []
        self.rejected_low = 0
        self.rejected_steep = 0

    def sample_candidates(self) -> np.ndarray:
        """Blue-noise candidates around the terrain centre."""
        opts = self.options
        return sample_disk(
            self.terrain.center,
            opts.spawn_radius,
            opts.min_distance,
            opts.monument_count,
            self.rng,
        )

    def select_sites(self, candidates: np.ndarray) -> List[MonumentSite]:
        """
        Accept candidates above sea level and below the slope limit.

        Args:
            candidates: (N, 2) world x/z points

        Returns:
            Accepted sites with height snapped to the terrain
        """
        logger.info("Selecting monument sites", candidates=len(candidates))
        self.sites = []
        self.rejected_low = 0
        self.rejected_steep = 0

        for x, z in np.asarray(candidates, dtype=np.float64).reshape(-1, 2):
            height_norm = self.terrain.height01_at_cell(x, z)
            slope = self.terrain.steepness_at(x, z)

            skip = False
            if height_norm < self.sea_level + self.options.sea_margin:
                logger.debug("Skipped monument (too low)", height_norm=round(height_norm, 3))
                self.rejected_low += 1
                skip = True

            if slope > self.options.slope_limit:
                logger.debug("Skipped monument (too steep)", slope=round(slope, 1))
                self.rejected_steep += 1
                skip = True

            if skip:
                continue

            self.sites.append(
                MonumentSite(
                    id=len(self.sites),
                    x=float(x),
                    y=float(self.terrain.sample_height(x, z)),
                    z=float(z),
                    height_norm=height_norm,
                    slope=float(slope),
                )
            )

        logger.info(
            f"Placed {len(self.sites)} monuments out of {self.options.monument_count}",
            rejected_low=self.rejected_low,
            rejected_steep=self.rejected_steep,
        )
        return self.sites

    def generate(self) -> List[MonumentSite]:
        """Sample candidates and select sites."""
        return self.select_sites(self.sample_candidates())
