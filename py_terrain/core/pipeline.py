"""
Single-pass world generation.

Stages run in a fixed order over grids owned by the pass:

1. Heightfield synthesis and coastal smoothing
2. Climate synthesis
3. Biome classification and the one-hot weight map
4. River carving (writes elevation)
5. Monument sampling and site selection
6. Minimum spanning tree over the sites
7. Per network edge: routing, ribbon mesh, corridor carve/paint
   (writes elevation and weights)

Nothing is published until the pass completes.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import structlog

from .biomes import BiomeClassifier
from .climate import Climate, ClimateMaps
from .corridor import CorridorEditor
from .grid import Grid2D, LayeredGrid
from .heightmap_generator import HeightmapGenerator
from .hydrology import Hydrology, River
from .network import NetworkBuilder, RoadNetwork
from .road_mesh import CorridorMeshBuilder, RoadMesh
from .routing import PathRouter, Route, RoutingMode
from .sites import MonumentSite, SiteSelector
from .terrain import Terrain
from .world_config import WorldConfig

logger = structlog.get_logger()

# Per-stage seed offsets so the stage RNG streams are independent
RIVER_SEED_OFFSET = 101
MONUMENT_SEED_OFFSET = 211


@dataclass
class RoadSegment:
    """One routed network edge."""

    edge: Tuple[int, int]
    route: Route
    mesh: Optional[RoadMesh] = None


@dataclass
class WorldResult:
    """Published outputs of a generation pass."""

    config: WorldConfig
    elevation: Grid2D
    climate: ClimateMaps
    biome_index: Grid2D
    weights: LayeredGrid
    rivers: List[River] = field(default_factory=list)
    candidates: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)))
    sites: List[MonumentSite] = field(default_factory=list)
    network: Optional[RoadNetwork] = None
    roads: List[RoadSegment] = field(default_factory=list)
    biome_statistics: Dict[str, int] = field(default_factory=dict)
    diagnostics: Dict[str, float] = field(default_factory=dict)

    @property
    def land_fraction(self) -> float:
        return float(np.mean(self.elevation.data > self.config.sea_level))

    @property
    def terrain(self) -> Terrain:
        return Terrain(self.elevation, self.config.dimensions)


class WorldGenerator:
    """Runs one deterministic generation pass for a configuration."""

    def __init__(self, config: Optional[WorldConfig] = None):
        self.config = config or WorldConfig()

    def build_heightfield(self) -> Grid2D:
        cfg = self.config
        generator = HeightmapGenerator(
            cfg.heightmap_resolution, cfg.dimensions, cfg.seed, cfg.heightmap
        )
        return generator.generate(cfg.sea_level)

    def build_climate(self) -> ClimateMaps:
        cfg = self.config
        climate = Climate(
            cfg.effective_climate_resolution, cfg.dimensions, cfg.seed, cfg.climate
        )
        return climate.generate()

    def classify(self, elevation: Grid2D, climate: ClimateMaps) -> BiomeClassifier:
        cfg = self.config
        classifier = BiomeClassifier(
            elevation, climate, cfg.biomes, cfg.alphamap_resolution, cfg.layer_count
        )
        classifier.run_full_classification()
        return classifier

    def carve_rivers(self, elevation: Grid2D) -> List[River]:
        cfg = self.config
        hydrology = Hydrology(
            elevation, cfg.sea_level, cfg.seed + RIVER_SEED_OFFSET, cfg.hydrology
        )
        return hydrology.generate_rivers()

    def place_monuments(self, terrain: Terrain) -> Tuple[np.ndarray, List[MonumentSite]]:
        cfg = self.config
        selector = SiteSelector(
            terrain, cfg.sea_level, cfg.seed + MONUMENT_SEED_OFFSET, cfg.monuments
        )
        candidates = selector.sample_candidates()
        return candidates, selector.select_sites(candidates)

    def build_roads(
        self,
        terrain: Terrain,
        weights: LayeredGrid,
        sites: List[MonumentSite],
        network: RoadNetwork,
    ) -> Tuple[List[RoadSegment], int]:
        """
        Route every network edge, then mesh and carve it.

        Each edge is routed against the terrain as carved by the edges
        before it.

        Returns:
            (road segments, A* fallback count)
        """
        cfg = self.config
        if not network.edges:
            return [], 0

        router = PathRouter(terrain, cfg.sea_level, cfg.routing)
        if cfg.routing.mode == RoutingMode.ASTAR:
            router.build_cost_field()

        mesher = CorridorMeshBuilder(terrain, cfg.roads) if cfg.roads.build_mesh else None
        editor = CorridorEditor(terrain.elevation, weights, cfg.dimensions, cfg.roads)

        logger.info("Building roads", edges=len(network.edges), mode=cfg.routing.mode.value)
        roads = []
        for i, j in network.edges:
            route = router.route(sites[i].position, sites[j].position)
            mesh = mesher.build(route.samples) if mesher is not None else None
            editor.apply(route.samples)
            roads.append(RoadSegment(edge=(i, j), route=route, mesh=mesh))

        return roads, router.fallbacks

    def generate(self) -> WorldResult:
        """Run every stage and publish the result."""
        cfg = self.config
        start = time.time()
        logger.info(
            "Starting world generation",
            seed=cfg.seed,
            heightmap_resolution=cfg.heightmap_resolution,
            alphamap_resolution=cfg.alphamap_resolution,
        )

        elevation = self.build_heightfield()
        climate = self.build_climate()
        classifier = self.classify(elevation, climate)
        rivers = self.carve_rivers(elevation)

        terrain = Terrain(elevation, cfg.dimensions)
        candidates, sites = self.place_monuments(terrain)

        network = NetworkBuilder([s.position for s in sites]).build()
        roads, fallbacks = self.build_roads(terrain, classifier.weights, sites, network)

        elevation.clamp(0.0, 1.0)

        result = WorldResult(
            config=cfg,
            elevation=elevation,
            climate=climate,
            biome_index=classifier.biome_index,
            weights=classifier.weights,
            rivers=rivers,
            candidates=candidates,
            sites=sites,
            network=network,
            roads=roads,
            biome_statistics=classifier.get_biome_statistics(),
        )
        result.diagnostics = {
            "points_sampled": len(candidates),
            "points_placed": len(sites),
            "edges_built": len(network.edges),
            "rivers_carved": len(rivers),
            "astar_fallbacks": fallbacks,
            "land_fraction": result.land_fraction,
        }

        logger.info(
            "World generation completed",
            elapsed_seconds=round(time.time() - start, 2),
            **result.diagnostics,
        )
        return result


def generate_world(config: Optional[WorldConfig] = None) -> WorldResult:
    """Convenience wrapper around ``WorldGenerator(config).generate()``."""
    return WorldGenerator(config).generate()
