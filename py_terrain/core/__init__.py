"""
Core terrain world generation functionality.
"""

from .grid import Grid2D, LayeredGrid
from .terrain import Terrain, TerrainDimensions
from .noise import NoiseField, FractalOptions
from .heightmap_generator import HeightmapGenerator, HeightmapOptions
from .climate import Climate, ClimateOptions, ClimateMaps
from .biomes import BiomeClassifier, BiomeDefinition, default_biome_table
from .hydrology import Hydrology, HydrologyOptions, River
from .sampling import PoissonDiskSampler, sample_disk
from .sites import SiteSelector, MonumentOptions, MonumentSite
from .network import NetworkBuilder, RoadNetwork, build_minimum_spanning_tree
from .routing import PathRouter, RoutingMode, RoutingOptions, CostField, Route
from .corridor import CorridorEditor, RoadOptions
from .road_mesh import CorridorMeshBuilder, RoadMesh
from .world_config import WorldConfig, closest_power_of_two
from .pipeline import WorldGenerator, WorldResult, RoadSegment, generate_world

__all__ = ['Grid2D', 'LayeredGrid', 'Terrain', 'TerrainDimensions',
           'NoiseField', 'FractalOptions', 'HeightmapGenerator', 'HeightmapOptions',
           'Climate', 'ClimateOptions', 'ClimateMaps',
           'BiomeClassifier', 'BiomeDefinition', 'default_biome_table',
           'Hydrology', 'HydrologyOptions', 'River',
           'PoissonDiskSampler', 'sample_disk',
           'SiteSelector', 'MonumentOptions', 'MonumentSite',
           'NetworkBuilder', 'RoadNetwork', 'build_minimum_spanning_tree',
           'PathRouter', 'RoutingMode', 'RoutingOptions', 'CostField', 'Route',
           'CorridorEditor', 'RoadOptions', 'CorridorMeshBuilder', 'RoadMesh',
           'WorldConfig', 'closest_power_of_two',
           'WorldGenerator', 'WorldResult', 'RoadSegment', 'generate_world']
