"""End-to-end tests for world generation."""

import pytest
import numpy as np
from scipy.spatial.distance import pdist
from py_terrain.core.heightmap_generator import HeightmapGenerator, HeightmapOptions
from py_terrain.core.hydrology import HydrologyOptions
from py_terrain.core.pipeline import WorldGenerator, generate_world
from py_terrain.core.routing import RoutingMode, RoutingOptions
from py_terrain.core.world_config import WorldConfig

ROAD_LAYER = 5


def small_config(**overrides):
    # Seed 1 places several sites near the centre at 129 cells. Short
    # descents count as rivers so the small island still gets carved.
    params = dict(
        seed=1,
        heightmap_resolution=129,
        alphamap_resolution=64,
        hydrology=HydrologyOptions(
            river_count=2, start_margin=0.0, min_path_length=2, attempts_per_river=500
        ),
        routing=RoutingOptions(grid_x=48, grid_z=48),
    )
    params.update(overrides)
    return WorldConfig(**params)


def weight_cell(result, x, z):
    weights = result.weights
    cfg = result.config
    col = int(np.rint(x / cfg.size_x * (weights.cols - 1)))
    row = int(np.rint(z / cfg.size_z * (weights.rows - 1)))
    return row, col


class TestWorldGenerator:
    """Test a full generation pass at small resolutions."""

    @pytest.fixture(scope="class")
    def result(self):
        return WorldGenerator(small_config()).generate()

    def test_world_has_rivers_and_roads(self, result):
        assert result.diagnostics["rivers_carved"] > 0
        assert result.diagnostics["edges_built"] > 0
        assert len(result.roads) == result.diagnostics["edges_built"]

    def test_published_grids(self, result):
        assert result.elevation.shape == (129, 129)
        assert result.climate.temperature.shape == (129, 129)
        assert result.biome_index.shape == (64, 64)
        assert result.weights.shape == (64, 64, 6)

    def test_height_bounds(self, result):
        assert result.elevation.data.min() >= 0.0
        assert result.elevation.data.max() <= 1.0

    def test_weight_sum_invariant(self, result):
        np.testing.assert_allclose(result.weights.layer_sums(), 1.0, atol=1e-4)
        assert result.weights.data.min() >= 0.0

    def test_roads_paint_the_road_layer(self, result):
        road = result.weights.as_array()[..., ROAD_LAYER]
        assert road.max() > 0.0

        for segment in result.roads:
            for x, _, z in segment.route.samples:
                row, col = weight_cell(result, x, z)
                assert road[row, col] == pytest.approx(1.0, abs=1e-5)

    def test_rivers_descend(self, result):
        for river in result.rivers:
            assert len(river.cells) >= 2
            assert river.source_cell != river.mouth_cell

    def test_diagnostics(self, result):
        diag = result.diagnostics
        assert set(diag) == {
            "points_sampled",
            "points_placed",
            "edges_built",
            "rivers_carved",
            "astar_fallbacks",
            "land_fraction",
        }
        assert 0 < diag["points_placed"] <= diag["points_sampled"] <= 10
        assert diag["edges_built"] == diag["points_placed"] - 1
        assert 0 < diag["rivers_carved"] == len(result.rivers) <= 2
        assert 0.0 < diag["land_fraction"] < 1.0

    def test_sites_are_spaced_and_on_land(self, result):
        positions = np.array([[s.x, s.z] for s in result.sites]).reshape(-1, 2)
        if len(positions) > 1:
            assert pdist(positions).min() >= 40.0
        for site in result.sites:
            assert site.height_norm >= result.config.sea_level + 0.01
            assert site.slope <= 35.0

    def test_roads_follow_network(self, result):
        assert len(result.roads) == len(result.network.edges)
        for road in result.roads:
            i, j = road.edge
            start, end = result.sites[i].position, result.sites[j].position
            np.testing.assert_allclose(road.route.samples[0, [0, 2]], start[[0, 2]])
            np.testing.assert_allclose(road.route.samples[-1, [0, 2]], end[[0, 2]])
            assert road.mesh is not None
            assert road.mesh.vertex_count == 2 * len(road.route.samples)

    def test_biome_statistics(self, result):
        assert sum(result.biome_statistics.values()) == 64 * 64


class TestDeterminism:
    """Two runs with the same configuration must match exactly."""

    def test_identical_outputs(self):
        a = generate_world(small_config())
        b = generate_world(small_config())

        np.testing.assert_array_equal(a.elevation.data, b.elevation.data)
        np.testing.assert_array_equal(a.climate.temperature.data, b.climate.temperature.data)
        np.testing.assert_array_equal(a.climate.moisture.data, b.climate.moisture.data)
        np.testing.assert_array_equal(a.weights.data, b.weights.data)
        assert [(s.x, s.z) for s in a.sites] == [(s.x, s.z) for s in b.sites]
        assert [r.edge for r in a.roads] == [r.edge for r in b.roads]
        for ra, rb in zip(a.roads, b.roads):
            np.testing.assert_array_equal(ra.route.samples, rb.route.samples)
        assert a.diagnostics == b.diagnostics

    def test_seed_changes_world(self):
        a = generate_world(small_config(seed=1))
        b = generate_world(small_config(seed=2))
        assert not np.array_equal(a.elevation.data, b.elevation.data)


class TestWorldVariants:
    """Whole-world runs under different configurations."""

    def test_default_island_is_reproducible(self):
        config = WorldConfig(seed=12345, heightmap_resolution=257, sea_level=0.28)
        assert config.heightmap.continent_bias == 0.6

        def build():
            return HeightmapGenerator(
                config.heightmap_resolution, config.dimensions, config.seed, config.heightmap
            ).generate(config.sea_level)

        a = build()
        b = build()
        np.testing.assert_array_equal(a.data, b.data)

        # The radial falloff and height exponent leave a small central island
        below = float(np.mean(a.data < config.sea_level))
        assert 0.5 < below < 1.0

    def test_direct_routing_never_falls_back(self):
        result = generate_world(small_config(routing=RoutingOptions(mode=RoutingMode.DIRECT)))
        assert result.roads
        assert result.diagnostics["astar_fallbacks"] == 0
        for road in result.roads:
            assert not road.route.used_fallback
            assert len(road.route.raw) == 2

    def test_no_monuments_means_no_roads(self):
        config = small_config()
        config.monuments.monument_count = 0
        result = generate_world(config)

        assert result.sites == []
        assert result.roads == []
        assert result.diagnostics["edges_built"] == 0

    def test_roads_without_mesh(self):
        config = small_config()
        config.roads.build_mesh = False
        result = generate_world(config)
        assert result.roads
        assert all(road.mesh is None for road in result.roads)

    def test_custom_heightmap_options(self):
        config = small_config(heightmap=HeightmapOptions(continent_bias=0.0, coastal_band=0.0))
        result = generate_world(config)
        assert result.elevation.data.max() <= 1.0
