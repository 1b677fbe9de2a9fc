"""Tests for road routing."""

import math

import pytest
import numpy as np
from py_terrain.core.grid import Grid2D
from py_terrain.core.routing import (
    CostField,
    PathRouter,
    RoutingMode,
    RoutingOptions,
    astar_cells,
    resample_polyline,
    smooth_catmull_rom,
)
from py_terrain.core.terrain import Terrain, TerrainDimensions


def flat_terrain(height=0.5):
    grid = Grid2D(65, 65, np.full(65 * 65, height))
    return Terrain(grid, TerrainDimensions(size_x=256.0, size_z=256.0, height_scale=100.0))


def ramp_terrain(height_scale):
    cols = np.linspace(0.0, 1.0, 65)
    grid = Grid2D.from_array(np.tile(cols, (65, 1)))
    return Terrain(grid, TerrainDimensions(size_x=256.0, size_z=256.0, height_scale=height_scale))


def uniform_field(cells=64, size=256.0):
    return CostField(Grid2D(cells, cells, np.ones(cells * cells), dtype=np.float64), size, size)


class TestCostField:
    """Test cost field construction."""

    def test_flat_land_costs_one(self):
        options = RoutingOptions(grid_x=32, grid_z=16)
        field = CostField.build(flat_terrain(), sea_level=0.28, options=options)

        assert field.costs.shape == (16, 32)
        np.testing.assert_allclose(field.costs.data, 1.0)

    def test_sea_penalty(self):
        options = RoutingOptions(grid_x=16, grid_z=16)
        field = CostField.build(flat_terrain(0.2), sea_level=0.28, options=options)
        np.testing.assert_allclose(field.costs.data, 51.0)

    def test_impassable_slope(self):
        # 1000 units of rise over 256: about 75 degrees
        field = CostField.build(ramp_terrain(1000.0), 0.0, RoutingOptions(grid_x=16, grid_z=16))
        assert np.all(np.isinf(field.costs.data))

    def test_slope_cost(self):
        terrain = ramp_terrain(64.0)
        field = CostField.build(terrain, -1.0, RoutingOptions(grid_x=16, grid_z=16))
        slope = math.degrees(math.atan(0.25))
        assert field.costs.get(8, 8) == pytest.approx(1.0 + slope * 0.15, rel=1e-4)

    def test_minimum_grid_size(self):
        field = CostField.build(flat_terrain(), 0.28, RoutingOptions(grid_x=2, grid_z=3))
        assert field.costs.shape == (8, 8)

    def test_cell_conversions(self):
        field = uniform_field(cells=16)
        assert field.world_to_cell(0.0, 0.0) == (0, 0)
        assert field.world_to_cell(255.9, 17.0) == (15, 1)
        assert field.world_to_cell(-10.0, 500.0) == (0, 15)
        assert field.cell_center(0, 2) == (8.0, 40.0)


class TestAStar:
    """Test grid search."""

    def test_uniform_cost_is_octile_distance(self):
        field = uniform_field()
        path = astar_cells(field, (0, 0), (10, 4))

        assert path[0] == (0, 0)
        assert path[-1] == (10, 4)
        for (x0, z0), (x1, z1) in zip(path, path[1:]):
            assert max(abs(x1 - x0), abs(z1 - z0)) == 1
        assert field.path_cost(path) == pytest.approx(2.0 * (6 + 4 * math.sqrt(2)))

    def test_start_equals_goal(self):
        assert astar_cells(uniform_field(), (3, 3), (3, 3)) == [(3, 3)]

    def test_detours_around_obstacle(self):
        field = uniform_field(cells=16)
        costs = field.costs.as_array()
        costs[0:12, 8] = np.inf

        path = astar_cells(field, (2, 2), (14, 2))
        assert path is not None
        assert all(not math.isinf(costs[z, x]) for x, z in path)
        assert max(z for _, z in path) >= 12

    def test_blocked_band_has_no_path(self):
        field = uniform_field(cells=16)
        field.costs.as_array()[:, 8] = np.inf
        assert astar_cells(field, (1, 8), (14, 8)) is None

    def test_out_of_grid_endpoints(self):
        assert astar_cells(uniform_field(cells=8), (0, 0), (9, 0)) is None

    def test_higher_slope_weight_never_lowers_route_cost(self):
        terrain = ramp_terrain(64.0)
        low = CostField.build(terrain, 0.0, RoutingOptions(grid_x=32, grid_z=32, slope_cost_weight=0.1))
        high = CostField.build(terrain, 0.0, RoutingOptions(grid_x=32, grid_z=32, slope_cost_weight=0.5))

        path = astar_cells(low, (2, 2), (29, 20))
        assert high.path_cost(path) >= low.path_cost(path)


class TestSmoothing:
    """Test Catmull-Rom smoothing."""

    @pytest.fixture
    def polyline(self):
        return np.array([[0, 0, 0], [10, 0, 0], [10, 0, 10], [20, 5, 10]], dtype=np.float64)

    def test_passes_through_control_points(self, polyline):
        smoothed = smooth_catmull_rom(polyline, 6)

        assert len(smoothed) == 3 * 6 + 1
        np.testing.assert_allclose(smoothed[::6], polyline)

    def test_subdivisions_are_clamped(self, polyline):
        np.testing.assert_allclose(smooth_catmull_rom(polyline, 0), polyline)
        assert len(smooth_catmull_rom(polyline, 100)) == 3 * 16 + 1

    def test_collinear_points_stay_on_line(self):
        line = np.array([[0, 0, 0], [5, 0, 0], [10, 0, 0]], dtype=np.float64)
        smoothed = smooth_catmull_rom(line, 4)
        np.testing.assert_allclose(smoothed[:, 1:], 0.0, atol=1e-12)
        assert np.all(np.diff(smoothed[:, 0]) > 0)

    def test_short_input_unchanged(self):
        single = np.array([[1.0, 2.0, 3.0]])
        np.testing.assert_array_equal(smooth_catmull_rom(single, 6), single)


class TestResampling:
    """Test arc-length resampling."""

    def test_uniform_spacing(self):
        line = np.array([[0, 0, 0], [10, 0, 0]], dtype=np.float64)
        samples = resample_polyline(line, 1.5)

        np.testing.assert_allclose(samples[:, 0], [0, 1.5, 3.0, 4.5, 6.0, 7.5, 9.0, 10.0])

    def test_spacing_carries_across_segments(self):
        line = np.array([[float(i), 0.0, 0.0] for i in range(11)])
        samples = resample_polyline(line, 1.5)
        np.testing.assert_allclose(
            samples[:, 0], [0, 1.5, 3.0, 4.5, 6.0, 7.5, 9.0, 10.0], atol=1e-9
        )

    def test_endpoints_are_exact(self):
        line = np.array([[0, 3, 0], [7, 0, 0], [7, 0, 9]], dtype=np.float64)
        samples = resample_polyline(line, 2.0, height_fn=lambda x, z: 42.0)

        np.testing.assert_array_equal(samples[0], line[0])
        np.testing.assert_array_equal(samples[-1], line[-1])
        assert np.all(samples[1:-1, 1] == 42.0)

    def test_invalid_step(self):
        with pytest.raises(ValueError):
            resample_polyline(np.zeros((2, 3)), 0.0)


class TestPathRouter:
    """Test end-to-end edge routing."""

    def test_direct_route_on_flat_terrain(self):
        options = RoutingOptions(mode=RoutingMode.DIRECT, path_step=1.5)
        router = PathRouter(flat_terrain(), 0.28, options)
        a = np.array([20.0, 50.0, 30.0])
        b = np.array([200.0, 50.0, 180.0])
        route = router.route(a, b)

        assert not route.used_fallback
        np.testing.assert_array_equal(route.raw, [a, b])
        np.testing.assert_allclose(route.samples[0], a)
        np.testing.assert_allclose(route.samples[-1], b)

        spacing = np.linalg.norm(np.diff(route.samples, axis=0), axis=1)
        np.testing.assert_allclose(spacing[:-1], 1.5, atol=1e-6)
        assert spacing[-1] <= 1.5 + 1e-9
        np.testing.assert_allclose(route.samples[:, 1], 50.0)

    def test_astar_route_on_flat_terrain(self):
        options = RoutingOptions(grid_x=32, grid_z=32)
        router = PathRouter(flat_terrain(), 0.28, options)
        a = np.array([20.0, 50.0, 30.0])
        b = np.array([200.0, 50.0, 180.0])
        route = router.route(a, b)

        assert not route.used_fallback
        assert router.cost_field is not None
        np.testing.assert_array_equal(route.raw[0], a)
        np.testing.assert_array_equal(route.raw[-1], b)
        np.testing.assert_allclose(route.samples[0], a)
        np.testing.assert_allclose(route.samples[-1], b)

        spacing = np.linalg.norm(np.diff(route.samples, axis=0), axis=1)
        assert np.all(spacing <= 1.5 + 1e-9)
        assert route.length > np.linalg.norm(b - a) * 0.99

    def test_blocked_band_falls_back_to_direct(self):
        field = uniform_field(cells=16)
        field.costs.as_array()[:, 8] = np.inf
        router = PathRouter(flat_terrain(), 0.28, RoutingOptions(), cost_field=field)

        a = np.array([20.0, 50.0, 128.0])
        b = np.array([230.0, 50.0, 128.0])
        route = router.route(a, b)

        assert route.used_fallback
        assert router.fallbacks == 1
        np.testing.assert_array_equal(route.raw, [a, b])
        np.testing.assert_allclose(route.samples[-1], b)

    def test_routing_is_deterministic(self):
        a = np.array([10.0, 50.0, 10.0])
        b = np.array([240.0, 50.0, 100.0])
        first = PathRouter(flat_terrain(), 0.28, RoutingOptions(grid_x=32, grid_z=32)).route(a, b)
        second = PathRouter(flat_terrain(), 0.28, RoutingOptions(grid_x=32, grid_z=32)).route(a, b)
        np.testing.assert_array_equal(first.samples, second.samples)
