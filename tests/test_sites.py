"""Tests for monument site selection."""

import pytest
from pydantic import ValidationError
import numpy as np
from scipy.spatial.distance import pdist
from py_terrain.core.grid import Grid2D
from py_terrain.core.sites import MonumentOptions, MonumentSite, SiteSelector
from py_terrain.core.terrain import Terrain, TerrainDimensions


def flat_terrain(height, size=2048.0):
    grid = Grid2D(65, 65, np.full(65 * 65, height))
    return Terrain(grid, TerrainDimensions(size_x=size, size_z=size, height_scale=350.0))


class TestSiteSelector:
    """Test candidate filtering."""

    def test_flat_land_accepts_all_candidates(self):
        terrain = flat_terrain(0.5)
        selector = SiteSelector(terrain, sea_level=0.28, seed=12345)
        candidates = selector.sample_candidates()
        sites = selector.select_sites(candidates)

        assert 0 <= len(sites) <= 10
        assert len(sites) == len(candidates)
        assert selector.rejected_low == 0
        assert selector.rejected_steep == 0
        for site in sites:
            assert site.y == pytest.approx(0.5 * 350.0)
            assert site.slope == pytest.approx(0.0)

        positions = np.array([[s.x, s.z] for s in sites])
        if len(positions) > 1:
            assert pdist(positions).min() >= 40.0

    def test_sites_below_sea_are_rejected(self):
        selector = SiteSelector(flat_terrain(0.1), sea_level=0.28, seed=1)
        sites = selector.generate()

        assert sites == []
        assert selector.rejected_low > 0

    def test_sea_margin_applies(self):
        options = MonumentOptions(sea_margin=0.05)
        selector = SiteSelector(flat_terrain(0.3), sea_level=0.28, seed=1, options=options)
        assert selector.generate() == []

    def test_steep_sites_are_rejected(self):
        # Height rises 2048 units over 1024: about 63 degrees everywhere
        cols = np.linspace(0.0, 1.0, 65)
        grid = Grid2D.from_array(np.tile(cols, (65, 1)))
        terrain = Terrain(grid, TerrainDimensions(size_x=1024.0, size_z=1024.0, height_scale=2048.0))

        selector = SiteSelector(terrain, sea_level=0.0, seed=4)
        candidates = selector.sample_candidates()
        sites = selector.select_sites(candidates)

        assert sites == []
        assert selector.rejected_steep == len(candidates)

    def test_site_ids_and_positions(self):
        terrain = flat_terrain(0.5)
        selector = SiteSelector(terrain, 0.28, seed=2, options=MonumentOptions(monument_count=3))
        sites = selector.select_sites(np.array([[100.0, 200.0], [900.0, 1000.0]]))

        assert [s.id for s in sites] == [0, 1]
        assert isinstance(sites[0], MonumentSite)
        np.testing.assert_allclose(sites[1].position, [900.0, 175.0, 1000.0])

    def test_deterministic(self):
        a = SiteSelector(flat_terrain(0.5), 0.28, seed=8).generate()
        b = SiteSelector(flat_terrain(0.5), 0.28, seed=8).generate()
        assert [(s.x, s.z) for s in a] == [(s.x, s.z) for s in b]


class TestMonumentOptions:
    """Test monument option validation."""

    def test_defaults(self):
        options = MonumentOptions()
        assert options.monument_count == 10
        assert options.slope_limit == 35.0

    @pytest.mark.parametrize(
        "field,value",
        [("monument_count", -1), ("min_distance", 0.0), ("slope_limit", 91.0)],
    )
    def test_invalid_values_raise(self, field, value):
        with pytest.raises(ValidationError):
            MonumentOptions(**{field: value})
