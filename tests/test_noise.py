"""Tests for seeded noise."""

import pytest
import numpy as np
from py_terrain.core.noise import (
    FractalOptions,
    NoiseField,
    hash2,
    inverse_lerp,
    smoothstep,
)


class TestHelpers:
    """Test scalar helpers."""

    def test_hash2_range_and_determinism(self):
        for seed in (0, 1, 12345, -7, 2**40):
            a, b = hash2(seed)
            assert 0.0 <= a <= 1.0
            assert 0.0 <= b <= 1.0
            assert hash2(seed) == (a, b)
        assert hash2(17) != hash2(29)

    def test_smoothstep_endpoints(self):
        assert smoothstep(0.0) == 0.0
        assert smoothstep(1.0) == 1.0
        assert smoothstep(0.5) == pytest.approx(0.5)
        assert smoothstep(-3.0) == 0.0
        assert smoothstep(4.0) == 1.0

    def test_inverse_lerp(self):
        assert inverse_lerp(0.0, 10.0, 2.5) == pytest.approx(0.25)
        assert inverse_lerp(10.0, 0.0, 2.5) == pytest.approx(0.75)
        assert inverse_lerp(0.0, 1.0, 5.0) == 1.0
        np.testing.assert_array_equal(inverse_lerp(3.0, 3.0, np.array([1.0, 5.0])), [0.0, 0.0])


class TestFractalOptions:
    """Test FBM parameter clamping."""

    def test_clamps_out_of_range(self):
        opts = FractalOptions(octaves=20, lacunarity=10.0, persistence=0.1)
        assert opts.octaves == 8
        assert opts.lacunarity == 3.5
        assert opts.persistence == 0.3

        opts = FractalOptions(octaves=0, lacunarity=1.0, persistence=2.0)
        assert opts.octaves == 1
        assert opts.lacunarity == 1.5
        assert opts.persistence == 0.9


class TestNoiseField:
    """Test noise evaluation."""

    @pytest.fixture
    def coords(self):
        rng = np.random.default_rng(0)
        return rng.uniform(-50, 50, 500), rng.uniform(-50, 50, 500)

    def test_perlin_range(self, coords):
        values = NoiseField(42).perlin(*coords)
        assert values.shape == (500,)
        assert np.all(values >= 0.0)
        assert np.all(values <= 1.0)
        assert values.std() > 0.01

    def test_perlin_lattice_points_are_midpoint(self):
        noise = NoiseField(3)
        assert noise.perlin(3.0, 7.0) == pytest.approx(0.5)
        assert noise.perlin(-2.0, 11.0) == pytest.approx(0.5)

    def test_same_seed_same_values(self, coords):
        a = NoiseField(99).fbm(*coords)
        b = NoiseField(99).fbm(*coords)
        np.testing.assert_array_equal(a, b)

    def test_different_seed_differs(self, coords):
        a = NoiseField(1).fbm(*coords)
        b = NoiseField(2).fbm(*coords)
        assert not np.allclose(a, b)

    def test_fbm_range(self, coords):
        noise = NoiseField(5)
        for octaves in (1, 4, 8):
            values = noise.fbm(*coords, FractalOptions(octaves=octaves))
            assert np.all(values >= 0.0)
            assert np.all(values <= 1.0)

    def test_fbm_scalar(self):
        value = NoiseField(5).fbm(0.3, 0.7)
        assert isinstance(value, float)

    def test_warp_scales_with_strength(self, coords):
        noise = NoiseField(8)
        wx0, wz0 = noise.warp(*coords, 0.0)
        np.testing.assert_array_equal(wx0, np.zeros(500))
        np.testing.assert_array_equal(wz0, np.zeros(500))

        wx, wz = noise.warp(*coords, 100.0)
        assert np.all(np.abs(wx) <= 50.0)
        assert np.all(np.abs(wz) <= 50.0)
        assert not np.allclose(wx, wz)
