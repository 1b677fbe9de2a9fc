"""
Seeded coherent noise used by every synthesis stage.

The kernel is classic 2D Perlin gradient noise:
- 256-entry permutation table shuffled by ``numpy.random.default_rng(seed)``
- eight gradient directions (axes and diagonals)
- quintic fade curve
- output remapped from [-1, 1] to [0, 1]

A ``NoiseField`` holds no mutable state after construction, so every
evaluation is a pure function of (coordinates, seed, parameters). All
functions accept scalars or numpy arrays.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple, Union

ArrayLike = Union[float, np.ndarray]

_UINT32 = 0xFFFFFFFF

_GRADIENTS = np.array(
    [
        [1.0, 1.0],
        [-1.0, 1.0],
        [1.0, -1.0],
        [-1.0, -1.0],
        [1.0, 0.0],
        [-1.0, 0.0],
        [0.0, 1.0],
        [0.0, -1.0],
    ],
    dtype=np.float64,
)

MAX_OCTAVES = 8


def hash2(seed: int) -> Tuple[float, float]:
    """
    Hash an integer seed into two floats in [0, 1].

    32-bit multiply/xor-shift avalanche; used to derive coordinate offsets
    that decorrelate fields sampled from the same kernel.
    """
    x = int(seed) & _UINT32
    x ^= 2747636419
    x = (x * 2654435769) & _UINT32
    x ^= x >> 16
    x = (x * 2654435769) & _UINT32
    x ^= x >> 16
    x = (x * 2654435769) & _UINT32
    return (x & 0xFFFF) / 65535.0, ((x >> 16) & 0xFFFF) / 65535.0


def smoothstep(t: ArrayLike) -> ArrayLike:
    """Cubic Hermite 3t² - 2t³ on t clamped to [0, 1]."""
    t = np.clip(t, 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def lerp(a: ArrayLike, b: ArrayLike, t: ArrayLike) -> ArrayLike:
    return a + (b - a) * t


def inverse_lerp(a: float, b: float, value: ArrayLike) -> ArrayLike:
    """Position of value between a and b, clamped to [0, 1]; 0 when a == b."""
    if a == b:
        return np.zeros_like(np.asarray(value, dtype=np.float64))
    return np.clip((np.asarray(value, dtype=np.float64) - a) / (b - a), 0.0, 1.0)


def _fade(t: np.ndarray) -> np.ndarray:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@dataclass
class FractalOptions:
    """FBM parameters; out-of-range values are clamped, not rejected."""

    octaves: int = 5
    lacunarity: float = 2.0
    persistence: float = 0.5

    def __post_init__(self):
        self.octaves = int(min(max(self.octaves, 1), MAX_OCTAVES))
        self.lacunarity = float(min(max(self.lacunarity, 1.5), 3.5))
        self.persistence = float(min(max(self.persistence, 0.3), 0.9))


class NoiseField:
    """Seeded Perlin noise with domain warp and fractal sums."""

    def __init__(self, seed: int):
        self.seed = int(seed)

        rng = np.random.default_rng(self.seed & _UINT32)
        permutation = rng.permutation(256).astype(np.int64)
        self._perm = np.concatenate([permutation, permutation])

        # Per-octave and warp offsets keep the layers from sharing lattice points
        self._octave_offsets = np.array(
            [hash2(self.seed + 7919 * (i + 1)) for i in range(MAX_OCTAVES)],
            dtype=np.float64,
        ) * 256.0
        self._warp_offsets = np.array(
            [hash2(self.seed ^ 0x5BD1E995), hash2(self.seed ^ 0x27D4EB2F)],
            dtype=np.float64,
        ) * 256.0

    def perlin(self, x: ArrayLike, y: ArrayLike) -> ArrayLike:
        """Single gradient-noise evaluation in [0, 1]."""
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        x_floor = np.floor(x)
        y_floor = np.floor(y)
        xi = x_floor.astype(np.int64) & 255
        yi = y_floor.astype(np.int64) & 255
        fx = x - x_floor
        fy = y - y_floor

        perm = self._perm
        aa = perm[perm[xi] + yi] & 7
        ab = perm[perm[xi] + yi + 1] & 7
        ba = perm[perm[xi + 1] + yi] & 7
        bb = perm[perm[xi + 1] + yi + 1] & 7

        n00 = _GRADIENTS[aa, 0] * fx + _GRADIENTS[aa, 1] * fy
        n10 = _GRADIENTS[ba, 0] * (fx - 1.0) + _GRADIENTS[ba, 1] * fy
        n01 = _GRADIENTS[ab, 0] * fx + _GRADIENTS[ab, 1] * (fy - 1.0)
        n11 = _GRADIENTS[bb, 0] * (fx - 1.0) + _GRADIENTS[bb, 1] * (fy - 1.0)

        u = _fade(fx)
        v = _fade(fy)
        value = lerp(lerp(n00, n10, u), lerp(n01, n11, u), v)
        value = np.clip(0.5 * (value + 1.0), 0.0, 1.0)

        if value.ndim == 0:
            return float(value)
        return value

    def warp(
        self, x: ArrayLike, y: ArrayLike, strength: float
    ) -> Tuple[ArrayLike, ArrayLike]:
        """
        Domain-warp offsets for (x, y).

        Two independent noise evaluations, centred on zero and scaled by
        ``strength``. Callers add the offsets to their sampling coordinates.
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        (ox0, oy0), (ox1, oy1) = self._warp_offsets

        wx = self.perlin(x * 2.13 + ox0, y * 2.13 - oy0)
        wy = self.perlin(x * 1.77 - ox1, y * 1.77 + oy1)
        return (np.asarray(wx) - 0.5) * strength, (np.asarray(wy) - 0.5) * strength

    def fbm(
        self, x: ArrayLike, y: ArrayLike, options: FractalOptions = None
    ) -> ArrayLike:
        """
        Fractal sum of perlin octaves normalized by the total amplitude.

        The result stays in [0, 1] for any octave count.
        """
        options = options or FractalOptions()
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        amplitude = 1.0
        frequency = 1.0
        total = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
        max_total = 0.0

        for octave in range(options.octaves):
            ox, oy = self._octave_offsets[octave]
            total += self.perlin(x * frequency + ox, y * frequency - oy) * amplitude
            max_total += amplitude
            amplitude *= options.persistence
            frequency *= options.lacunarity

        result = total / max(max_total, 1e-4)
        if result.ndim == 0:
            return float(result)
        return result
