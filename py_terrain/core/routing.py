"""
Slope-aware road routing.

This module implements:
- Coarse cost field from terrain slope and a sea-level penalty
- 8-directional A* over the cost field with a Euclidean heuristic
- Direct two-point routing, also used as the A* fallback
- Catmull-Rom smoothing and uniform arc-length resampling that conforms
  samples to the (possibly already carved) terrain surface
"""

import heapq
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .grid import Grid2D
from .terrain import Terrain

logger = structlog.get_logger()

Cell = Tuple[int, int]  # (gx, gz)

MIN_ROUTING_CELLS = 8
MAX_SUBDIVISIONS = 16

_STEPS = [
    (-1, -1, math.sqrt(2.0)),
    (0, -1, 1.0),
    (1, -1, math.sqrt(2.0)),
    (-1, 0, 1.0),
    (1, 0, 1.0),
    (-1, 1, math.sqrt(2.0)),
    (0, 1, 1.0),
    (1, 1, math.sqrt(2.0)),
]


class RoutingMode(str, Enum):
    DIRECT = "direct"
    ASTAR = "astar"


class RoutingOptions(BaseModel):
    """Road routing options."""

    mode: RoutingMode = Field(default=RoutingMode.ASTAR, description="Routing strategy")
    grid_x: int = Field(default=256, gt=0, description="Cost-grid cells along X")
    grid_z: int = Field(default=256, gt=0, description="Cost-grid cells along Z")
    slope_cost_weight: float = Field(
        default=0.15, ge=0, description="Cost added per degree of slope"
    )
    sea_penalty: float = Field(
        default=50.0, ge=0, description="Extra cost for cells below sea level"
    )
    impassable_slope: float = Field(
        default=55.0, gt=0, description="Slope (degrees) at which cells are impassable"
    )
    path_step: float = Field(default=1.5, gt=0, description="Resampling step in world units")
    catmull_subdivisions: int = Field(
        default=6, description="Spline subdivisions per segment (clamped to 1-16)"
    )


class CostField:
    """Per-cell traversal cost over the routing grid, indexed [gz, gx]."""

    def __init__(self, costs: Grid2D, size_x: float, size_z: float):
        self.costs = costs
        self.size_x = size_x
        self.size_z = size_z
        self.grid_x = costs.cols
        self.grid_z = costs.rows
        self.cell_size_x = size_x / self.grid_x
        self.cell_size_z = size_z / self.grid_z

    @classmethod
    def build(
        cls, terrain: Terrain, sea_level: float, options: RoutingOptions
    ) -> "CostField":
        """
        Sample slope and height at every routing cell centre.

        Cost is ``1 + slope * slope_cost_weight``, ``+inf`` at or above the
        impassable slope, plus ``sea_penalty`` below sea level.
        """
        grid_x = max(MIN_ROUTING_CELLS, options.grid_x)
        grid_z = max(MIN_ROUTING_CELLS, options.grid_z)
        logger.info("Building routing cost field", grid_x=grid_x, grid_z=grid_z)

        nx = (np.arange(grid_x, dtype=np.float64) + 0.5) / grid_x
        nz = (np.arange(grid_z, dtype=np.float64) + 0.5) / grid_z
        nx, nz = np.meshgrid(nx, nz)

        height_norm = terrain.height01(nx, nz)
        slope = terrain.steepness(nx, nz)

        cost = 1.0 + slope * options.slope_cost_weight
        cost = np.where(slope >= options.impassable_slope, np.inf, cost)
        cost = np.where(height_norm < sea_level, cost + options.sea_penalty, cost)

        blocked = int(np.isinf(cost).sum())
        logger.info("Cost field built", impassable_cells=blocked)

        return cls(
            Grid2D(grid_z, grid_x, cost, dtype=np.float64),
            terrain.size_x,
            terrain.size_z,
        )

    def world_to_cell(self, x: float, z: float) -> Cell:
        gx = min(max(int(x / self.size_x * self.grid_x), 0), self.grid_x - 1)
        gz = min(max(int(z / self.size_z * self.grid_z), 0), self.grid_z - 1)
        return gx, gz

    def cell_center(self, gx: int, gz: int) -> Tuple[float, float]:
        return (gx + 0.5) * self.cell_size_x, (gz + 0.5) * self.cell_size_z

    def path_cost(self, cells: Sequence[Cell]) -> float:
        """Accumulated A* step cost along a cell path."""
        total = 0.0
        for (x0, z0), (x1, z1) in zip(cells[:-1], cells[1:]):
            step = math.sqrt(2.0) if (x0 != x1 and z0 != z1) else 1.0
            total += step * (1.0 + self.costs.get(z1, x1))
        return total


def _heuristic(x: int, z: int, ex: int, ez: int) -> float:
    return math.hypot(x - ex, z - ez)


def astar_cells(cost_field: CostField, start: Cell, goal: Cell) -> Optional[List[Cell]]:
    """
    8-directional A* between two routing cells.

    Steps cost 1 (orthogonal) or √2 (diagonal) times ``1 + cost`` of the
    destination cell; impassable cells are never entered. The open cell with
    the lowest f = g + h is expanded first, ties going to the cell that
    entered the open list first.

    Returns:
        Cells from start to goal inclusive, or None when unreachable
    """
    gw, gh = cost_field.grid_x, cost_field.grid_z
    sx, sz = start
    ex, ez = goal
    if not (0 <= sx < gw and 0 <= sz < gh and 0 <= ex < gw and 0 <= ez < gh):
        return None

    costs = cost_field.costs.as_array()
    g = np.full((gh, gw), np.inf)
    closed = np.zeros((gh, gw), dtype=bool)
    came_from = {}
    open_order = {}

    g[sz, sx] = 0.0
    open_order[(sx, sz)] = 0
    heap = [(_heuristic(sx, sz, ex, ez), 0, sx, sz)]
    inserted = 1

    while heap:
        f, _, cx, cz = heapq.heappop(heap)
        if closed[cz, cx]:
            continue

        if cx == ex and cz == ez:
            path = [(cx, cz)]
            while path[-1] in came_from:
                path.append(came_from[path[-1]])
            path.reverse()
            return path

        closed[cz, cx] = True

        for dx, dz, step in _STEPS:
            nx, nz = cx + dx, cz + dz
            if nx < 0 or nz < 0 or nx >= gw or nz >= gh:
                continue
            if closed[nz, nx]:
                continue
            cell_cost = costs[nz, nx]
            if math.isinf(cell_cost):
                continue

            tentative = g[cz, cx] + step * (1.0 + cell_cost)
            if tentative < g[nz, nx]:
                g[nz, nx] = tentative
                came_from[(nx, nz)] = (cx, cz)
                order = open_order.get((nx, nz))
                if order is None:
                    order = inserted
                    open_order[(nx, nz)] = order
                    inserted += 1
                heapq.heappush(
                    heap, (tentative + _heuristic(nx, nz, ex, ez), order, nx, nz)
                )

    return None


def catmull_rom(p0, p1, p2, p3, t: float) -> np.ndarray:
    """Standard uniform Catmull-Rom point at parameter t in [0, 1]."""
    t2 = t * t
    t3 = t2 * t
    return 0.5 * (
        2.0 * p1
        + (-p0 + p2) * t
        + (2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3) * t2
        + (-p0 + 3.0 * p1 - 3.0 * p2 + p3) * t3
    )


def smooth_catmull_rom(points, subdivisions: int) -> np.ndarray:
    """
    Refine an open polyline with a Catmull-Rom spline.

    End segments duplicate their edge point as the missing control point.
    The curve passes through every input point.

    Args:
        points: (N, 3) polyline
        subdivisions: Samples per segment, clamped to 1-16

    Returns:
        (M, 3) smoothed polyline
    """
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) < 2:
        return pts
    subdivisions = min(max(int(subdivisions), 1), MAX_SUBDIVISIONS)

    smoothed = []
    last = len(pts) - 1
    for i in range(last):
        p0 = pts[i - 1] if i > 0 else pts[i]
        p1 = pts[i]
        p2 = pts[i + 1]
        p3 = pts[i + 2] if i + 2 <= last else pts[i + 1]
        for j in range(subdivisions):
            smoothed.append(catmull_rom(p0, p1, p2, p3, j / subdivisions))
    smoothed.append(pts[-1])
    return np.asarray(smoothed)


def resample_polyline(
    points,
    step: float,
    height_fn: Optional[Callable[[float, float], float]] = None,
) -> np.ndarray:
    """
    Walk a polyline at fixed arc-length steps.

    The first and last input points are always kept exactly; every new
    sample in between gets its height from ``height_fn`` when given.

    Args:
        points: (N, 3) polyline
        step: Arc-length spacing
        height_fn: Maps world (x, z) to world height

    Returns:
        (M, 3) resampled polyline
    """
    pts = np.asarray(points, dtype=np.float64)
    if len(pts) == 0:
        return pts
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")

    samples = [pts[0].copy()]
    since_last = 0.0

    for a, b in zip(pts[:-1], pts[1:]):
        seg = b - a
        d = float(np.linalg.norm(seg))
        if d < 1e-4:
            continue

        t = step - since_last
        while t < d:
            p = a + seg * (t / d)
            if height_fn is not None:
                p[1] = height_fn(p[0], p[2])
            samples.append(p)
            t += step
        since_last = d - (t - step)

    if len(pts) > 1:
        samples.append(pts[-1].copy())
    return np.asarray(samples)


@dataclass
class Route:
    """A routed road in its three construction stages."""

    start: np.ndarray
    end: np.ndarray
    raw: np.ndarray
    smoothed: np.ndarray
    samples: np.ndarray
    used_fallback: bool = False

    @property
    def length(self) -> float:
        if len(self.samples) < 2:
            return 0.0
        return float(np.sum(np.linalg.norm(np.diff(self.samples, axis=0), axis=1)))


class PathRouter:
    """Routes road edges between world positions."""

    def __init__(
        self,
        terrain: Terrain,
        sea_level: float,
        options: Optional[RoutingOptions] = None,
        cost_field: Optional[CostField] = None,
    ):
        """
        Initialize router.

        Args:
            terrain: Terrain queried for cost and conforming heights
            sea_level: Normalized sea level
            options: Routing options
            cost_field: Prebuilt cost field (built lazily otherwise)
        """
        self.terrain = terrain
        self.sea_level = sea_level
        self.options = options or RoutingOptions()
        self.cost_field = cost_field
        self.fallbacks = 0

    def build_cost_field(self) -> CostField:
        self.cost_field = CostField.build(self.terrain, self.sea_level, self.options)
        return self.cost_field

    def _astar_route(self, a: np.ndarray, b: np.ndarray) -> Optional[np.ndarray]:
        if self.cost_field is None:
            self.build_cost_field()
        field = self.cost_field

        cells = astar_cells(field, field.world_to_cell(a[0], a[2]), field.world_to_cell(b[0], b[2]))
        if not cells:
            return None

        pts = []
        for gx, gz in cells:
            wx, wz = field.cell_center(gx, gz)
            pts.append([wx, self.terrain.sample_height(wx, wz), wz])

        # Pin end heights, then attach the exact endpoints
        pts[0][1] = a[1]
        pts[-1][1] = b[1]
        return np.vstack([a, np.asarray(pts), b])

    def raw_route(self, a, b) -> Tuple[np.ndarray, bool]:
        """
        Unsmoothed route between two world positions.

        Returns:
            (points, used_fallback)
        """
        a = np.asarray(a, dtype=np.float64)
        b = np.asarray(b, dtype=np.float64)
        direct = np.vstack([a, b])

        if self.options.mode == RoutingMode.DIRECT:
            return direct, False

        route = self._astar_route(a, b)
        if route is None:
            self.fallbacks += 1
            logger.warning(
                "No A* path found, falling back to direct route",
                start=(round(float(a[0]), 1), round(float(a[2]), 1)),
                end=(round(float(b[0]), 1), round(float(b[2]), 1)),
            )
            return direct, True
        return route, False

    def route(self, a, b) -> Route:
        """Route, smooth and resample one edge."""
        raw, used_fallback = self.raw_route(a, b)
        smoothed = smooth_catmull_rom(raw, self.options.catmull_subdivisions)
        samples = resample_polyline(
            smoothed, self.options.path_step, height_fn=self.terrain.sample_height
        )
        return Route(
            start=raw[0],
            end=raw[-1],
            raw=raw,
            smoothed=smoothed,
            samples=samples,
            used_fallback=used_fallback,
        )
