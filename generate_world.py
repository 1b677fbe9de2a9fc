#!/usr/bin/env python3
"""
Generate a world and save its grids plus a preview image.

Usage:
    python generate_world.py [seed] [--resolution N] [--routing astar|direct]

Writes ``world_<seed>.npz`` (elevation, weights, biome index, climate,
sites and road mesh buffers) and ``world_<seed>.png``.
"""

import argparse
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

sys.path.append(str(Path(__file__).parent))

from py_terrain.core.pipeline import WorldGenerator, WorldResult
from py_terrain.core.routing import RoutingMode
from py_terrain.core.world_config import WorldConfig
from py_terrain.utils.log_setup import configure_logging


def save_arrays(result: WorldResult, output_file: Path) -> None:
    """Save every published grid and mesh buffer into one npz archive."""
    arrays = {
        "elevation": result.elevation.as_array(),
        "weights": result.weights.as_array(),
        "biome_index": result.biome_index.as_array(),
        "temperature": result.climate.temperature.as_array(),
        "moisture": result.climate.moisture.as_array(),
        "sites": np.array([s.position for s in result.sites]).reshape(-1, 3),
    }
    for road in result.roads:
        key = f"road_{road.edge[0]}_{road.edge[1]}"
        arrays[f"{key}_samples"] = road.route.samples
        if road.mesh is not None:
            arrays[f"{key}_vertices"] = road.mesh.vertices
            arrays[f"{key}_normals"] = road.mesh.normals
            arrays[f"{key}_uvs"] = road.mesh.uvs
            arrays[f"{key}_triangles"] = road.mesh.triangles

    np.savez_compressed(output_file, **arrays)
    print(f"Arrays saved to: {output_file}")


def save_preview(result: WorldResult, output_file: Path) -> None:
    """Plot elevation and biomes with sites, rivers and roads on top."""
    cfg = result.config
    extent = (0, cfg.size_x, 0, cfg.size_z)

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(16, 8))

    im = ax1.imshow(
        result.elevation.as_array(),
        extent=extent,
        origin="lower",
        cmap="terrain",
        vmin=0,
        vmax=1,
    )
    plt.colorbar(im, ax=ax1, label="Normalized height")
    ax1.contour(
        np.linspace(0, cfg.size_x, result.elevation.cols),
        np.linspace(0, cfg.size_z, result.elevation.rows),
        result.elevation.as_array(),
        levels=[cfg.sea_level],
        colors="blue",
        linewidths=1,
    )

    cell_x = cfg.size_x / (result.elevation.cols - 1)
    cell_z = cfg.size_z / (result.elevation.rows - 1)
    for river in result.rivers:
        cells = np.asarray(river.cells)
        ax1.plot(cells[:, 1] * cell_x, cells[:, 0] * cell_z, color="navy", linewidth=0.8)

    ax1.set_title(f"Elevation ({cfg.heightmap_resolution}²), sea level {cfg.sea_level}")

    ax2.imshow(
        result.biome_index.as_array(),
        extent=extent,
        origin="lower",
        cmap="tab10",
        interpolation="nearest",
    )
    ax2.set_title("Biomes, sites and roads")

    for ax in (ax1, ax2):
        for road in result.roads:
            samples = road.route.samples
            style = "--" if road.route.used_fallback else "-"
            ax.plot(samples[:, 0], samples[:, 2], style, color="black", linewidth=1.2)
        if result.sites:
            xs = [s.x for s in result.sites]
            zs = [s.z for s in result.sites]
            ax.scatter(xs, zs, color="red", s=20, zorder=3)
        ax.set_xlabel("X")
        ax.set_ylabel("Z")

    fig.suptitle(f"World Preview - Seed: {cfg.seed}", fontsize=16)
    plt.tight_layout()
    plt.savefig(output_file, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Preview saved to: {output_file}")


def main():
    parser = argparse.ArgumentParser(description="Generate a terrain world")
    parser.add_argument("seed", nargs="?", type=int, default=12345, help="World seed")
    parser.add_argument("--resolution", type=int, default=513, help="Heightmap resolution")
    parser.add_argument("--alphamap", type=int, default=256, help="Weight-map resolution")
    parser.add_argument(
        "--routing",
        choices=[m.value for m in RoutingMode],
        default=RoutingMode.ASTAR.value,
        help="Road routing strategy",
    )
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="Output directory")
    args = parser.parse_args()

    configure_logging(fmt="console")

    config = WorldConfig(
        seed=args.seed,
        heightmap_resolution=args.resolution,
        alphamap_resolution=args.alphamap,
    )
    config.routing.mode = RoutingMode(args.routing)

    print(f"Generating world with seed {config.seed}...")
    result = WorldGenerator(config).generate()

    print("\nWorld statistics:")
    for key, value in result.diagnostics.items():
        print(f"  {key}: {value}")
    for name, count in sorted(result.biome_statistics.items(), key=lambda kv: -kv[1]):
        print(f"  {name}: {count} cells")

    args.output_dir.mkdir(parents=True, exist_ok=True)
    save_arrays(result, args.output_dir / f"world_{config.seed}.npz")
    save_preview(result, args.output_dir / f"world_{config.seed}.png")


if __name__ == "__main__":
    main()
