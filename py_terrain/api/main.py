"""FastAPI main application."""

import time
from typing import Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, ValidationError

from ..config import settings
from ..core.biomes import BiomeDefinition, default_biome_table
from ..core.pipeline import WorldGenerator, WorldResult
from ..core.routing import RoutingMode
from ..core.sites import MonumentSite
from ..core.world_config import WorldConfig
from ..utils.log_setup import configure_logging

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Terrain World Generator API",
    description="Seeded terrain, biome, river and road network generation",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class WorldGenerationRequest(BaseModel):
    """Request to generate a world."""

    seed: int = Field(12345, description="World seed")
    heightmap_resolution: int = Field(257, gt=0, description="Heightmap cells per side")
    alphamap_resolution: int = Field(256, gt=0, description="Weight-map cells per side")
    sea_level: float = Field(0.28, description="Normalized sea level")
    size_x: float = Field(2048.0, gt=0, description="Terrain extent along X")
    size_z: float = Field(2048.0, gt=0, description="Terrain extent along Z")
    height_scale: float = Field(350.0, gt=0, description="World height of 1.0")
    layer_count: int = Field(6, ge=1, description="Weight-map layers")
    monument_count: int = Field(10, ge=0, description="Requested monuments")
    river_count: int = Field(10, ge=0, description="Requested rivers")
    routing_mode: RoutingMode = Field(RoutingMode.ASTAR, description="Road routing strategy")
    routing_grid: int = Field(256, gt=0, description="A* grid cells per side")
    biomes: Optional[List[BiomeDefinition]] = Field(
        None, description="Biome table (defaults to the built-in table)"
    )


class BiomeStatistics(BaseModel):
    """Biome distribution entry."""

    biome_name: str
    cell_count: int
    percentage: float


class RiverInfo(BaseModel):
    """Information about a carved river."""

    id: int
    length: float
    cell_count: int
    source_cell: List[int]
    mouth_cell: List[int]


class RoadSummary(BaseModel):
    """Information about one routed road."""

    from_site: int
    to_site: int
    length: float
    sample_count: int
    used_fallback: bool
    vertex_count: int = 0
    triangle_count: int = 0


class WorldSummary(BaseModel):
    """Summary of a generated world."""

    seed: int
    heightmap_resolution: int
    alphamap_resolution: int
    land_fraction: float
    diagnostics: Dict[str, float]
    biome_distribution: List[BiomeStatistics]
    rivers: List[RiverInfo]
    sites: List[MonumentSite]
    roads: List[RoadSummary]
    generation_time_seconds: float


def build_config(request: WorldGenerationRequest) -> WorldConfig:
    """Translate an API request into a world configuration."""
    config = WorldConfig(
        seed=request.seed,
        heightmap_resolution=request.heightmap_resolution,
        alphamap_resolution=request.alphamap_resolution,
        sea_level=request.sea_level,
        size_x=request.size_x,
        size_z=request.size_z,
        height_scale=request.height_scale,
        layer_count=request.layer_count,
    )
    config.monuments.monument_count = request.monument_count
    config.hydrology.river_count = request.river_count
    config.routing.mode = request.routing_mode
    config.routing.grid_x = request.routing_grid
    config.routing.grid_z = request.routing_grid
    if request.biomes is not None:
        config.biomes = request.biomes
    return config


def summarize(result: WorldResult, elapsed: float) -> WorldSummary:
    cfg = result.config
    total = max(int(result.biome_index.data.size), 1)

    return WorldSummary(
        seed=cfg.seed,
        heightmap_resolution=cfg.heightmap_resolution,
        alphamap_resolution=cfg.alphamap_resolution,
        land_fraction=result.land_fraction,
        diagnostics=result.diagnostics,
        biome_distribution=[
            BiomeStatistics(
                biome_name=name,
                cell_count=count,
                percentage=round(100.0 * count / total, 2),
            )
            for name, count in result.biome_statistics.items()
        ],
        rivers=[
            RiverInfo(
                id=river.id,
                length=river.length,
                cell_count=len(river.cells),
                source_cell=list(river.source_cell),
                mouth_cell=list(river.mouth_cell),
            )
            for river in result.rivers
        ],
        sites=result.sites,
        roads=[
            RoadSummary(
                from_site=road.edge[0],
                to_site=road.edge[1],
                length=road.route.length,
                sample_count=len(road.route.samples),
                used_fallback=road.route.used_fallback,
                vertex_count=road.mesh.vertex_count if road.mesh else 0,
                triangle_count=road.mesh.triangle_count if road.mesh else 0,
            )
            for road in result.roads
        ],
        generation_time_seconds=elapsed,
    )


# Event handlers
@app.on_event("startup")
async def startup_event():
    configure_logging()
    logger.info("Starting Terrain World Generator API")


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Terrain World Generator API",
        "version": "0.1.0",
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/biomes/default", response_model=List[BiomeDefinition])
async def get_default_biomes():
    """The built-in biome table."""
    return default_biome_table()


@app.post("/worlds/generate", response_model=WorldSummary)
def generate_world(request: WorldGenerationRequest):
    """
    Run one generation pass synchronously and return its summary.
    """
    logger.info("World generation requested", request=request.model_dump(exclude={"biomes"}))

    try:
        config = build_config(request)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if config.heightmap_resolution > settings.max_heightmap_resolution:
        raise HTTPException(
            status_code=400,
            detail=(
                f"heightmap_resolution {config.heightmap_resolution} exceeds "
                f"the maximum of {settings.max_heightmap_resolution}"
            ),
        )

    start = time.time()
    result = WorldGenerator(config).generate()
    elapsed = time.time() - start

    logger.info("World generation finished", seed=config.seed, elapsed_seconds=round(elapsed, 2))
    return summarize(result, elapsed)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
