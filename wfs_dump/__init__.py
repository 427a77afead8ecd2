# ============================================================================
# CLAUDE CONTEXT - WFS DUMP MODULE
# ============================================================================
# STATUS: Standalone Module - WFS to PostGIS tile dump
# PURPOSE: Copy a WFS layer into a PostGIS table, partitioned by map tiles
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: WFSDumpService, WFSDumpConfig, build_config, RunReport, WFSDumpError, ConfigurationError
# INTERFACES: Python API and console script (wfs-dump)
# PYDANTIC_MODELS: WFSDumpConfig, BoundingBox, Tile, TileFailure, TileOutcome, RunReport
# DEPENDENCIES: httpx, psycopg, pydantic, mercantile, shapely, pyproj, tqdm
# SOURCE: CLI arguments, WFSDUMP_* and POSTGIS_* environment variables
# SCOPE: One dump run per invocation
# VALIDATION: Pydantic models, ConfigurationError before any tile work
# PATTERNS: Service Layer, Repository Pattern, Worker pool
# ENTRY_POINTS: from wfs_dump import WFSDumpService, build_config
# ============================================================================

"""
WFS Dump - Standalone Module

Downloads a WFS layer tile by tile and loads it into a PostGIS table.
Each tile is one GetFeature request and one database transaction; a
feature returned by several neighbouring tiles is loaded only by the tile
that contains its centroid.

Architecture:
    wfs_dump/
    ├── config.py      # Run configuration (WFSDUMP_* environment variables)
    ├── exceptions.py  # Failure taxonomy
    ├── models.py      # Pydantic models (bbox, tile, report)
    ├── grid.py        # Tile grid generator (mercantile)
    ├── projection.py  # Tile extent reprojection (pyproj)
    ├── decoder.py     # GeoJSON FeatureCollection decoding
    ├── ownership.py   # Centroid ownership filter
    ├── encoder.py     # WKB + JSON row encoding
    ├── repository.py  # PostGIS batch loader (psycopg)
    ├── service.py     # Pipeline orchestrator
    └── cli.py         # Console tool

Usage:
    from wfs_dump import WFSDumpService, build_config

    config = build_config(
        wfs_url="https://example.com/geoserver/wfs",
        layer="topp:states",
        bbox=[-125, 24, -66, 50],
        zoom=8
    )
    report = WFSDumpService(config).run()
    print(report.failure_classes)
"""

from .config import WFSDumpConfig, build_config
from .exceptions import WFSDumpError, ConfigurationError
from .models import RunReport
from .service import WFSDumpService

__version__ = "1.0.0"
__all__ = [
    "WFSDumpConfig",
    "WFSDumpService",
    "WFSDumpError",
    "ConfigurationError",
    "RunReport",
    "build_config"
]
