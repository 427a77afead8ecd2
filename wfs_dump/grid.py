# ============================================================================
# CLAUDE CONTEXT - TILE GRID GENERATOR
# ============================================================================
# STATUS: Standalone Module - Slippy tile grid
# PURPOSE: Partition a WGS84 bounding box into web-mercator tiles at one zoom
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: generate_grid, iter_grid, grid_size, validate_zoom, MAX_ZOOM
# DEPENDENCIES: mercantile
# ============================================================================

"""
Tile Grid Generator

The world is quartered `zoom` times (2^zoom x 2^zoom lattice, origin top
left) and every tile intersecting the requested box is enumerated,
inclusive. Ordering is column-major (x outer, y inner) and stable between
calls, which is all progress reporting needs.

Whole-world grids at high zoom run to hundreds of millions of tiles, so
the orchestrator walks iter_grid() and counts with grid_size() instead
of materializing the list.

Limitations:
- Latitudes beyond +/-85.0511 (the web-mercator limit) are clamped; the
  grid cannot cover them.
- A box crossing the antimeridian is not supported. min_x must be less
  than max_x, which BoundingBox already enforces.
"""

import logging
from typing import Iterator, List

import mercantile

from .exceptions import InvalidParameterError
from .models import BoundingBox, Tile, WGS84_EPSG

logger = logging.getLogger(__name__)

MAX_ZOOM = 30

# Clamps mercantile.tiles() applies to the requested extent
MAX_MERCATOR_LAT = 85.051129
LL_EPSILON = 1e-11


def validate_zoom(zoom) -> int:
    """
    Check that zoom is an integer in [0, MAX_ZOOM].

    Raises:
        InvalidParameterError: zoom out of range or not an integer
    """
    if isinstance(zoom, bool) or not isinstance(zoom, int):
        raise InvalidParameterError(f"Zoom level must be an integer, got {zoom!r}")
    if zoom < 0 or zoom > MAX_ZOOM:
        raise InvalidParameterError(f"Zoom level must be between 0 and {MAX_ZOOM}, got {zoom}")
    return zoom


def _check_geographic(bbox: BoundingBox) -> None:
    if bbox.epsg != WGS84_EPSG:
        raise InvalidParameterError(
            f"Grid extent must be given in EPSG:{WGS84_EPSG}, got EPSG:{bbox.epsg}"
        )


def grid_size(bbox: BoundingBox, zoom: int) -> int:
    """Number of tiles generate_grid() would return, without building them."""
    validate_zoom(zoom)
    _check_geographic(bbox)
    west, south, east, north = bbox.as_tuple()
    ul = mercantile.tile(max(west, -180.0), min(north, MAX_MERCATOR_LAT), zoom)
    lr = mercantile.tile(
        min(east, 180.0) - LL_EPSILON,
        max(south, -MAX_MERCATOR_LAT) + LL_EPSILON,
        zoom
    )
    return (lr.x - ul.x + 1) * (lr.y - ul.y + 1)


def iter_grid(bbox: BoundingBox, zoom: int) -> Iterator[Tile]:
    """
    Lazily yield the tiles covering bbox, in generate_grid() order.

    Arguments are validated before the first tile is yielded.

    Raises:
        InvalidParameterError: zoom out of range or bbox not in EPSG:4326
    """
    validate_zoom(zoom)
    _check_geographic(bbox)
    return (
        Tile(z=t.z, x=t.x, y=t.y)
        for t in mercantile.tiles(*bbox.as_tuple(), zooms=[zoom])
    )


def generate_grid(bbox: BoundingBox, zoom: int) -> List[Tile]:
    """
    Tiles covering bbox at the given zoom level.

    Args:
        bbox: Extent in EPSG:4326 (min_x < max_x, no antimeridian crossing)
        zoom: Zoom level, 0..MAX_ZOOM

    Returns:
        Ordered list of tiles; every index lies in [0, 2^zoom)

    Raises:
        InvalidParameterError: zoom out of range or bbox not in EPSG:4326
    """
    tiles = list(iter_grid(bbox, zoom))
    logger.debug(f"Generated {len(tiles)} tiles at zoom {zoom} for {bbox}")
    return tiles
