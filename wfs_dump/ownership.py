# ============================================================================
# CLAUDE CONTEXT - TILE OWNERSHIP FILTER
# ============================================================================
# STATUS: Standalone Module - Centroid ownership rule
# PURPOSE: Decide which tile loads a feature returned by several tile queries
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: owned_by, owned_features
# DEPENDENCIES: shapely
# ============================================================================

"""
Tile-Ownership Filter

A feature belongs to a tile iff its centroid lies strictly inside the tile
extent on all four sides. Neighbouring tile queries return the same
feature, but the centroid is inside at most one non-overlapping tile, so
each feature is loaded at most once per run.

A centroid lying exactly on a shared tile edge is owned by neither tile.
Such a feature is not loaded.
"""

from typing import Iterable, List

from .models import BoundingBox, Feature


def owned_by(feature: Feature, extent: BoundingBox) -> bool:
    """
    True when the feature's centroid is strictly inside extent.

    Features without a geometry (or with an empty one) have no centroid
    and are never owned.
    """
    geometry = feature.geometry
    if geometry is None or geometry.is_empty:
        return False

    centroid = geometry.centroid
    if centroid.is_empty:
        return False
    cx, cy = centroid.x, centroid.y

    return (
        extent.min_x < cx and
        extent.min_y < cy and
        extent.max_x > cx and
        extent.max_y > cy
    )


def owned_features(features: Iterable[Feature], extent: BoundingBox) -> List[Feature]:
    """Features of one tile's response that this tile owns."""
    return [feature for feature in features if owned_by(feature, extent)]
