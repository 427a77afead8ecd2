# ============================================================================
# CLAUDE CONTEXT - FEATURE DECODER
# ============================================================================
# STATUS: Standalone Module - GeoJSON FeatureCollection decoding
# PURPOSE: Turn one tile's WFS JSON payload into Feature values
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: decode_feature_collection
# DEPENDENCIES: json, shapely
# ============================================================================

"""
Feature Decoder

Parses a GeoJSON FeatureCollection body. Geometry parsing is delegated to
shapely.geometry.shape(); properties are kept as-is, in source order.
Any malformed input raises DecodeError, which the orchestrator records as
a tile failure.
"""

import json
from typing import List, Union

from shapely.errors import GEOSException, ShapelyError
from shapely.geometry import shape

from .exceptions import DecodeError
from .models import Feature


def _decode_feature(raw: dict, index: int) -> Feature:
    if not isinstance(raw, dict) or raw.get("type") != "Feature":
        raise DecodeError(f"Item {index} of the FeatureCollection is not a GeoJSON Feature")

    geometry = None
    if raw.get("geometry") is not None:
        try:
            geometry = shape(raw["geometry"])
        except (GEOSException, ShapelyError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Feature {index} has an invalid geometry: {e}") from e

    properties = raw.get("properties") or {}
    if not isinstance(properties, dict):
        raise DecodeError(f"Feature {index} has non-object properties")

    return Feature(geometry=geometry, attributes=properties, feature_id=raw.get("id"))


def decode_feature_collection(payload: Union[bytes, str]) -> List[Feature]:
    """
    Decode a GeoJSON FeatureCollection.

    Args:
        payload: Raw response body

    Returns:
        Features in document order (geometry None for null geometries)

    Raises:
        DecodeError: body is not JSON, not a FeatureCollection, or holds
            an invalid feature
    """
    try:
        document = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"Response is not valid JSON: {e}") from e

    if not isinstance(document, dict) or document.get("type") != "FeatureCollection":
        raise DecodeError("Response is not a GeoJSON FeatureCollection")

    raw_features = document.get("features")
    if raw_features is None:
        return []
    if not isinstance(raw_features, list):
        raise DecodeError("FeatureCollection 'features' member is not an array")

    return [_decode_feature(raw, i) for i, raw in enumerate(raw_features)]
