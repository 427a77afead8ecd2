# ============================================================================
# CLAUDE CONTEXT - FEATURE ENCODER
# ============================================================================
# STATUS: Standalone Module - WKB + JSON encoding
# PURPOSE: Convert Feature values into rows for the destination table
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: encode_feature, decode_row, SUPPORTED_GEOMETRY_TYPES
# DEPENDENCIES: shapely, json
# ============================================================================

"""
Feature Encoder

Geometry -> WKB bytes (shapely.wkb), attributes -> JSON text. Encoding is
deterministic: the same feature always yields the same row.

EncodingError is feature-scoped. The orchestrator skips the feature and
only fails the tile when none of its owned features could be encoded.
"""

import json
from typing import Any, Dict, Tuple

from shapely import wkb
from shapely.errors import ShapelyError

from .exceptions import EncodingError
from .models import EncodedRow, Feature

SUPPORTED_GEOMETRY_TYPES = frozenset({
    "Point",
    "LineString",
    "LinearRing",
    "Polygon",
    "MultiPoint",
    "MultiLineString",
    "MultiPolygon",
    "GeometryCollection",
})


def _contains_nul(value: Any) -> bool:
    """True when a key or string value anywhere in value holds a NUL character."""
    if isinstance(value, str):
        return "\x00" in value
    if isinstance(value, dict):
        return any(_contains_nul(k) or _contains_nul(v) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return any(_contains_nul(v) for v in value)
    return False


def encode_attributes(attributes: Dict[str, Any]) -> str:
    """
    Serialize attributes to JSON text accepted by a jsonb column.

    Raises:
        EncodingError: values that JSON or jsonb cannot represent
            (NaN/Infinity, non-serializable objects, NUL characters,
            unpaired surrogates)
    """
    try:
        text = json.dumps(attributes, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Attributes cannot be serialized to JSON: {e}") from e

    if _contains_nul(attributes):
        raise EncodingError("Attributes contain a NUL character, which jsonb cannot store")
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Attributes are not valid UTF-8 text: {e.reason}") from e
    return text


def encode_feature(feature: Feature, epsg: int) -> EncodedRow:
    """
    Encode one feature for insertion.

    Args:
        feature: Decoded feature
        epsg: SRID for the geometry cast

    Returns:
        EncodedRow with WKB geometry and JSON attribute text

    Raises:
        EncodingError: missing, empty or unsupported geometry, or
            attributes that cannot be stored
    """
    geometry = feature.geometry
    if geometry is None:
        raise EncodingError("Feature has no geometry")
    if geometry.geom_type not in SUPPORTED_GEOMETRY_TYPES:
        raise EncodingError(f"Unsupported geometry type: {geometry.geom_type}")
    if geometry.is_empty:
        raise EncodingError(f"Empty {geometry.geom_type} geometry")

    try:
        geometry_wkb = wkb.dumps(geometry)
    except (ShapelyError, ValueError) as e:
        raise EncodingError(f"Geometry cannot be written as WKB: {e}") from e

    return EncodedRow(
        wkb=geometry_wkb,
        attributes_json=encode_attributes(feature.attributes),
        epsg=epsg
    )


def decode_row(row: EncodedRow) -> Tuple[Any, Dict[str, Any]]:
    """Inverse of encode_feature: (shapely geometry, attribute dict)."""
    return wkb.loads(row.wkb), json.loads(row.attributes_json)
