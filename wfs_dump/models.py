# ============================================================================
# CLAUDE CONTEXT - WFS DUMP MODELS
# ============================================================================
# STATUS: Standalone Models - Pipeline value objects
# PURPOSE: Bounding boxes, tiles, features, encoded rows and run reporting
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: BoundingBox, Tile, Feature, EncodedRow, FailureKind, TileFailure, TileOutcome, RunReport
# PYDANTIC_MODELS: BoundingBox, Tile, TileFailure, TileOutcome, RunReport
# DEPENDENCIES: pydantic, mercantile, shapely (type only)
# VALIDATION: Pydantic v2 validation
# PATTERNS: Value Objects, Data Transfer Objects (DTOs)
# ============================================================================

"""
WFS Dump Models

Value objects passed between the pipeline stages. Everything except the
RunReport aggregation is immutable once constructed.

    BoundingBox  - (min_x, min_y, max_x, max_y) in a stated EPSG code
    Tile         - slippy-map tile (z, x, y) with a derivable WGS84 footprint
    Feature      - decoded geometry + attribute mapping
    EncodedRow   - WKB geometry + JSON attribute text ready for insertion
    TileFailure  - failure record for one tile
    TileOutcome  - result of processing one tile
    RunReport    - aggregate of all tile outcomes for a run
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import mercantile
from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, model_validator

from .exceptions import InvalidParameterError

# Canonical geographic CRS of the tile lattice
WGS84_EPSG = 4326


class BoundingBox(BaseModel):
    """
    Axis-aligned extent in a given CRS.

    Invariant: min_x < max_x and min_y < max_y.
    """
    model_config = ConfigDict(frozen=True)

    min_x: float = Field(allow_inf_nan=False)
    min_y: float = Field(allow_inf_nan=False)
    max_x: float = Field(allow_inf_nan=False)
    max_y: float = Field(allow_inf_nan=False)
    epsg: int = Field(default=WGS84_EPSG, ge=1, description="EPSG code of the coordinates")

    @model_validator(mode="after")
    def check_ordering(self) -> "BoundingBox":
        if not self.min_x < self.max_x:
            raise ValueError(f"min_x ({self.min_x}) must be less than max_x ({self.max_x})")
        if not self.min_y < self.max_y:
            raise ValueError(f"min_y ({self.min_y}) must be less than max_y ({self.max_y})")
        return self

    @classmethod
    def from_sequence(cls, values: Sequence[float], epsg: int = WGS84_EPSG) -> "BoundingBox":
        """
        Build a bounding box from [minX, minY, maxX, maxY].

        Raises:
            InvalidParameterError: wrong arity, non-numeric or unordered values
        """
        if values is None or len(values) != 4:
            raise InvalidParameterError("Bounding box must have 4 values (minX minY maxX maxY)")
        try:
            return cls(min_x=values[0], min_y=values[1], max_x=values[2], max_y=values[3], epsg=epsg)
        except ValidationError as e:
            raise InvalidParameterError(f"Invalid bounding box {list(values)}: {e}") from e

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def __str__(self) -> str:
        return f"{self.min_x}, {self.min_y}, {self.max_x}, {self.max_y} (EPSG:{self.epsg})"


class Tile(BaseModel):
    """
    Slippy-map tile in the standard web-mercator indexing (origin top-left).
    """
    model_config = ConfigDict(frozen=True)

    z: int = Field(ge=0)
    x: int = Field(ge=0)
    y: int = Field(ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "Tile":
        size = 2 ** self.z
        if self.x >= size or self.y >= size:
            raise ValueError(f"Tile index ({self.x}, {self.y}) outside [0, {size}) at zoom {self.z}")
        return self

    @property
    def tile_id(self) -> str:
        return f"{self.z}/{self.x}/{self.y}"

    def bounds(self) -> BoundingBox:
        """Footprint of the tile in WGS84 longitude/latitude."""
        west, south, east, north = mercantile.bounds(self.x, self.y, self.z)
        return BoundingBox(min_x=west, min_y=south, max_x=east, max_y=north, epsg=WGS84_EPSG)

    def __str__(self) -> str:
        return self.tile_id


@dataclass(frozen=True)
class Feature:
    """
    One decoded WFS record.

    geometry is a shapely geometry (None when the source record has a null
    geometry); attributes keeps the source property order.
    """
    geometry: Any
    attributes: Dict[str, Any] = field(default_factory=dict)
    feature_id: Optional[Any] = None


@dataclass(frozen=True)
class EncodedRow:
    """
    A feature ready for insertion.

    wkb is the binary geometry, attributes_json the serialized attribute
    document and epsg the SRID used for the ST_GeomFromWKB cast.
    """
    wkb: bytes
    attributes_json: str
    epsg: int

    @property
    def escaped_attributes(self) -> str:
        """Attribute text with single quotes doubled for a quoted SQL literal."""
        return self.attributes_json.replace("'", "''")

    def as_literal_statement(self, table: str, geometry_column: str, attributes_column: str) -> str:
        """
        Textual INSERT for this row, for diagnostics only.

        Loading always goes through bound parameters.
        """
        return (
            f"INSERT INTO {table} ({geometry_column}, {attributes_column}) "
            f"VALUES (ST_GeomFromWKB('\\x{self.wkb.hex().upper()}', {self.epsg}), "
            f"'{self.escaped_attributes}'::jsonb)"
        )


class FailureKind(str, Enum):
    """Classification of a tile-level failure."""
    FETCH = "fetch"
    DECODE = "decode"
    PROJECTION = "projection"
    ENCODING = "encoding"
    LOAD = "load"
    UNEXPECTED = "unexpected"


class TileFailure(BaseModel):
    """Failure record for one tile."""
    model_config = ConfigDict(frozen=True)

    tile: Tile
    kind: FailureKind
    status_code: Optional[int] = Field(default=None, description="HTTP status for fetch failures")
    detail: str = ""

    @property
    def classification(self) -> str:
        """
        Distinct failure class, e.g. "fetch/500", "fetch/network", "load".
        """
        if self.kind == FailureKind.FETCH:
            return f"fetch/{self.status_code}" if self.status_code is not None else "fetch/network"
        return self.kind.value


class TileOutcome(BaseModel):
    """Result of processing one tile: a loaded count or a failure."""
    model_config = ConfigDict(frozen=True)

    tile: Tile
    features_loaded: int = 0
    features_skipped: int = 0
    failure: Optional[TileFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None


class RunReport(BaseModel):
    """
    Summary of a dump run.

    tiles_processed counts every tile whose pipeline ran to an outcome;
    tiles_skipped counts tiles never dispatched because the run was cancelled.
    """
    run_id: Optional[str] = None
    total_tiles: int = 0
    tiles_processed: int = 0
    tiles_skipped: int = 0
    features_loaded: int = 0
    features_skipped: int = 0
    cancelled: bool = False
    duration_seconds: Optional[float] = None
    failures: List[TileFailure] = Field(default_factory=list)

    @computed_field
    @property
    def tiles_with_errors(self) -> int:
        return len(self.failures)

    @computed_field
    @property
    def failures_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for failure in self.failures:
            counts[failure.kind.value] = counts.get(failure.kind.value, 0) + 1
        return counts

    @computed_field
    @property
    def distinct_status_codes(self) -> List[int]:
        return sorted({f.status_code for f in self.failures if f.status_code is not None})

    @computed_field
    @property
    def failure_classes(self) -> List[str]:
        return sorted({f.classification for f in self.failures})

    @computed_field
    @property
    def failed_tile_ids(self) -> List[str]:
        return [f.tile.tile_id for f in self.failures]

    @property
    def succeeded(self) -> bool:
        return not self.failures and not self.cancelled
