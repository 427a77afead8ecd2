# ============================================================================
# CLAUDE CONTEXT - EXTENT PROJECTOR
# ============================================================================
# STATUS: Standalone Module - CRS transform of tile extents
# PURPOSE: Map a tile footprint from EPSG:4326 into the destination CRS
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ExtentProjector, project
# DEPENDENCIES: pyproj
# ============================================================================

"""
Extent Projector

Only the two diagonal corners (min corner, max corner) of the box are
transformed; the result is the axis-aligned box spanned by the two
transformed points. Under transforms with shear or rotation the real
footprint is not axis-aligned, so this approximation can clip or
over-include features near tile edges. Tile queries and the ownership
filter both use this same box.

pyproj Transformer objects are not thread-safe, so ExtentProjector keeps
one per worker thread.
"""

import math
import threading
from typing import Optional

from pydantic import ValidationError
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from .exceptions import ProjectionError
from .models import BoundingBox, WGS84_EPSG


def _load_crs(epsg: int) -> CRS:
    try:
        return CRS.from_epsg(epsg)
    except CRSError as e:
        raise ProjectionError(f"Unrecognized CRS EPSG:{epsg}: {e}") from e


class ExtentProjector:
    """
    Reusable projector from one EPSG code to another.

    Construction validates both CRS codes so an unknown code fails the run
    before any tile is dispatched.

    Usage:
        projector = ExtentProjector(target_epsg=28992)
        tile_extent = projector.project(tile.bounds())
    """

    def __init__(self, target_epsg: int, source_epsg: int = WGS84_EPSG):
        self.source_epsg = source_epsg
        self.target_epsg = target_epsg
        self._local = threading.local()

        if not self.is_identity:
            self._source_crs = _load_crs(source_epsg)
            self._target_crs = _load_crs(target_epsg)
            # Fail early if PROJ cannot build an operation between the two
            self._transformer()

    @property
    def is_identity(self) -> bool:
        return self.source_epsg == self.target_epsg

    def _transformer(self) -> Transformer:
        transformer: Optional[Transformer] = getattr(self._local, "transformer", None)
        if transformer is None:
            try:
                transformer = Transformer.from_crs(self._source_crs, self._target_crs, always_xy=True)
            except (CRSError, ProjError) as e:
                raise ProjectionError(
                    f"Cannot transform EPSG:{self.source_epsg} to EPSG:{self.target_epsg}: {e}"
                ) from e
            self._local.transformer = transformer
        return transformer

    def project(self, bbox: BoundingBox) -> BoundingBox:
        """
        Transform bbox into the target CRS.

        Returns bbox itself when source and target CRS are equal.

        Raises:
            ProjectionError: bbox is not in the source CRS, or the transform fails
        """
        if bbox.epsg != self.source_epsg:
            raise ProjectionError(
                f"Extent is in EPSG:{bbox.epsg}, projector expects EPSG:{self.source_epsg}"
            )
        if self.is_identity:
            return bbox

        transformer = self._transformer()
        try:
            x1, y1 = transformer.transform(bbox.min_x, bbox.min_y, errcheck=True)
            x2, y2 = transformer.transform(bbox.max_x, bbox.max_y, errcheck=True)
        except ProjError as e:
            raise ProjectionError(f"Transform of {bbox} to EPSG:{self.target_epsg} failed: {e}") from e

        if not all(math.isfinite(v) for v in (x1, y1, x2, y2)):
            raise ProjectionError(f"Transform of {bbox} to EPSG:{self.target_epsg} produced non-finite coordinates")

        try:
            return BoundingBox(
                min_x=min(x1, x2),
                min_y=min(y1, y2),
                max_x=max(x1, x2),
                max_y=max(y1, y2),
                epsg=self.target_epsg
            )
        except ValidationError as e:
            raise ProjectionError(f"Transform of {bbox} collapsed to an empty extent: {e}") from e


def project(bbox: BoundingBox, from_epsg: int, to_epsg: int) -> BoundingBox:
    """
    One-shot projection of bbox from from_epsg to to_epsg.

    Identity when both codes are equal. Use ExtentProjector when projecting
    many extents.
    """
    return ExtentProjector(target_epsg=to_epsg, source_epsg=from_epsg).project(bbox)
