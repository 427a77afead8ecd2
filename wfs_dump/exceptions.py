# ============================================================================
# CLAUDE CONTEXT - WFS DUMP EXCEPTIONS
# ============================================================================
# STATUS: Standalone Module - Failure taxonomy
# PURPOSE: Exception classes for run-fatal and tile-scoped failures
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: WFSDumpError, ConfigurationError, InvalidParameterError, ProjectionError,
#          DecodeError, EncodingError, LoadError
# DEPENDENCIES: none
# ============================================================================

"""
Failure taxonomy for the WFS dump pipeline.

Run-fatal (raised before any tile is dispatched):
    ConfigurationError, InvalidParameterError, ProjectionError at setup

Tile-scoped (caught at the tile boundary and recorded in the RunReport):
    ProjectionError, DecodeError, LoadError

Feature-scoped (the feature is skipped):
    EncodingError

HTTP failures are not exceptions: WFSClient returns a WFSResponse with
success=False instead.
"""


class WFSDumpError(Exception):
    """Base class for every error raised by the dump pipeline."""


class ConfigurationError(WFSDumpError):
    """Invalid run configuration; aborts before any tile work starts."""


class InvalidParameterError(ConfigurationError):
    """A single parameter (zoom, bbox) is outside its valid range."""


class ProjectionError(WFSDumpError):
    """Unknown CRS or a failed coordinate transform."""


class DecodeError(WFSDumpError):
    """The WFS response body is not a usable GeoJSON FeatureCollection."""


class EncodingError(WFSDumpError):
    """A feature cannot be encoded for loading (unsupported or empty geometry)."""


class LoadError(WFSDumpError):
    """The database rejected a tile's batch; the tile's transaction was rolled back."""
