# ============================================================================
# CLAUDE CONTEXT - WFS DUMP SERVICE
# ============================================================================
# STATUS: Standalone Service - Pipeline orchestration
# PURPOSE: Drive fetch -> decode -> filter -> encode -> load for every tile
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: WFSDumpService
# INTERFACES: None (standalone implementation)
# PYDANTIC_MODELS: RunReport, TileOutcome, TileFailure
# DEPENDENCIES: concurrent.futures, threading, util_logger
# SOURCE: WFSClient (services.wfs_client), FeatureTableRepository (repository layer)
# SCOPE: Bounded-concurrency tile scheduling and result aggregation
# PATTERNS: Service Layer, Worker pool, Tile-scoped failure isolation
# ENTRY_POINTS: service = WFSDumpService(config); report = service.run()
# INDEX: WFSDumpService:97, prepare:166, run:190, process_tile:306
# ============================================================================

"""
WFS Dump Service - Pipeline Orchestrator

Runs the per-tile pipeline for a whole grid:

    tile.bounds() -> project -> GetFeature -> decode -> ownership filter
        -> encode -> load (one transaction)

Scheduling:
- A ThreadPoolExecutor with `jobs` workers runs the tiles.
- A semaphore with the same size gates submission, so at most `jobs`
  tiles are ever queued or running. Cancellation therefore stops
  dispatching right away; tiles already running finish normally.
- Each worker opens its own HTTP client and database connection.

Shared state between workers is limited to the run accumulator (failure
list, counters), guarded by a lock. Every tile-scoped failure becomes a
TileFailure in the RunReport; only setup errors (grid, destination,
CRS) abort the run, and those are raised before any tile is dispatched.
"""

import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Iterable, Iterator, List, Optional, Tuple

from services.wfs_client import WFSClient
from util_logger import LoggerFactory, ComponentType, LogContext

from .config import WFSDumpConfig, mask_connection_string
from .decoder import decode_feature_collection
from .encoder import encode_feature
from .exceptions import ConfigurationError, DecodeError, EncodingError, LoadError, ProjectionError
from .grid import grid_size, iter_grid
from .models import FailureKind, RunReport, Tile, TileFailure, TileOutcome
from .ownership import owned_features
from .projection import ExtentProjector
from .repository import FeatureTableRepository

# Progress callback: (tiles completed, total tiles, outcome of the tile just finished)
ProgressCallback = Callable[[int, int, TileOutcome], None]

# Grids larger than this get a warning before the run starts
LARGE_GRID_WARNING = 100_000

# Seconds between cancellation checks while waiting for a free worker
_SLOT_POLL_SECONDS = 0.5


class _RunAccumulator:
    """
    Thread-safe aggregation of tile outcomes.

    record() is called from worker threads; the completed counter only
    ever increases and the progress callback sees it under the same lock.
    """

    def __init__(self, total: int, progress_callback: Optional[ProgressCallback] = None):
        self.total = total
        self.progress_callback = progress_callback
        self.completed = 0
        self.features_loaded = 0
        self.features_skipped = 0
        self.failures: List[TileFailure] = []
        self._lock = threading.Lock()

    def record(self, outcome: TileOutcome) -> None:
        with self._lock:
            self.completed += 1
            self.features_loaded += outcome.features_loaded
            self.features_skipped += outcome.features_skipped
            if outcome.failure is not None:
                self.failures.append(outcome.failure)
            if self.progress_callback is not None:
                self.progress_callback(self.completed, self.total, outcome)


class WFSDumpService:
    """
    Tile-partitioned WFS -> PostGIS dump.

    Collaborators can be injected (tests pass a fake client or repository);
    by default they are built from the configuration. An unknown target CRS
    raises ProjectionError here, before any tile work.

    Usage:
        config = build_config(wfs_url=..., layer=...)
        service = WFSDumpService(config)
        report = service.run()
    """

    def __init__(
        self,
        config: WFSDumpConfig,
        client: Optional[WFSClient] = None,
        repository: Optional[FeatureTableRepository] = None,
        projector: Optional[ExtentProjector] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        self.config = config
        self.run_id = uuid.uuid4().hex[:8]
        self.logger = LoggerFactory.create_logger(
            ComponentType.SERVICE,
            "WFSDumpService",
            context=LogContext(run_id=self.run_id, layer=config.layer)
        )

        self.projector = projector or ExtentProjector(target_epsg=config.epsg)

        self.client = client or WFSClient(
            base_url=config.wfs_url,
            timeout=config.request_timeout,
            include_srsname=config.include_srsname
        )

        if repository is None:
            connection_string = config.get_connection_string()
            self.logger.info(f"Destination: {mask_connection_string(connection_string)}")
            repository = FeatureTableRepository(
                connection_string,
                config.output_table,
                config.geometry_column,
                config.attributes_column
            )
        self.repository = repository

        self._cancel_event = cancel_event or threading.Event()

    # ========================================================================
    # CANCELLATION
    # ========================================================================

    def cancel(self) -> None:
        """Stop dispatching new tiles. Tiles already running finish."""
        if not self._cancel_event.is_set():
            self.logger.warning("Cancellation requested, no further tiles will be dispatched")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # ========================================================================
    # GRID
    # ========================================================================

    def prepare(self) -> Tuple[int, Iterator[Tile]]:
        """
        Tile grid for the configured extent and zoom.

        Returns:
            (tile count, lazy tile iterator)

        Raises:
            InvalidParameterError: zoom or extent unusable
        """
        extent = self.config.extent
        total = grid_size(extent, self.config.zoom)
        self.logger.info(f"Grid for {extent} at zoom {self.config.zoom}: {total} tiles")
        if total > LARGE_GRID_WARNING:
            self.logger.warning(
                f"{total} tiles will each issue one WFS request; "
                f"consider a lower zoom or a smaller bbox"
            )
        return total, iter_grid(extent, self.config.zoom)

    # ========================================================================
    # RUN
    # ========================================================================

    def run(
        self,
        grid: Optional[Iterable[Tile]] = None,
        concurrency_limit: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None
    ) -> RunReport:
        """
        Process every tile of grid with at most concurrency_limit in flight.

        Args:
            grid: Tiles to process (default: the configured grid, walked lazily)
            concurrency_limit: Worker count (default: config.jobs)
            progress_callback: Called after every finished tile

        Returns:
            RunReport for the whole run. Tile failures never raise.

        Raises:
            ConfigurationError: invalid grid, concurrency limit or destination,
                detected before any tile is dispatched
        """
        limit = self.config.jobs if concurrency_limit is None else concurrency_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ConfigurationError(f"Concurrency limit must be a positive integer, got {limit!r}")

        if grid is None:
            total, tiles = self.prepare()
        else:
            tiles = list(grid)
            for tile in tiles:
                if not isinstance(tile, Tile):
                    raise ConfigurationError(f"Grid contains a non-tile item: {tile!r}")
            total = len(tiles)

        if self.config.verify_destination:
            self.repository.verify_destination()

        self.logger.info(
            f"Run {self.run_id} started: {total} tiles, {limit} workers, "
            f"layer {self.config.layer} -> {self.config.output_table} (EPSG:{self.config.epsg})"
        )

        started = time.monotonic()
        accumulator = _RunAccumulator(total, progress_callback)
        slots = threading.BoundedSemaphore(limit)
        dispatched = 0

        with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="wfs-dump") as executor:
            for tile in tiles:
                if not self._acquire_slot(slots):
                    break
                future = executor.submit(self._run_tile, tile)
                future.add_done_callback(partial(self._tile_done, slots, accumulator))
                dispatched += 1
        # Leaving the executor block waits for every dispatched tile

        report = RunReport(
            run_id=self.run_id,
            total_tiles=total,
            tiles_processed=accumulator.completed,
            tiles_skipped=total - dispatched,
            features_loaded=accumulator.features_loaded,
            features_skipped=accumulator.features_skipped,
            cancelled=self.cancelled,
            duration_seconds=round(time.monotonic() - started, 3),
            failures=sorted(accumulator.failures, key=lambda f: (f.tile.z, f.tile.x, f.tile.y))
        )

        self.logger.info(
            f"Run {self.run_id} finished: {report.tiles_processed}/{total} tiles, "
            f"{report.tiles_with_errors} with errors, {report.features_loaded} features loaded",
            extra={'custom_dimensions': {
                'tiles_skipped': report.tiles_skipped,
                'failure_classes': report.failure_classes,
                'cancelled': report.cancelled,
            }}
        )
        return report

    def _acquire_slot(self, slots: threading.BoundedSemaphore) -> bool:
        """Wait for a free worker; False once the run is cancelled."""
        while not self._cancel_event.is_set():
            if slots.acquire(timeout=_SLOT_POLL_SECONDS):
                if self._cancel_event.is_set():
                    slots.release()
                    return False
                return True
        return False

    def _tile_done(
        self,
        slots: threading.BoundedSemaphore,
        accumulator: _RunAccumulator,
        future: Future
    ) -> None:
        try:
            accumulator.record(future.result())
        finally:
            slots.release()

    def _run_tile(self, tile: Tile) -> TileOutcome:
        """process_tile() with a last-resort guard at the tile boundary."""
        try:
            outcome = self.process_tile(tile)
        except Exception as e:
            self.logger.exception(
                f"Tile {tile.tile_id}: unexpected error",
                extra={'custom_dimensions': {'tile_id': tile.tile_id, 'failure_kind': 'unexpected'}}
            )
            outcome = self._failed(tile, FailureKind.UNEXPECTED, f"{type(e).__name__}: {e}")
        return outcome

    # ========================================================================
    # SINGLE TILE
    # ========================================================================

    def process_tile(self, tile: Tile) -> TileOutcome:
        """
        Run the full pipeline for one tile.

        Expected failures (projection, fetch, decode, encoding, load) are
        returned as a failed TileOutcome, never raised.
        """
        try:
            extent = self.projector.project(tile.bounds())
        except ProjectionError as e:
            return self._failed(tile, FailureKind.PROJECTION, str(e))

        response = self.client.get_feature(self.config.layer, extent)
        if not response.success:
            return self._failed(
                tile, FailureKind.FETCH, response.error or "WFS request failed",
                status_code=response.status_code
            )

        try:
            features = decode_feature_collection(response.content)
        except DecodeError as e:
            return self._failed(tile, FailureKind.DECODE, str(e))

        owned = owned_features(features, extent)
        if len(owned) > self.config.large_tile_warning:
            self.logger.warning(
                f"Tile {tile.tile_id} owns {len(owned)} features; "
                f"the server may be truncating results, consider a higher zoom",
                extra={'custom_dimensions': {'tile_id': tile.tile_id, 'features': len(owned)}}
            )

        rows = []
        skipped = 0
        for feature in owned:
            try:
                rows.append(encode_feature(feature, self.config.epsg))
            except EncodingError as e:
                skipped += 1
                self.logger.debug(
                    f"Tile {tile.tile_id}: skipping feature {feature.feature_id}: {e}",
                    extra={'custom_dimensions': {'tile_id': tile.tile_id}}
                )

        if owned and not rows:
            return self._failed(
                tile, FailureKind.ENCODING,
                f"None of the {len(owned)} owned features could be encoded",
                features_skipped=skipped
            )

        loaded = 0
        if rows:
            try:
                loaded = self.repository.load_tile(rows, tile)
            except LoadError as e:
                return self._failed(tile, FailureKind.LOAD, str(e), features_skipped=skipped)

        self.logger.debug(
            f"Tile {tile.tile_id}: {len(features)} returned, {len(owned)} owned, {loaded} loaded",
            extra={'custom_dimensions': {'tile_id': tile.tile_id}}
        )
        return TileOutcome(tile=tile, features_loaded=loaded, features_skipped=skipped)

    def _failed(
        self,
        tile: Tile,
        kind: FailureKind,
        detail: str,
        status_code: Optional[int] = None,
        features_skipped: int = 0
    ) -> TileOutcome:
        failure = TileFailure(tile=tile, kind=kind, status_code=status_code, detail=detail)
        self.logger.warning(
            f"Tile {tile.tile_id} failed ({failure.classification}): {detail}",
            extra={'custom_dimensions': {
                'tile_id': tile.tile_id,
                'failure_kind': kind.value,
                'status_code': status_code,
            }}
        )
        return TileOutcome(tile=tile, features_skipped=features_skipped, failure=failure)
