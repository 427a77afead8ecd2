# ============================================================================
# CLAUDE CONTEXT - WFS DUMP COMMAND LINE
# ============================================================================
# STATUS: Entry Point - Console tool
# PURPOSE: Parse arguments, run the dump with a progress bar, print the summary
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: main, build_parser
# DEPENDENCIES: argparse, signal, tqdm, util_logger
# ENTRY_POINTS: wfs-dump WFS LAYER [options]; python -m wfs_dump WFS LAYER [options]
# ============================================================================

"""
WFS Dump Command Line

    wfs-dump https://example.com/geoserver/wfs topp:states \\
        --connection "host=localhost user=postgres dbname=gis" \\
        --output public.states --columns geom,attributes \\
        --jobs 4 --bbox -125 24 -66 50 --z 8 --epsg 4326

Exit codes:
    0 - every tile succeeded
    1 - configuration or CRS error, nothing was dispatched
    2 - the run finished with tile failures, or was cancelled

Ctrl+C once stops dispatching new tiles and waits for the running ones;
Ctrl+C again interrupts immediately.
"""

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from util_logger import LoggerFactory, ComponentType, LogLevel, log_exceptions

from .config import DEFAULT_COLUMNS, DEFAULT_OUTPUT_TABLE, build_config
from .exceptions import ConfigurationError, ProjectionError
from .grid import grid_size
from .models import RunReport, TileOutcome
from .service import WFSDumpService

EXIT_OK = 0
EXIT_SETUP_ERROR = 1
EXIT_TILE_FAILURES = 2

# Failed tile ids printed in the summary; the --report file has all of them
MAX_PRINTED_TILES = 20


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wfs-dump",
        description="Dump a WFS layer into a PostGIS table, one map tile at a time."
    )
    parser.add_argument("wfs", help="WFS endpoint URL")
    parser.add_argument("layer", help="WFS layer (TYPENAME)")
    parser.add_argument(
        "--connection", "-c",
        help="Destination connection string (libpq, URI or Host=...;Username=...). "
             "Defaults to WFSDUMP_CONNECTION, then the POSTGIS_* settings"
    )
    parser.add_argument("--password", help="Password added to the connection string")
    parser.add_argument("--output", "-o", help=f"Destination table (default: {DEFAULT_OUTPUT_TABLE})")
    parser.add_argument(
        "--columns",
        help=f"Output columns as geometry,attributes (default: {DEFAULT_COLUMNS})"
    )
    parser.add_argument("--jobs", "-j", type=int, help="Tiles processed in parallel (default: 2)")
    parser.add_argument(
        "--bbox", type=float, nargs=4, metavar=("MINX", "MINY", "MAXX", "MAXY"),
        help="Extent in EPSG:4326 (default: -179 -85 179 85)"
    )
    parser.add_argument("--z", type=int, dest="zoom", help="Tile zoom level (default: 14)")
    parser.add_argument("--epsg", type=int, help="CRS for WFS queries and stored geometries (default: 4326)")
    parser.add_argument("--timeout", type=float, help="HTTP request timeout in seconds (default: 120)")
    parser.add_argument(
        "--no-srsname", action="store_true",
        help="Do not send SRSNAME; the server returns geometries in its default CRS"
    )
    parser.add_argument(
        "--no-verify", action="store_true",
        help="Skip the destination table check before the run"
    )
    parser.add_argument("--report", metavar="PATH", help="Write the run report as JSON")
    parser.add_argument(
        "--log-level", choices=[level.value for level in LogLevel], type=str.upper,
        help="Log level (default: INFO, or DEBUG with DEBUG_LOGGING=true)"
    )
    return parser


def _install_sigint_handler(service: WFSDumpService):
    """
    First SIGINT cancels the run, the second one interrupts.

    Returns the previous handler, or None when not on the main thread.
    """
    if threading.current_thread() is not threading.main_thread():
        return None

    def handle(signum, frame):
        service.cancel()
        print("\nCancelling: waiting for running tiles (Ctrl+C again to abort)", file=sys.stderr)
        signal.signal(signal.SIGINT, signal.default_int_handler)

    return signal.signal(signal.SIGINT, handle)


def _print_summary(report: RunReport, stream=None) -> None:
    stream = stream or sys.stderr
    print(file=stream)
    print(f"Tiles: {report.total_tiles} (processed {report.tiles_processed}, "
          f"skipped {report.tiles_skipped})", file=stream)
    print(f"Features loaded: {report.features_loaded}", file=stream)
    if report.features_skipped:
        print(f"Features skipped (not encodable): {report.features_skipped}", file=stream)
    print(f"Tiles with errors: {report.tiles_with_errors}", file=stream)
    if report.failures:
        print(f"Failure classes: {', '.join(report.failure_classes)}", file=stream)
        if report.distinct_status_codes:
            codes = ", ".join(str(code) for code in report.distinct_status_codes)
            print(f"Status codes: {codes}", file=stream)
        shown = report.failed_tile_ids[:MAX_PRINTED_TILES]
        more = len(report.failed_tile_ids) - len(shown)
        print(f"Failed tiles: {' '.join(shown)}" + (f" (+{more} more)" if more else ""), file=stream)
    if report.cancelled:
        print("Run was cancelled", file=stream)


@log_exceptions(ComponentType.TRIGGER, "cli")
def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        LoggerFactory.set_default_level(args.log_level)
    logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "cli")

    try:
        config = build_config(
            wfs_url=args.wfs,
            layer=args.layer,
            connection=args.connection,
            password=args.password,
            output_table=args.output,
            columns=args.columns,
            jobs=args.jobs,
            bbox=args.bbox,
            zoom=args.zoom,
            epsg=args.epsg,
            request_timeout=args.timeout,
            include_srsname=False if args.no_srsname else None,
            verify_destination=False if args.no_verify else None
        )
        service = WFSDumpService(config)
        total = grid_size(config.extent, config.zoom)
    except (ConfigurationError, ProjectionError) as e:
        logger.error(f"Setup failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    logger.info(
        f"WFS: {config.wfs_url} layer {config.layer}, output {config.output_table} "
        f"({config.geometry_column}, {config.attributes_column}), jobs {config.jobs}, "
        f"extent {config.extent}, zoom {config.zoom}, EPSG:{config.epsg}"
    )

    progress = tqdm(total=total, unit="tile", desc=config.layer, file=sys.stderr)
    errors = 0

    def on_tile(completed: int, total: int, outcome: TileOutcome) -> None:
        nonlocal errors
        if not outcome.succeeded:
            errors += 1
            progress.set_postfix(errors=errors, refresh=False)
        progress.update(1)

    previous_handler = _install_sigint_handler(service)
    try:
        report = service.run(progress_callback=on_tile)
    except ConfigurationError as e:
        logger.error(f"Setup failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_SETUP_ERROR
    finally:
        progress.close()
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    _print_summary(report)

    if args.report:
        Path(args.report).write_text(report.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"Run report written to {args.report}")

    return EXIT_OK if report.succeeded else EXIT_TILE_FAILURES
