# ============================================================================
# CLAUDE CONTEXT - WFS DUMP REPOSITORY
# ============================================================================
# STATUS: Standalone Repository - PostGIS batch loader
# PURPOSE: Insert one tile's encoded rows in a single transaction
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: FeatureTableRepository
# DEPENDENCIES: psycopg, psycopg.sql, infrastructure.postgresql, util_logger
# VALIDATION: SQL injection prevention via psycopg.sql composition
# PATTERNS: Repository Pattern, Per-tile connection and transaction
# ENTRY_POINTS: repo = FeatureTableRepository(conn_string, "public.wfs_dump", "geom", "attributes")
# ============================================================================

"""
WFS Dump Repository - Batch Loader

Each tile is loaded through its own connection and its own transaction:
- zero rows: no connection is opened at all
- otherwise: connect, insert every row, commit
- any failed insert rolls the whole tile back and raises LoadError

Statement (per row, bound parameters):
    INSERT INTO <table> (<geometry_column>, <attributes_column>)
    VALUES (ST_GeomFromWKB(%s, %s::integer), %s::jsonb)
"""

from typing import Optional, Sequence

import psycopg
from psycopg import sql

from infrastructure.postgresql import PostgreSQLRepository, split_table_name
from util_logger import LoggerFactory, ComponentType

from .exceptions import ConfigurationError, LoadError
from .models import EncodedRow, Tile

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "FeatureTableRepository")

GEOMETRY_TYPE_PREFIXES = ("geometry",)
DOCUMENT_TYPES = ("jsonb", "json")


class FeatureTableRepository(PostgreSQLRepository):
    """
    Destination table for dumped features.

    Safety:
    - Table and column names go through sql.Identifier()
    - Values are bound parameters; nothing is interpolated into SQL text
    """

    def __init__(
        self,
        connection_string: Optional[str],
        table_name: str,
        geometry_column: str,
        attributes_column: str
    ):
        super().__init__(connection_string)
        try:
            self.table_parts = split_table_name(table_name)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        self.table_name = table_name
        self.geometry_column = geometry_column
        self.attributes_column = attributes_column

        self._insert = sql.SQL(
            "INSERT INTO {table} ({geom}, {attrs}) "
            "VALUES (ST_GeomFromWKB(%s, %s::integer), %s::jsonb)"
        ).format(
            table=sql.Identifier(*self.table_parts),
            geom=sql.Identifier(geometry_column),
            attrs=sql.Identifier(attributes_column)
        )

    def verify_destination(self) -> None:
        """
        Check that the table and both target columns exist.

        Raises:
            ConfigurationError: unreachable database, missing table or column
        """
        try:
            columns = self._table_columns(self.table_name)
        except psycopg.Error as e:
            raise ConfigurationError(f"Cannot reach destination database: {e}") from e

        if columns is None:
            raise ConfigurationError(f"Destination table '{self.table_name}' does not exist")

        for column in (self.geometry_column, self.attributes_column):
            if column not in columns:
                raise ConfigurationError(
                    f"Column '{column}' not found in '{self.table_name}' "
                    f"(available: {', '.join(columns) or 'none'})"
                )

        geometry_type = columns[self.geometry_column].lower()
        if not geometry_type.startswith(GEOMETRY_TYPE_PREFIXES):
            logger.warning(
                f"Column '{self.geometry_column}' has type {geometry_type}, expected geometry"
            )
        attributes_type = columns[self.attributes_column].lower()
        if attributes_type not in DOCUMENT_TYPES:
            logger.warning(
                f"Column '{self.attributes_column}' has type {attributes_type}, expected jsonb"
            )

        logger.info(f"Destination verified: {self.table_name} "
                    f"({self.geometry_column}, {self.attributes_column})")

    def load_tile(self, rows: Sequence[EncodedRow], tile: Optional[Tile] = None) -> int:
        """
        Insert all rows of one tile in one transaction.

        Args:
            rows: Encoded rows owned by the tile
            tile: Tile being loaded, for log messages

        Returns:
            Number of rows inserted (0 without any database I/O when rows is empty)

        Raises:
            LoadError: the database or the driver rejected the batch; nothing
                was committed
        """
        if not rows:
            return 0

        tile_id = tile.tile_id if tile else "?"
        params = [(row.wkb, row.epsg, row.attributes_json) for row in rows]

        try:
            with self._get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.executemany(self._insert, params)
                conn.commit()
        except (psycopg.Error, UnicodeError) as e:
            logger.debug(
                f"Tile {tile_id}: first row of rejected batch: "
                f"{rows[0].as_literal_statement(self.table_name, self.geometry_column, self.attributes_column)[:500]}"
            )
            raise LoadError(f"{type(e).__name__}: {e}".strip()) from e

        logger.debug(f"Tile {tile_id}: inserted {len(rows)} rows into {self.table_name}")
        return len(rows)
