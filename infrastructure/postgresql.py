# ============================================================================
# CLAUDE CONTEXT - POSTGRESQL REPOSITORY
# ============================================================================
# STATUS: Core Infrastructure - PostgreSQL connection management
# PURPOSE: Per-operation PostgreSQL connections for the dump loader
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: PostgreSQLRepository, split_table_name
# DEPENDENCIES: psycopg, config
# SCOPE: Connection lifecycle, catalog lookups
# PATTERNS: Repository pattern, Per-operation connections (no pooling)
# ============================================================================

"""
PostgreSQL Repository - Connection Management

Provides PostgreSQL connection management with:
- Per-operation connection creation (no pooling)
- Rollback on error, close on every exit path
- Catalog lookup of table columns with psycopg.sql identifiers

Usage:
    from infrastructure.postgresql import PostgreSQLRepository

    repo = PostgreSQLRepository(connection_string="postgresql://...")
    with repo._get_connection() as conn:
        with conn.cursor() as cursor:
            cursor.execute("SELECT 1")
        conn.commit()
"""

import logging
from contextlib import contextmanager
from typing import Dict, Optional, Tuple

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from config import get_postgres_connection_string

logger = logging.getLogger(__name__)


def split_table_name(table_name: str) -> Tuple[str, ...]:
    """
    Split "schema.table" (or "table") into identifier parts.

    Raises:
        ValueError: empty name, empty part, or more than two parts
    """
    parts = tuple(part.strip() for part in (table_name or "").split("."))
    if not parts or len(parts) > 2 or any(not part for part in parts):
        raise ValueError(f"Invalid table name '{table_name}': expected 'table' or 'schema.table'")
    return parts


class PostgreSQLRepository:
    """
    PostgreSQL repository base class with connection management.

    Connection Strategy:
    -------------------
    Each operation creates a NEW connection and closes it immediately after
    use. No connection is shared between operations or threads, so a failure
    in one unit of work cannot leak into another.

    Example:
    -------
    ```python
    repo = PostgreSQLRepository()

    # One transaction per unit of work
    with repo._get_connection() as conn:
        with conn.cursor() as cursor:
            cursor.execute(...)
            cursor.execute(...)
        conn.commit()
    ```
    """

    def __init__(self, connection_string: Optional[str] = None):
        """
        Initialize PostgreSQL repository.

        No database I/O happens here.

        Parameters:
        ----------
        connection_string : Optional[str]
            Explicit PostgreSQL connection string. If not provided,
            uses get_postgres_connection_string() from config module.
        """
        self.conn_string = connection_string or get_postgres_connection_string()

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL database connections.

        1. Create connection using connection string
        2. Yield connection to caller
        3. On error: rollback transaction
        4. Always: close connection

        Yields:
        ------
        psycopg.Connection
            Active connection with dict_row factory.
            Autocommit is OFF (explicit commit needed).

        Raises:
        ------
        psycopg.Error
            On connection or statement failures
        """
        conn = None
        try:
            conn = psycopg.connect(self.conn_string, row_factory=dict_row)
            logger.debug("PostgreSQL connection established")

            yield conn

        except BaseException:
            if conn is not None:
                try:
                    conn.rollback()
                except psycopg.Error as rollback_error:
                    logger.warning(f"Rollback failed: {rollback_error}")
            raise

        finally:
            if conn is not None:
                conn.close()
                logger.debug("Connection closed")

    def _table_columns(self, table_name: str) -> Optional[Dict[str, str]]:
        """
        Column names and types of a table.

        Parameters:
        ----------
        table_name : str
            "table" (resolved through search_path) or "schema.table"

        Returns:
        -------
        Mapping of column name to formatted type, or None when the table
        does not exist.
        """
        parts = split_table_name(table_name)
        with self._get_connection() as conn:
            qualified = sql.Identifier(*parts).as_string(conn)
            with conn.cursor() as cursor:
                cursor.execute("SELECT to_regclass(%s) AS oid", (qualified,))
                row = cursor.fetchone()
                if not row or row['oid'] is None:
                    return None

                cursor.execute("""
                    SELECT a.attname AS column_name,
                           format_type(a.atttypid, a.atttypmod) AS data_type
                    FROM pg_attribute a
                    WHERE a.attrelid = to_regclass(%s)
                      AND a.attnum > 0
                      AND NOT a.attisdropped
                    ORDER BY a.attnum
                """, (qualified,))
                columns = {r['column_name']: r['data_type'] for r in cursor.fetchall()}
            conn.commit()
        return columns

