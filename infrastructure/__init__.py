# ============================================================================
# CLAUDE CONTEXT - INFRASTRUCTURE MODULE
# ============================================================================
# STATUS: Core Infrastructure - Database utilities
# PURPOSE: Shared infrastructure components for the WFS dump pipeline
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: PostgreSQLRepository, split_table_name
# DEPENDENCIES: psycopg, config
# ============================================================================

"""
Infrastructure Module

Provides shared infrastructure components:
- PostgreSQL connection management (PostgreSQLRepository)
- Table name parsing and catalog lookups
"""

from .postgresql import PostgreSQLRepository, split_table_name

__version__ = "1.0.0"
__all__ = [
    "PostgreSQLRepository",
    "split_table_name"
]
