# ============================================================================
# CLAUDE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for the destination PostGIS connection
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: AppConfig, get_app_config, get_postgres_connection_string
# DEPENDENCIES: pydantic-settings
# SOURCE: Environment variables, optional .env file
# PATTERNS: Singleton pattern for config
# ============================================================================

"""
Application Configuration Module

Provides the default destination connection for wfs-dump when the operator
does not pass an explicit --connection string.

Environment Variables:
    - POSTGIS_HOST: PostgreSQL hostname (default: localhost)
    - POSTGIS_PORT: PostgreSQL port (default: 5432)
    - POSTGIS_DATABASE: Database name (default: postgres)
    - POSTGIS_USER: Database username (default: postgres)
    - POSTGIS_PASSWORD: Database password (optional)
    - POSTGIS_SSLMODE: libpq sslmode (default: prefer)

Usage:
    from config import get_postgres_connection_string

    conn_string = get_postgres_connection_string()
    conn = psycopg.connect(conn_string)
"""

import logging
from typing import Optional
from functools import lru_cache
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

logger = logging.getLogger(__name__)

SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")


# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        postgis_host: PostgreSQL server hostname
        postgis_port: PostgreSQL server port
        postgis_database: Database name
        postgis_user: Database username
        postgis_password: Database password
        postgis_sslmode: libpq sslmode
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    postgis_host: str = Field(default="localhost", description="PostgreSQL hostname")
    postgis_port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    postgis_database: str = Field(default="postgres", description="Database name")
    postgis_user: str = Field(default="postgres", description="Database username")
    postgis_password: Optional[str] = Field(default=None, description="Database password")
    postgis_sslmode: str = Field(default="prefer", description="libpq sslmode")

    @field_validator("postgis_sslmode")
    @classmethod
    def validate_sslmode(cls, v: str) -> str:
        """Only accept sslmode values libpq understands."""
        if v not in SSL_MODES:
            raise ValueError(f"POSTGIS_SSLMODE must be one of {', '.join(SSL_MODES)}")
        return v


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    return AppConfig()


# ============================================================================
# PostgreSQL Connection String Generation
# ============================================================================

def get_postgres_connection_string(config: Optional[AppConfig] = None) -> str:
    """
    Generate a PostgreSQL connection URI from configuration.

    Args:
        config: Explicit configuration (uses the singleton if omitted)

    Returns:
        str: PostgreSQL connection string (psycopg format)

    Example:
        >>> conn_string = get_postgres_connection_string()
        >>> conn = psycopg.connect(conn_string)
    """
    config = config or get_app_config()

    logger.debug(f"Building connection string for {config.postgis_host}")

    # URL-encode credentials to handle special characters like @ symbols
    credentials = quote_plus(config.postgis_user)
    if config.postgis_password:
        credentials += f":{quote_plus(config.postgis_password)}"

    return (
        f"postgresql://{credentials}"
        f"@{config.postgis_host}:{config.postgis_port}"
        f"/{config.postgis_database}"
        f"?sslmode={config.postgis_sslmode}"
    )
