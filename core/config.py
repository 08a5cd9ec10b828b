"""
=============================================
Configuration management for the query layer.
=============================================

Loads all configuration from environment variables (.env file) and provides
a centralized Config singleton for application-wide access.

The configuration covers:
- MySQL connection settings used by the database adapter
- Query execution settings (result cache lifetime, SQL logging)
- Logging level for the CLI entry point

Example:
    >>> from core.config import config
    >>>
    >>> # Database connection
    >>> engine_url = config.get_connection_string()
    >>>
    >>> # Access individual settings
    >>> print(f"Host: {config.db_host}, Port: {config.db_port}")
"""

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote_plus

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(dotenv_path=env_path)


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class DatabaseConfig:
    """Database configuration settings.

    Attributes:
        host: MySQL server hostname or IP address
        port: MySQL server port number
        user: Database username
        password: Database password
        database: Default schema to connect to
    """

    host: str
    port: int
    user: str
    password: str
    database: str

    def get_connection_string(self, database: str = None) -> str:
        """Get MySQL connection string for the PyMySQL driver.

        Args:
            database: Optional schema override; defaults to the configured one

        Returns:
            SQLAlchemy-compatible MySQL connection string
        """
        db_name = database or self.database
        return (
            f"mysql+pymysql://{self.user}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{db_name}"
        )

    def get_connection_params(self, database: str = None) -> dict:
        """Get connection parameters as dictionary.

        Args:
            database: Optional schema override; defaults to the configured one

        Returns:
            Dictionary with keys: host, port, user, password, database
        """
        return {
            'host': self.host,
            'port': self.port,
            'user': self.user,
            'password': self.password,
            'database': database or self.database
        }


@dataclass
class QueryConfig:
    """Query execution settings.

    Attributes:
        cache_ttl: Default lifetime in seconds of cached result sets
        log_sql: If True, executed SQL is logged at INFO instead of DEBUG
        log_level: Default logging level for the CLI
    """

    cache_ttl: int
    log_sql: bool
    log_level: str


class Config:
    """Centralized configuration manager.

    Provides access to all configuration settings loaded from environment
    variables (.env file).

    Attributes:
        db: DatabaseConfig instance with database connection settings
        query: QueryConfig instance with query execution settings

    Example:
        >>> config = Config()
        >>> conn_str = config.get_connection_string()
        >>> print(f"Connecting to {config.db_host}:{config.db_port}")
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.db = DatabaseConfig(
            host=os.getenv('MYSQL_HOST', 'localhost'),
            port=int(os.getenv('MYSQL_PORT', '3306')),
            user=os.getenv('MYSQL_USER', 'root'),
            password=os.getenv('MYSQL_PASSWORD', ''),
            database=os.getenv('MYSQL_DATABASE', 'mysql')
        )

        self.query = QueryConfig(
            cache_ttl=int(os.getenv('QUERY_CACHE_TTL', '60')),
            log_sql=_env_flag('QUERY_LOG_SQL'),
            log_level=os.getenv('LOG_LEVEL', 'INFO')
        )

    @property
    def db_host(self) -> str:
        """Get database server hostname."""
        return self.db.host

    @property
    def db_port(self) -> int:
        """Get database server port number."""
        return self.db.port

    @property
    def db_user(self) -> str:
        """Get database username."""
        return self.db.user

    @property
    def db_password(self) -> str:
        """Get database password."""
        return self.db.password

    @property
    def db_name(self) -> str:
        """Get default schema name."""
        return self.db.database

    @property
    def cache_ttl(self) -> int:
        """Get default result cache lifetime in seconds."""
        return self.query.cache_ttl

    def get_connection_string(self, database: str = None) -> str:
        """Get database connection string.

        Args:
            database: Optional schema override

        Returns:
            SQLAlchemy-compatible MySQL connection string

        Example:
            >>> config = Config()
            >>> url = config.get_connection_string()
            >>> reporting_url = config.get_connection_string(database='reporting')
        """
        return self.db.get_connection_string(database=database)

    def get_connection_params(self, database: str = None) -> dict:
        """Get database connection parameters.

        Args:
            database: Optional schema override

        Returns:
            Dictionary with keys: host, port, user, password, database
        """
        return self.db.get_connection_params(database=database)


# Global configuration instance
config = Config()
