"""
==================================================
Database connectivity and adapter for MySQL.
==================================================

Provides the adapter QueryBuilder executes through, the escaping primitive it
formats values with, and reusable connection helpers and health checks.

Key Features:
    - MySQLAdapter: SQLAlchemy engine on the PyMySQL driver, in-process result
      cache keyed by caller-supplied cache keys
    - MySQLEscaper: PyMySQL's string escaping, usable without a connection
    - Connection string / engine building from config
    - Database availability checking with retries

Example:
    >>> from fluent_sql import QueryBuilder
    >>> from utils.database_utils import MySQLAdapter, wait_for_database
    >>>
    >>> wait_for_database(max_retries=5)
    >>> with MySQLAdapter() as adapter:
    ...     qb = QueryBuilder(adapter)
    ...     rows = qb.select().from_('users').limit(5).to_array().execute()
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote_plus

import pymysql
from pymysql.converters import escape_string
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from core.config import config

logger = logging.getLogger(__name__)

DRIVER_NAME = 'mysql+pymysql'


class DatabaseConnectionError(Exception):
    """Exception raised when database connection fails."""
    pass


class MySQLEscaper:
    """Escapes text for use inside a quoted MySQL string literal."""

    def escape(self, raw: str) -> str:
        return escape_string(str(raw))


def get_connection_string(
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None
) -> str:
    """
    Build MySQL connection string.

    Args:
        host: Database hostname (defaults to config.db_host)
        port: Database port (defaults to config.db_port)
        user: Database user (defaults to config.db_user)
        password: Database password (defaults to config.db_password)
        database: Schema name (defaults to config.db_name)

    Returns:
        MySQL connection string for SQLAlchemy

    Example:
        >>> get_connection_string(database='shop')
        'mysql+pymysql://root:@localhost:3306/shop'
    """
    host = host if host is not None else config.db_host
    port = port if port is not None else config.db_port
    user = user if user is not None else config.db_user
    password = password if password is not None else config.db_password
    database = database if database is not None else config.db_name

    return f"{DRIVER_NAME}://{user}:{quote_plus(password)}@{host}:{port}/{database}"


def create_sqlalchemy_engine(
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10
) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    Args:
        host: Database hostname
        port: Database port
        user: Database user
        password: Database password
        database: Schema name
        echo: Enable SQL statement logging
        pool_size: Connection pool size
        max_overflow: Maximum overflow connections

    Returns:
        Configured SQLAlchemy Engine
    """
    connection_url = URL.create(
        drivername=DRIVER_NAME,
        username=user or config.db_user,
        password=password or config.db_password,
        host=host or config.db_host,
        port=port or config.db_port,
        database=database or config.db_name
    )

    return create_engine(
        connection_url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True
    )


class MySQLAdapter:
    """Executes rendered SQL on one MySQL connection.

    The connection runs in AUTOCOMMIT mode so that the textual BEGIN, COMMIT
    and ROLLBACK statements issued by QueryBuilder control transactions.

    Attributes:
        database: Schema to connect to (defaults to config)
        cache_ttl: Default lifetime in seconds of cached result sets
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        database: str = None,
        cache_ttl: int = None
    ):
        """Initialize the adapter.

        Args:
            engine: Existing SQLAlchemy engine; created from config on first use if None
            database: Schema to connect to when the engine is created here
            cache_ttl: Default cache lifetime (defaults to config QUERY_CACHE_TTL)
        """
        self.database = database
        self.cache_ttl = cache_ttl if cache_ttl is not None else config.cache_ttl

        self._engine: Optional[Engine] = engine
        self._connection: Optional[Connection] = None
        self._cache: Dict[str, Tuple[float, Any]] = {}
        self._escaper = MySQLEscaper()

    def _get_engine(self) -> Engine:
        """Get SQLAlchemy engine."""
        if self._engine is None:
            self._engine = create_sqlalchemy_engine(database=self.database)
        return self._engine

    def _get_connection(self) -> Connection:
        """Get the adapter's connection, opening it on first use."""
        if self._connection is None or self._connection.closed:
            # Rendered SQL is final text: no bind parameter parsing or %-formatting
            self._connection = self._get_engine().connect().execution_options(
                isolation_level='AUTOCOMMIT',
                no_parameters=True
            )
        return self._connection

    def get_escaper(self) -> MySQLEscaper:
        return self._escaper

    def _cache_get(self, cache_key: str) -> Optional[Any]:
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        expires_at, rows = entry
        if time.monotonic() >= expires_at:
            del self._cache[cache_key]
            return None
        return rows

    def _evict_expired(self, now: float) -> None:
        """Drop every cached result set whose lifetime has ended."""
        expired = [key for key, (expires_at, _) in self._cache.items() if now >= expires_at]
        for key in expired:
            del self._cache[key]

    def query(
        self,
        text: str,
        cache_key: Optional[str] = None,
        cache_ttl: Optional[int] = None
    ) -> Any:
        """
        Execute one SQL statement.

        Args:
            text: Rendered SQL
            cache_key: If given, row results are cached under this key
            cache_ttl: Cache lifetime in seconds (defaults to self.cache_ttl)

        Returns:
            List of rows for row-returning statements, affected row count otherwise

        Raises:
            SQLAlchemyError: If execution fails
        """
        if cache_key:
            cached = self._cache_get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for '{cache_key}'")
                return cached

        try:
            result = self._get_connection().exec_driver_sql(text)
        except SQLAlchemyError as e:
            logger.error(f"Query failed: {e}")
            raise

        if not result.returns_rows:
            return result.rowcount

        rows = result.fetchall()
        if cache_key:
            now = time.monotonic()
            self._evict_expired(now)
            ttl = cache_ttl if cache_ttl is not None else self.cache_ttl
            self._cache[cache_key] = (now + ttl, rows)
        return rows

    def clear_cache(self, cache_key: Optional[str] = None) -> None:
        """Drop one cached result set, or all of them."""
        if cache_key is None:
            self._cache.clear()
        else:
            self._cache.pop(cache_key, None)

    def close(self) -> None:
        """Close the connection and dispose of the engine."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        if self._engine is not None:
            self._engine.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def check_database_available(
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None,
    timeout: int = 5
) -> bool:
    """
    Check if the MySQL server accepts connections.

    Args:
        host: Database hostname (defaults to config)
        port: Database port (defaults to config)
        user: Database user (defaults to config)
        password: Database password (defaults to config)
        database: Schema name (defaults to config.db_name)
        timeout: Connection timeout in seconds

    Returns:
        True if database is available, False otherwise
    """
    try:
        conn = pymysql.connect(
            host=host or config.db_host,
            port=port or config.db_port,
            user=user or config.db_user,
            password=password or config.db_password,
            database=database or config.db_name,
            connect_timeout=timeout
        )
        conn.close()
        return True
    except pymysql.err.OperationalError as e:
        logger.debug(f"Database not available: {e}")
        return False


def wait_for_database(
    host: str = None,
    port: int = None,
    user: str = None,
    password: str = None,
    database: str = None,
    max_retries: int = 10,
    retry_delay: int = 2,
    timeout: int = 5
) -> bool:
    """
    Wait for MySQL to become available with retries.

    Args:
        host: Database hostname (defaults to config)
        port: Database port (defaults to config)
        user: Database user (defaults to config)
        password: Database password (defaults to config)
        database: Schema name (defaults to config.db_name)
        max_retries: Maximum number of retry attempts
        retry_delay: Delay between retries in seconds
        timeout: Connection timeout per attempt in seconds

    Returns:
        True once the database is available

    Raises:
        DatabaseConnectionError: If database never becomes available
    """
    host = host or config.db_host
    port = port or config.db_port
    database = database or config.db_name

    logger.info(f"Waiting for MySQL at {host}:{port}/{database}...")

    for attempt in range(1, max_retries + 1):
        if check_database_available(host, port, user, password, database, timeout):
            logger.info(f"✅ MySQL is available (attempt {attempt}/{max_retries})")
            return True

        if attempt < max_retries:
            logger.warning(
                f"⏳ MySQL not available yet (attempt {attempt}/{max_retries}), "
                f"retrying in {retry_delay}s..."
            )
            time.sleep(retry_delay)

    error_msg = (
        f"MySQL at {host}:{port}/{database} did not become available "
        f"after {max_retries} attempts"
    )
    logger.error(f"❌ {error_msg}")
    raise DatabaseConnectionError(error_msg)


def get_database_connection_info() -> dict:
    """Get current database connection configuration (without password)."""
    return {
        'host': config.db_host,
        'port': config.db_port,
        'user': config.db_user,
        'database': config.db_name
    }


def verify_connection() -> Tuple[bool, Optional[str]]:
    """
    Verify database connection and return status with details.

    Returns:
        Tuple of (success: bool, message: str)
    """
    if not check_database_available():
        return False, (
            f"MySQL server not available at {config.db_host}:{config.db_port}"
        )

    try:
        with MySQLAdapter() as adapter:
            version = adapter.query('SELECT VERSION();')[0][0]
    except SQLAlchemyError as e:
        return False, f"Connection test query failed: {e}"

    return True, (
        f"Connected to MySQL {version} at {config.db_host}:{config.db_port}/{config.db_name}"
    )
