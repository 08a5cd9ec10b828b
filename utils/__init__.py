"""
==========================
Utility Functions Package.
==========================

Database adapter and connectivity helpers for the query builder.

Modules:
    database_utils: MySQL adapter, escaper, connectivity and health checks
"""

__version__ = "0.1.0"
__all__ = [
    'DatabaseConnectionError',
    'MySQLAdapter',
    'MySQLEscaper',
    'check_database_available',
    'create_sqlalchemy_engine',
    'get_connection_string',
    'verify_connection',
    'wait_for_database'
]

from .database_utils import (
    DatabaseConnectionError,
    MySQLAdapter,
    MySQLEscaper,
    check_database_available,
    create_sqlalchemy_engine,
    get_connection_string,
    verify_connection,
    wait_for_database,
)
