"""
========================================
Fluent SQL statement construction.
========================================

This package builds MySQL-flavoured SELECT, INSERT, UPDATE and DELETE
statements from chained builder calls. It renders text only; execution goes
through a database adapter (see utils.database_utils.MySQLAdapter).

The package follows a clear organization:
    - constants.py: SQL keywords and the statement Action enum
    - exceptions.py: QueryBuilderError, raised for malformed construction
    - formatter.py: value escaping, quoting and `?` substitution
    - fragments.py: fragment store, WHERE ambits and the saved-store stack
    - renderer.py: pure rendering of a fragment store into SQL text
    - query_builder.py: the fluent QueryBuilder

Example:
    >>> from fluent_sql import QueryBuilder
    >>> from utils.database_utils import MySQLAdapter
    >>>
    >>> qb = QueryBuilder(MySQLAdapter())
    >>> print(qb.select('id').from_('users').where('id = ?', 5))
    SELECT id
    FROM `users`
    WHERE (id = 5)
    ;
"""

__version__ = "0.1.0"
__all__ = [
    'Action',
    'DatabaseAdapter',
    'Escaper',
    'FragmentStore',
    'QueryBuilder',
    'QueryBuilderError',
    'StoreStack',
    'ValueFormatter',
    'WhereAmbit',
    'render',
]

from .constants import Action
from .exceptions import QueryBuilderError
from .formatter import Escaper, ValueFormatter
from .fragments import FragmentStore, StoreStack, WhereAmbit
from .query_builder import DatabaseAdapter, QueryBuilder
from .renderer import render
