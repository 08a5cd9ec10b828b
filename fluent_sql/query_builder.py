"""
==============================
Fluent SQL statement builder.
==============================

QueryBuilder accumulates the fragments of one SELECT, INSERT, UPDATE or DELETE
statement through chained calls and renders them into SQL text. Execution is
delegated to a database adapter; the builder never opens connections itself.

Statement starters (select, insert, update, delete) flush the statement in
progress onto a stack before starting a fresh one, and
get_query(cleanup=True) pops it back after rendering. This lets a subquery be
built and rendered in the middle of an outer statement:

    >>> qb = QueryBuilder(adapter)
    >>> qb.select('id', 'name').from_('users')
    >>> active = qb.select('user_id').from_('sessions').get_query(True, '')
    >>> qb.where('id IN (?)', active).get_query()

Bound values are escaped through the adapter's escaper and substituted for
the `?` placeholders of the condition. Conditions, join conditions and raw
expressions are emitted as given.

WHERE predicates are grouped in ambits: where() and where_or() add to the
active ambit, where_new_ambit() opens the next one. See fluent_sql.renderer for
how ambits combine.

Example:
    >>> qb = QueryBuilder(MySQLAdapter())
    >>> rows = (
    ...     qb.select({'total': 'SUM(amount)'}, 'region')
    ...     .from_({'o': 'orders'})
    ...     .join_left({'c': 'customers'}, 'c.id = o.customer_id', ['email'])
    ...     .where('o.status = ?', 'paid')
    ...     .where_new_ambit('OR')
    ...     .where('o.region IN (?)', ['north', 'south'])
    ...     .group('region')
    ...     .order('total DESC')
    ...     .limit(10)
    ...     .to_array()
    ...     .execute(cache_key='top-regions', cache_ttl=300)
    ... )
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping, Optional, Protocol, runtime_checkable

from core.config import config
from fluent_sql.constants import (
    AMBIT_CONNECTIVES,
    CARRY_RETURN,
    FORMAT_ALIASES,
    FORMAT_ARRAY,
    FROM,
    INNER_JOIN,
    JOIN_SQL,
    LEFT_JOIN,
    RIGHT_JOIN,
    SQL_AND,
    SQL_AS,
    SQL_BEGIN,
    SQL_COMMIT,
    SQL_FROM,
    SQL_INTO,
    SQL_ON,
    SQL_QUERY_DIVISOR,
    SQL_ROLLBACK,
    SQL_UNION,
    SQL_UNION_ALL,
    SQL_VALUES,
    Action,
)
from fluent_sql.exceptions import QueryBuilderError
from fluent_sql.formatter import Escaper, ValueFormatter, array_values, as_array
from fluent_sql.fragments import FragmentStore, StoreStack
from fluent_sql.renderer import render

logger = logging.getLogger(__name__)


@runtime_checkable
class DatabaseAdapter(Protocol):
    """Collaborator that escapes values and executes rendered SQL."""

    def get_escaper(self) -> Escaper:
        ...

    def query(self, text: str, cache_key: Optional[str] = None,
              cache_ttl: Optional[int] = None) -> Any:
        ...


def _entries(value: Any) -> List[tuple]:
    """(key, item) pairs of a scalar, sequence or mapping argument."""
    normalized = as_array(value)
    if isinstance(normalized, dict):
        return list(normalized.items())
    return list(enumerate(normalized))


def _is_positional(key: Any) -> bool:
    return isinstance(key, int)


def row_as_array(row: Any) -> dict:
    """Convert one result row to a plain dict."""
    if hasattr(row, '_mapping'):
        return dict(row._mapping)
    if isinstance(row, Mapping):
        return dict(row)
    if hasattr(row, '_asdict'):
        return dict(row._asdict())
    return dict(vars(row))


class QueryBuilder:
    """Fluent builder for single SQL statements.

    Every clause method returns the builder itself so calls can be chained.

    Attributes:
        adapter: Database adapter used for escaping and execution
        log_sql: If True, executed SQL is logged at INFO instead of DEBUG
    """

    def __init__(self, adapter: DatabaseAdapter = None, log_sql: Optional[bool] = None):
        """Initialize the builder.

        Args:
            adapter: Object exposing get_escaper() and query()
            log_sql: Override for config QUERY_LOG_SQL

        Raises:
            QueryBuilderError: If no adapter is given
        """
        if not adapter:
            raise QueryBuilderError(f'Empty adapter passed to {type(self).__name__}')
        self.adapter = adapter
        self.log_sql = config.query.log_sql if log_sql is None else log_sql

        self._formatter: Optional[ValueFormatter] = None
        self._store = FragmentStore()
        self._stack = StoreStack()
        self._last_query: Optional[str] = None

    @property
    def formatter(self) -> ValueFormatter:
        """Value formatter bound to the adapter's escaper, created on first use."""
        if self._formatter is None:
            self._formatter = ValueFormatter(self.adapter.get_escaper())
        return self._formatter

    @property
    def store(self) -> FragmentStore:
        """Fragments of the statement in progress."""
        return self._store

    def _escape(self, value: Any) -> str:
        return self.formatter.escape(value)

    def _push_in_parts(self, parts: List[str], values: Any) -> None:
        for value in array_values(values):
            parts.append(self._escape(value))

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def select(self, *columns) -> 'QueryBuilder':
        """Start a SELECT statement.

        Each argument is a column, a list of columns or an
        {alias: expression} dict. No columns renders as `*`.
        """
        self.flush()
        self._store.action = Action.SELECT
        for fields in columns:
            self.columns(fields)
        return self

    def columns(self, fields: Any = '*', prefix: Optional[str] = None) -> 'QueryBuilder':
        """Add select-list entries.

        Args:
            fields: Column, list of columns, or {alias: expression} mapping
            prefix: Table alias prepended as `prefix.field`
        """
        columns = []
        for key, field in _entries(fields):
            field = str(field)
            if prefix:
                field = f'{prefix}.{field}'
            if not _is_positional(key):
                field += f' {SQL_AS} `{key}`'
            columns.append(field)
        self._push_in_parts(self._store.columns, columns)
        return self

    def distinct(self, flag: bool = True) -> 'QueryBuilder':
        self._store.distinct = flag
        return self

    def _joiner(self, kind: str, name: Any, cond: Optional[str] = None,
                columns: Any = None) -> 'QueryBuilder':
        """Add FROM sources or JOIN clauses.

        Table names are backtick-quoted unless they contain a comma (a raw
        multi-table fragment). Mapping keys become aliases and, when
        `columns` is given, the prefix of those columns.
        """
        if not name:
            raise QueryBuilderError('No tables were selected')
        if kind != FROM and not cond:
            raise QueryBuilderError(f'No condition specified for {JOIN_SQL[kind]}')

        keyword = JOIN_SQL[kind]
        for alias, table in _entries(name):
            table = str(table)
            if ',' not in table:
                table = f'`{table}`'
            fragment = table
            if not _is_positional(alias):
                fragment += f' {SQL_AS} {alias}'
            if cond:
                fragment += f' {SQL_ON} {cond}'

            if keyword == SQL_FROM:
                self._store.sources.append(fragment)
            else:
                self._store.joins.append(f'{keyword} {fragment}')

            if columns:
                self.columns(columns, None if _is_positional(alias) else alias)

        return self

    def from_(self, tables: Any, columns: Any = None) -> 'QueryBuilder':
        """Add FROM sources (`from` is reserved in Python)."""
        return self._joiner(FROM, tables, None, columns)

    def join(self, name: Any, cond: str, columns: Any = None) -> 'QueryBuilder':
        """Alias of join_inner."""
        return self.join_inner(name, cond, columns)

    def join_inner(self, name: Any, cond: str, columns: Any = None) -> 'QueryBuilder':
        return self._joiner(INNER_JOIN, name, cond, columns)

    def join_left(self, name: Any, cond: str, columns: Any = None) -> 'QueryBuilder':
        return self._joiner(LEFT_JOIN, name, cond, columns)

    def join_right(self, name: Any, cond: str, columns: Any = None) -> 'QueryBuilder':
        return self._joiner(RIGHT_JOIN, name, cond, columns)

    def _where(self, condition: str, value: Any = None) -> str:
        if self._store.unions:
            raise QueryBuilderError(f'Invalid use of where clause with {SQL_UNION}')
        return self.formatter.format_condition(condition, value)

    def where(self, cond: str, value: Any = None) -> 'QueryBuilder':
        """Add an AND predicate to the active ambit.

        Args:
            cond: Condition, with `?` where `value` goes
            value: Scalar, list (rendered comma-separated) or rendered subquery
        """
        condition = self._where(cond, value)
        self._store.active_ambit().and_predicates.append(condition)
        return self

    def where_or(self, cond: str, value: Any = None) -> 'QueryBuilder':
        """Add an OR predicate to the active ambit."""
        condition = self._where(cond, value)
        self._store.active_ambit().or_predicates.append(condition)
        return self

    def where_new_ambit(self, connective: str = SQL_AND) -> 'QueryBuilder':
        """Open a new predicate group attached to the previous one by `connective`."""
        connective = str(connective).upper()
        if connective not in AMBIT_CONNECTIVES:
            raise QueryBuilderError(
                f'Invalid ambit connective `{connective}`: expected AND or OR'
            )
        self._store.new_ambit(connective)
        return self

    def union(self, selects: Any, union_all: bool = False) -> 'QueryBuilder':
        """Combine rendered SELECT statements with UNION (or UNION ALL).

        The statement itself only carries the union parts plus ORDER BY,
        LIMIT and FOR UPDATE; its own select list, sources and conditions
        would never be rendered, so they are rejected.

        Args:
            selects: Subquery string, QueryBuilder, or a list of either
            union_all: Use UNION ALL

        Raises:
            QueryBuilderError: If columns, sources, joins, WHERE predicates,
                GROUP BY or HAVING were already added to the statement
        """
        store = self._store
        if (store.columns or store.sources or store.joins or store.has_where()
                or store.group or store.having):
            raise QueryBuilderError(
                f'Invalid use of {SQL_UNION}: the statement already has its own '
                f'columns, sources or conditions'
            )

        keyword = SQL_UNION_ALL if union_all else SQL_UNION
        for select in array_values(selects):
            sql = select.subquery() if isinstance(select, QueryBuilder) else str(select)
            # the first part is not preceded by a keyword
            store.unions.append((keyword if store.unions else None, f'({sql})'))
        return self

    def group(self, spec: Any) -> 'QueryBuilder':
        self._push_in_parts(self._store.group, spec)
        return self

    def having(self, cond: str) -> 'QueryBuilder':
        self._store.having.append(self._escape(cond))
        return self

    def order(self, cond: str) -> 'QueryBuilder':
        self._store.order.append(self._escape(cond))
        return self

    def limit(self, count_or_offset: Any, count: Any = None) -> 'QueryBuilder':
        """Set LIMIT.

        limit(10) renders `LIMIT 0, 10`; limit(20, 10) renders `LIMIT 20, 10`.
        """
        if count is None:
            self._store.limit_offset = '0'
            self._store.limit_count = self._escape(count_or_offset)
        else:
            self._store.limit_offset = self._escape(count_or_offset)
            self._store.limit_count = self._escape(count)
        return self

    def for_update(self, flag: bool = True) -> 'QueryBuilder':
        self._store.for_update = flag
        return self

    # ------------------------------------------------------------------
    # INSERT / UPDATE / DELETE
    # ------------------------------------------------------------------

    def insert(self, into: Optional[str] = None, values: Optional[dict] = None) -> 'QueryBuilder':
        """Start an INSERT statement, optionally setting table and values."""
        self.flush()
        self._store.action = Action.INSERT
        if into:
            self.into(into)
        if values:
            self.values(values)
        return self

    def into(self, name: Optional[str] = None) -> 'QueryBuilder':
        """Set the target table of an INSERT or UPDATE."""
        if name is None:
            raise QueryBuilderError(f'No {SQL_INTO} statement specified.')
        if not isinstance(name, str):
            raise QueryBuilderError(
                f'Wrong {SQL_INTO} type passed to method. String expected.'
            )
        self._store.into = name
        return self

    def table(self, name: Optional[str] = None) -> 'QueryBuilder':
        """Alias of into, reads better for UPDATE."""
        return self.into(name)

    def values(self, fields: Mapping[str, Any]) -> 'QueryBuilder':
        """Set column values of an INSERT, or assignments of an UPDATE.

        Args:
            fields: {column: value} mapping

        Raises:
            QueryBuilderError: If any key is positional (no column name), or
                the statement is not an INSERT or UPDATE. Nothing is stored
                in that case.
        """
        entries = _entries(fields)
        if any(_is_positional(key) for key, _ in entries):
            raise QueryBuilderError(
                f'Wrong "key" for {SQL_VALUES} construction. No column name specified.'
            )
        if self._store.action not in (Action.INSERT, Action.UPDATE):
            raise QueryBuilderError(
                f'{SQL_VALUES} can only be set on INSERT or UPDATE statements'
            )

        for key, field in entries:
            column = self._escape(key)
            value = self.formatter.escape_and_format(field)
            if self._store.action == Action.INSERT:
                self._store.values[column] = value
            else:
                self._store.assignments.append(f'`{column}` = {value}')
        return self

    def update(self, table: Optional[str] = None) -> 'QueryBuilder':
        """Start an UPDATE statement, optionally setting the table."""
        self.flush()
        self._store.action = Action.UPDATE
        if table:
            self.table(table)
        return self

    def set(self, fields: Mapping[str, Any]) -> 'QueryBuilder':
        """Alias of values, reads better for UPDATE."""
        return self.values(fields)

    def delete(self, sources: Any = None) -> 'QueryBuilder':
        """Start a DELETE statement, optionally setting the table."""
        self.flush()
        self._store.action = Action.DELETE
        if sources:
            self.from_(sources)
        return self

    # ------------------------------------------------------------------
    # Lifecycle and rendering
    # ------------------------------------------------------------------

    def flush(self) -> None:
        """Save the statement in progress (if any) and start an empty one."""
        if not self._store.is_empty():
            self._stack.push(self._store)
            logger.debug(f"Saved {self._store.action} statement (depth {len(self._stack)})")
        self._store = FragmentStore()

    def get_query(self, cleanup: bool = False, separator: str = CARRY_RETURN) -> str:
        """Render the statement in progress.

        Args:
            cleanup: Record the text as last query and restore the statement
                saved by the matching flush
            separator: Clause separator; the default newline also appends ';'

        Returns:
            SQL text
        """
        query = render(self._store, separator)
        if cleanup:
            self._last_query = query
            self._store = self._stack.pop()
            logger.debug(f"Restored saved statement (depth {len(self._stack)})")
        return query

    def subquery(self) -> str:
        """Render without separators or terminator, for embedding in a condition."""
        return self.get_query(False, '')

    def __str__(self) -> str:
        return self.get_query()

    def get_last_query(self) -> Optional[str]:
        """Return the text of the last statement rendered with cleanup."""
        return self._last_query

    def format_as(self, kind: str = None) -> 'QueryBuilder':
        """Set the shape of rows returned by execute()."""
        if kind not in FORMAT_ALIASES:
            raise QueryBuilderError('Invalid formatting type in `format_as`')
        self._store.formatting = FORMAT_ALIASES[kind]
        return self

    def to_array(self) -> 'QueryBuilder':
        """Return rows from execute() as dicts."""
        return self.format_as(FORMAT_ARRAY)

    def execute(self, cache_key: Optional[str] = None, cache_ttl: Optional[int] = None) -> Any:
        """Render the statement, clean up, and run it through the adapter.

        Args:
            cache_key: Key under which the adapter may cache the result
            cache_ttl: Cache lifetime in seconds

        Returns:
            Whatever the adapter returns; rows become dicts after to_array()
        """
        formatting = self._store.formatting
        query = self.get_query(cleanup=True)

        log_level = logging.INFO if self.log_sql else logging.DEBUG
        logger.log(log_level, f"Executing: {query}")

        result = self.adapter.query(query, cache_key, cache_ttl)

        if formatting == FORMAT_ARRAY:
            result = [row_as_array(row) for row in result]
        return result

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin(self) -> Any:
        return self.adapter.query(SQL_BEGIN + SQL_QUERY_DIVISOR)

    def commit(self) -> Any:
        return self.adapter.query(SQL_COMMIT + SQL_QUERY_DIVISOR)

    def rollback(self) -> Any:
        return self.adapter.query(SQL_ROLLBACK + SQL_QUERY_DIVISOR)

    @contextmanager
    def transaction(self) -> Iterator['QueryBuilder']:
        """Run the block inside BEGIN/COMMIT, rolling back if it raises.

        Example:
            >>> with qb.transaction():
            ...     qb.insert('orders', {'id': 7}).execute()
            ...     qb.update('stock').set({'qty': 3}).where('id = ?', 7).execute()
        """
        self.begin()
        try:
            yield self
        except Exception:
            logger.warning("Transaction failed, rolling back")
            self.rollback()
            raise
        self.commit()
