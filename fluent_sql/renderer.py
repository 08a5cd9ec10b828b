"""
======================================
SQL rendering for accumulated fragments.
======================================

Pure functions turning a FragmentStore into SQL text. Rendering never mutates
the store, so rendering the same store twice yields the same text.

The separator is placed between clauses: a newline for standalone statements
(which also get a trailing ';') and an empty string when the statement is
embedded in another one as a subquery.

WHERE ambits render as parenthesised blocks. Inside one block the AND-joined
predicates and the OR-joined predicates form two groups that are themselves
joined with OR:

    where('a = 1').where('b = 2').where_or('c = 3')  ->  (a = 1 AND b = 2 OR c = 3)

Blocks after the first are prefixed with the connective given to
where_new_ambit() and the separator.

Functions:
    render: Dispatch on the store's action
    render_select / render_insert / render_update / render_delete
    render_where: WHERE clause shared by SELECT, UPDATE and DELETE
"""

from typing import Callable, Dict

from fluent_sql.constants import (
    CARRY_RETURN,
    SQL_AND,
    SQL_DELETE,
    SQL_DISTINCT,
    SQL_FOR_UPDATE,
    SQL_FROM,
    SQL_GROUP_BY,
    SQL_HAVING,
    SQL_INSERT,
    SQL_INTO,
    SQL_LIMIT,
    SQL_OR,
    SQL_ORDER_BY,
    SQL_QUERY_DIVISOR,
    SQL_SELECT,
    SQL_SET,
    SQL_UPDATE,
    SQL_VALUES,
    SQL_WHERE,
    SQL_WILDCARD,
    Action,
)
from fluent_sql.exceptions import QueryBuilderError
from fluent_sql.fragments import FragmentStore


def _terminate(query: str, separator: str) -> str:
    if separator == CARRY_RETURN:
        query += SQL_QUERY_DIVISOR
    return query


def _require_table(store: FragmentStore) -> str:
    if store.into is None:
        raise QueryBuilderError(f'No {SQL_INTO} statement specified.')
    return store.into


def render_where(store: FragmentStore, separator: str) -> str:
    """Render the WHERE clause, or '' when no predicate was added."""
    if not store.has_where():
        return ''

    query = f'{SQL_WHERE} '
    first = True
    for ambit in store.where:
        if ambit.is_empty():
            continue
        if not first and ambit.connective:
            query += ambit.connective + separator
        first = False

        partial_where = []
        if ambit.and_predicates:
            partial_where.append(f' {SQL_AND} '.join(ambit.and_predicates))
        if ambit.or_predicates:
            partial_where.append(f' {SQL_OR} '.join(ambit.or_predicates))
        query += '(' + f' {SQL_OR} '.join(partial_where) + ') '
    return query


def _render_tail(store: FragmentStore, separator: str) -> str:
    """ORDER BY, LIMIT and FOR UPDATE, shared by plain and UNION selects."""
    query = ''
    if store.order:
        query += f'{SQL_ORDER_BY} ' + ', '.join(store.order) + f' {separator}'
    has_limit = store.limit_count is not None and store.limit_count != '0'
    if has_limit:
        query += f'{SQL_LIMIT} {store.limit_offset}, {store.limit_count}'
    if store.for_update:
        query += f' {SQL_FOR_UPDATE}' if has_limit else SQL_FOR_UPDATE
    return query


def _render_union(store: FragmentStore, separator: str) -> str:
    _, first_sql = store.unions[0]
    query = f'{first_sql} {separator}'
    for keyword, sql in store.unions[1:]:
        query += f'{keyword} {sql} {separator}'
    query += _render_tail(store, separator)
    return _terminate(query, separator)


def render_select(store: FragmentStore, separator: str) -> str:
    """Render a SELECT statement."""
    if store.unions:
        return _render_union(store, separator)

    select_keyword = f'{SQL_SELECT} {SQL_DISTINCT}' if store.distinct else SQL_SELECT
    columns = store.columns or [SQL_WILDCARD]
    query = f'{select_keyword} ' + ', '.join(columns) + f' {separator}'

    if store.sources:
        query += f'{SQL_FROM} ' + ', '.join(store.sources) + f' {separator}'
    if store.joins:
        query += f' {separator}'.join(store.joins) + f' {separator}'

    where = render_where(store, separator)
    if where:
        query += where + separator

    if store.group:
        query += f'{SQL_GROUP_BY} ' + ', '.join(store.group) + f' {separator}'
    if store.having:
        query += f'{SQL_HAVING} ' + f' {SQL_AND} '.join(store.having) + f' {separator}'

    query += _render_tail(store, separator)
    return _terminate(query, separator)


def render_insert(store: FragmentStore, separator: str) -> str:
    """Render an INSERT statement; column and value order follow insertion."""
    table = _require_table(store)
    columns = '`, `'.join(store.values.keys())
    query = f'{SQL_INSERT} {SQL_INTO} {separator}'
    query += f'`{table}` (`{columns}`) {separator}'
    query += f'{SQL_VALUES} (' + ', '.join(store.values.values()) + ')'
    return _terminate(query, separator)


def render_update(store: FragmentStore, separator: str) -> str:
    """Render an UPDATE statement."""
    table = _require_table(store)
    query = f'{SQL_UPDATE} `{table}` {separator}'
    query += f'{SQL_SET} ' + ', '.join(store.assignments) + f' {separator}'
    query += render_where(store, separator)
    return _terminate(query, separator)


def render_delete(store: FragmentStore, separator: str) -> str:
    """Render a DELETE statement against the first FROM source."""
    if not store.sources:
        raise QueryBuilderError(f'No table specified for {SQL_DELETE}')
    query = f'{SQL_DELETE} {SQL_FROM} {store.sources[0]} {separator}'
    query += render_where(store, separator)
    return _terminate(query, separator)


_RENDERERS: Dict[Action, Callable[[FragmentStore, str], str]] = {
    Action.SELECT: render_select,
    Action.INSERT: render_insert,
    Action.UPDATE: render_update,
    Action.DELETE: render_delete,
}


def render(store: FragmentStore, separator: str = CARRY_RETURN) -> str:
    """Render `store` as SQL text.

    Args:
        store: Fragments of the statement
        separator: Clause separator; CARRY_RETURN also appends ';'

    Returns:
        SQL statement text

    Raises:
        QueryBuilderError: If the store has no action or lacks its target table
    """
    if store.action is None:
        raise QueryBuilderError(
            'No statement action set: call select(), insert(), update() or delete() first'
        )
    return _RENDERERS[store.action](store, separator)
