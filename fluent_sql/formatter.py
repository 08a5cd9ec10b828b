"""
=================================
Value escaping and formatting.
=================================

Turns Python values into SQL text that is safe to splice into a statement.
Escaping itself is delegated to an injected Escaper (normally the database
adapter's connection-level primitive), so this module can be exercised
without a live database.

Rules:
    - None renders as NULL
    - '<' and '>' are stripped before escaping
    - numeric results are emitted bare, everything else is double-quoted
    - a bound string containing SELECT ... FROM is treated as an already
      rendered subquery and spliced in unescaped

The subquery rule is a substring heuristic, not a parser: a plain string value
that happens to contain both words (e.g. "SELECT a ticket FROM the list") is
also passed through verbatim. Render subqueries with QueryBuilder.subquery()
and keep user text out of that path.

Example:
    >>> from utils.database_utils import MySQLEscaper
    >>> formatter = ValueFormatter(MySQLEscaper())
    >>> formatter.escape_and_format("north")
    '"north"'
    >>> formatter.format_condition("id IN (?)", [1, 2, 3])
    'id IN (1, 2, 3)'
"""

import re
from typing import Any, Dict, List, Protocol, Union, runtime_checkable

from fluent_sql.constants import SQL_FROM, SQL_NULL, SQL_SELECT
from fluent_sql.exceptions import QueryBuilderError

PLACEHOLDER = '?'

_NUMERIC_RE = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$')
_STRIPPED_CHARS = ('<', '>')


@runtime_checkable
class Escaper(Protocol):
    """Connection-level escaping primitive supplied by the database adapter."""

    def escape(self, raw: str) -> str:
        """Escape `raw` for inclusion inside a quoted SQL literal."""
        ...


def is_numeric(text: Any) -> bool:
    """Return True when `text` reads as a number (sign, decimals, exponent)."""
    if isinstance(text, bool):
        return False
    if isinstance(text, (int, float)):
        return True
    return isinstance(text, str) and bool(_NUMERIC_RE.match(text))


def as_array(value: Any, inverse: Any = None) -> Union[List[Any], Dict[Any, Any]]:
    """Normalize a scalar-or-collection argument.

    Lists, tuples and sets become lists, dicts are returned as they are.
    A scalar becomes a one-element list, or the mapping {value: inverse}
    when `inverse` is given.
    """
    if isinstance(value, dict):
        return value
    if isinstance(value, (list, tuple, set)):
        return list(value)
    if inverse is not None:
        return {value: inverse}
    return [value]


def array_values(value: Any) -> List[Any]:
    """Return the elements of `value` after as_array, dropping any keys."""
    normalized = as_array(value)
    if isinstance(normalized, dict):
        return list(normalized.values())
    return normalized


def is_subquery(value: Any) -> bool:
    """Heuristic check for an already rendered SELECT ... FROM statement."""
    return (
        isinstance(value, str)
        and SQL_SELECT in value
        and value.find(SQL_FROM) > 0
    )


class ValueFormatter:
    """Escapes and quotes values through an injected Escaper.

    Attributes:
        escaper: Object exposing escape(raw: str) -> str
    """

    def __init__(self, escaper: Escaper):
        self.escaper = escaper

    def escape(self, value: Any) -> str:
        """Escape a scalar without quoting it.

        Args:
            value: Scalar to escape; None becomes NULL, booleans become 1/0,
                bytes are decoded as UTF-8

        Returns:
            Escaped SQL text
        """
        if value is None:
            return SQL_NULL
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode('utf-8')
        text = str(value)
        for char in _STRIPPED_CHARS:
            text = text.replace(char, '')
        return self.escaper.escape(text)

    def escape_and_format(self, value: Any) -> str:
        """Escape a scalar and double-quote it unless it is numeric."""
        if value is None:
            return SQL_NULL
        result = self.escape(value)
        if not is_numeric(result):
            result = f'"{result}"'
        return result

    def format_condition(self, condition: str, value: Any = None) -> str:
        """Bind `value` into the `?` placeholders of `condition`.

        Args:
            condition: Condition template, e.g. "id = ?" or "id IN (?)"
            value: Scalar, collection, or rendered subquery; None leaves the
                template untouched

        Returns:
            Condition with every `?` replaced by the formatted value

        Raises:
            QueryBuilderError: If a value is given but the template has no `?`
        """
        if value is None:
            return condition

        if is_subquery(value):
            bound = value
        else:
            bound = ', '.join(self.escape_and_format(item) for item in array_values(value))

        if PLACEHOLDER not in condition:
            raise QueryBuilderError(
                'Invalid use of where clause: No `?` found for escaped value'
            )
        return condition.replace(PLACEHOLDER, bound)
