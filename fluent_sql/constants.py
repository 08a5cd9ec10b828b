"""
SQL keywords and statement constants used by the builder and renderer.
"""

from enum import Enum


class Action(str, Enum):
    """Statement type carried by a fragment store."""

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


# Join kinds accepted by QueryBuilder._joiner
FROM = 'from'
JOIN = 'join'
INNER_JOIN = 'inner join'
LEFT_JOIN = 'left join'
RIGHT_JOIN = 'right join'

SQL_WILDCARD = '*'
SQL_SELECT = 'SELECT'
SQL_INSERT = 'INSERT'
SQL_UPDATE = 'UPDATE'
SQL_DELETE = 'DELETE'
SQL_DISTINCT = 'DISTINCT'
SQL_UNION = 'UNION'
SQL_UNION_ALL = 'UNION ALL'
SQL_FROM = 'FROM'
SQL_INNER_JOIN = 'INNER JOIN'
SQL_LEFT_JOIN = 'LEFT JOIN'
SQL_RIGHT_JOIN = 'RIGHT JOIN'
SQL_WHERE = 'WHERE'
SQL_GROUP_BY = 'GROUP BY'
SQL_HAVING = 'HAVING'
SQL_ORDER_BY = 'ORDER BY'
SQL_LIMIT = 'LIMIT'
SQL_FOR_UPDATE = 'FOR UPDATE'
SQL_AND = 'AND'
SQL_OR = 'OR'
SQL_AS = 'AS'
SQL_ON = 'ON'
SQL_SET = 'SET'
SQL_INTO = 'INTO'
SQL_VALUES = 'VALUES'
SQL_NULL = 'NULL'
SQL_BEGIN = 'BEGIN'
SQL_COMMIT = 'COMMIT'
SQL_ROLLBACK = 'ROLLBACK'
SQL_QUERY_DIVISOR = ';'

CARRY_RETURN = "\n"

JOIN_SQL = {
    FROM: SQL_FROM,
    JOIN: SQL_INNER_JOIN,
    INNER_JOIN: SQL_INNER_JOIN,
    LEFT_JOIN: SQL_LEFT_JOIN,
    RIGHT_JOIN: SQL_RIGHT_JOIN,
}

UNION_TYPES = (SQL_UNION, SQL_UNION_ALL)

AMBIT_CONNECTIVES = (SQL_AND, SQL_OR)

# Post-fetch row shape hints accepted by QueryBuilder.format_as
FORMAT_ARRAY = 'array'
FORMAT_ALIASES = {
    'array': FORMAT_ARRAY,
    'Array': FORMAT_ARRAY,
    'arr': FORMAT_ARRAY,
}
