"""
Exceptions raised by the query builder.
"""


class QueryBuilderError(Exception):
    """Exception raised when a statement is constructed incorrectly.

    Raised synchronously by builder, formatter and renderer calls for
    malformed input: missing join target or condition, a bound value without a
    `?` placeholder, positional keys where column names are required, a
    missing INTO table, unknown formatting kinds, and rendering a store that
    has no statement action. Nothing is partially applied; the caller fixes
    the construction and tries again.
    """
    pass
