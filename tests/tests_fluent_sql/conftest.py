"""
Shared fixtures and fakes for fluent_sql tests.

Key fixtures:
- escaper: FakeEscaper that backslash-escapes quotes like MySQL does
- formatter: ValueFormatter bound to the fake escaper
- adapter: FakeAdapter recording every query it receives
- qb: QueryBuilder wired to the fake adapter
"""

import pytest

from fluent_sql import QueryBuilder, ValueFormatter


class FakeEscaper:
    """Escapes backslashes and quotes, records what it was asked to escape."""

    def __init__(self):
        self.calls = []

    def escape(self, raw):
        self.calls.append(raw)
        return raw.replace('\\', '\\\\').replace("'", "\\'").replace('"', '\\"')


class FakeAdapter:
    """Database adapter stand-in returning canned rows."""

    def __init__(self, rows=None):
        self.escaper = FakeEscaper()
        self.rows = rows if rows is not None else []
        self.queries = []

    def get_escaper(self):
        return self.escaper

    def query(self, text, cache_key=None, cache_ttl=None):
        self.queries.append((text, cache_key, cache_ttl))
        return self.rows


@pytest.fixture
def escaper():
    return FakeEscaper()


@pytest.fixture
def formatter(escaper):
    return ValueFormatter(escaper)


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def qb(adapter):
    return QueryBuilder(adapter, log_sql=False)
