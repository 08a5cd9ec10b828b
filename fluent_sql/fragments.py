"""
======================================
Fragment storage for in-flight statements.
======================================

A FragmentStore holds everything accumulated for one statement before it is
rendered. WHERE predicates are organised in ambits: each ambit renders as one
parenthesised block and is attached to the previous block by its connective.
StoreStack keeps saved stores so a new statement can be started (and rendered
with cleanup) without losing the statement that was in progress.

Classes:
    WhereAmbit: One parenthesised group of AND / OR predicates
    FragmentStore: All fragments of one statement
    StoreStack: LIFO of saved FragmentStore instances
"""

from dataclasses import dataclass, field, fields
from typing import Dict, List, Optional, Tuple

from fluent_sql.constants import Action


@dataclass
class WhereAmbit:
    """One nesting level of WHERE predicates.

    Attributes:
        connective: AND/OR joining this ambit to the previous one; unused on
            the first rendered ambit
        and_predicates: Conditions joined with AND
        or_predicates: Conditions joined with OR
    """

    connective: Optional[str] = None
    and_predicates: List[str] = field(default_factory=list)
    or_predicates: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.and_predicates and not self.or_predicates


@dataclass
class FragmentStore:
    """Accumulated fragments of a single statement.

    Attributes:
        action: Statement type; must be set before rendering
        columns: Select-list entries, already escaped
        sources: FROM entries, quoted and optionally aliased
        joins: Rendered "KEYWORD table [AS alias] ON cond" entries
        where: WHERE ambits in creation order
        where_ambit: Index of the ambit that receives new predicates
        unions: (keyword, subquery) pairs for UNION statements; the first
            part has no keyword
        group: GROUP BY entries
        having: HAVING entries
        order: ORDER BY entries
        limit_offset: LIMIT offset, or None
        limit_count: LIMIT row count, or None
        distinct: Render SELECT DISTINCT
        for_update: Append FOR UPDATE to SELECT
        into: Target table of INSERT / UPDATE
        values: INSERT column -> formatted value, in insertion order
        assignments: UPDATE "`column` = value" entries
        formatting: Post-fetch row shape hint
    """

    action: Optional[Action] = None
    columns: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    joins: List[str] = field(default_factory=list)
    where: List[WhereAmbit] = field(default_factory=list)
    where_ambit: int = 0
    unions: List[Tuple[Optional[str], str]] = field(default_factory=list)
    group: List[str] = field(default_factory=list)
    having: List[str] = field(default_factory=list)
    order: List[str] = field(default_factory=list)
    limit_offset: Optional[str] = None
    limit_count: Optional[str] = None
    distinct: bool = False
    for_update: bool = False
    into: Optional[str] = None
    values: Dict[str, str] = field(default_factory=dict)
    assignments: List[str] = field(default_factory=list)
    formatting: Optional[str] = None

    def is_empty(self) -> bool:
        """Return True when nothing has been accumulated."""
        return all(
            getattr(self, f.name) == getattr(_EMPTY_STORE, f.name)
            for f in fields(self)
        )

    def active_ambit(self) -> WhereAmbit:
        """Return the ambit receiving predicates, creating it on first use."""
        while len(self.where) <= self.where_ambit:
            self.where.append(WhereAmbit())
        return self.where[self.where_ambit]

    def new_ambit(self, connective: str) -> WhereAmbit:
        """Open a new ambit attached with `connective` and make it active."""
        if not self.where:
            self.where.append(WhereAmbit())
        self.where.append(WhereAmbit(connective=connective))
        self.where_ambit = len(self.where) - 1
        return self.where[self.where_ambit]

    def has_where(self) -> bool:
        return any(not ambit.is_empty() for ambit in self.where)


_EMPTY_STORE = FragmentStore()


class StoreStack:
    """LIFO of saved fragment stores."""

    def __init__(self):
        self._stores: List[FragmentStore] = []

    def push(self, store: FragmentStore) -> None:
        self._stores.append(store)

    def pop(self) -> FragmentStore:
        """Return the most recently saved store, or an empty one."""
        if self._stores:
            return self._stores.pop()
        return FragmentStore()

    def __len__(self) -> int:
        return len(self._stores)
