from __future__ import annotations

import json
import operator
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]
Predicate = Callable[[Row], bool]

_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "neq": operator.ne,
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}


def _like_regex(pattern: str, *, ignore_case: bool) -> "re.Pattern[str]":
    # PostgREST accepts both * and % as wildcards.
    parts = re.split(r"[%*]", pattern)
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile(".*".join(re.escape(p) for p in parts), flags | re.DOTALL)


def _compare(op: str, column: str, value: Any) -> Predicate:
    if op in ("like", "ilike"):
        regex = _like_regex(str(value), ignore_case=op == "ilike")

        def _match(row: Row) -> bool:
            cell = row.get(column)
            return cell is not None and regex.fullmatch(str(cell)) is not None

        return _match

    compare = _COMPARATORS[op]

    def _check(row: Row) -> bool:
        cell = row.get(column)
        # NULL never satisfies a comparison in SQL.
        if cell is None:
            return False
        try:
            return compare(cell, value)
        except TypeError:
            return compare(str(cell), str(value))

    return _check


def _parse_or(filters: str) -> Predicate:
    clauses: List[Predicate] = []
    for clause in filters.split(","):
        column, op, value = clause.strip().split(".", 2)
        clauses.append(_compare(op, column, value))
    return lambda row: any(check(row) for check in clauses)


@dataclass(frozen=True)
class MemoryResponse:
    data: List[Row]
    count: Optional[int] = None


@dataclass(frozen=True)
class InMemoryQuery:
    """Chainable subset of the PostgREST select builder over a list of rows."""

    rows: Tuple[Row, ...]
    predicates: Tuple[Predicate, ...] = ()
    ordering: Tuple[Tuple[str, bool], ...] = ()
    offset: int = 0
    size: Optional[int] = None

    def _where(self, predicate: Predicate) -> "InMemoryQuery":
        return replace(self, predicates=self.predicates + (predicate,))

    def eq(self, column: str, value: Any) -> "InMemoryQuery":
        return self._where(_compare("eq", column, value))

    def neq(self, column: str, value: Any) -> "InMemoryQuery":
        return self._where(_compare("neq", column, value))

    def gt(self, column: str, value: Any) -> "InMemoryQuery":
        return self._where(_compare("gt", column, value))

    def gte(self, column: str, value: Any) -> "InMemoryQuery":
        return self._where(_compare("gte", column, value))

    def lt(self, column: str, value: Any) -> "InMemoryQuery":
        return self._where(_compare("lt", column, value))

    def lte(self, column: str, value: Any) -> "InMemoryQuery":
        return self._where(_compare("lte", column, value))

    def like(self, column: str, pattern: str) -> "InMemoryQuery":
        return self._where(_compare("like", column, pattern))

    def ilike(self, column: str, pattern: str) -> "InMemoryQuery":
        return self._where(_compare("ilike", column, pattern))

    def or_(self, filters: str) -> "InMemoryQuery":
        return self._where(_parse_or(filters))

    def order(self, column: str, *, desc: bool = False) -> "InMemoryQuery":
        return replace(self, ordering=self.ordering + ((column, desc),))

    def limit(self, size: int) -> "InMemoryQuery":
        return replace(self, size=size)

    def range(self, start: int, end: int) -> "InMemoryQuery":
        return replace(self, offset=start, size=max(end - start + 1, 0))

    def execute(self) -> MemoryResponse:
        matched = [dict(row) for row in self.rows if all(check(row) for check in self.predicates)]
        # Stable sorts applied last-key-first give a multi-column ORDER BY.
        for column, desc in reversed(self.ordering):
            present = [row for row in matched if row.get(column) is not None]
            missing = [row for row in matched if row.get(column) is None]
            present.sort(key=lambda row: row[column], reverse=desc)
            # Postgres puts NULLs first for DESC and last for ASC.
            matched = missing + present if desc else present + missing
        end = None if self.size is None else self.offset + self.size
        return MemoryResponse(data=matched[self.offset:end])


@dataclass
class InMemoryAdStore:
    """Demo-mode store used when Supabase is unavailable."""

    rows: List[Row] = field(default_factory=list)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryAdStore":
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        rows = payload.get("ads", []) if isinstance(payload, dict) else payload
        logger.info("memory_store_seeded", extra={"path": str(path), "row_count": len(rows)})
        return cls(rows=list(rows))

    def add(self, row: Row) -> None:
        self.rows.append(dict(row))

    def ads_query(self) -> InMemoryQuery:
        return InMemoryQuery(rows=tuple(self.rows))

    def fetch(self, query: InMemoryQuery) -> List[Row]:
        return query.execute().data

    def ping(self) -> bool:
        return True
