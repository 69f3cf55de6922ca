"""
Query construction for the ads table.

The builders here only rely on the PostgREST-style primitives the data service
exposes (``eq``, ``or_``, ``gte``, ``lte``, ``lt``, ``order``, ``limit``,
``range``), so the same code drives both the Supabase table and the in-memory
demo store.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, TypeVar

from .models import STUDIO, STUDIO_MARKERS, AdFilters

Q = TypeVar("Q")
T = TypeVar("T")


def studio_clause(column: str = "rooms") -> str:
    """OR-filter matching any studio marker, case-insensitively, as a substring."""
    return ",".join(f"{column}.ilike.*{marker}*" for marker in STUDIO_MARKERS)


def apply_filters(query: Q, filters: AdFilters) -> Q:
    # Unpublished ads never leave the service, whatever else was asked for.
    query = query.eq("is_published", True)

    if filters.city is not None:
        query = query.eq("city", filters.city)

    if filters.rooms == STUDIO:
        query = query.or_(studio_clause())
    elif filters.rooms is not None:
        query = query.eq("rooms", filters.rooms)

    if filters.price_min is not None:
        query = query.gte("price", filters.price_min)
    if filters.price_max is not None:
        query = query.lte("price", filters.price_max)
    return query


def build_cursor_query(query: Q, filters: AdFilters, *, limit: int, cursor: Optional[int] = None) -> Q:
    """Newest-first by id; ``cursor`` is a strict upper bound on the id."""
    query = apply_filters(query, filters).order("id", desc=True).limit(limit)
    if cursor is not None:
        query = query.lt("id", cursor)
    return query


def build_offset_query(query: Q, filters: AdFilters, *, limit: int, offset: int = 0) -> Q:
    """
    Newest-first by created_at, rows ``[offset, offset + limit - 1]``.

    Positions shift when ads are inserted between requests, so consecutive pages
    can skip or repeat rows. Cursor paging does not have this problem.
    """
    return apply_filters(query, filters).order("created_at", desc=True).range(offset, offset + limit - 1)


def dedupe_by_external_id(records: Iterable[T]) -> List[T]:
    """Drop records whose external_id was already seen, keeping the first one."""
    seen = set()
    unique: List[T] = []
    for record in records:
        key = _external_id(record)
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def _external_id(record: Any) -> Any:
    if isinstance(record, Mapping):
        return record.get("external_id")
    return getattr(record, "external_id", None)


def next_cursor(rows: List[Any]) -> Optional[int]:
    """Id of the last row in the page, or None once the page comes back empty."""
    if not rows:
        return None
    last = rows[-1]
    value = last.get("id") if isinstance(last, Mapping) else getattr(last, "id", None)
    return int(value) if value is not None else None


def _parse_int(raw: Any) -> Optional[int]:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        try:
            value = float(str(raw).strip())
        except ValueError:
            return None
        return int(value) if value.is_integer() else None


def parse_limit(raw: Any, *, default: int, maximum: int) -> int:
    value = _parse_int(raw)
    if value is None or value <= 0:
        return default
    return min(value, maximum)


def parse_offset(raw: Any) -> int:
    value = _parse_int(raw)
    if value is None or value < 0:
        return 0
    return value


def parse_cursor(raw: Any) -> Optional[int]:
    # Any integer is a valid bound; 0 or below simply matches nothing.
    return _parse_int(raw)
