"""Paged reads of published ads, in cursor or offset mode."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from storage.errors import AdStoreError
from telemetry.logging_utils import get_logger
from telemetry.metrics import start_timer

from .models import AdFilters, CursorPage, OffsetPage, validate_ads
from .query import (
    build_cursor_query,
    build_offset_query,
    dedupe_by_external_id,
    next_cursor,
    parse_cursor,
    parse_limit,
    parse_offset,
)

logger = get_logger(__name__)

CURSOR_PAGE_SIZE = 20
OFFSET_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class AdQueryError(RuntimeError):
    """A page could not be read. ``message`` is safe to show to clients."""

    def __init__(self, message: str = "Database error", *, time_ms: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.time_ms = time_ms


def _present(params: Mapping[str, Any], key: str) -> bool:
    value = params.get(key)
    return value is not None and str(value).strip() != ""


class AdListingService:
    """Turns request parameters into one filtered read against the ad store."""

    def __init__(
        self,
        store,
        *,
        cursor_page_size: int = CURSOR_PAGE_SIZE,
        offset_page_size: int = OFFSET_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.store = store
        self.cursor_page_size = cursor_page_size
        self.offset_page_size = offset_page_size
        self.max_page_size = max_page_size

    def list_ads(self, params: Mapping[str, Any]) -> Union[CursorPage, OffsetPage]:
        """Pick the paging mode from the parameters that were sent."""
        has_cursor = _present(params, "cursor")
        if _present(params, "offset") and not has_cursor:
            return self.list_offset(params)
        if has_cursor and _present(params, "offset"):
            logger.warning("ads_paging_mode_conflict", extra={"chosen": "cursor"})
        return self.list_cursor(params)

    def list_cursor(self, params: Mapping[str, Any]) -> CursorPage:
        filters = AdFilters.from_params(params)
        limit = parse_limit(params.get("limit"), default=self.cursor_page_size, maximum=self.max_page_size)
        cursor = parse_cursor(params.get("cursor"))

        timer = start_timer("ads_cursor_query")
        boundary = cursor
        while True:
            query = build_cursor_query(self.store.ads_query(), filters, limit=limit, cursor=boundary)
            try:
                rows = self.store.fetch(query)
            except AdStoreError as exc:
                logger.error("ads_query_failed", extra={"mode": "cursor", "detail": str(exc), **filters.as_log_fields()})
                raise AdQueryError() from exc

            if not rows:
                timer.done(mode="cursor", count=0, cursor=cursor)
                return CursorPage(data=[], next_cursor=None)

            ads = dedupe_by_external_id(validate_ads(rows))
            if ads:
                break
            # An empty page would end paging on the client, so skip past batches with no usable rows.
            boundary = next_cursor(rows)
            logger.warning("ads_batch_all_invalid", extra={"rows": len(rows), "next_cursor": boundary})
            if boundary is None:
                timer.done(mode="cursor", count=0, cursor=cursor)
                return CursorPage(data=[], next_cursor=None)

        page = CursorPage(data=ads, next_cursor=next_cursor(rows))
        timer.done(mode="cursor", count=len(ads), cursor=cursor, next_cursor=page.next_cursor)
        return page

    def list_offset(self, params: Mapping[str, Any]) -> OffsetPage:
        filters = AdFilters.from_params(params)
        limit = parse_limit(params.get("limit"), default=self.offset_page_size, maximum=self.max_page_size)
        offset = parse_offset(params.get("offset"))

        timer = start_timer("ads_offset_query")
        query = build_offset_query(self.store.ads_query(), filters, limit=limit, offset=offset)
        try:
            rows = self.store.fetch(query)
        except AdStoreError as exc:
            time_ms = timer.elapsed_ms()
            logger.error(
                "ads_query_failed",
                extra={"mode": "offset", "detail": str(exc), "time_ms": time_ms, **filters.as_log_fields()},
            )
            raise AdQueryError(time_ms=time_ms) from exc

        ads = dedupe_by_external_id(validate_ads(rows))
        time_ms = timer.elapsed_ms()
        timer.done(mode="offset", count=len(ads), offset=offset)
        return OffsetPage(time_ms=time_ms, count=len(ads), items=ads)
