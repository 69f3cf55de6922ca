"""
Client-side list state for the ads browser.

State lives in an immutable ``ListState``; the module-level functions compute the
next request and the next state, and ``AdListClient`` wires them to HTTP.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

import httpx
from pydantic import ValidationError

from telemetry.logging_utils import get_logger

from .models import ALL_CITIES, AdRecord, CursorPage
from .query import dedupe_by_external_id
from .service import CURSOR_PAGE_SIZE

logger = get_logger(__name__)

ADS_PATH = "/api/ads"


@dataclass(frozen=True)
class FilterSelection:
    """Filter inputs as the user typed them."""

    city: str = ALL_CITIES
    room: Optional[str] = None
    price_min: str = ""
    price_max: str = ""

    def toggle_room(self, room: str) -> "FilterSelection":
        return replace(self, room=None if self.room == room else room)


@dataclass(frozen=True)
class ListState:
    filters: FilterSelection = field(default_factory=FilterSelection)
    ads: Tuple[AdRecord, ...] = ()
    cursor: Optional[int] = None
    has_more: bool = True
    in_flight: bool = False
    error: Optional[str] = None
    # Filters changed but their first page never arrived; the list belongs to the old filters.
    stale: bool = False


def initial_state(filters: Optional[FilterSelection] = None) -> ListState:
    return ListState(filters=filters or FilterSelection())


def request_params(state: ListState, *, reset: bool, limit: int = CURSOR_PAGE_SIZE) -> Optional[Dict[str, str]]:
    """Query string for the next fetch, or None when a load-more must not be sent."""
    if not reset and (not state.has_more or state.in_flight or state.stale):
        return None

    selection = state.filters
    params: Dict[str, str] = {}
    if selection.city and selection.city != ALL_CITIES:
        params["city"] = selection.city
    if selection.room:
        params["rooms"] = selection.room
    if selection.price_min.strip():
        params["price_min"] = selection.price_min.strip()
    if selection.price_max.strip():
        params["price_max"] = selection.price_max.strip()
    params["limit"] = str(limit)
    if not reset and state.cursor is not None:
        params["cursor"] = str(state.cursor)
    return params


def start_fetch(state: ListState) -> ListState:
    return replace(state, in_flight=True, error=None)


def apply_page(state: ListState, page: CursorPage, *, reset: bool) -> ListState:
    """Merge a fetched page. A reset replaces the list only once its page has arrived."""
    base = () if reset else state.ads
    if not page.data:
        return replace(
            state,
            ads=base,
            cursor=None if reset else state.cursor,
            has_more=False,
            in_flight=False,
            stale=False,
        )
    merged = tuple(dedupe_by_external_id(list(base) + list(page.data)))
    return replace(
        state,
        ads=merged,
        cursor=page.next_cursor,
        has_more=page.next_cursor is not None,
        in_flight=False,
        stale=False,
    )


def fail_fetch(state: ListState, message: str, *, reset: bool = False) -> ListState:
    """Record a failed fetch. The list stays as it was; a failed reset marks it stale."""
    return replace(state, in_flight=False, error=message, stale=state.stale or reset)


class AdListClient:
    """Owns one browsing session: filters, accumulated ads and paging position."""

    def __init__(
        self,
        http: httpx.Client,
        *,
        page_size: int = CURSOR_PAGE_SIZE,
        path: str = ADS_PATH,
        filters: Optional[FilterSelection] = None,
    ) -> None:
        self.http = http
        self.page_size = page_size
        self.path = path
        self.state = initial_state(filters)

    @property
    def ads(self) -> Tuple[AdRecord, ...]:
        return self.state.ads

    def refresh(self) -> ListState:
        """Fetch the first page for the current filters (initial load or confirmed filter change)."""
        return self._fetch(reset=True)

    def apply_filters(self, selection: FilterSelection) -> ListState:
        self.state = replace(self.state, filters=selection)
        return self.refresh()

    def reset_filters(self) -> ListState:
        """Restore defaults without fetching; the user confirms with ``refresh``."""
        self.state = replace(self.state, filters=FilterSelection())
        return self.state

    def load_more(self) -> ListState:
        # Paging on from a list fetched under other filters would mix the two result sets.
        if self.state.stale and not self.state.in_flight:
            return self.refresh()
        return self._fetch(reset=False)

    def _fetch(self, *, reset: bool) -> ListState:
        params = request_params(self.state, reset=reset, limit=self.page_size)
        if params is None:
            logger.debug("ads_load_more_suppressed", extra={"has_more": self.state.has_more, "in_flight": self.state.in_flight})
            return self.state

        self.state = start_fetch(self.state)
        try:
            page = self._get_page(params)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.error("ads_fetch_failed", extra={"reset": reset, "detail": str(exc)})
            self.state = fail_fetch(self.state, str(exc) or exc.__class__.__name__, reset=reset)
            return self.state
        finally:
            if self.state.in_flight:
                self.state = replace(self.state, in_flight=False)

        self.state = apply_page(self.state, page, reset=reset)
        logger.info(
            "ads_page_applied",
            extra={"reset": reset, "received": len(page.data), "total": len(self.state.ads), "has_more": self.state.has_more},
        )
        return self.state

    def _get_page(self, params: Dict[str, str]) -> CursorPage:
        resp = self.http.get(self.path, params=params)
        payload: Any = resp.json() if resp.content else {}
        if resp.is_error:
            message = payload.get("error") if isinstance(payload, dict) else None
            raise httpx.HTTPStatusError(
                message or f"HTTP {resp.status_code}",
                request=resp.request,
                response=resp,
            )
        try:
            return CursorPage.model_validate(payload)
        except ValidationError as exc:
            raise ValueError(f"unexpected ads payload: {exc.error_count()} errors") from exc
