"""
Rental ads listings: filter parsing, paged queries and the browsing client.
"""

from .client import AdListClient, FilterSelection, ListState
from .models import ALL_CITIES, CITIES, AdFilters, AdRecord, CursorPage, OffsetPage
from .service import AdListingService, AdQueryError

__all__ = [
    "ALL_CITIES",
    "CITIES",
    "AdFilters",
    "AdListClient",
    "AdListingService",
    "AdQueryError",
    "AdRecord",
    "CursorPage",
    "FilterSelection",
    "ListState",
    "OffsetPage",
]
