"""Ad records, filter normalization and page payloads for the listings API."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from telemetry.logging_utils import get_logger

logger = get_logger(__name__)

# Label the mini app shows for "no city filter"; sent verbatim by older clients.
ALL_CITIES = "Все города"
_CITY_SENTINELS = {ALL_CITIES.lower(), "all", ""}

STUDIO = "studio"
# Source ads spell the studio flag inconsistently, in both alphabets.
STUDIO_MARKERS = ("studio", "студ")

CITIES = [
    ALL_CITIES,
    "Калининград",
    "Светлогорск",
    "Зеленоградск",
    "Пионерский",
    "Янтарный",
]

Number = Union[int, float]


class AdRecord(BaseModel):
    id: int
    external_id: str
    city: str = ""
    address: Optional[str] = None
    price: Optional[Number] = None
    rooms: Optional[str] = None
    area: Optional[Number] = None
    contact_phone: Optional[str] = None
    ai_analysis: Optional[str] = None
    raw_text: str = ""
    source_url: str = ""
    is_published: bool = True
    created_at: Optional[datetime] = None

    model_config = {"extra": "allow"}

    def is_studio(self) -> bool:
        lowered = (self.rooms or "").lower()
        return any(marker in lowered for marker in STUDIO_MARKERS)


def parse_number(raw: Any) -> Optional[Number]:
    """Parse a user-supplied numeric string; anything unusable means "no bound"."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip().replace(" ", "").replace(",", ".")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


def normalize_city(raw: Optional[str]) -> Optional[str]:
    city = (raw or "").strip()
    if city.lower() in _CITY_SENTINELS:
        return None
    return city


def normalize_rooms(raw: Optional[str]) -> Optional[str]:
    rooms = (raw or "").strip()
    if rooms.lower() == STUDIO:
        return STUDIO
    if rooms.isdigit():
        return rooms
    return None


class AdFilters(BaseModel):
    """Filter bag after normalization. ``None`` means the filter is not applied."""

    city: Optional[str] = None
    rooms: Optional[str] = None
    price_min: Optional[Number] = None
    price_max: Optional[Number] = None

    model_config = {"frozen": True}

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "AdFilters":
        return cls(
            city=normalize_city(params.get("city")),
            rooms=normalize_rooms(params.get("rooms")),
            price_min=parse_number(params.get("price_min")),
            price_max=parse_number(params.get("price_max")),
        )

    def is_empty(self) -> bool:
        return self.city is None and self.rooms is None and self.price_min is None and self.price_max is None

    def as_log_fields(self) -> Dict[str, Any]:
        return {f"filter_{k}": v for k, v in self.model_dump().items() if v is not None}


class CursorPage(BaseModel):
    data: List[AdRecord] = Field(default_factory=list)
    next_cursor: Optional[int] = Field(default=None, alias="nextCursor")

    model_config = {"populate_by_name": True}

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class OffsetPage(BaseModel):
    time_ms: int
    count: int
    items: List[AdRecord] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def validate_ads(rows: Iterable[Any]) -> List[AdRecord]:
    """Coerce raw rows into AdRecords, logging and dropping invalid entries."""
    cleaned: List[AdRecord] = []
    for row in rows or []:
        try:
            cleaned.append(AdRecord.model_validate(row))
        except ValidationError as exc:
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning("ad_validation_failed", extra={"ad_id": row_id, "error": str(exc)[:200]})
    return cleaned
