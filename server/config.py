from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from listings.service import CURSOR_PAGE_SIZE, MAX_PAGE_SIZE, OFFSET_PAGE_SIZE


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw.isdigit() else default


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    ads_table: str = "ads"
    cursor_page_size: int = CURSOR_PAGE_SIZE
    offset_page_size: int = OFFSET_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    seed_path: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def demo_mode(self) -> bool:
        return not (self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            # The mini-app build exposes the URL under its public name.
            supabase_url=os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_SERVICE_KEY"),
            ads_table=os.getenv("ADS_TABLE", "ads"),
            cursor_page_size=_env_int("ADS_PAGE_SIZE", CURSOR_PAGE_SIZE),
            offset_page_size=_env_int("ADS_OFFSET_PAGE_SIZE", OFFSET_PAGE_SIZE),
            max_page_size=_env_int("ADS_MAX_PAGE_SIZE", MAX_PAGE_SIZE),
            seed_path=os.getenv("ADS_SEED_PATH") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 8000),
        )
