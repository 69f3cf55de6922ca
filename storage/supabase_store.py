from __future__ import annotations

from typing import Any, Dict, List

import httpx
from postgrest import APIError

from supabase import Client, create_client

from storage.errors import AdStoreError
from telemetry.logging_utils import get_logger

logger = get_logger(__name__)


class SupabaseAdStore:
    """Read-only access to the ads table in Supabase.

    Requests go out once; callers decide what a failure means for the user.
    """

    def __init__(self, url: str, key: str, *, table: str = "ads") -> None:
        self.client: Client = create_client(url, key)
        self.table = table

    def _table(self, name: str):
        return self.client.table(name)

    def ads_query(self):
        return self._table(self.table).select("*")

    def fetch(self, query) -> List[Dict[str, Any]]:
        try:
            resp = query.execute()
        except APIError as exc:
            logger.error(
                "supabase_query_failed",
                extra={"table": self.table, "code": getattr(exc, "code", None), "detail": getattr(exc, "message", str(exc))},
            )
            raise AdStoreError(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("supabase_transport_failed", extra={"table": self.table, "detail": str(exc)})
            raise AdStoreError(str(exc)) from exc
        return resp.data or []

    def ping(self) -> bool:
        try:
            self.fetch(self._table(self.table).select("id").limit(1))
        except AdStoreError:
            return False
        return True
