from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from listings.service import AdListingService, AdQueryError
from server.config import Settings
from storage.memory_store import InMemoryAdStore
from telemetry.logging_utils import get_logger

logger = get_logger(__name__)


def _build_store(settings: Settings):
    if not settings.demo_mode:
        from storage.supabase_store import SupabaseAdStore

        return SupabaseAdStore(settings.supabase_url, settings.supabase_key, table=settings.ads_table)
    logger.warning(
        "supabase_not_configured",
        extra={"hint": "Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY in .env", "seed_path": settings.seed_path},
    )
    if settings.seed_path:
        return InMemoryAdStore.from_json(settings.seed_path)
    return InMemoryAdStore()


def _error(message: str, *, time_ms: Optional[int] = None, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> JSONResponse:
    body: Dict[str, Any] = {"error": message}
    if time_ms is not None:
        body["time_ms"] = time_ms
    return JSONResponse(body, status_code=status_code)


def create_app(store=None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    service = AdListingService(
        store if store is not None else _build_store(settings),
        cursor_page_size=settings.cursor_page_size,
        offset_page_size=settings.offset_page_size,
        max_page_size=settings.max_page_size,
    )

    app = FastAPI(title="Rental ads mini app API")
    app.state.settings = settings
    app.state.listing_service = service
    # The page is served from the chat platform's web view, not from this origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/api/ads")
    def list_ads(request: Request):
        params = dict(request.query_params)
        try:
            page = service.list_ads(params)
        except AdQueryError as exc:
            return _error(exc.message, time_ms=exc.time_ms)
        except Exception:
            logger.exception("ads_api_failed")
            return _error("Server error")
        return page.to_payload()

    @app.get("/api/health")
    def health():
        try:
            ok = bool(service.store.ping())
        except Exception:
            logger.exception("health_check_failed")
            ok = False
        return {"ok": ok}

    return app


app = create_app()
