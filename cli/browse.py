"""
Terminal browser for the ads API.

Pages through listings the same way the mini app does, so the API can be
checked without opening the chat client:

    python -m cli.browse --base-url http://localhost:8000 --city Калининград --rooms studio
"""

from __future__ import annotations

import argparse
from typing import Callable, List, Optional

import httpx

from listings.client import AdListClient, FilterSelection
from listings.models import ALL_CITIES, AdRecord, STUDIO_MARKERS


def format_rooms(rooms: Optional[str]) -> str:
    if not rooms:
        return ""
    lowered = rooms.lower()
    if any(marker in lowered for marker in STUDIO_MARKERS):
        return "Студия"
    return f"{rooms}-к кв."


def format_price(price) -> str:
    if not price:
        return "Цена не указана"
    return f"{int(price):,}".replace(",", " ") + " ₽/мес"


def render_ad(ad: AdRecord) -> List[str]:
    header = f"{format_price(ad.price)} · {format_rooms(ad.rooms) or 'Квартира'}"
    if ad.area:
        header += f" · {ad.area} м²"
    lines = [header, f"  {ad.address or ad.city or 'Район не указан'}"]
    if ad.ai_analysis:
        lines.append(f"  AI: {ad.ai_analysis}")
    lines.append(f"  {ad.contact_phone or 'https://t.me/' + ad.source_url}")
    return lines


def run_browser(client: AdListClient, *, ask: Callable[[str], str] = input, out: Callable[[str], None] = print) -> int:
    """Show pages until the user stops or the list ends. Returns the number of ads shown."""
    state = client.refresh()
    shown = 0
    while True:
        if state.error:
            out(f"Не удалось загрузить объявления: {state.error}")
        for ad in state.ads[shown:]:
            for line in render_ad(ad):
                out(line)
        shown = len(state.ads)
        if not state.ads and not state.error:
            out("Ничего не найдено")
        out(f"Найдено: {shown}")
        if not state.has_more and not state.error:
            return shown
        answer = ask("Показать ещё? [y/N] ").strip().lower()
        if answer not in {"y", "yes", "д", "да"}:
            return shown
        state = client.load_more() if state.ads else client.refresh()


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Browse rental ads from the listings API")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API root (default: %(default)s)")
    parser.add_argument("--city", default=ALL_CITIES)
    parser.add_argument("--rooms", choices=["studio", "1", "2", "3"], default=None)
    parser.add_argument("--price-min", default="")
    parser.add_argument("--price-max", default="")
    parser.add_argument("--page-size", type=int, default=20)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    selection = FilterSelection(city=args.city, room=args.rooms, price_min=args.price_min, price_max=args.price_max)
    with httpx.Client(base_url=args.base_url, timeout=15.0) as http:
        client = AdListClient(http, page_size=args.page_size, filters=selection)
        run_browser(client)


if __name__ == "__main__":
    main()
