import copy
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from listings.service import AdListingService
from server.app import create_app
from server.config import Settings
from storage.memory_store import InMemoryAdStore

FIXTURES = Path(__file__).parent / "fixtures"


def _load_fixture(name: str):
    with open(FIXTURES / name, "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture()
def ad_rows():
    return _load_fixture("ads_sample.json")


@pytest.fixture()
def store(ad_rows):
    return InMemoryAdStore(rows=copy.deepcopy(ad_rows))


@pytest.fixture()
def service(store):
    return AdListingService(store)


@pytest.fixture()
def api(store):
    app = create_app(store=store, settings=Settings())
    with TestClient(app) as client:
        yield client


def make_rows(count: int, *, city: str = "Калининград"):
    """Synthetic published ads with ids 1..count, newest last."""
    return [
        {
            "id": i,
            "external_id": f"gen:{i}",
            "city": city,
            "price": 20000 + i,
            "rooms": "1",
            "raw_text": f"ad {i}",
            "source_url": f"gen/{i}",
            "is_published": True,
            "created_at": f"2025-01-01T00:{i // 60:02d}:{i % 60:02d}+00:00",
        }
        for i in range(1, count + 1)
    ]
