"""Shared fixtures for the NFC Artwork Router test suite."""

import json

import pytest

from nfc_router.artworks.models import ArtworkRecord
from nfc_router.artworks.resolver import ArtworkResolver
from nfc_router.artworks.store import ArtworkStore
from nfc_router.config.settings import get_settings
from nfc_router.counters.store import CounterOutcome, CounterStore, InMemoryCounterStore
from nfc_router.errors import CounterStoreError
from nfc_router.routing.dispatcher import Dispatcher
from nfc_router.security.classifier import SignatureSet
from nfc_router.security.ratelimit import RateLimiter

AUTH_TOKEN = "device-secret-123"
MAX_REQUESTS = 5

BROWSER_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
DEVICE_UA = "ArduinoCalendar/1.2 (ESP32HTTPClient)"
CRAWLER_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"

ARTWORKS = {
    "WindowShopping": {
        "title": "Window Shopping",
        "image_url": "https://dogame.art/images/window-shopping.jpg",
        "description": "Late-night storefronts in oil.",
        "exclusive": True,
        "display_duration": 30000,
        "owner_auth": True,
    },
    "Window-Shopping9": {
        "title": "Window Shopping No. 9",
        "image_url": "https://dogame.art/images/window-shopping-9.jpg",
        "description": "Study.",
        "exclusive": False,
        "display_duration": 15000,
        "owner_auth": False,
    },
}


class InMemoryArtworkStore(ArtworkStore):
    """Dict-backed artwork store for pipeline tests."""

    def __init__(self, artworks: dict[str, dict] | None = None):
        self.records = {
            slug: ArtworkRecord.from_mapping(slug, data)
            for slug, data in (artworks if artworks is not None else ARTWORKS).items()
        }
        self.lookups: list[str] = []

    async def get(self, slug: str) -> ArtworkRecord | None:
        self.lookups.append(slug)
        return self.records.get(slug)


class UnavailableCounterStore(CounterStore):
    """Counter store whose backend is always down."""

    def __init__(self):
        self.calls = 0

    async def increment_and_check(self, key, limit, window_seconds, now) -> CounterOutcome:
        self.calls += 1
        raise CounterStoreError("connection refused")

    async def reset(self, key) -> None:
        raise CounterStoreError("connection refused")


@pytest.fixture
def signatures() -> SignatureSet:
    return SignatureSet(
        bot=("Googlebot", "bingbot", "crawler", "spider"),
        suspicious_tools=("curl", "wget", "python-requests", "HeadlessChrome"),
        trusted_devices=("ArduinoCalendar", "ESP32", "ArtCalendar"),
        trusted_device_types=("arduino",),
        case_sensitive=False,
    )


@pytest.fixture
def artwork_store() -> InMemoryArtworkStore:
    return InMemoryArtworkStore()


@pytest.fixture
def counter_store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def make_dispatcher(signatures, artwork_store, counter_store):
    """Factory fixture: build a Dispatcher over in-memory fakes.

    Usage:
        dispatcher = make_dispatcher(counter_store=UnavailableCounterStore())
    """
    def _make(counter_store=counter_store, artwork_store=artwork_store, token_provider=None):
        return Dispatcher(
            signatures=signatures,
            rate_limiter=RateLimiter(counter_store, max_requests=MAX_REQUESTS, window_seconds=60.0),
            resolver=ArtworkResolver(artwork_store, token_provider=token_provider),
            auth_token=AUTH_TOKEN,
            public_base_url="https://dogame.art",
            api_base_url="https://nfc.dogame.art",
            cache_control="public, s-maxage=3600, stale-while-revalidate=86400",
        )

    return _make


@pytest.fixture
def artworks_json_file(tmp_path):
    """Create a temp artworks.json file and return its path."""
    path = tmp_path / "artworks.json"
    path.write_text(json.dumps({"artworks": ARTWORKS}), encoding="utf-8")
    return str(path)


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(NFC_AUTH_TOKEN="secret", RATE_LIMIT_MAX_REQUESTS="3")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()
