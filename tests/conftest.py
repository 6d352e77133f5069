"""Shared test fixtures for the ledger pricer.

HTTP traffic never leaves the process: both price sources talk to an
httpx.MockTransport backed by FakePriceApi, which serves queued responses
per provider and records every request.
"""

import time
from pathlib import Path

import httpx
import pytest

from pricer.config import (
    AppSettings,
    BirdeyeSettings,
    CoinGeckoSettings,
    LedgerSettings,
    ResolverSettings,
    WindowSettings,
)
from pricer.main import Components, build_components
from pricer.models import AssetRef

SOL_ADDRESS = "So11111111111111111111111111111111111111112"


class FakePriceApi:
    """Routes requests by host to queued responses and records every request.

    An empty queue answers 404, which both clients treat as NOT_FOUND.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._queues: dict[str, list[httpx.Response | Exception]] = {
            "birdeye": [],
            "coingecko": [],
        }

    @staticmethod
    def source_of(request: httpx.Request) -> str:
        return "birdeye" if "birdeye" in request.url.host else "coingecko"

    def queue(self, source: str, *responses: httpx.Response | Exception) -> None:
        self._queues[source].extend(responses)

    def calls(self, source: str) -> list[httpx.Request]:
        return [r for r in self.requests if self.source_of(r) == source]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._queues[self.source_of(request)]
        if not queue:
            return httpx.Response(404, json={"error": "not found"})
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    # Response builders

    @staticmethod
    def coingecko_prices(*points: tuple[int, float]) -> httpx.Response:
        """points are (unix seconds, price); served as [ms, price] pairs."""
        return httpx.Response(200, json={"prices": [[t * 1000, p] for t, p in points]})

    @staticmethod
    def birdeye_items(*points: tuple[int, float], success: bool = True) -> httpx.Response:
        items = [{"unixTime": t, "value": p} for t, p in points]
        return httpx.Response(200, json={"success": success, "data": {"items": items}})

    @staticmethod
    def throttled() -> httpx.Response:
        return httpx.Response(429, json={"message": "Too many requests"})


@pytest.fixture
def now() -> int:
    return int(time.time())


@pytest.fixture
def recent_ts(now: int) -> int:
    """A timestamp well inside the 365-day CoinGecko horizon."""
    return now - 10 * 86_400


@pytest.fixture
def old_ts(now: int) -> int:
    """A timestamp outside the CoinGecko horizon."""
    return now - 400 * 86_400


@pytest.fixture
def sol() -> AssetRef:
    return AssetRef(internal_id="6166", symbol="SOL", chain="solana")


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    path = tmp_path / ".cache"
    path.mkdir()
    return path


@pytest.fixture
def mock_settings(tmp_path: Path, cache_dir: Path) -> AppSettings:
    """AppSettings with a dummy API key, no call gaps, and tmp_path file locations."""
    return AppSettings(
        log_level="DEBUG",
        birdeye=BirdeyeSettings(
            api_key="test-birdeye-key",  # type: ignore[arg-type]
            min_gap_seconds=0.0,
        ),
        coingecko=CoinGeckoSettings(min_gap_seconds=0.0),
        windows=WindowSettings(),
        resolver=ResolverSettings(),
        ledger=LedgerSettings(
            input_path=str(tmp_path / "transactions.csv"),
            output_path=str(tmp_path / "transactions-updated.csv"),
            cache_dir=str(cache_dir),
            warmup_enabled=False,
        ),
    )


@pytest.fixture
def api() -> FakePriceApi:
    return FakePriceApi()


@pytest.fixture
def http(api: FakePriceApi) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(api.handler))


@pytest.fixture
def components(mock_settings: AppSettings, http: httpx.AsyncClient) -> Components:
    """Fully wired pipeline over empty tmp caches and the fake API."""
    return build_components(mock_settings, http)
