"""CoinGecko historical price client (secondary source).

Serves only assets present in COINGECKO_ID_MAP and only timestamps inside
the free tier's data horizon (365 days back from now). Requests outside the
horizon short-circuit to NOT_FOUND before any network call.

Endpoint: GET /coins/{id}/market_chart/range?vs_currency=usd&from=..&to=..
Payload:  {"prices": [[ms, price], ...], ...}
"""

import time
from decimal import Decimal
from typing import Any

import httpx

from pricer.config import CoinGeckoSettings
from pricer.mappings import coingecko_id
from pricer.models import AssetRef, CandleSample, SeriesResult, SourceId
from pricer.pricing.rate_limiter import RateLimiter
from pricer.sources.base import PriceSource

SECONDS_PER_DAY = 86_400


class CoinGeckoClient(PriceSource):
    """CoinGecko market_chart/range adapter."""

    source_id = SourceId.COINGECKO
    caches_empty_series = False

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: RateLimiter,
        settings: CoinGeckoSettings,
    ) -> None:
        super().__init__(http, limiter)
        self._settings = settings

    @property
    def window_resolution(self) -> str:
        # CoinGecko picks granularity from the range length
        return "auto"

    def horizon_start(self) -> int:
        """Oldest unix timestamp the provider will serve right now."""
        return int(time.time()) - self._settings.horizon_days * SECONDS_PER_DAY

    def within_horizon(self, timestamp: int) -> bool:
        return timestamp >= self.horizon_start()

    def asset_key(self, asset: AssetRef) -> str | None:
        return coingecko_id(asset)

    def supports(self, asset: AssetRef, timestamp: int) -> bool:
        return self.within_horizon(timestamp) and self.asset_key(asset) is not None

    async def _request(
        self,
        key: str,
        chain: str,
        time_from: int,
        time_to: int,
        resolution: str,
    ) -> httpx.Response:
        params: dict[str, str | int] = {
            "vs_currency": "usd",
            "from": time_from,
            "to": time_to,
        }
        api_key = self._settings.api_key.get_secret_value()
        if api_key:
            params["x_cg_demo_api_key"] = api_key
        return await self._http.get(
            f"{self._settings.base_url}/coins/{key}/market_chart/range",
            params=params,
            headers={"Accept": "application/json"},
            timeout=self._settings.request_timeout,
        )

    def _extract_items(self, payload: Any) -> list[Any] | None:
        if not isinstance(payload, dict):
            return None
        prices = payload.get("prices")
        return prices if isinstance(prices, list) else None

    @staticmethod
    def parse_sample(item: Any) -> CandleSample:
        """[ms, price] -> CandleSample(seconds, Decimal price)."""
        ms, price = item[0], item[1]
        return CandleSample(time=float(ms) / 1000, price=Decimal(str(price)))

    async def fetch_history(self, key: str, chain: str) -> SeriesResult:
        """Fetch the full warm-up range (lookback days up to now) for one coin id."""
        now = int(time.time())
        start = now - self._settings.warmup_lookback_days * SECONDS_PER_DAY
        return await self.fetch_series(key, chain, start, now, self.window_resolution)
