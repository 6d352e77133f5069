"""Birdeye historical price client (primary source).

Serves assets with a known token address on a chain from the supported
allow-list. Unsupported chains short-circuit to NOT_FOUND without a request.

Endpoint: GET /defi/history_price?address=..&address_type=token&type=1H|1D
          &time_from=..&time_to=..   (headers: X-API-KEY, x-chain)
Payload:  {"success": true, "data": {"items": [{"unixTime": s, "value": p}, ...]}}
"""

import time
from decimal import Decimal
from typing import Any

import httpx

from pricer.config import BirdeyeSettings
from pricer.mappings import is_birdeye_chain, token_address
from pricer.models import AssetRef, CandleSample, SeriesResult, SourceId
from pricer.pricing.rate_limiter import RateLimiter
from pricer.sources.base import PriceSource

SECONDS_PER_DAY = 86_400


class BirdeyeClient(PriceSource):
    """Birdeye defi/history_price adapter."""

    source_id = SourceId.BIRDEYE
    caches_empty_series = True

    def __init__(
        self,
        http: httpx.AsyncClient,
        limiter: RateLimiter,
        settings: BirdeyeSettings,
    ) -> None:
        super().__init__(http, limiter)
        self._settings = settings

    @property
    def window_resolution(self) -> str:
        return self._settings.window_resolution

    def asset_key(self, asset: AssetRef) -> str | None:
        if not is_birdeye_chain(asset.chain):
            return None
        return token_address(asset.internal_id, asset.chain)

    def supports(self, asset: AssetRef, timestamp: int) -> bool:
        return self.asset_key(asset) is not None

    async def _request(
        self,
        key: str,
        chain: str,
        time_from: int,
        time_to: int,
        resolution: str,
    ) -> httpx.Response:
        headers = {
            "X-API-KEY": self._settings.api_key.get_secret_value(),
            "accept": "application/json",
            "x-chain": chain,
        }
        params = {
            "address": key,
            "address_type": "token",
            "type": resolution,
            "time_from": time_from,
            "time_to": time_to,
        }
        return await self._http.get(
            f"{self._settings.base_url}/defi/history_price",
            params=params,
            headers=headers,
            timeout=self._settings.request_timeout,
        )

    def _extract_items(self, payload: Any) -> list[Any] | None:
        if not isinstance(payload, dict) or not payload.get("success"):
            return None
        data = payload.get("data")
        if not isinstance(data, dict):
            return None
        items = data.get("items")
        return items if isinstance(items, list) else None

    @staticmethod
    def parse_sample(item: Any) -> CandleSample:
        """{unixTime, value} -> CandleSample(seconds, Decimal price)."""
        return CandleSample(time=float(item["unixTime"]), price=Decimal(str(item["value"])))

    async def fetch_history(self, key: str, chain: str) -> SeriesResult:
        """Fetch daily candles over the warm-up lookback for one token address."""
        now = int(time.time())
        start = now - self._settings.warmup_lookback_days * SECONDS_PER_DAY
        return await self.fetch_series(
            key, chain, start, now, self._settings.warmup_resolution
        )
