"""Abstract price source interface.

Defines the contract for every historical price provider. The resolver and
the warm-up pass depend only on this interface; provider URLs, headers and
payload shapes stay in the concrete clients.

Error policy at this boundary:
- HTTP 429 -> RATE_LIMITED (the caller owns retries)
- any other non-success status, network error or malformed payload -> NOT_FOUND
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from pricer.logging import get_logger
from pricer.models import (
    AssetRef,
    CandleSample,
    PriceQuery,
    PriceResult,
    PriceStatus,
    SeriesResult,
    SourceId,
    nearest_sample,
)
from pricer.pricing.rate_limiter import RateLimiter

logger = get_logger(__name__)


class PriceSource(ABC):
    """Base class for historical price API clients.

    Args:
        http: Shared httpx.AsyncClient (owned by the caller).
        limiter: Shared RateLimiter; every outbound request acquires it first.
    """

    source_id: SourceId
    # Whether a successful but empty bulk series is still worth caching
    caches_empty_series: bool = False

    def __init__(self, http: httpx.AsyncClient, limiter: RateLimiter) -> None:
        self._http = http
        self._limiter = limiter

    # ──────────────────────────────────────────────
    # Provider-specific hooks
    # ──────────────────────────────────────────────

    @abstractmethod
    def asset_key(self, asset: AssetRef) -> str | None:
        """Return this source's key for asset, or None if it cannot serve it."""
        ...

    @abstractmethod
    def supports(self, asset: AssetRef, timestamp: int) -> bool:
        """Whether a lookup for asset at timestamp may hit the network at all."""
        ...

    @abstractmethod
    async def _request(
        self,
        key: str,
        chain: str,
        time_from: int,
        time_to: int,
        resolution: str,
    ) -> httpx.Response:
        """Issue the provider's price-history request."""
        ...

    @abstractmethod
    def _extract_items(self, payload: Any) -> list[Any] | None:
        """Pull native price items out of a decoded payload, None if malformed."""
        ...

    @staticmethod
    @abstractmethod
    def parse_sample(item: Any) -> CandleSample:
        """Convert one native item to a CandleSample."""
        ...

    @property
    @abstractmethod
    def window_resolution(self) -> str:
        """Candle resolution used for windowed lookups."""
        ...

    @abstractmethod
    async def fetch_history(self, key: str, chain: str) -> SeriesResult:
        """Fetch the bulk warm-up series for one asset key."""
        ...

    # ──────────────────────────────────────────────
    # Shared behaviour
    # ──────────────────────────────────────────────

    async def fetch_series(
        self,
        key: str,
        chain: str,
        time_from: int,
        time_to: int,
        resolution: str,
    ) -> SeriesResult:
        """Fetch native price items for key in [time_from, time_to].

        One rate-limited request. Never raises for provider or network failures.
        """
        await self._limiter.acquire(self.source_id)
        try:
            response = await self._request(key, chain, time_from, time_to, resolution)
        except httpx.HTTPError as e:
            logger.warning(
                "price_request_failed",
                source=self.source_id.value,
                key=key,
                chain=chain,
                error=str(e),
            )
            return SeriesResult(PriceStatus.NOT_FOUND)

        if response.status_code == 429:
            logger.warning(
                "rate_limited",
                source=self.source_id.value,
                key=key,
                chain=chain,
            )
            return SeriesResult(PriceStatus.RATE_LIMITED)

        if not response.is_success:
            logger.warning(
                "price_api_error",
                source=self.source_id.value,
                key=key,
                chain=chain,
                status=response.status_code,
                body=response.text[:200],
            )
            return SeriesResult(PriceStatus.NOT_FOUND)

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning(
                "price_payload_invalid",
                source=self.source_id.value,
                key=key,
                error=str(e),
            )
            return SeriesResult(PriceStatus.NOT_FOUND)

        items = self._extract_items(payload)
        if items is None:
            logger.info("price_payload_unusable", source=self.source_id.value, key=key)
            return SeriesResult(PriceStatus.NOT_FOUND)

        return SeriesResult(PriceStatus.FOUND, items)

    async def fetch_window(self, query: PriceQuery) -> PriceResult:
        """Find the price nearest query.timestamp within +/- query.window_seconds."""
        asset = query.asset
        if not self.supports(asset, query.timestamp):
            return PriceResult.not_found()
        key = self.asset_key(asset)
        if key is None:
            return PriceResult.not_found()

        series = await self.fetch_series(
            key, asset.chain, query.time_from, query.time_to, self.window_resolution
        )
        if series.is_rate_limited:
            return PriceResult.rate_limited()

        samples: list[CandleSample] = []
        for item in series.items:
            try:
                samples.append(self.parse_sample(item))
            except (KeyError, IndexError, TypeError, ValueError, ArithmeticError):
                continue

        sample = nearest_sample(samples, query.timestamp)
        if sample is None:
            logger.info(
                "no_price_in_window",
                source=self.source_id.value,
                key=key,
                symbol=asset.symbol,
                window_seconds=query.window_seconds,
            )
            return PriceResult.not_found()
        return PriceResult.found(sample.price)
