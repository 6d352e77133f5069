"""Cache-first, multi-source historical price resolution.

Attempt order for one (asset, timestamp, chain), stopping at the first price:

1. CoinGecko candle cache (coin id mapped and timestamp inside the horizon)
2. Birdeye candle cache (token address mapped on a supported chain)
3. Live CoinGecko: medium window, then long window
4. Live Birdeye: medium window, then long window
5. None -- price unknown

A RATE_LIMITED response at either window sleeps the source's backoff and
restarts that source from the medium window, spending one unit of the retry
budget. The budget is shared by both live stages of a single resolve call;
once spent, a further RATE_LIMITED is treated as NOT_FOUND and resolution
falls through to the next stage.
"""

import asyncio
from dataclasses import dataclass, replace
from decimal import Decimal

from pricer.config import ResolverSettings, WindowSettings
from pricer.logging import get_logger
from pricer.models import AssetRef, PriceQuery, normalize_chain
from pricer.pricing.candle_cache import CandleCache
from pricer.sources.base import PriceSource
from pricer.sources.coingecko import CoinGeckoClient

logger = get_logger(__name__)


@dataclass
class _LiveOutcome:
    price: Decimal | None
    budget: int
    exhausted: bool = False


class PriceResolver:
    """Resolves a USD price for an asset at a timestamp.

    Args:
        coingecko: Secondary source client (also owns the horizon rule).
        birdeye: Primary source client.
        coingecko_cache: Loaded CandleCache for CoinGecko coin ids.
        birdeye_cache: Loaded CandleCache for Birdeye token addresses.
        windows: Medium/long search radii.
        settings: Retry budget and optional cache distance guard.
        backoff_seconds: Sleep after a rate limit, keyed by source id.
    """

    def __init__(
        self,
        coingecko: CoinGeckoClient,
        birdeye: PriceSource,
        coingecko_cache: CandleCache,
        birdeye_cache: CandleCache,
        windows: WindowSettings,
        settings: ResolverSettings,
        backoff_seconds: dict[str, float],
    ) -> None:
        self._coingecko = coingecko
        self._birdeye = birdeye
        self._coingecko_cache = coingecko_cache
        self._birdeye_cache = birdeye_cache
        self._windows = windows
        self._settings = settings
        self._backoff_seconds = dict(backoff_seconds)
        # Run-scoped memo: (internal_id, symbol, chain, timestamp) -> price or None
        self._memo: dict[tuple[str, str, str, int], Decimal | None] = {}

    async def resolve(
        self,
        asset: AssetRef,
        timestamp: int,
        chain: str | None = None,
    ) -> Decimal | None:
        """Return the best available price, or None when no source has one.

        None means "price unknown" and is never an error.
        """
        if chain is not None:
            asset = replace(asset, chain=normalize_chain(chain))

        memo_key = (asset.internal_id, asset.symbol, asset.chain, timestamp)
        if memo_key in self._memo:
            return self._memo[memo_key]

        price, exhausted = await self._resolve_uncached(asset, timestamp)
        if not exhausted:
            self._memo[memo_key] = price
        return price

    async def _resolve_uncached(
        self, asset: AssetRef, timestamp: int
    ) -> tuple[Decimal | None, bool]:
        in_horizon = self._coingecko.within_horizon(timestamp)
        cg_key = self._coingecko.asset_key(asset) if in_horizon else None
        be_key = self._birdeye.asset_key(asset)
        max_distance = self._settings.max_cache_distance_seconds

        if cg_key is not None:
            price = self._coingecko_cache.nearest_price(cg_key, timestamp, max_distance)
            if price is not None:
                logger.info("cache_hit", source="coingecko", symbol=asset.symbol, price=str(price))
                return price, False

        if be_key is not None:
            price = self._birdeye_cache.nearest_price(be_key, timestamp, max_distance)
            if price is not None:
                logger.info("cache_hit", source="birdeye", symbol=asset.symbol, price=str(price))
                return price, False

        budget = self._settings.retry_budget
        exhausted = False

        for source, key in ((self._coingecko, cg_key), (self._birdeye, be_key)):
            if key is None:
                continue
            logger.info(
                "trying_live_source",
                source=source.source_id.value,
                symbol=asset.symbol,
                key=key,
                chain=asset.chain,
            )
            outcome = await self._fetch_widening(source, asset, timestamp, budget)
            budget = outcome.budget
            exhausted = exhausted or outcome.exhausted
            if outcome.price is not None:
                logger.info(
                    "live_price_found",
                    source=source.source_id.value,
                    symbol=asset.symbol,
                    price=str(outcome.price),
                )
                return outcome.price, False

        logger.info(
            "price_not_found",
            symbol=asset.symbol,
            internal_id=asset.internal_id,
            chain=asset.chain,
            timestamp=timestamp,
            rate_limit_exhausted=exhausted,
        )
        return None, exhausted

    async def _fetch_widening(
        self,
        source: PriceSource,
        asset: AssetRef,
        timestamp: int,
        budget: int,
    ) -> _LiveOutcome:
        """Medium window then long window, retrying the pair on rate limits."""
        windows = (self._windows.medium_range, self._windows.long_range)
        backoff = self._backoff_seconds.get(source.source_id, 0.0)

        while True:
            rate_limited = False
            for window in windows:
                result = await source.fetch_window(PriceQuery(asset, timestamp, window))
                if result.is_found:
                    return _LiveOutcome(result.price, budget)
                if result.is_rate_limited:
                    rate_limited = True
                    break
                logger.debug(
                    "window_miss",
                    source=source.source_id.value,
                    symbol=asset.symbol,
                    window_seconds=window,
                )

            if not rate_limited:
                return _LiveOutcome(None, budget)

            if budget <= 0:
                logger.warning(
                    "retry_budget_exhausted",
                    source=source.source_id.value,
                    symbol=asset.symbol,
                )
                return _LiveOutcome(None, budget, exhausted=True)

            budget -= 1
            logger.warning(
                "rate_limit_backoff",
                source=source.source_id.value,
                symbol=asset.symbol,
                sleep_seconds=backoff,
                retries_left=budget,
            )
            await asyncio.sleep(backoff)
