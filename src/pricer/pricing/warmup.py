"""Bulk candle cache population, one source at a time.

Collects the distinct asset keys a ledger actually trades, skips keys that
are already cached, and fetches one long series per key. The cache file is
persisted after every successful fetch, so an interrupted run resumes where
it stopped.

A rate-limited key is retried in place after the source's warm-up backoff;
rate limiting never causes a key to be skipped.
"""

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from pricer.logging import get_logger
from pricer.models import AssetRef, PriceStatus
from pricer.pricing.candle_cache import CandleCache
from pricer.sources.base import PriceSource

logger = get_logger(__name__)


@dataclass
class WarmupSummary:
    """Counters for one warm-up pass."""

    source: str
    distinct: int = 0
    already_cached: int = 0
    fetched: int = 0
    rate_limit_retries: int = 0
    failed: list[str] = field(default_factory=list)


class CacheWarmer:
    """Populates one source's CandleCache for every traded asset.

    Args:
        source: Client used for the bulk series requests.
        cache: Loaded cache to fill and persist.
        backoff_seconds: Sleep before retrying a rate-limited key.
    """

    def __init__(self, source: PriceSource, cache: CandleCache, backoff_seconds: float) -> None:
        self._source = source
        self._cache = cache
        self._backoff_seconds = backoff_seconds

    def pending_keys(self, assets: Iterable[AssetRef]) -> tuple[dict[str, AssetRef], int]:
        """Map each distinct uncached key to the asset that references it.

        Returns (pending, distinct_count). Later assets win when two map to one key.
        """
        distinct: dict[str, AssetRef] = {}
        for asset in assets:
            key = self._source.asset_key(asset)
            if key is not None:
                distinct[key] = asset
        pending = {k: a for k, a in distinct.items() if k not in self._cache}
        return pending, len(distinct)

    async def warm(self, assets: Iterable[AssetRef]) -> WarmupSummary:
        """Fetch and persist a series for every uncached key referenced by assets."""
        source_name = self._source.source_id.value
        pending, distinct_count = self.pending_keys(assets)
        summary = WarmupSummary(
            source=source_name,
            distinct=distinct_count,
            already_cached=distinct_count - len(pending),
        )
        logger.info(
            "warmup_started",
            source=source_name,
            distinct=distinct_count,
            to_fetch=len(pending),
        )
        start_time = time.monotonic()

        keys = list(pending)
        i = 0
        while i < len(keys):
            key = keys[i]
            asset = pending[key]
            logger.info(
                "warmup_fetching",
                source=source_name,
                symbol=asset.symbol,
                key=key,
                chain=asset.chain,
                progress=f"{i + 1}/{len(keys)}",
            )
            result = await self._source.fetch_history(key, asset.chain)

            if result.is_rate_limited:
                summary.rate_limit_retries += 1
                logger.warning(
                    "warmup_rate_limited",
                    source=source_name,
                    key=key,
                    sleep_seconds=self._backoff_seconds,
                )
                await asyncio.sleep(self._backoff_seconds)
                continue  # same key again

            found = result.status is PriceStatus.FOUND
            if found and (result.items or self._source.caches_empty_series):
                self._cache.put(key, result.items)
                self._cache.persist()
                summary.fetched += 1
                logger.info(
                    "warmup_cached",
                    source=source_name,
                    key=key,
                    samples=len(result.items),
                )
            else:
                summary.failed.append(key)
                logger.info("warmup_no_data", source=source_name, key=key)
            i += 1

        logger.info(
            "warmup_complete",
            source=source_name,
            fetched=summary.fetched,
            failed=len(summary.failed),
            rate_limit_retries=summary.rate_limit_retries,
            duration_seconds=round(time.monotonic() - start_time, 1),
        )
        return summary
