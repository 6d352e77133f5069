"""Entry point for the ledger pricer.

Reads a Koinly transaction export, warms the candle caches, and fills in
missing USD valuations, writing an updated export next to the input.

Pipeline (in run):
1. AppSettings (configuration) and logging
2. Credential check and cache directory
3. Ledger load and age statistics
4. Birdeye then CoinGecko cache warm-up
5. CoinGecko mapping audit
6. Enrichment pass
7. Updated ledger written
"""

import asyncio
import sys
import time
from dataclasses import dataclass
from pathlib import Path

import httpx

from pricer.config import AppSettings
from pricer.exceptions import CacheWriteError, MissingCredentialError, PricerError
from pricer.ledger.audit import find_unmapped_tokens, log_unmapped_tokens
from pricer.ledger.csv_ledger import Ledger, read_ledger, write_ledger
from pricer.ledger.enrichment import EnrichmentPass, EnrichmentSummary
from pricer.logging import get_logger, setup_logging
from pricer.models import SourceId
from pricer.pricing.candle_cache import CandleCache
from pricer.pricing.rate_limiter import RateLimiter
from pricer.pricing.resolver import PriceResolver
from pricer.pricing.warmup import CacheWarmer
from pricer.sources.birdeye import BirdeyeClient
from pricer.sources.coingecko import CoinGeckoClient

BIRDEYE_CACHE_FILE = "birdeye_candles.json"
COINGECKO_CACHE_FILE = "coingecko_candles.json"


@dataclass
class Components:
    """Wired pipeline objects sharing one HTTP client and one rate limiter."""

    http: httpx.AsyncClient
    limiter: RateLimiter
    birdeye: BirdeyeClient
    coingecko: CoinGeckoClient
    birdeye_cache: CandleCache
    coingecko_cache: CandleCache
    resolver: PriceResolver
    birdeye_warmer: CacheWarmer
    coingecko_warmer: CacheWarmer
    enrichment: EnrichmentPass


def validate_settings(settings: AppSettings) -> None:
    """Fail fast on configuration that makes a run pointless.

    Raises:
        MissingCredentialError: BIRDEYE_API_KEY is empty.
    """
    if not settings.birdeye.api_key.get_secret_value():
        raise MissingCredentialError("BIRDEYE_API_KEY is not set")


def build_components(settings: AppSettings, http: httpx.AsyncClient) -> Components:
    """Build the dependency graph from settings.

    Caches are created and loaded from disk; no network call is made.
    """
    cache_dir = Path(settings.ledger.cache_dir)

    limiter = RateLimiter(
        {
            SourceId.BIRDEYE: settings.birdeye.min_gap_seconds,
            SourceId.COINGECKO: settings.coingecko.min_gap_seconds,
        }
    )

    birdeye = BirdeyeClient(http, limiter, settings.birdeye)
    coingecko = CoinGeckoClient(http, limiter, settings.coingecko)

    birdeye_cache = CandleCache(
        SourceId.BIRDEYE.value, cache_dir / BIRDEYE_CACHE_FILE, BirdeyeClient.parse_sample
    )
    coingecko_cache = CandleCache(
        SourceId.COINGECKO.value,
        cache_dir / COINGECKO_CACHE_FILE,
        CoinGeckoClient.parse_sample,
    )
    birdeye_cache.load()
    coingecko_cache.load()

    resolver = PriceResolver(
        coingecko=coingecko,
        birdeye=birdeye,
        coingecko_cache=coingecko_cache,
        birdeye_cache=birdeye_cache,
        windows=settings.windows,
        settings=settings.resolver,
        backoff_seconds={
            SourceId.BIRDEYE: settings.birdeye.rate_limit_backoff_seconds,
            SourceId.COINGECKO: settings.coingecko.rate_limit_backoff_seconds,
        },
    )

    return Components(
        http=http,
        limiter=limiter,
        birdeye=birdeye,
        coingecko=coingecko,
        birdeye_cache=birdeye_cache,
        coingecko_cache=coingecko_cache,
        resolver=resolver,
        birdeye_warmer=CacheWarmer(
            birdeye, birdeye_cache, settings.birdeye.warmup_backoff_seconds
        ),
        coingecko_warmer=CacheWarmer(
            coingecko, coingecko_cache, settings.coingecko.warmup_backoff_seconds
        ),
        enrichment=EnrichmentPass(resolver),
    )


def _log_age_statistics(ledger: Ledger, horizon_days: int) -> None:
    logger = get_logger("pricer.main")
    cutoff = time.time() - horizon_days * 86_400
    older = 0
    recent = 0
    for row in ledger.rows:
        timestamp = row.timestamp
        if timestamp is None:
            continue
        if timestamp < cutoff:
            older += 1
        else:
            recent += 1
    logger.info(
        "ledger_age_statistics",
        older_than_horizon=older,
        within_horizon=recent,
        horizon_days=horizon_days,
    )


async def process_ledger(settings: AppSettings, components: Components) -> EnrichmentSummary:
    """Run warm-up, audit and enrichment over the configured ledger."""
    logger = get_logger("pricer.main")

    ledger = read_ledger(settings.ledger.input_path)
    _log_age_statistics(ledger, settings.coingecko.horizon_days)

    traded = [asset for row in ledger.rows for asset in row.assets()]
    if settings.ledger.warmup_enabled:
        await components.birdeye_warmer.warm(traded)
        await components.coingecko_warmer.warm(traded)
    else:
        logger.info("warmup_disabled")

    log_unmapped_tokens(
        find_unmapped_tokens(ledger.rows, horizon_days=settings.coingecko.horizon_days)
    )

    summary = await components.enrichment.run(ledger.rows)
    write_ledger(ledger, settings.ledger.output_path)
    return summary


async def run(settings: AppSettings | None = None) -> EnrichmentSummary:
    """Load settings, wire components and process the ledger."""
    settings = settings or AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("pricer.main")

    validate_settings(settings)
    cache_dir = Path(settings.ledger.cache_dir)
    if not cache_dir.exists():
        logger.info("creating_cache_dir", path=str(cache_dir))
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheWriteError(f"Cannot create cache directory {cache_dir}: {e}") from e

    async with httpx.AsyncClient() as http:
        components = build_components(settings, http)
        summary = await process_ledger(settings, components)

    logger.info(
        "run_complete",
        output=settings.ledger.output_path,
        prices_applied=summary.applied,
        updated_rows=summary.updated_rows,
    )
    return summary


def main() -> None:
    """Console entry point."""
    try:
        asyncio.run(run())
    except PricerError as e:
        get_logger("pricer.main").critical("fatal_error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
