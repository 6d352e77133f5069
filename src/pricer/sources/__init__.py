"""Historical price source clients -- Birdeye and CoinGecko via httpx."""

from pricer.sources.base import PriceSource
from pricer.sources.birdeye import BirdeyeClient
from pricer.sources.coingecko import CoinGeckoClient

__all__ = ["BirdeyeClient", "CoinGeckoClient", "PriceSource"]
