"""Shared data models for historical price resolution.

All prices use Decimal. Provider payloads carry floats; they are converted
with Decimal(str(value)) at the edge and never multiplied as floats.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class SourceId(str, Enum):
    """Price data providers, in order of preference for live lookups."""

    COINGECKO = "coingecko"  # secondary source
    BIRDEYE = "birdeye"  # primary source


class Chain(str, Enum):
    """Chains recognised in wallet fields."""

    SOLANA = "solana"
    ETHEREUM = "ethereum"
    ARBITRUM = "arbitrum"
    BASE = "base"
    POLYGON = "polygon"
    OPTIMISM = "optimism"
    HYPEREVM = "hyperevm"
    AVALANCHE = "avalanche"
    BSC = "bsc"
    ZKSYNC = "zksync"
    SUI = "sui"


DEFAULT_CHAIN = Chain.SOLANA.value

_CHAIN_ALIASES: dict[str, str] = {"eth": Chain.ETHEREUM.value}


def normalize_chain(raw: str | None) -> str:
    """Map a raw wallet chain label to a chain name.

    Known aliases are folded onto their canonical name; unrecognised labels
    pass through lowercased. Empty input means the default chain.
    """
    if not raw or not raw.strip():
        return DEFAULT_CHAIN
    value = raw.strip().lower()
    return _CHAIN_ALIASES.get(value, value)


@dataclass(frozen=True)
class AssetRef:
    """A tradable asset on a specific chain."""

    internal_id: str
    symbol: str
    chain: str = DEFAULT_CHAIN

    @classmethod
    def parse(cls, currency_field: str | None, chain: str = DEFAULT_CHAIN) -> "AssetRef | None":
        """Parse a `symbol;internalId` currency field.

        Returns None for empty values, the `0.0` placeholder, or anything
        that does not split into exactly two parts.
        """
        if not currency_field or currency_field == "0.0":
            return None
        parts = currency_field.split(";")
        if len(parts) != 2:
            return None
        return cls(internal_id=parts[1], symbol=parts[0], chain=chain)

    @property
    def memo_key(self) -> str:
        return f"{self.internal_id}_{self.chain}"

    @property
    def label(self) -> str:
        return f"{self.symbol}:{self.internal_id}@{self.chain}"


@dataclass(frozen=True)
class CandleSample:
    """A single (time, price) point. Time is unix seconds."""

    time: float
    price: Decimal


@dataclass(frozen=True)
class PriceQuery:
    """A single lookup: asset at timestamp, searched within +/- window_seconds."""

    asset: AssetRef
    timestamp: int
    window_seconds: int

    @property
    def time_from(self) -> int:
        return self.timestamp - self.window_seconds

    @property
    def time_to(self) -> int:
        return self.timestamp + self.window_seconds


class PriceStatus(str, Enum):
    """Outcome of a single provider call."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class PriceResult:
    """Price lookup outcome. RATE_LIMITED is retryable; NOT_FOUND is definitive."""

    status: PriceStatus
    price: Decimal | None = None

    @classmethod
    def found(cls, price: Decimal) -> "PriceResult":
        return cls(PriceStatus.FOUND, price)

    @classmethod
    def not_found(cls) -> "PriceResult":
        return cls(PriceStatus.NOT_FOUND)

    @classmethod
    def rate_limited(cls) -> "PriceResult":
        return cls(PriceStatus.RATE_LIMITED)

    @property
    def is_found(self) -> bool:
        return self.status is PriceStatus.FOUND

    @property
    def is_rate_limited(self) -> bool:
        return self.status is PriceStatus.RATE_LIMITED


@dataclass
class SeriesResult:
    """Outcome of a range fetch, carrying the provider's native items.

    Items keep the provider shape ([ms, price] pairs for CoinGecko,
    {unixTime, value} objects for Birdeye) so they can be cached verbatim.
    """

    status: PriceStatus
    items: list[Any] = field(default_factory=list)

    @property
    def is_rate_limited(self) -> bool:
        return self.status is PriceStatus.RATE_LIMITED


def nearest_sample(samples: list[CandleSample], timestamp: float) -> CandleSample | None:
    """Return the sample closest in time to timestamp.

    Ties on absolute distance keep the first sample in stored order.
    Returns None for an empty list.
    """
    best: CandleSample | None = None
    best_diff = 0.0
    for sample in samples:
        diff = abs(sample.time - timestamp)
        if best is None or diff < best_diff:
            best = sample
            best_diff = diff
    return best
