"""JSON-file candle cache for one price source.

Each cache file maps an asset key (token address for Birdeye, coin id for
CoinGecko) to the provider's native price items. Items are stored exactly as
fetched and converted to CandleSample on read with the source's parser.

The whole mapping is rewritten after every put, so an interrupted warm-up
keeps every asset persisted before the interruption.
"""

import json
import os
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from pricer.exceptions import CacheReadError, CacheWriteError
from pricer.logging import get_logger
from pricer.models import CandleSample, nearest_sample

logger = get_logger(__name__)

SampleParser = Callable[[Any], CandleSample]


class CandleCache:
    """Persisted mapping of asset key -> native candle items for one source.

    Usage:
        cache = CandleCache("birdeye", Path(".cache/birdeye_candles.json"), parse)
        cache.load()
        price = cache.nearest_price(address, 1700000000)
    """

    def __init__(self, source: str, path: Path, parse_sample: SampleParser) -> None:
        self._source = source
        self._path = Path(path)
        self._parse_sample = parse_sample
        self._raw: dict[str, list[Any]] = {}
        self._samples: dict[str, list[CandleSample]] = {}

    @property
    def source(self) -> str:
        return self._source

    @property
    def path(self) -> Path:
        return self._path

    def __contains__(self, key: str) -> bool:
        return key in self._raw

    def __len__(self) -> int:
        return len(self._raw)

    def keys(self) -> list[str]:
        return list(self._raw)

    # ──────────────────────────────────────────────
    # Persistence
    # ──────────────────────────────────────────────

    def load(self) -> dict[str, list[Any]]:
        """Read the cache file. A missing file is an empty cache."""
        if not self._path.exists():
            logger.info("candle_cache_empty", source=self._source, path=str(self._path))
            self._raw = {}
            self._samples = {}
            return self._raw

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CacheReadError(f"Cannot read candle cache {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise CacheReadError(f"Candle cache {self._path} is not a JSON object")

        self._raw = {str(k): list(v) for k, v in data.items() if isinstance(v, list)}
        self._samples = {}
        logger.info(
            "candle_cache_loaded",
            source=self._source,
            assets=len(self._raw),
            path=str(self._path),
        )
        return self._raw

    def put(self, key: str, items: list[Any]) -> None:
        """Store (or replace) the full series for key. Call persist() to write."""
        self._raw[key] = list(items)
        self._samples.pop(key, None)

    def persist(self) -> None:
        """Write the entire mapping to disk via a temp file and atomic replace."""
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(self._raw, indent=2), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise CacheWriteError(f"Cannot write candle cache {self._path}: {e}") from e
        logger.debug("candle_cache_persisted", source=self._source, assets=len(self._raw))

    # ──────────────────────────────────────────────
    # Lookup
    # ──────────────────────────────────────────────

    def samples(self, key: str) -> list[CandleSample]:
        """Return parsed samples for key in stored order (empty if unknown)."""
        if key not in self._samples:
            parsed: list[CandleSample] = []
            skipped = 0
            for item in self._raw.get(key, []):
                try:
                    parsed.append(self._parse_sample(item))
                except (KeyError, IndexError, TypeError, ValueError, InvalidOperation):
                    skipped += 1
            if skipped:
                logger.warning(
                    "candle_cache_malformed_items",
                    source=self._source,
                    key=key,
                    skipped=skipped,
                )
            self._samples[key] = parsed
        return self._samples[key]

    def nearest_price(
        self,
        key: str,
        timestamp: float,
        max_distance: float | None = None,
    ) -> Decimal | None:
        """Return the price of the sample nearest to timestamp, or None.

        No distance limit applies unless max_distance is given; then a
        nearest sample further away than max_distance counts as a miss.
        """
        sample = nearest_sample(self.samples(key), timestamp)
        if sample is None:
            return None
        if max_distance is not None and abs(sample.time - timestamp) > max_distance:
            logger.debug(
                "cache_sample_too_far",
                source=self._source,
                key=key,
                distance=abs(sample.time - timestamp),
            )
            return None
        return sample.price
