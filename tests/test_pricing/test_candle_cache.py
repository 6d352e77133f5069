"""Tests for CandleCache: load/persist lifecycle and nearest-timestamp lookup."""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from pricer.exceptions import CacheReadError, CacheWriteError
from pricer.pricing.candle_cache import CandleCache
from pricer.sources.birdeye import BirdeyeClient
from pricer.sources.coingecko import CoinGeckoClient


def _birdeye_cache(path: Path) -> CandleCache:
    return CandleCache("birdeye", path, BirdeyeClient.parse_sample)


def _coingecko_cache(path: Path) -> CandleCache:
    return CandleCache("coingecko", path, CoinGeckoClient.parse_sample)


class TestLoad:
    def test_missing_file_is_empty_cache(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "birdeye_candles.json")
        assert cache.load() == {}
        assert len(cache) == 0
        assert cache.nearest_price("anything", 100) is None

    def test_reads_native_birdeye_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "birdeye_candles.json"
        path.write_text(json.dumps({"addr": [{"unixTime": 100, "value": 1.25}]}))
        cache = _birdeye_cache(path)
        cache.load()

        assert "addr" in cache
        assert cache.nearest_price("addr", 90) == Decimal("1.25")

    def test_reads_native_coingecko_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "coingecko_candles.json"
        path.write_text(json.dumps({"solana": [[100_000, 150.5], [200_000, 151.0]]}))
        cache = _coingecko_cache(path)
        cache.load()

        # milliseconds are converted to seconds before matching
        assert cache.nearest_price("solana", 190) == Decimal("151.0")

    def test_corrupt_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "birdeye_candles.json"
        path.write_text("{not json")
        with pytest.raises(CacheReadError):
            _birdeye_cache(path).load()

    def test_non_object_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "birdeye_candles.json"
        path.write_text("[]")
        with pytest.raises(CacheReadError):
            _birdeye_cache(path).load()


class TestNearestPrice:
    def test_tie_resolves_to_first_stored_sample(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "c.json")
        cache.put("addr", [{"unixTime": 10, "value": 1}, {"unixTime": 20, "value": 2}])
        assert cache.nearest_price("addr", 15) == Decimal("1")

    def test_unknown_key_and_empty_series_are_misses(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "c.json")
        cache.put("empty", [])
        assert cache.nearest_price("missing", 15) is None
        assert cache.nearest_price("empty", 15) is None

    def test_far_sample_still_matches_without_guard(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "c.json")
        cache.put("addr", [{"unixTime": 0, "value": 3}])
        assert cache.nearest_price("addr", 3_000_000_000) == Decimal("3")

    def test_max_distance_guard_rejects_far_sample(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "c.json")
        cache.put("addr", [{"unixTime": 0, "value": 3}])
        assert cache.nearest_price("addr", 10_000, max_distance=3600) is None
        assert cache.nearest_price("addr", 1_000, max_distance=3600) == Decimal("3")

    def test_malformed_items_are_skipped(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "c.json")
        cache.put(
            "addr",
            [{"unixTime": 10}, {"value": 5}, {"unixTime": 30, "value": None}, {"unixTime": 40, "value": 4}],
        )
        assert cache.nearest_price("addr", 10) == Decimal("4")

    def test_bad_time_values_are_skipped(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "c.json")
        cache.put(
            "addr",
            [{"unixTime": None, "value": 5}, {"unixTime": "later", "value": 6}, {"unixTime": 100, "value": 7}],
        )
        assert cache.nearest_price("addr", 0) == Decimal("7")
        assert len(cache.samples("addr")) == 1

    def test_coingecko_bad_time_values_are_skipped(self, tmp_path: Path) -> None:
        cache = _coingecko_cache(tmp_path / "c.json")
        cache.put("solana", [[None, 1.0], ["x", 2.0], [100_000, 3.0]])
        assert cache.nearest_price("solana", 0) == Decimal("3.0")

    def test_put_replaces_series(self, tmp_path: Path) -> None:
        cache = _birdeye_cache(tmp_path / "c.json")
        cache.put("addr", [{"unixTime": 10, "value": 1}])
        assert cache.nearest_price("addr", 10) == Decimal("1")
        cache.put("addr", [{"unixTime": 10, "value": 9}])
        assert cache.nearest_price("addr", 10) == Decimal("9")


class TestPersist:
    def test_persist_then_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "birdeye_candles.json"
        cache = _birdeye_cache(path)
        cache.put("addr", [{"unixTime": 10, "value": 1.5}])
        cache.persist()

        assert json.loads(path.read_text()) == {"addr": [{"unixTime": 10, "value": 1.5}]}
        assert not path.with_name(path.name + ".tmp").exists()

        reloaded = _birdeye_cache(path)
        reloaded.load()
        assert reloaded.keys() == ["addr"]

    def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        cache = _birdeye_cache(blocker / "birdeye_candles.json")
        cache.put("addr", [])

        with pytest.raises(CacheWriteError):
            cache.persist()
