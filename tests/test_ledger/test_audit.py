"""Tests for the CoinGecko mapping audit."""

from unittest.mock import patch

from pricer.ledger.audit import find_unmapped_tokens, log_unmapped_tokens
from pricer.ledger.csv_ledger import COL_DATE, COL_FEE_CURRENCY, COL_FROM_CURRENCY, COL_TO_CURRENCY, LedgerRow
from pricer.models import AssetRef

NOW = 1_727_740_800  # 2024-10-01 00:00:00 UTC


def _make_row(date: str, **currencies: str) -> LedgerRow:
    values = {COL_DATE: date}
    values.update(currencies)
    return LedgerRow(number=1, values=values)


class TestFindUnmappedTokens:
    def test_reports_unique_unmapped_sorted_by_symbol(self) -> None:
        rows = [
            _make_row("2024-09-01 00:00:00 UTC", **{COL_FROM_CURRENCY: "ZED;900", COL_TO_CURRENCY: "SOL;6166"}),
            _make_row("2024-09-02 00:00:00 UTC", **{COL_FROM_CURRENCY: "ABC;901", COL_FEE_CURRENCY: "ZED;900"}),
        ]

        tokens = find_unmapped_tokens(rows, now=NOW)

        assert [(t.symbol, t.internal_id) for t in tokens] == [("ABC", "901"), ("ZED", "900")]

    def test_symbol_mapping_counts_as_mapped(self) -> None:
        rows = [_make_row("2024-09-01 00:00:00 UTC", **{COL_FROM_CURRENCY: "USDC;31337"})]
        assert find_unmapped_tokens(rows, now=NOW) == []

    def test_rows_outside_horizon_are_ignored(self) -> None:
        rows = [
            _make_row("2022-01-01 00:00:00 UTC", **{COL_FROM_CURRENCY: "OLD;1"}),
            _make_row("garbage", **{COL_FROM_CURRENCY: "BAD;2"}),
        ]
        assert find_unmapped_tokens(rows, now=NOW) == []

    def test_horizon_is_configurable(self) -> None:
        rows = [_make_row("2024-08-01 00:00:00 UTC", **{COL_FROM_CURRENCY: "NEW;3"})]
        assert find_unmapped_tokens(rows, now=NOW, horizon_days=30) == []
        assert len(find_unmapped_tokens(rows, now=NOW, horizon_days=90)) == 1


class TestLogUnmappedTokens:
    def test_emits_paste_ready_hint(self) -> None:
        token = AssetRef(internal_id="901", symbol="ABC")
        with patch("pricer.ledger.audit.logger") as mock_logger:
            log_unmapped_tokens([token])

        _, kwargs = mock_logger.info.call_args_list[0]
        assert kwargs["hint"] == "'901': '',  # ABC"
        mock_logger.info.assert_called_with("coingecko_mapping_audit_complete", missing=1)
