"""Fill missing USD valuations on ledger rows.

For each row whose Net Worth or Fee Worth is missing:
- Fee Worth = fee amount x fee asset price
- Net Worth = from amount x from asset price, falling back to the To side

Values are quantized to 6 decimal places. Rows are updated in place; a row
whose prices cannot be found keeps its original values.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from pricer.ledger.csv_ledger import COL_DATE, LedgerRow
from pricer.logging import get_logger, ledger_row_context
from pricer.models import AssetRef
from pricer.pricing.resolver import PriceResolver

logger = get_logger(__name__)

USD_QUANTUM = Decimal("0.000001")


def is_missing(value: str | None) -> bool:
    """A worth field is missing when blank or the Koinly `0.0` placeholder."""
    return value is None or value.strip() in ("", "0.0")


def usd_value(amount: Decimal, price: Decimal) -> str:
    """amount x price rendered with exactly 6 decimals."""
    return str((amount * price).quantize(USD_QUANTUM, rounding=ROUND_HALF_UP))


@dataclass
class EnrichmentSummary:
    """Counters for one enrichment pass."""

    rows: int = 0
    skipped_complete: int = 0
    skipped_bad_date: int = 0
    applied: int = 0
    updated_rows: int = 0
    unresolved: set[str] = field(default_factory=set)


class EnrichmentPass:
    """Resolves and applies missing valuations across ledger rows.

    Args:
        resolver: PriceResolver used for every lookup.
    """

    def __init__(self, resolver: PriceResolver) -> None:
        self._resolver = resolver

    async def run(self, rows: list[LedgerRow]) -> EnrichmentSummary:
        summary = EnrichmentSummary(rows=len(rows))
        for row in rows:
            with ledger_row_context(row.transaction_id, row.number):
                await self._enrich_row(row, summary)

        logger.info(
            "enrichment_complete",
            rows=summary.rows,
            updated_rows=summary.updated_rows,
            prices_applied=summary.applied,
            unresolved=len(summary.unresolved),
        )
        for label in sorted(summary.unresolved):
            logger.info("unresolved_asset", asset=label)
        return summary

    async def _enrich_row(self, row: LedgerRow, summary: EnrichmentSummary) -> None:
        fee_missing = is_missing(row.fee_worth)
        net_missing = is_missing(row.net_worth)
        if not fee_missing and not net_missing:
            summary.skipped_complete += 1
            logger.debug("row_already_valued")
            return

        timestamp = row.timestamp
        if timestamp is None:
            summary.skipped_bad_date += 1
            logger.warning("row_date_unparseable", date=row.get(COL_DATE))
            return

        logger.info("processing_row", timestamp=timestamp, chain=row.chain)
        # One lookup per asset per row
        memo: dict[str, Decimal | None] = {}

        async def price_of(asset: AssetRef) -> Decimal | None:
            if asset.memo_key not in memo:
                memo[asset.memo_key] = await self._resolver.resolve(asset, timestamp)
                if memo[asset.memo_key] is None:
                    summary.unresolved.add(asset.label)
            return memo[asset.memo_key]

        updated = False

        fee_asset = row.fee_asset
        if fee_missing and fee_asset is not None:
            price = await price_of(fee_asset)
            if price is not None:
                row.set_fee_worth(usd_value(row.fee_amount, price))
                summary.applied += 1
                updated = True

        if net_missing:
            for asset, amount in (
                (row.from_asset, row.from_amount),
                (row.to_asset, row.to_amount),
            ):
                if asset is None:
                    continue
                price = await price_of(asset)
                if price is not None:
                    row.set_net_worth(usd_value(amount, price))
                    summary.applied += 1
                    updated = True
                    break

        if updated:
            summary.updated_rows += 1
        else:
            logger.info("row_left_unvalued")
