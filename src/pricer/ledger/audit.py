"""Report tokens traded within the CoinGecko horizon that have no coin id mapping."""

import time

from pricer.ledger.csv_ledger import LedgerRow
from pricer.logging import get_logger
from pricer.mappings import COINGECKO_ID_MAP
from pricer.models import AssetRef

logger = get_logger(__name__)

SECONDS_PER_DAY = 86_400


def find_unmapped_tokens(
    rows: list[LedgerRow],
    now: float | None = None,
    horizon_days: int = 365,
) -> list[AssetRef]:
    """Unique (symbol, internal id) pairs lacking a CoinGecko id, sorted by symbol."""
    now = time.time() if now is None else now
    cutoff = now - horizon_days * SECONDS_PER_DAY

    missing: dict[str, AssetRef] = {}
    for row in rows:
        timestamp = row.timestamp
        if timestamp is None or timestamp < cutoff:
            continue
        for asset in row.assets():
            if COINGECKO_ID_MAP.get(asset.internal_id) or COINGECKO_ID_MAP.get(asset.symbol):
                continue
            missing[f"{asset.symbol}:{asset.internal_id}"] = asset

    return sorted(missing.values(), key=lambda a: (a.symbol, a.internal_id))


def log_unmapped_tokens(tokens: list[AssetRef]) -> None:
    """Log each unmapped token as a ready-to-paste COINGECKO_ID_MAP entry."""
    for token in tokens:
        logger.info(
            "coingecko_mapping_missing",
            symbol=token.symbol,
            internal_id=token.internal_id,
            hint=f"'{token.internal_id}': '',  # {token.symbol}",
        )
    logger.info("coingecko_mapping_audit_complete", missing=len(tokens))
