"""Koinly "Edit in Excel" CSV export reading and writing.

Rows are kept as header -> value dicts so unknown columns survive a round
trip untouched. Every input row is written back, in order, whether or not a
valuation was applied.
"""

import csv
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

from pricer.exceptions import LedgerFormatError, LedgerWriteError
from pricer.logging import get_logger
from pricer.models import DEFAULT_CHAIN, AssetRef, normalize_chain

logger = get_logger(__name__)

COL_ID = "ID (read-only)"
COL_DATE = "Date (UTC)"
COL_FROM_AMOUNT = "From Amount"
COL_FROM_CURRENCY = "From Currency"
COL_TO_AMOUNT = "To Amount"
COL_TO_CURRENCY = "To Currency"
COL_FEE_AMOUNT = "Fee Amount"
COL_FEE_CURRENCY = "Fee Currency"
COL_NET_WORTH_AMOUNT = "Net Worth Amount"
COL_NET_WORTH_CURRENCY = "Net Worth Currency"
COL_FEE_WORTH_AMOUNT = "Fee Worth Amount"
COL_FEE_WORTH_CURRENCY = "Fee Worth Currency"
COL_FROM_WALLET = "From Wallet (read-only)"
COL_TO_WALLET = "To Wallet (read-only)"

REQUIRED_COLUMNS = (COL_DATE,)

USD = "USD"


def parse_timestamp(value: str | None) -> int | None:
    """Parse a Koinly date into unix seconds (UTC). None if unparseable.

    Accepts ISO-like strings with an optional trailing " UTC"; naive
    values are taken as UTC.
    """
    if not value or not value.strip():
        return None
    text = value.strip()
    if text.upper().endswith(" UTC"):
        text = text[:-4].strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def parse_amount(value: str | None) -> Decimal:
    """Parse an amount column; empty or invalid values count as zero."""
    if not value or not value.strip():
        return Decimal("0")
    try:
        return Decimal(value.strip())
    except InvalidOperation:
        return Decimal("0")


def _wallet_chain(wallet: str | None) -> str | None:
    if not wallet or ";" not in wallet:
        return None
    return normalize_chain(wallet.split(";")[1])


@dataclass
class LedgerRow:
    """One ledger transaction, 1-based row number excluding the header."""

    number: int
    values: dict[str, str]

    def get(self, column: str) -> str:
        return self.values.get(column) or ""

    @property
    def transaction_id(self) -> str:
        return self.get(COL_ID)

    @property
    def timestamp(self) -> int | None:
        return parse_timestamp(self.get(COL_DATE))

    @property
    def chain(self) -> str:
        """Chain from the from-wallet, else the to-wallet, else the default."""
        return (
            _wallet_chain(self.get(COL_FROM_WALLET))
            or _wallet_chain(self.get(COL_TO_WALLET))
            or DEFAULT_CHAIN
        )

    @property
    def from_asset(self) -> AssetRef | None:
        return AssetRef.parse(self.get(COL_FROM_CURRENCY), self.chain)

    @property
    def to_asset(self) -> AssetRef | None:
        return AssetRef.parse(self.get(COL_TO_CURRENCY), self.chain)

    @property
    def fee_asset(self) -> AssetRef | None:
        return AssetRef.parse(self.get(COL_FEE_CURRENCY), self.chain)

    def assets(self) -> list[AssetRef]:
        """From, To and Fee assets that parse, in that order."""
        return [a for a in (self.from_asset, self.to_asset, self.fee_asset) if a is not None]

    @property
    def from_amount(self) -> Decimal:
        return parse_amount(self.get(COL_FROM_AMOUNT))

    @property
    def to_amount(self) -> Decimal:
        return parse_amount(self.get(COL_TO_AMOUNT))

    @property
    def fee_amount(self) -> Decimal:
        return parse_amount(self.get(COL_FEE_AMOUNT))

    @property
    def net_worth(self) -> str:
        return self.get(COL_NET_WORTH_AMOUNT)

    @property
    def fee_worth(self) -> str:
        return self.get(COL_FEE_WORTH_AMOUNT)

    def set_net_worth(self, amount: str) -> None:
        self.values[COL_NET_WORTH_AMOUNT] = amount
        self.values[COL_NET_WORTH_CURRENCY] = USD

    def set_fee_worth(self, amount: str) -> None:
        self.values[COL_FEE_WORTH_AMOUNT] = amount
        self.values[COL_FEE_WORTH_CURRENCY] = USD


@dataclass
class Ledger:
    """Parsed ledger: original header order plus rows."""

    header: list[str]
    rows: list[LedgerRow]


def read_ledger(path: str | Path) -> Ledger:
    """Read a Koinly CSV export.

    Raises:
        LedgerFormatError: file missing/unreadable or a required column absent.
    """
    path = Path(path)
    if not path.is_file():
        raise LedgerFormatError(
            f"{path} not found. Export transactions from Koinly via "
            "'Edit in Excel' and save the CSV at this path."
        )

    try:
        with path.open(newline="", encoding="utf-8-sig") as fh:
            reader = csv.DictReader(fh)
            header = list(reader.fieldnames or [])
            missing = [c for c in REQUIRED_COLUMNS if c not in header]
            if missing:
                raise LedgerFormatError(f"{path} is missing required columns: {missing}")
            rows = []
            for record in reader:
                values = {k: (v or "") for k, v in record.items() if k is not None}
                if not any(v.strip() for v in values.values()):
                    continue  # blank line
                rows.append(LedgerRow(number=len(rows) + 1, values=values))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise LedgerFormatError(f"Cannot read ledger {path}: {e}") from e

    logger.info("ledger_loaded", path=str(path), transactions=len(rows))
    return Ledger(header=header, rows=rows)


def write_ledger(ledger: Ledger, path: str | Path) -> None:
    """Write every row back with the original header order.

    Raises:
        LedgerWriteError: the output file cannot be written.
    """
    path = Path(path)
    try:
        with path.open("w", newline="", encoding="utf-8") as fh:
            writer = csv.DictWriter(fh, fieldnames=ledger.header, extrasaction="ignore")
            writer.writeheader()
            for row in ledger.rows:
                writer.writerow(row.values)
    except OSError as e:
        raise LedgerWriteError(f"Cannot write ledger {path}: {e}") from e
    logger.info("ledger_written", path=str(path), transactions=len(ledger.rows))
