"""Custom exceptions for the ledger pricer.

Only fatal configuration and infrastructure errors are raised. Missing prices
and provider throttling travel as PriceResult values instead.
"""


class PricerError(Exception):
    """Base exception for all pricer errors."""


class MissingCredentialError(PricerError):
    """Raised when a required API credential is not configured."""


class LedgerFormatError(PricerError):
    """Raised when the transaction ledger is missing or cannot be read."""


class LedgerWriteError(PricerError):
    """Raised when the updated ledger cannot be written."""


class CacheWriteError(PricerError):
    """Raised when a candle cache file cannot be written."""


class CacheReadError(PricerError):
    """Raised when an existing candle cache file cannot be parsed."""
