"""Static token identifier tables for both price sources.

Koinly identifies assets by an internal numeric id. Birdeye needs the token
address on a chain; CoinGecko needs its own coin id. Extend these tables when
the mapping audit reports unmapped tokens.
"""

from pricer.models import AssetRef, Chain

# Keyed by internal id, or "<internalId>_<chain>" where the address differs per chain
TOKEN_ADDRESS_MAP: dict[str, str] = {
    "6166": "So11111111111111111111111111111111111111112",  # SOL
}

# Keyed by internal id or symbol. Empty string marks a known-unmapped token.
COINGECKO_ID_MAP: dict[str, str] = {
    "bitcoin": "bitcoin",
    "ethereum": "ethereum",
    "solana": "solana",
    "3_ethereum": "ethereum",
    "3_base": "ethereum",
    "6166": "solana",
    "26651202": "dimo",
    "43922534": "kamino",
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "USDC": "usd-coin",
    "USDT": "tether",
    "WETH": "ethereum",
}

BIRDEYE_SUPPORTED_CHAINS: frozenset[str] = frozenset(
    {
        Chain.SOLANA.value,
        Chain.ETHEREUM.value,
        Chain.ARBITRUM.value,
        Chain.BASE.value,
        Chain.POLYGON.value,
        Chain.OPTIMISM.value,
        Chain.AVALANCHE.value,
        Chain.BSC.value,
        Chain.ZKSYNC.value,
        Chain.SUI.value,
    }
)


def token_address(internal_id: str, chain: str) -> str | None:
    """Return the token address for an asset, preferring a chain-specific entry."""
    return TOKEN_ADDRESS_MAP.get(f"{internal_id}_{chain}") or TOKEN_ADDRESS_MAP.get(
        internal_id
    )


def coingecko_id(asset: AssetRef) -> str | None:
    """Return the CoinGecko coin id for an asset, looked up by internal id then symbol."""
    mapped = COINGECKO_ID_MAP.get(asset.internal_id) or COINGECKO_ID_MAP.get(asset.symbol)
    return mapped or None


def is_birdeye_chain(chain: str) -> bool:
    return chain in BIRDEYE_SUPPORTED_CHAINS
