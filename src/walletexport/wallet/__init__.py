"""Wallet transaction fetching module."""

from .chains import (
    CHAINS,
    DEFAULT_CHAIN,
    ChainConfig,
    get_chain,
    get_supported_chains,
    validate_address,
    validate_evm_address,
    validate_keeta_address,
    get_explorer_tx_url,
    get_explorer_address_url,
)
from .fetch_transactions import (
    ExplorerAPIError,
    BlockchainFetcher,
    BlockscoutFetcher,
    KeetaFetcher,
    LedgerGenerator,
)

__all__ = [
    "CHAINS",
    "DEFAULT_CHAIN",
    "ChainConfig",
    "get_chain",
    "get_supported_chains",
    "validate_address",
    "validate_evm_address",
    "validate_keeta_address",
    "get_explorer_tx_url",
    "get_explorer_address_url",
    "ExplorerAPIError",
    "BlockchainFetcher",
    "BlockscoutFetcher",
    "KeetaFetcher",
    "LedgerGenerator",
]
