"""
Chain Registry

Static configuration for the networks supported by the wallet exporter,
plus address validation and explorer link helpers.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Configuration
# =============================================================================

ALCHEMY_API_KEY = os.getenv("ALCHEMY_API_KEY", "")

MEGAETH_EXPLORER_API = os.getenv("MEGAETH_EXPLORER_API", "https://megaeth.blockscout.com/api")
KEETA_API_BASE = os.getenv("KEETA_API_BASE", "https://rep3.main.network.api.keeta.com/api/node/ledger")

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))


@dataclass(frozen=True)
class ChainConfig:
    """Static description of a supported network."""

    id: str
    name: str
    display_name: str
    explorer_api: str
    explorer_url: str
    native_symbol: str
    native_decimals: int
    address_format: str  # "evm" or "keeta"
    amount_places: int  # Decimal places rendered in the Amount column
    chain_id: Optional[int] = None
    rpc_url: Optional[str] = None


CHAINS: dict[str, ChainConfig] = {
    "megaeth": ChainConfig(
        id="megaeth",
        name="MegaETH",
        display_name="MegaETH Mainnet",
        chain_id=4326,
        explorer_api=MEGAETH_EXPLORER_API,
        explorer_url="https://megaeth.blockscout.com",
        rpc_url=(
            f"https://megaeth-mainnet.g.alchemy.com/v2/{ALCHEMY_API_KEY}"
            if ALCHEMY_API_KEY else None
        ),
        native_symbol="ETH",
        native_decimals=18,
        address_format="evm",
        amount_places=8,
    ),
    "keeta": ChainConfig(
        id="keeta",
        name="Keeta",
        display_name="Keeta Network",
        explorer_api=KEETA_API_BASE,
        explorer_url="https://explorer.keeta.com",
        rpc_url="https://rpc.keeta.com",
        native_symbol="KEETA",
        # Ledger amounts are scaled by 10^18 regardless of the token
        native_decimals=18,
        address_format="keeta",
        amount_places=18,
    ),
}

DEFAULT_CHAIN = "megaeth"


def get_chain(chain_id: str) -> ChainConfig:
    """Look up a chain, falling back to the default for unknown ids."""
    return CHAINS.get((chain_id or "").lower(), CHAINS[DEFAULT_CHAIN])


def get_supported_chains() -> list[ChainConfig]:
    return list(CHAINS.values())


# =============================================================================
# Address Validation
# =============================================================================

EVM_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
KEETA_ADDRESS_PATTERN = re.compile(r"^keeta_[a-z0-9]+$", re.IGNORECASE)


def validate_evm_address(address: str) -> bool:
    """Validate EVM address format (0x + 40 hex characters)."""
    if not address:
        return False
    return bool(EVM_ADDRESS_PATTERN.match(address))


def validate_keeta_address(address: str) -> bool:
    """Validate Keeta address format (keeta_ + alphanumerics)."""
    if not address:
        return False
    return bool(KEETA_ADDRESS_PATTERN.match(address))


def validate_address(address: str, chain_id: str) -> bool:
    chain = get_chain(chain_id)
    if chain.address_format == "keeta":
        return validate_keeta_address(address)
    return validate_evm_address(address)


# =============================================================================
# Explorer Links
# =============================================================================

def get_explorer_tx_url(tx_hash: str, chain_id: str) -> str:
    chain = get_chain(chain_id)
    if chain.address_format == "keeta":
        return f"{chain.explorer_url}/transaction/{tx_hash}"
    return f"{chain.explorer_url}/tx/{tx_hash}"


def get_explorer_address_url(address: str, chain_id: str) -> str:
    chain = get_chain(chain_id)
    if chain.address_format == "keeta":
        return f"{chain.explorer_url}/account/{address}"
    return f"{chain.explorer_url}/address/{address}"
