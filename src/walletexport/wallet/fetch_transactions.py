"""
Wallet Transaction Fetching

Fetches raw transaction history from MegaETH (via Blockscout) and Keeta
(via the ledger node API), then hands the raw records to the transformer
to produce Awaken rows.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import httpx

from walletexport.normalize import (
    AwakenRow,
    transform_all_transactions,
    transform_keeta_blocks,
)
from walletexport.wallet.chains import (
    CHAINS,
    HTTP_TIMEOUT,
    ChainConfig,
    get_chain,
    validate_address,
)

logger = logging.getLogger(__name__)


class ExplorerAPIError(ValueError):
    """The explorer answered, but reported a failure in its payload."""

    def __init__(self, message: str, chain: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.chain = chain


# Blockscout answers status "0" for empty histories too
NO_RESULTS_MESSAGES = (
    "No transactions found",
    "No records found",
    "No token transfers found",
)

KEETA_MAX_BLOCKS = 50

# Raised by the transformer on unparseable amounts, timestamps or dates
MALFORMED_DATA_ERRORS = (ValueError, TypeError, ArithmeticError, AttributeError)


# =============================================================================
# Abstract Fetcher
# =============================================================================

class BlockchainFetcher(ABC):
    """Abstract base class for blockchain transaction fetchers."""

    def __init__(self, chain: ChainConfig, client: Optional[httpx.Client] = None):
        self.chain = chain
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT)

    def _get_json(self, url: str, params: Optional[dict] = None):
        response = self.client.get(url, params=params)
        response.raise_for_status()
        return response.json()

    @abstractmethod
    def fetch_transactions(self, wallet_address: str) -> list[AwakenRow]:
        """Fetch and normalize transactions for a wallet address."""
        pass

    def close(self) -> None:
        """Close HTTP client."""
        self.client.close()


# =============================================================================
# MegaETH Fetcher (Blockscout)
# =============================================================================

class BlockscoutFetcher(BlockchainFetcher):
    """Fetch EVM transactions and token transfers from a Blockscout explorer."""

    def __init__(self, chain: Optional[ChainConfig] = None, client: Optional[httpx.Client] = None):
        super().__init__(chain or CHAINS["megaeth"], client)

    def _account_query(self, action: str, address: str) -> list[dict]:
        params = {
            "module": "account",
            "action": action,
            "address": address,
            "startblock": "0",
            "endblock": "99999999",
            "sort": "desc",
        }
        data = self._get_json(self.chain.explorer_api, params)
        if not isinstance(data, dict):
            raise ExplorerAPIError(f"Unexpected {action} response", chain=self.chain.id)

        if data.get("status") == "0":
            message = data.get("message") or ""
            if not any(msg in message for msg in NO_RESULTS_MESSAGES):
                raise ExplorerAPIError(message or f"Failed to fetch {action}", chain=self.chain.id)

        result = data.get("result")
        return result if isinstance(result, list) else []

    def get_transactions(self, address: str) -> list[dict]:
        """Fetch normal transactions (txlist) for an address."""
        try:
            return self._account_query("txlist", address)
        except (httpx.HTTPError, ExplorerAPIError):
            logger.exception("Error fetching transactions")
            raise

    def get_token_transfers(self, address: str) -> list[dict]:
        """Fetch ERC-20 token transfers (tokentx) for an address."""
        try:
            return self._account_query("tokentx", address)
        except (httpx.HTTPError, ExplorerAPIError):
            logger.exception("Error fetching token transfers")
            raise

    def fetch_all(self, address: str) -> tuple[list[dict], list[dict]]:
        """Fetch normal transactions and token transfers in parallel."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            txs = pool.submit(self.get_transactions, address)
            tokens = pool.submit(self.get_token_transfers, address)
            return txs.result(), tokens.result()

    def fetch_transactions(self, wallet_address: str) -> list[AwakenRow]:
        transactions, token_transfers = self.fetch_all(wallet_address)
        logger.info(
            f"Fetched {len(transactions)} transactions and "
            f"{len(token_transfers)} token transfers for {wallet_address}"
        )
        try:
            return transform_all_transactions(
                transactions,
                token_transfers,
                wallet_address,
                native_symbol=self.chain.native_symbol,
                native_decimals=self.chain.native_decimals,
                places=self.chain.amount_places,
            )
        except MALFORMED_DATA_ERRORS as e:
            logger.exception("Malformed explorer record")
            raise ExplorerAPIError(f"Malformed explorer data: {e}", chain=self.chain.id) from e

    def get_balance(self, address: str) -> str:
        """Fetch the native balance via JSON-RPC eth_getBalance."""
        if not self.chain.rpc_url:
            raise ValueError("RPC URL not configured (set ALCHEMY_API_KEY)")

        response = self.client.post(
            self.chain.rpc_url,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "method": "eth_getBalance",
                "params": [address, "latest"],
            },
        )
        response.raise_for_status()
        result = response.json()
        if "error" in result:
            error = result["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise ExplorerAPIError(f"RPC error: {message}", chain=self.chain.id)

        wei = int(result.get("result", "0x0"), 16)
        balance = Decimal(wei).scaleb(-self.chain.native_decimals)
        return str(balance.quantize(Decimal("0.000001"), rounding=ROUND_HALF_UP))


# =============================================================================
# Keeta Fetcher (ledger node)
# =============================================================================

class KeetaFetcher(BlockchainFetcher):
    """Fetch account history and referenced blocks from a Keeta ledger node."""

    def __init__(self, chain: Optional[ChainConfig] = None, client: Optional[httpx.Client] = None):
        super().__init__(chain or CHAINS["keeta"], client)

    def get_history(self, address: str, limit: int = 100) -> list[dict]:
        url = f"{self.chain.explorer_api}/account/{address}/history"
        data = self._get_json(url, {"limit": limit})
        if not isinstance(data, dict):
            raise ExplorerAPIError("Unexpected history response", chain=self.chain.id)
        return data.get("history") or []

    def fetch_block(self, block_hash: str) -> Optional[dict]:
        """Fetch a single block; failures are logged and yield None."""
        try:
            data = self._get_json(f"{self.chain.explorer_api}/block/{block_hash}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error fetching block {block_hash}: {e}")
            return None

        block = data.get("block") if isinstance(data, dict) else None
        if not isinstance(block, dict):
            logger.warning(f"Unexpected payload for block {block_hash}")
            return None
        return block

    def get_blocks(self, address: str, limit: int = 100) -> list[dict]:
        """Collect the unique blocks referenced by an account's vote staples."""
        block_hashes: dict[str, None] = {}
        for entry in self.get_history(address, limit):
            if not isinstance(entry, dict):
                continue
            votes = (entry.get("voteStaple") or {}).get("votes") or []
            for vote in votes:
                blocks = vote.get("blocks")
                if isinstance(blocks, list):
                    for block_hash in blocks:
                        block_hashes.setdefault(block_hash, None)

        to_fetch = list(block_hashes)[:KEETA_MAX_BLOCKS]
        if not to_fetch:
            return []

        with ThreadPoolExecutor(max_workers=min(8, len(to_fetch))) as pool:
            blocks = list(pool.map(self.fetch_block, to_fetch))

        return [b for b in blocks if b]

    def fetch_transactions(self, wallet_address: str, limit: int = 100) -> list[AwakenRow]:
        try:
            blocks = self.get_blocks(wallet_address, limit)
        except httpx.HTTPError:
            logger.exception("Error fetching Keeta transactions")
            raise

        logger.info(f"Fetched {len(blocks)} Keeta blocks for {wallet_address}")
        try:
            return transform_keeta_blocks(
                blocks,
                wallet_address,
                symbol=self.chain.native_symbol,
                decimals=self.chain.native_decimals,
                places=self.chain.amount_places,
            )
        except MALFORMED_DATA_ERRORS as e:
            logger.exception("Malformed Keeta block")
            raise ExplorerAPIError(f"Malformed ledger data: {e}", chain=self.chain.id) from e


# =============================================================================
# Ledger Generator (Orchestrator)
# =============================================================================

class LedgerGenerator:
    """
    Selects the fetcher for a chain and produces Awaken rows for a wallet.

    Usage:
        generator = LedgerGenerator(chain="megaeth")
        rows = generator.generate_ledger(wallet_address="0x...")
        generator.close()
    """

    FETCHERS = {
        "evm": BlockscoutFetcher,
        "keeta": KeetaFetcher,
    }

    def __init__(self, chain: str, client: Optional[httpx.Client] = None):
        self.chain = get_chain(chain)
        fetcher_cls = self.FETCHERS[self.chain.address_format]
        self.fetcher = fetcher_cls(self.chain, client)

    def generate_ledger(self, wallet_address: str) -> list[AwakenRow]:
        """Generate Awaken rows for a wallet."""
        wallet_address = (wallet_address or "").strip()
        if not validate_address(wallet_address, self.chain.id):
            raise ValueError(f"Invalid {self.chain.name} address: {wallet_address}")
        return self.fetcher.fetch_transactions(wallet_address)

    def get_balance(self, wallet_address: str) -> str:
        if not isinstance(self.fetcher, BlockscoutFetcher):
            raise ValueError(f"Balance lookup not supported on {self.chain.name}")
        if not validate_address(wallet_address, self.chain.id):
            raise ValueError(f"Invalid {self.chain.name} address: {wallet_address}")
        return self.fetcher.get_balance(wallet_address)

    def close(self) -> None:
        """Clean up resources."""
        self.fetcher.close()
