"""Shared fixtures: wallet addresses and raw explorer records."""

import httpx
import pytest

USER = "0x" + "a" * 40
OTHER = "0x" + "b" * 40
TOKEN_CONTRACT = "0x" + "c" * 40

KEETA_USER = "keeta_aabbccddeeff00112233"
KEETA_OTHER = "keeta_99887766554433221100"


def make_tx(
    tx_hash: str,
    timestamp: int,
    from_address: str,
    to_address: str,
    value: str = "0",
    tx_input: str = "0x",
    gas_used: str = "21000",
    gas_price: str = "1000000000",
    is_error: str = "0",
) -> dict:
    return {
        "blockNumber": "100",
        "timeStamp": str(timestamp),
        "hash": tx_hash,
        "from": from_address,
        "to": to_address,
        "value": value,
        "gas": "50000",
        "gasPrice": gas_price,
        "gasUsed": gas_used,
        "isError": is_error,
        "txreceipt_status": "1",
        "input": tx_input,
    }


def make_token_transfer(
    tx_hash: str,
    timestamp: int,
    from_address: str,
    to_address: str,
    value: str,
    symbol: str = "USDC",
    decimals: str = "6",
) -> dict:
    return {
        "blockNumber": "100",
        "timeStamp": str(timestamp),
        "hash": tx_hash,
        "from": from_address,
        "to": to_address,
        "contractAddress": TOKEN_CONTRACT,
        "value": value,
        "tokenName": symbol,
        "tokenSymbol": symbol,
        "tokenDecimal": decimals,
        "gasPrice": "1000000000",
        "gasUsed": "50000",
        "input": "deprecated",
    }


def mock_client(handler) -> httpx.Client:
    """httpx client whose requests are answered by `handler`."""
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def incoming_tx():
    return make_tx("0x" + "1" * 64, 1700000000, OTHER, USER.upper().replace("0X", "0x"),
                   value="1500000000000000000")


@pytest.fixture
def outgoing_tx():
    return make_tx("0x" + "2" * 64, 1700000100, USER, OTHER, value="1000000000000000000")
