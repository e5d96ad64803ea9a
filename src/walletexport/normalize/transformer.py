"""
Transaction Normalization

Maps raw explorer records into Awaken Tax rows.

Rules:
1. Amounts are converted from base units with exact fixed-point math
2. Amounts are positive for incoming rows and negative otherwise
3. Only the sender pays the fee, and a hash reports its fee once
4. Rows are sorted newest first and de-duplicated on (hash, asset)
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, localcontext
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Transaction direction/kind relative to the queried wallet."""

    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    TOKEN_IN = "token_in"
    TOKEN_OUT = "token_out"
    CONTRACT_INTERACTION = "contract_interaction"
    SWAP = "swap"
    UNKNOWN = "unknown"


INCOMING_TYPES = {TransactionType.TRANSFER_IN, TransactionType.TOKEN_IN}

TAGS = {
    TransactionType.TRANSFER_IN: "deposit",
    TransactionType.TRANSFER_OUT: "withdrawal",
    TransactionType.TOKEN_IN: "deposit",
    TransactionType.TOKEN_OUT: "withdrawal",
    TransactionType.CONTRACT_INTERACTION: "contract",
    TransactionType.SWAP: "swap",
}

DEFAULT_TOKEN_DECIMALS = 18
TOKEN_PLACES = 8


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class AwakenRow:
    """A single row of the Awaken Tax ledger, plus display-only fields."""

    date: str  # YYYY-MM-DD
    asset: str
    amount: str  # Signed decimal string
    fee: str
    pnl: str
    payment_token: str
    id: str  # Short hash
    notes: str
    tag: str
    tx_hash: str

    timestamp: int  # Unix seconds, used for ordering
    is_incoming: bool
    tx_type: TransactionType
    from_address: str = ""
    to_address: str = ""

    def to_awaken(self) -> dict[str, str]:
        """Return only the Awaken columns, keyed by their CSV headers."""
        return {
            "Date": self.date,
            "Asset": self.asset,
            "Amount": self.amount,
            "Fee": self.fee,
            "P&L": self.pnl,
            "Payment Token": self.payment_token,
            "ID": self.id,
            "Notes": self.notes,
            "Tag": self.tag,
            "Transaction Hash": self.tx_hash,
        }

    def to_dict(self) -> dict:
        data = asdict(self)
        data["tx_type"] = self.tx_type.value
        return data


# =============================================================================
# Unit Conversion
# =============================================================================

def _to_int(value, base: int = 10) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    return int(str(value), base)


def format_units(raw: int, decimals: int, places: int, rounding: str = ROUND_DOWN) -> str:
    """Scale an integer amount of base units down by 10^decimals."""
    with localcontext() as ctx:
        # Room for 256-bit integers at any scale
        ctx.prec = 100
        quantum = Decimal(1).scaleb(-places)
        value = Decimal(raw).scaleb(-decimals).quantize(quantum, rounding=rounding)
    return f"{value:f}"


def wei_to_native(wei, decimals: int = 18, places: int = 8) -> str:
    return format_units(_to_int(wei), decimals, places, rounding=ROUND_HALF_UP)


def format_token_amount(value, token_decimal) -> str:
    """Format a token amount; unknown decimals default to 18."""
    try:
        decimals = int(token_decimal)
    except (TypeError, ValueError):
        decimals = DEFAULT_TOKEN_DECIMALS
    return format_units(_to_int(value), decimals, TOKEN_PLACES)


def hex_to_decimal(hex_value: Optional[str], decimals: int = 18, places: int = 18) -> str:
    """Convert a hex amount (with or without 0x) to a decimal string."""
    if not hex_value:
        return format_units(0, decimals, places)
    clean = hex_value[2:] if hex_value.lower().startswith("0x") else hex_value
    return format_units(_to_int(clean or "0", 16), decimals, places)


def calculate_fee(gas_used, gas_price, decimals: int = 18, places: int = 8) -> str:
    return wei_to_native(_to_int(gas_used) * _to_int(gas_price), decimals, places)


def signed(amount: str, is_incoming: bool) -> str:
    if is_incoming or Decimal(amount) == 0:
        return amount
    return f"-{amount}"


# =============================================================================
# Formatting Helpers
# =============================================================================

def format_date(timestamp) -> str:
    """Format a unix timestamp (seconds) as a UTC YYYY-MM-DD date."""
    dt = datetime.fromtimestamp(_to_int(timestamp), tz=timezone.utc)
    return dt.strftime("%Y-%m-%d")


def shorten_address(address: str) -> str:
    if len(address) <= 20:
        return address
    return f"{address[:12]}...{address[-6:]}"


def get_tag(tx_type: TransactionType) -> str:
    return TAGS.get(tx_type, "other")


def generate_notes(tx_type: TransactionType, from_address: str, to_address: str) -> str:
    if tx_type == TransactionType.TRANSFER_IN:
        return f"Received from {from_address[:10]}..."
    if tx_type == TransactionType.TRANSFER_OUT:
        return f"Sent to {to_address[:10]}..."
    if tx_type == TransactionType.TOKEN_IN:
        return f"Token received from {from_address[:10]}..."
    if tx_type == TransactionType.TOKEN_OUT:
        return f"Token sent to {to_address[:10]}..."
    if tx_type == TransactionType.CONTRACT_INTERACTION:
        return f"Contract interaction with {to_address[:10]}..."
    return ""


# =============================================================================
# Classification
# =============================================================================

def get_transaction_type(tx: dict, user_address: str) -> TransactionType:
    """Classify a native transaction relative to the user."""
    from_lower = (tx.get("from") or "").lower()
    to_lower = (tx.get("to") or "").lower()
    user = user_address.lower()
    tx_input = tx.get("input") or ""

    # Calldata beyond a 4-byte method selector
    if tx_input and tx_input != "0x" and len(tx_input) > 10 and from_lower == user:
        return TransactionType.CONTRACT_INTERACTION

    if from_lower == user:
        return TransactionType.TRANSFER_OUT
    if to_lower == user:
        return TransactionType.TRANSFER_IN
    return TransactionType.UNKNOWN


def get_token_transaction_type(tx: dict, user_address: str) -> TransactionType:
    from_lower = (tx.get("from") or "").lower()
    to_lower = (tx.get("to") or "").lower()
    user = user_address.lower()

    if from_lower == user:
        return TransactionType.TOKEN_OUT
    if to_lower == user:
        return TransactionType.TOKEN_IN
    return TransactionType.UNKNOWN


# =============================================================================
# EVM Transformation
# =============================================================================

def transform_transaction(
    tx: dict,
    user_address: str,
    native_symbol: str = "ETH",
    native_decimals: int = 18,
    places: int = 8,
) -> AwakenRow:
    """Transform a Blockscout txlist record into an Awaken row."""
    tx_type = get_transaction_type(tx, user_address)
    is_incoming = tx_type in INCOMING_TYPES
    from_address = tx.get("from") or ""
    to_address = tx.get("to") or ""
    tx_hash = tx.get("hash") or ""
    failed = str(tx.get("isError", "0")) == "1"

    if failed:
        amount = format_units(0, native_decimals, places)
    else:
        amount = signed(wei_to_native(tx.get("value"), native_decimals, places), is_incoming)

    fee = "0"
    if from_address.lower() == user_address.lower():
        fee = calculate_fee(tx.get("gasUsed"), tx.get("gasPrice"), native_decimals, places)

    notes = generate_notes(tx_type, from_address, to_address)
    if failed:
        notes = f"Failed: {notes}" if notes else "Failed"

    return AwakenRow(
        date=format_date(tx.get("timeStamp")),
        asset=native_symbol,
        amount=amount,
        fee=fee,
        pnl="",
        payment_token=native_symbol,
        id=tx_hash[:10],
        notes=notes,
        tag=get_tag(tx_type),
        tx_hash=tx_hash,
        timestamp=_to_int(tx.get("timeStamp")),
        is_incoming=is_incoming,
        tx_type=tx_type,
        from_address=from_address,
        to_address=to_address,
    )


def transform_token_transfer(
    tx: dict,
    user_address: str,
    native_symbol: str = "ETH",
    native_decimals: int = 18,
    places: int = 8,
) -> AwakenRow:
    """Transform a Blockscout tokentx record into an Awaken row."""
    tx_type = get_token_transaction_type(tx, user_address)
    is_incoming = tx_type in INCOMING_TYPES
    from_address = tx.get("from") or ""
    to_address = tx.get("to") or ""
    tx_hash = tx.get("hash") or ""

    amount = signed(format_token_amount(tx.get("value"), tx.get("tokenDecimal")), is_incoming)

    fee = "0"
    if from_address.lower() == user_address.lower():
        fee = calculate_fee(tx.get("gasUsed"), tx.get("gasPrice"), native_decimals, places)

    return AwakenRow(
        date=format_date(tx.get("timeStamp")),
        asset=tx.get("tokenSymbol") or "UNKNOWN",
        amount=amount,
        fee=fee,
        pnl="",
        payment_token=native_symbol,
        id=tx_hash[:10],
        notes=generate_notes(tx_type, from_address, to_address),
        tag=get_tag(tx_type),
        tx_hash=tx_hash,
        timestamp=_to_int(tx.get("timeStamp")),
        is_incoming=is_incoming,
        tx_type=tx_type,
        from_address=from_address,
        to_address=to_address,
    )


def transform_all_transactions(
    transactions: list[dict],
    token_transfers: list[dict],
    user_address: str,
    native_symbol: str = "ETH",
    native_decimals: int = 18,
    places: int = 8,
) -> list[AwakenRow]:
    """
    Transform, merge, sort and de-duplicate native and token records.

    Zero-value transactions without calldata are dropped. The result is
    ordered newest first; ties keep native rows ahead of token rows.
    """
    normal_rows = [
        transform_transaction(tx, user_address, native_symbol, native_decimals, places)
        for tx in transactions
        if str(tx.get("value", "0")) != "0" or (tx.get("input") or "0x") != "0x"
    ]
    token_rows = [
        transform_token_transfer(tx, user_address, native_symbol, native_decimals, places)
        for tx in token_transfers
    ]

    all_rows = normal_rows + token_rows
    all_rows.sort(key=lambda r: r.timestamp, reverse=True)

    seen = set()
    fee_reported = set()
    unique_rows = []
    for row in all_rows:
        tx_key = row.tx_hash.lower()
        key = (tx_key, row.asset)
        if key in seen:
            continue
        seen.add(key)

        # A token transfer and its parent transaction share one gas payment
        if tx_key in fee_reported:
            row.fee = "0"
        elif Decimal(row.fee) != 0:
            fee_reported.add(tx_key)

        unique_rows.append(row)

    return unique_rows


# =============================================================================
# Keeta Transformation
# =============================================================================

ISO_FRACTION_PATTERN = re.compile(r"\.(\d+)")


def _iso_to_timestamp(iso_date: str) -> int:
    if not iso_date:
        return 0
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits
    normalized = ISO_FRACTION_PATTERN.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), iso_date.replace("Z", "+00:00"), count=1
    )
    dt = datetime.fromisoformat(normalized)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def transform_keeta_blocks(
    blocks: list[dict],
    user_address: str,
    symbol: str = "KEETA",
    decimals: int = 18,
    places: int = 18,
) -> list[AwakenRow]:
    """Transform Keeta ledger blocks into Awaken rows (send operations only)."""
    user = user_address.lower()
    rows = []

    for block in blocks:
        account = block.get("account") or ""
        block_hash = block.get("$hash") or ""
        block_date = block.get("date") or ""

        for op in block.get("operations") or []:
            # Operation type 0 is a SEND
            if op.get("type") != 0 or not op.get("amount"):
                continue

            to_address = op.get("to") or ""
            if to_address.lower() == user:
                is_incoming = True
            elif account.lower() == user:
                is_incoming = False
            else:
                continue

            amount = hex_to_decimal(op["amount"], decimals, places)
            tx_type = TransactionType.TRANSFER_IN if is_incoming else TransactionType.TRANSFER_OUT

            rows.append(AwakenRow(
                date=block_date.split("T")[0],
                asset=symbol,
                amount=signed(amount, is_incoming),
                fee="0",
                pnl="",
                payment_token=symbol,
                id=block_hash[:10],
                notes=(
                    f"Received from {shorten_address(account)}"
                    if is_incoming
                    else f"Sent to {shorten_address(to_address)}"
                ),
                tag=get_tag(tx_type),
                tx_hash=block_hash,
                timestamp=_iso_to_timestamp(block_date),
                is_incoming=is_incoming,
                tx_type=tx_type,
                from_address=account,
                to_address=to_address,
            ))

    rows.sort(key=lambda r: r.timestamp, reverse=True)
    return rows
