"""
Ledger Statistics and Search

Summary figures and free-text filtering over normalized Awaken rows.
"""

from __future__ import annotations

from decimal import Decimal

from .transformer import AwakenRow


def filter_rows(rows: list[AwakenRow], query: str) -> list[AwakenRow]:
    """Keep rows whose asset, tag, hash or notes contain the query (case-insensitive)."""
    query = (query or "").strip().lower()
    if not query:
        return list(rows)

    return [
        row for row in rows
        if query in row.asset.lower()
        or query in row.tag.lower()
        or query in row.tx_hash.lower()
        or query in row.notes.lower()
    ]


def summarize(rows: list[AwakenRow]) -> dict:
    """
    Get summary statistics for a ledger.

    Returns:
        Dict with counts, active days, fees per payment token and
        net volume per asset (decimal strings)
    """
    stats = {
        "transaction_count": len(rows),
        "unique_hashes": len({row.tx_hash.lower() for row in rows}),
        "active_days": len({row.date for row in rows}),
        "incoming_count": 0,
        "outgoing_count": 0,
        "fees": {},
        "net_volume": {},
    }

    fees: dict[str, Decimal] = {}
    volume: dict[str, Decimal] = {}

    for row in rows:
        if row.is_incoming:
            stats["incoming_count"] += 1
        else:
            stats["outgoing_count"] += 1

        fees[row.payment_token] = fees.get(row.payment_token, Decimal(0)) + Decimal(row.fee or "0")
        volume[row.asset] = volume.get(row.asset, Decimal(0)) + Decimal(row.amount or "0")

    stats["fees"] = {token: f"{total:f}" for token, total in fees.items()}
    stats["net_volume"] = {asset: f"{total:f}" for asset, total in volume.items()}

    return stats
