"""Transaction normalization module."""

from .transformer import (
    AwakenRow,
    TransactionType,
    format_units,
    transform_transaction,
    transform_token_transfer,
    transform_all_transactions,
    transform_keeta_blocks,
)
from .summary import filter_rows, summarize

__all__ = [
    "AwakenRow",
    "TransactionType",
    "format_units",
    "transform_transaction",
    "transform_token_transfer",
    "transform_all_transactions",
    "transform_keeta_blocks",
    "filter_rows",
    "summarize",
]
