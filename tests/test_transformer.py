"""
Normalization Tests.

Covers unit conversion, classification, the EVM merge/dedup pipeline
and Keeta block transformation.
"""

import pytest

from walletexport.normalize import (
    TransactionType,
    filter_rows,
    summarize,
    transform_all_transactions,
    transform_keeta_blocks,
    transform_token_transfer,
    transform_transaction,
)
from walletexport.normalize.transformer import (
    format_date,
    format_token_amount,
    hex_to_decimal,
    shorten_address,
    wei_to_native,
)

from conftest import (
    KEETA_OTHER,
    KEETA_USER,
    OTHER,
    USER,
    make_token_transfer,
    make_tx,
)


# ============================================================
# UNIT CONVERSION
# ============================================================

class TestUnitConversion:
    """Tests for fixed-point amount formatting."""

    def test_wei_to_native(self):
        assert wei_to_native("1500000000000000000") == "1.50000000"
        assert wei_to_native("0") == "0.00000000"

    def test_wei_to_native_rounds_half_up(self):
        assert wei_to_native("5000000000") == "0.00000001"
        assert wei_to_native("4999999999") == "0.00000000"

    def test_wei_to_native_large_values_are_exact(self):
        # 2^256 - 1 wei
        assert wei_to_native(str(2**256 - 1)).startswith("115792089237316195423570985008687907853269984665640564039457.")

    def test_token_amount_uses_token_decimals(self):
        assert format_token_amount("2500000", "6") == "2.50000000"
        assert format_token_amount("5", "0") == "5.00000000"

    def test_token_amount_truncates(self):
        assert format_token_amount("1234567891234567891", "18") == "1.23456789"

    def test_token_amount_defaults_to_18_decimals(self):
        assert format_token_amount("1000000000000000000", "") == "1.00000000"
        assert format_token_amount("1000000000000000000", None) == "1.00000000"

    def test_hex_to_decimal(self):
        assert hex_to_decimal("0xDE0B6B3A7640000") == "1.000000000000000000"
        assert hex_to_decimal("DE0B6B3A7640000") == "1.000000000000000000"
        assert hex_to_decimal("0x0") == "0.000000000000000000"
        assert hex_to_decimal("") == "0.000000000000000000"

    def test_format_date_is_utc(self):
        assert format_date("1700000000") == "2023-11-14"
        assert format_date(0) == "1970-01-01"

    def test_shorten_address(self):
        assert shorten_address("keeta_short") == "keeta_short"
        assert shorten_address(KEETA_OTHER) == "keeta_998877...221100"


# ============================================================
# NATIVE TRANSACTIONS
# ============================================================

class TestTransformTransaction:
    """Tests for txlist record transformation."""

    def test_incoming_transfer(self, incoming_tx):
        row = transform_transaction(incoming_tx, USER)

        assert row.tx_type == TransactionType.TRANSFER_IN
        assert row.is_incoming is True
        assert row.date == "2023-11-14"
        assert row.asset == "ETH"
        assert row.amount == "1.50000000"
        assert row.fee == "0"
        assert row.pnl == ""
        assert row.payment_token == "ETH"
        assert row.id == "0x11111111"
        assert row.notes == "Received from 0xbbbbbbbb..."
        assert row.tag == "deposit"
        assert row.tx_hash == incoming_tx["hash"]
        assert row.timestamp == 1700000000

    def test_outgoing_transfer_pays_fee(self, outgoing_tx):
        row = transform_transaction(outgoing_tx, USER)

        assert row.tx_type == TransactionType.TRANSFER_OUT
        assert row.amount == "-1.00000000"
        assert row.fee == "0.00002100"
        assert row.notes == "Sent to 0xbbbbbbbb..."
        assert row.tag == "withdrawal"

    def test_address_comparison_ignores_case(self, outgoing_tx):
        row = transform_transaction(outgoing_tx, USER.upper().replace("0X", "0x"))
        assert row.tx_type == TransactionType.TRANSFER_OUT

    def test_contract_interaction(self):
        tx = make_tx("0x" + "3" * 64, 1700000000, USER, OTHER, tx_input="0xa9059cbb" + "0" * 128)
        row = transform_transaction(tx, USER)

        assert row.tx_type == TransactionType.CONTRACT_INTERACTION
        assert row.tag == "contract"
        assert row.notes == "Contract interaction with 0xbbbbbbbb..."
        # Zero amounts are never signed
        assert row.amount == "0.00000000"
        assert row.fee == "0.00002100"

    def test_bare_selector_is_plain_transfer(self):
        tx = make_tx("0x" + "3" * 64, 1700000000, USER, OTHER, value="1", tx_input="0x12345678")
        assert transform_transaction(tx, USER).tx_type == TransactionType.TRANSFER_OUT

    def test_unrelated_transaction_is_unknown(self):
        tx = make_tx("0x" + "4" * 64, 1700000000, OTHER, OTHER, value="1000000000000000000")
        row = transform_transaction(tx, USER)

        assert row.tx_type == TransactionType.UNKNOWN
        assert row.tag == "other"
        assert row.notes == ""
        assert row.amount == "-1.00000000"

    def test_contract_creation_has_no_recipient(self):
        tx = make_tx("0x" + "5" * 64, 1700000000, USER, None, tx_input="0x6080" + "0" * 64)
        row = transform_transaction(tx, USER)

        assert row.to_address == ""
        assert row.notes == "Contract interaction with ..."

    def test_failed_transaction_keeps_fee_only(self):
        tx = make_tx("0x" + "6" * 64, 1700000000, USER, OTHER,
                     value="1000000000000000000", is_error="1")
        row = transform_transaction(tx, USER)

        assert row.amount == "0.00000000"
        assert row.fee == "0.00002100"
        assert row.notes == "Failed: Sent to 0xbbbbbbbb..."

    def test_custom_native_symbol(self, outgoing_tx):
        row = transform_transaction(outgoing_tx, USER, native_symbol="MEGA")
        assert row.asset == "MEGA"
        assert row.payment_token == "MEGA"


# ============================================================
# TOKEN TRANSFERS
# ============================================================

class TestTransformTokenTransfer:
    """Tests for tokentx record transformation."""

    def test_token_in(self):
        tx = make_token_transfer("0x" + "7" * 64, 1700000000, OTHER, USER, "2500000")
        row = transform_token_transfer(tx, USER)

        assert row.tx_type == TransactionType.TOKEN_IN
        assert row.asset == "USDC"
        assert row.amount == "2.50000000"
        assert row.fee == "0"
        assert row.payment_token == "ETH"
        assert row.notes == "Token received from 0xbbbbbbbb..."
        assert row.tag == "deposit"

    def test_token_out(self):
        tx = make_token_transfer("0x" + "7" * 64, 1700000000, USER, OTHER, "2500000")
        row = transform_token_transfer(tx, USER)

        assert row.tx_type == TransactionType.TOKEN_OUT
        assert row.amount == "-2.50000000"
        assert row.fee == "0.00005000"
        assert row.notes == "Token sent to 0xbbbbbbbb..."
        assert row.tag == "withdrawal"

    def test_missing_symbol(self):
        tx = make_token_transfer("0x" + "7" * 64, 1700000000, OTHER, USER, "1", symbol="")
        assert transform_token_transfer(tx, USER).asset == "UNKNOWN"


# ============================================================
# MERGE PIPELINE
# ============================================================

class TestTransformAll:
    """Tests for merging, sorting and de-duplication."""

    def test_zero_value_plain_transactions_are_dropped(self, incoming_tx):
        empty = make_tx("0x" + "8" * 64, 1700000500, USER, OTHER, value="0", tx_input="0x")
        rows = transform_all_transactions([incoming_tx, empty], [], USER)

        assert [r.tx_hash for r in rows] == [incoming_tx["hash"]]

    def test_sorted_newest_first(self, incoming_tx, outgoing_tx):
        token = make_token_transfer("0x" + "9" * 64, 1700000050, OTHER, USER, "1000000")
        rows = transform_all_transactions([incoming_tx, outgoing_tx], [token], USER)

        assert [r.timestamp for r in rows] == [1700000100, 1700000050, 1700000000]

    def test_duplicates_removed_by_hash_and_asset(self, incoming_tx):
        token = make_token_transfer("0x" + "9" * 64, 1700000050, OTHER, USER, "1000000")
        rows = transform_all_transactions([incoming_tx, dict(incoming_tx)], [token, dict(token)], USER)

        assert len(rows) == 2
        assert {(r.tx_hash, r.asset) for r in rows} == {
            (incoming_tx["hash"], "ETH"),
            (token["hash"], "USDC"),
        }

    def test_same_hash_different_assets_both_kept(self):
        tx_hash = "0x" + "d" * 64
        swap_call = make_tx(tx_hash, 1700000000, USER, OTHER, tx_input="0x38ed1739" + "0" * 128)
        sent = make_token_transfer(tx_hash, 1700000000, USER, OTHER, "1000000", symbol="USDC")
        received = make_token_transfer(tx_hash, 1700000000, OTHER, USER, "500000000000000000",
                                       symbol="WETH", decimals="18")

        rows = transform_all_transactions([swap_call], [sent, received], USER)

        assert [r.asset for r in rows] == ["ETH", "USDC", "WETH"]
        # Gas is reported once per hash, on the parent transaction
        assert [r.fee for r in rows] == ["0.00002100", "0", "0"]

    def test_fee_moves_to_token_row_without_parent(self):
        tx_hash = "0x" + "e" * 64
        sent = make_token_transfer(tx_hash, 1700000000, USER, OTHER, "1000000", symbol="USDC")
        sent_dai = make_token_transfer(tx_hash, 1700000000, USER, OTHER, "1", symbol="DAI")

        rows = transform_all_transactions([], [sent, sent_dai], USER)

        assert [r.fee for r in rows] == ["0.00005000", "0"]

    def test_empty_inputs(self):
        assert transform_all_transactions([], [], USER) == []


# ============================================================
# KEETA
# ============================================================

def keeta_block(block_hash, date, account, operations):
    return {
        "version": 1,
        "date": date,
        "previous": "",
        "account": account,
        "purpose": 0,
        "signer": account,
        "network": "0x5382",
        "operations": operations,
        "$hash": block_hash,
    }


class TestTransformKeeta:
    """Tests for Keeta ledger block transformation."""

    def test_incoming_and_outgoing(self):
        received = keeta_block("AAAA0000111122223333", "2024-03-01T12:00:00.000Z", KEETA_OTHER,
                               [{"type": 0, "amount": "0xDE0B6B3A7640000", "to": KEETA_USER}])
        sent = keeta_block("BBBB0000111122223333", "2024-03-02T08:30:00.000Z", KEETA_USER,
                           [{"type": 0, "amount": "0x1BC16D674EC80000", "to": KEETA_OTHER}])

        rows = transform_keeta_blocks([received, sent], KEETA_USER)

        assert [r.tx_hash for r in rows] == ["BBBB0000111122223333", "AAAA0000111122223333"]

        out_row, in_row = rows
        assert out_row.date == "2024-03-02"
        assert out_row.amount == "-2.000000000000000000"
        assert out_row.notes == "Sent to keeta_998877...221100"
        assert out_row.tag == "withdrawal"
        assert out_row.fee == "0"
        assert out_row.asset == "KEETA"
        assert out_row.payment_token == "KEETA"
        assert out_row.id == "BBBB000011"

        assert in_row.amount == "1.000000000000000000"
        assert in_row.notes == "Received from keeta_998877...221100"
        assert in_row.tag == "deposit"
        assert in_row.is_incoming is True

    @pytest.mark.parametrize("date", [
        "2024-03-01T12:00:00Z",
        "2024-03-01T12:00:00.5Z",
        "2024-03-01T12:00:00.123Z",
        "2024-03-01T12:00:00.1234567Z",
        "2024-03-01T12:00:00.000000000+00:00",
    ])
    def test_fractional_seconds_of_any_width(self, date):
        block = keeta_block("EEEE", date, KEETA_OTHER,
                            [{"type": 0, "amount": "0x1", "to": KEETA_USER}])

        row, = transform_keeta_blocks([block], KEETA_USER)

        assert row.timestamp == 1709294400
        assert row.date == "2024-03-01"

    def test_non_send_operations_skipped(self):
        block = keeta_block("CCCC", "2024-03-01T00:00:00Z", KEETA_USER, [
            {"type": 1, "amount": "0x1", "to": KEETA_OTHER},
            {"type": 0, "to": KEETA_OTHER},
            {"type": 0, "amount": "0x1", "to": KEETA_OTHER},
        ])

        rows = transform_keeta_blocks([block], KEETA_USER)
        assert len(rows) == 1

    def test_operations_not_involving_user_skipped(self):
        block = keeta_block("DDDD", "2024-03-01T00:00:00Z", KEETA_OTHER,
                            [{"type": 0, "amount": "0x1", "to": "keeta_someoneelse"}])
        assert transform_keeta_blocks([block], KEETA_USER) == []


# ============================================================
# SEARCH AND SUMMARY
# ============================================================

class TestSummary:
    """Tests for filter_rows and summarize."""

    @pytest.fixture
    def rows(self, incoming_tx, outgoing_tx):
        token = make_token_transfer("0x" + "9" * 64, 1700000050, OTHER, USER, "2500000")
        return transform_all_transactions([incoming_tx, outgoing_tx], [token], USER)

    def test_filter_empty_query_keeps_all(self, rows):
        assert filter_rows(rows, "") == rows

    def test_filter_matches_asset_tag_hash_notes(self, rows):
        assert [r.asset for r in filter_rows(rows, "usdc")] == ["USDC"]
        assert len(filter_rows(rows, "DEPOSIT")) == 2
        assert len(filter_rows(rows, "0x2222")) == 1
        assert len(filter_rows(rows, "sent to")) == 1
        assert filter_rows(rows, "nothing-matches") == []

    def test_summarize(self, rows):
        stats = summarize(rows)

        assert stats["transaction_count"] == 3
        assert stats["unique_hashes"] == 3
        assert stats["active_days"] == 1
        assert stats["incoming_count"] == 2
        assert stats["outgoing_count"] == 1
        assert stats["fees"] == {"ETH": "0.00002100"}
        assert stats["net_volume"] == {"ETH": "0.50000000", "USDC": "2.50000000"}

    def test_summarize_empty(self):
        stats = summarize([])
        assert stats["transaction_count"] == 0
        assert stats["fees"] == {}
