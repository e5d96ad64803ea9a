"""
Report Generation

Generates Awaken Tax import files (CSV and Excel) from normalized rows.

Awaken expects exactly these columns, in this order:
Date, Asset, Amount, Fee, P&L, Payment Token, ID, Notes, Tag, Transaction Hash
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import httpx

from walletexport.normalize import AwakenRow, filter_rows, summarize

logger = logging.getLogger(__name__)


AWAKEN_CSV_HEADERS = (
    "Date",
    "Asset",
    "Amount",
    "Fee",
    "P&L",
    "Payment Token",
    "ID",
    "Notes",
    "Tag",
    "Transaction Hash",
)

CSV_MIMETYPE = "text/csv"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_filename(chain: str, address: str, today: Optional[date] = None, extension: str = "csv") -> str:
    """Build the download name, e.g. megaeth-0x1234ab-2024-05-01.csv."""
    today = today or date.today()
    return f"{chain}-{address[:8]}-{today.isoformat()}.{extension}"


# =============================================================================
# CSV Export
# =============================================================================

def generate_csv(rows: list[AwakenRow]) -> str:
    """Serialize rows into Awaken CSV (header plus one line per row)."""
    lines = [_csv_line(AWAKEN_CSV_HEADERS)]
    for row in rows:
        awaken = row.to_awaken()
        lines.append(_csv_line([awaken[header] for header in AWAKEN_CSV_HEADERS]))

    return "".join(line + "\n" for line in lines)


def _csv_line(values) -> str:
    # A CRLF terminator makes csv.writer quote fields holding a bare CR too
    output = io.StringIO()
    csv.writer(output, lineterminator="\r\n").writerow(values)
    return output.getvalue()[:-2]


def preview_csv(rows: list[AwakenRow], limit: int = 5) -> str:
    """CSV for the first few rows only."""
    return generate_csv(rows[:limit])


def export_to_csv(rows: list[AwakenRow], output_path: Optional[Path] = None) -> str:
    """
    Export rows to Awaken CSV.

    Returns CSV content as string. Optionally writes to file.
    """
    content = generate_csv(rows)

    if output_path:
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            f.write(content)

    return content


# =============================================================================
# Excel Export
# =============================================================================

def export_to_xlsx(rows: list[AwakenRow], output_path: Optional[Path] = None) -> bytes:
    """
    Export rows to an Excel workbook with the Awaken columns.

    Returns XLSX bytes. Optionally writes to file.
    """
    import openpyxl
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Awaken"

    header_fill = PatternFill(start_color="1a1a2e", end_color="1a1a2e", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")

    for col, header in enumerate(AWAKEN_CSV_HEADERS, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")

    # Amounts stay text so no precision is lost
    for row_idx, row in enumerate(rows, 2):
        awaken = row.to_awaken()
        for col, header in enumerate(AWAKEN_CSV_HEADERS, 1):
            ws.cell(row=row_idx, column=col, value=awaken[header])

    column_widths = {1: 12, 2: 10, 3: 24, 4: 14, 5: 8, 6: 14, 7: 12, 8: 40, 9: 12, 10: 68}
    for col, width in column_widths.items():
        ws.column_dimensions[get_column_letter(col)].width = width

    ws.freeze_panes = "A2"

    buffer = io.BytesIO()
    wb.save(buffer)
    xlsx_bytes = buffer.getvalue()

    if output_path:
        with open(output_path, "wb") as f:
            f.write(xlsx_bytes)

    return xlsx_bytes


# =============================================================================
# Export Service (Orchestrator)
# =============================================================================

class ExportService:
    """
    Orchestrates fetch, normalization and file generation for one wallet.

    Usage:
        service = ExportService()
        rows = service.fetch_ledger("megaeth", "0x...")
        content, filename, mimetype = service.build_export(rows, "megaeth", "0x...")
    """

    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client

    def fetch_ledger(self, chain: str, wallet_address: str) -> list[AwakenRow]:
        """Fetch and normalize a wallet's history."""
        from walletexport.wallet import LedgerGenerator

        logger.info(f"Fetching {chain} transactions for {wallet_address}...")
        generator = LedgerGenerator(chain=chain, client=self.client)
        try:
            rows = generator.generate_ledger(wallet_address)
        finally:
            # An injected client belongs to the caller
            if self.client is None:
                generator.close()

        logger.info(f"Normalized {len(rows)} rows")
        return rows

    def fetch_balance(self, chain: str, wallet_address: str) -> str:
        from walletexport.wallet import LedgerGenerator

        generator = LedgerGenerator(chain=chain, client=self.client)
        try:
            return generator.get_balance(wallet_address)
        finally:
            if self.client is None:
                generator.close()

    def generate_report(self, chain: str, wallet_address: str, query: str = "") -> dict:
        """Rows plus summary statistics, optionally filtered by a search query."""
        rows = filter_rows(self.fetch_ledger(chain, wallet_address), query)
        return {
            "success": True,
            "chain": chain,
            "address": wallet_address,
            "transaction_count": len(rows),
            "stats": summarize(rows),
            "transactions": [row.to_dict() for row in rows],
        }

    def build_export(
        self,
        rows: list[AwakenRow],
        chain: str,
        wallet_address: str,
        output_format: str = "csv",
    ) -> tuple[bytes, str, str]:
        """Render rows as a downloadable file: (content, filename, mimetype)."""
        if output_format.lower() == "xlsx":
            return (
                export_to_xlsx(rows),
                export_filename(chain, wallet_address, extension="xlsx"),
                XLSX_MIMETYPE,
            )
        return (
            export_to_csv(rows).encode("utf-8"),
            export_filename(chain, wallet_address),
            CSV_MIMETYPE,
        )
