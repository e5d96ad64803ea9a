"""
Wallet Export Web API

Flask application backing the wallet analyzer front end.
Provides endpoints for:
- Supported chains
- Normalized transaction history with summary stats
- Awaken CSV / XLSX downloads
"""

from __future__ import annotations

import argparse
import io
import logging
from typing import Optional

import httpx
from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

from walletexport.exports import ExportService
from walletexport.wallet import (
    CHAINS,
    DEFAULT_CHAIN,
    ExplorerAPIError,
    get_supported_chains,
    validate_address,
)

logger = logging.getLogger(__name__)


def _read_query() -> tuple[str, str]:
    chain = request.args.get("chain", DEFAULT_CHAIN).strip().lower()
    address = request.args.get("address", "").strip()
    return chain, address


def _validate(chain: str, address: str) -> Optional[str]:
    if chain not in CHAINS:
        return f"Unsupported chain: {chain}"
    if not address:
        return "Wallet address required"
    if not validate_address(address, chain):
        return f"Invalid address: {address}"
    return None


# =============================================================================
# Flask App Factory
# =============================================================================

def create_app(service: Optional[ExportService] = None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)
    CORS(app)

    export_service = service or ExportService()
    app.config["export_service"] = export_service

    def upstream_error(e: Exception):
        logger.exception("Explorer request failed")
        return jsonify({"success": False, "error": str(e) or "Failed to fetch transactions"}), 502

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/chains")
    def list_chains():
        return jsonify([
            {
                "id": c.id,
                "name": c.name,
                "display_name": c.display_name,
                "native_symbol": c.native_symbol,
                "explorer_url": c.explorer_url,
            }
            for c in get_supported_chains()
        ])

    @app.route("/api/transactions")
    def get_transactions():
        chain, address = _read_query()
        error = _validate(chain, address)
        if error:
            return jsonify({"success": False, "error": error}), 400

        try:
            report = export_service.generate_report(chain, address, request.args.get("search", ""))
        except (ExplorerAPIError, httpx.HTTPError) as e:
            return upstream_error(e)
        return jsonify(report)

    @app.route("/api/balance")
    def get_balance():
        chain, address = _read_query()
        error = _validate(chain, address)
        if error:
            return jsonify({"success": False, "error": error}), 400

        try:
            balance = export_service.fetch_balance(chain, address)
        except (ExplorerAPIError, httpx.HTTPError) as e:
            return upstream_error(e)
        except ValueError as e:
            # Unsupported chain or missing RPC configuration
            return jsonify({"success": False, "error": str(e)}), 400
        return jsonify({"success": True, "balance": balance, "symbol": CHAINS[chain].native_symbol})

    @app.route("/api/export/<output_format>")
    def download_export(output_format: str):
        output_format = output_format.lower()
        if output_format not in ("csv", "xlsx"):
            return jsonify({"success": False, "error": "Invalid format"}), 400

        chain, address = _read_query()
        error = _validate(chain, address)
        if error:
            return jsonify({"success": False, "error": error}), 400

        try:
            rows = export_service.fetch_ledger(chain, address)
        except (ExplorerAPIError, httpx.HTTPError) as e:
            return upstream_error(e)

        if not rows:
            return jsonify({"success": False, "error": "No transactions found"}), 404

        content, filename, mimetype = export_service.build_export(rows, chain, address, output_format)
        return send_file(
            io.BytesIO(content),
            mimetype=mimetype,
            as_attachment=True,
            download_name=filename,
        )

    logger.info("Wallet export API initialized")
    return app


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    parser = argparse.ArgumentParser(description="Wallet Export - Awaken Tax CSV API")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5000, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    print(f"   Running at: http://{args.host}:{args.port}")
    print("   Press Ctrl+C to stop")

    app = create_app()
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
