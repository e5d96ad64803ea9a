"""Wallet history exporter producing Awaken Tax CSV files."""

__version__ = "0.1.0"
