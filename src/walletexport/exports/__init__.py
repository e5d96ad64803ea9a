"""Export generation module."""

from .generate_reports import (
    AWAKEN_CSV_HEADERS,
    ExportService,
    export_filename,
    export_to_csv,
    export_to_xlsx,
    generate_csv,
    preview_csv,
)

__all__ = [
    "AWAKEN_CSV_HEADERS",
    "ExportService",
    "export_filename",
    "export_to_csv",
    "export_to_xlsx",
    "generate_csv",
    "preview_csv",
]
