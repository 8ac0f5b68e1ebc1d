"""
Row parsing for the Upload step.
"""

from contact_import.parsing.csv_parser import (
    Row,
    export_rows,
    normalize_header,
    parse_csv,
    read_table,
    render_template,
)

__all__ = ["Row", "export_rows", "normalize_header", "parse_csv", "read_table", "render_template"]
