"""
CSV parsing for the import wizard's Upload step.

Turns raw delimited text into rows keyed by normalized headers. Shape
problems (short or long rows) never fail the parse; only unreadable input
raises ParseError.
"""

import csv
import io
import re
from typing import Iterable, Mapping, Sequence

from contact_import.shared.exceptions import ParseError
from contact_import.shared.logging import get_logger

logger = get_logger(__name__)

Row = dict[str, str]

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_header(header: str) -> str:
    """Normalize a CSV header to a field key.

    Args:
        header: Raw header string.

    Returns:
        Trimmed, lower-cased header with whitespace runs replaced by "_".
    """
    return _WHITESPACE_RUN.sub("_", header.strip().lower())


def build_field_keys(headers: Sequence[str]) -> list[str]:
    """Normalize a header row into unique field keys.

    Blank headers become ``column_<position>``; repeated keys get a numeric
    suffix (``name``, ``name_1``, ``name_2``).
    """
    keys: list[str] = []
    seen: dict[str, int] = {}
    for position, header in enumerate(headers, start=1):
        key = normalize_header(header) or f"column_{position}"
        if key in seen:
            seen[key] += 1
            candidate = f"{key}_{seen[key]}"
            while candidate in seen:
                seen[key] += 1
                candidate = f"{key}_{seen[key]}"
            key = candidate
        seen.setdefault(key, 0)
        keys.append(key)
    return keys


def _is_empty_line(cells: Sequence[str]) -> bool:
    # Delimiter-only lines such as ",," are rows with empty cells, not empty lines.
    return len(cells) <= 1 and not "".join(cells).strip()


def _decode(content: str | bytes, encoding: str) -> str:
    if isinstance(content, str):
        return content.lstrip("\ufeff")
    try:
        return content.decode(encoding).lstrip("\ufeff")
    except (UnicodeDecodeError, LookupError) as e:
        raise ParseError(
            f"File encoding error: {e}",
            details={"encoding": encoding},
        ) from e


def read_table(
    content: str | bytes,
    has_header: bool = True,
    delimiter: str = ",",
    encoding: str = "utf-8",
) -> tuple[list[str], list[Row]]:
    """Parse CSV content into field keys and rows.

    Args:
        content: Raw CSV text (or bytes in ``encoding``).
        has_header: Treat the first non-empty line as the header row.
        delimiter: CSV field delimiter.
        encoding: Encoding used when ``content`` is bytes.

    Returns:
        Tuple of (field keys, rows in file order). Every row carries every
        field key; missing cells are empty strings.

    Raises:
        ParseError: If the input cannot be decoded or is not valid CSV.
    """
    text = _decode(content, encoding)

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, strict=True)
    try:
        records = [cells for cells in reader if not _is_empty_line(cells)]
    except csv.Error as e:
        raise ParseError(
            f"CSV parsing error: {e}",
            details={"line_number": reader.line_num},
        ) from e

    if not records:
        logger.debug("CSV input contained no rows")
        return [], []

    if has_header:
        keys = build_field_keys(records[0])
        body = records[1:]
    else:
        width = max(len(cells) for cells in records)
        keys = [f"column_{i}" for i in range(1, width + 1)]
        body = records

    rows: list[Row] = []
    truncated = 0
    for cells in body:
        if len(cells) > len(keys):
            truncated += 1
        rows.append({key: cells[i] if i < len(cells) else "" for i, key in enumerate(keys)})

    if truncated:
        logger.warning(
            "Dropped surplus cells from rows wider than the header",
            extra={"rows_affected": truncated, "header_width": len(keys)},
        )

    logger.debug(
        "CSV parsed",
        extra={"field_keys": keys, "row_count": len(rows)},
    )
    return keys, rows


def parse_csv(
    content: str | bytes,
    has_header: bool = True,
    delimiter: str = ",",
    encoding: str = "utf-8",
) -> list[Row]:
    """Parse CSV content into rows, see ``read_table``."""
    _, rows = read_table(content, has_header=has_header, delimiter=delimiter, encoding=encoding)
    return rows


def export_rows(rows: Iterable[Mapping[str, str]], headers: Sequence[str] | None = None) -> str:
    """Render rows back to CSV text.

    Args:
        rows: Rows to render.
        headers: Column order; defaults to the keys of the first row.

    Returns:
        CSV text with a header line.
    """
    rows = list(rows)
    if headers is None:
        headers = list(rows[0].keys()) if rows else []

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(headers), extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: row.get(key, "") for key in headers})
    return buffer.getvalue()


def render_template(template_fields: Iterable[Mapping[str, str]]) -> str:
    """Build a one-example-row CSV template.

    Args:
        template_fields: Items with ``name`` and ``example`` keys.

    Returns:
        CSV text: header of field names, then the example values.
    """
    fields = list(template_fields)
    sample = {field["name"]: field["example"] for field in fields}
    return export_rows([sample], headers=[field["name"] for field in fields])
