"""Read student score rows from the first sheet of an Excel workbook."""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from score_records import (
    DEFAULT_TOLERANCE,
    REQUIRED_COLUMNS,
    MalformedRow,
    StudentRecord,
    cell_text,
    parse_row,
    record_issue,
)

logger = logging.getLogger(__name__)

# Spreadsheet row number of the first data row (row 1 is the header).
FIRST_DATA_ROW = 2


class FileError(RuntimeError):
    """Raised when the workbook or its first sheet cannot be read."""


def trim_trailing_empty(cells: Sequence[str]) -> List[str]:
    out = list(cells)
    while out and out[-1] == "":
        out.pop()
    return out


def read_first_sheet(xlsx_path: str) -> List[List[str]]:
    """Return every row of the first sheet as a list of cell strings.

    Blank cells become ``""`` and trailing blank cells are dropped, so the
    length of a row is the number of columns it actually populates.
    """

    if not os.path.isfile(xlsx_path):
        raise FileError(f"failed to open file: {xlsx_path} not found")

    try:
        df = pd.read_excel(xlsx_path, sheet_name=0, header=None, dtype=str, engine="openpyxl")
    except Exception as exc:
        raise FileError(f"failed to read sheet: {exc}") from exc

    if df is None or df.empty:
        return []

    return [trim_trailing_empty([cell_text(v) for v in row]) for row in df.itertuples(index=False)]


def extract_rows(
    rows: Sequence[Sequence[str]],
    issues: Optional[List[Dict[str, object]]] = None,
) -> List[Tuple[int, List[str]]]:
    """Drop the header and short rows; pair each data row with its row number."""

    data_rows: List[Tuple[int, List[str]]] = []
    for offset, row in enumerate(rows[1:]):
        row_number = offset + FIRST_DATA_ROW
        if len(row) < REQUIRED_COLUMNS:
            record_issue(
                issues,
                row_number,
                "short_row",
                f"Row {row_number} has {len(row)} columns, expected at least {REQUIRED_COLUMNS}",
            )
            continue
        data_rows.append((row_number, list(row)))
    return data_rows


def load_records(
    xlsx_path: str,
    issues: Optional[List[Dict[str, object]]] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> List[StudentRecord]:
    """Parse every usable data row of *xlsx_path* into StudentRecords.

    Rows that fail to parse are skipped and reported to *issues*; a workbook
    that cannot be read raises FileError.
    """

    rows = read_first_sheet(xlsx_path)
    records: List[StudentRecord] = []

    for row_number, row in extract_rows(rows, issues):
        try:
            record = parse_row(row_number, row, issues, tolerance)
        except MalformedRow as exc:
            record_issue(issues, row_number, "malformed_row", f"Error parsing row {row_number}: {exc}")
            continue
        records.append(record)

    logger.debug("Parsed %d records from %s", len(records), xlsx_path)
    return records
